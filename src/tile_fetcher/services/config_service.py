import json
import logging
import numbers
import os
from typing import Any, Dict, Optional

from tile_fetcher.exceptions.tile_fetcher_exceptions import (
    BoundingBoxOutOfExtentError,
    ConfigurationError,
    MissingSubdomainsError,
    ValidationError,
)
from tile_fetcher.interfaces.coordinate_resolver import ICoordinateResolver
from tile_fetcher.interfaces.tile_fetcher import IConfigLoader
from tile_fetcher.models.fetch_config import (
    DEFAULT_BBOX_CRS,
    DEFAULT_CRS,
    DEFAULT_MAX_PARALLEL_DOWNLOADS,
    DEFAULT_TILE_SIZE,
    FetchConfig,
    FetchOptions,
)
from tile_fetcher.models.tile_models import Extent
from tile_fetcher.services.crs_service import PyprojCoordinateResolver
from tile_fetcher.utils.tile_grid import TileGridCalculator
from tile_fetcher.utils.url_template import UrlTemplate


logger = logging.getLogger(__name__)

# camelCase keys accepted alongside the snake_case ones
KEY_ALIASES = {
    'source_url': 'url',
    'sourceUrl': 'url',
    'source_subdomains': 'subdomains',
    'sourceSubdomains': 'subdomains',
    'minZoom': 'min_zoom',
    'maxZoom': 'max_zoom',
    'tileSize': 'tile_size',
    'bboxCrs': 'bbox_crs',
    'maxParallelDownloads': 'max_parallel_downloads',
}


class ConfigService(IConfigLoader):
    """Service for loading, validating and resolving fetch configuration"""

    def __init__(self, resolver: Optional[ICoordinateResolver] = None):
        self.resolver = resolver or PyprojCoordinateResolver()

    def load_config(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from JSON file"""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Config file {config_path} not found!")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Error loading config: {e}") from e

        if not isinstance(config, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a JSON object")

        return self.normalize_keys(config)

    @staticmethod
    def normalize_keys(raw: Dict[str, Any]) -> Dict[str, Any]:
        """Map alias keys onto their canonical names"""
        normalized = {}
        for key, value in raw.items():
            canonical = KEY_ALIASES.get(key, key)
            if canonical in normalized and canonical != key:
                continue
            normalized[canonical] = value
        return normalized

    def validate_config(self, raw: Dict[str, Any]) -> bool:
        """Validate configuration structure"""
        required_keys = ['url', 'bbox', 'min_zoom', 'max_zoom']

        for key in required_keys:
            if key not in raw or raw[key] is None:
                raise ValidationError(f"Missing required key: {key}")

        if not isinstance(raw['url'], str) or not raw['url'].strip():
            raise ValidationError("url must be a non-empty string")

        subdomains = raw.get('subdomains')
        if subdomains is not None:
            if isinstance(subdomains, str) or not isinstance(subdomains, (list, tuple)):
                raise ValidationError("subdomains must be a list of strings")
            if not all(isinstance(s, str) for s in subdomains):
                raise ValidationError("subdomains must be a list of strings")

        self._parse_bbox(raw['bbox'])

        min_zoom = self._parse_int(raw['min_zoom'], 'min_zoom')
        max_zoom = self._parse_int(raw['max_zoom'], 'max_zoom')
        if min_zoom < 0:
            raise ValidationError(f"min_zoom must not be negative, got {min_zoom}")
        if min_zoom > max_zoom:
            raise ValidationError(f"min_zoom ({min_zoom}) cannot be greater than max_zoom ({max_zoom})")

        tile_size = self._parse_int(raw.get('tile_size', DEFAULT_TILE_SIZE), 'tile_size')
        if tile_size <= 0:
            raise ValidationError(f"tile_size must be positive, got {tile_size}")

        return True

    def build_fetch_config(self, raw: Dict[str, Any]) -> FetchConfig:
        """Validate raw configuration and resolve it into a FetchConfig"""
        raw = self.normalize_keys(raw)
        self.validate_config(raw)

        url = raw['url']
        subdomains = tuple(raw['subdomains']) if raw.get('subdomains') is not None else None
        if UrlTemplate(url).uses_subdomains and not subdomains:
            raise MissingSubdomainsError(f"Missing Subdomains argument for url {url}")

        bbox = self._parse_bbox(raw['bbox'])
        min_zoom = self._parse_int(raw['min_zoom'], 'min_zoom')
        max_zoom = self._parse_int(raw['max_zoom'], 'max_zoom')
        tile_size = self._parse_int(raw.get('tile_size', DEFAULT_TILE_SIZE), 'tile_size')

        crs = self.resolver.normalize_crs_code(raw.get('crs') or DEFAULT_CRS)
        bbox_crs = self.resolver.normalize_crs_code(raw.get('bbox_crs') or DEFAULT_BBOX_CRS)
        crs_extent = self.resolver.get_extent(crs)
        bbox_crs_extent = self.resolver.get_extent(bbox_crs)

        # PROJ wraps longitudes outside the domain of the bbox CRS
        if not self.resolver.contains_extent(bbox_crs_extent, bbox):
            raise BoundingBoxOutOfExtentError(
                f"The supplied bounding box exceeds the extent of {bbox_crs}")

        if self.resolver.same_crs(bbox_crs, crs):
            target_bbox = bbox
        else:
            target_bbox = self.resolver.transform_extent(bbox, bbox_crs, crs)
        if not self.resolver.contains_extent(crs_extent, target_bbox):
            raise BoundingBoxOutOfExtentError(
                f"The supplied bounding box exceeds the extent of {crs}")

        grid = TileGridCalculator.build_grid(crs_extent, min_zoom, max_zoom, tile_size)
        tile_ranges = tuple(
            TileGridCalculator.tile_range_for_extent_and_zoom(
                bbox, bbox_crs, crs, zoom, grid, resolver=self.resolver)
            for zoom in range(min_zoom, max_zoom + 1)
        )
        total_count = sum(tile_range.count for tile_range in tile_ranges)

        for tile_range in tile_ranges:
            logger.debug("Zoom %d: x %d-%d, y %d-%d (%d tiles)", tile_range.zoom,
                         tile_range.min_x, tile_range.max_x, tile_range.min_y, tile_range.max_y,
                         tile_range.count)
        logger.info("Resolved %d tiles over zoom %d-%d in %s", total_count, min_zoom, max_zoom, crs)

        return FetchConfig(
            url=url,
            subdomains=subdomains,
            bbox=bbox,
            bbox_crs=bbox_crs,
            crs=crs,
            crs_extent=crs_extent,
            min_zoom=min_zoom,
            max_zoom=max_zoom,
            tile_size=tile_size,
            tile_ranges=tile_ranges,
            total_count=total_count
        )

    def get_fetch_options(self, raw: Dict[str, Any]) -> FetchOptions:
        """Get download settings from configuration"""
        raw = self.normalize_keys(raw)
        max_parallel = self._parse_int(
            raw.get('max_parallel_downloads', DEFAULT_MAX_PARALLEL_DOWNLOADS), 'max_parallel_downloads')
        if max_parallel < 1:
            raise ValidationError(f"max_parallel_downloads must be at least 1, got {max_parallel}")

        timeout = raw.get('timeout', 30)
        if isinstance(timeout, bool) or not isinstance(timeout, numbers.Real) or timeout <= 0:
            raise ValidationError(f"timeout must be a positive number, got {timeout!r}")

        headers = raw.get('headers') or {}
        if not isinstance(headers, dict):
            raise ValidationError("headers must be a dictionary")

        return FetchOptions(
            max_parallel_downloads=max_parallel,
            timeout=timeout,
            headers={str(k): str(v) for k, v in headers.items()}
        )

    @staticmethod
    def _parse_bbox(value: Any) -> Extent:
        if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)) or len(value) != 4:
            raise ValidationError(f"bbox must be 4 numbers [min_x, min_y, max_x, max_y], got {value!r}")
        if not all(isinstance(v, numbers.Real) and not isinstance(v, bool) for v in value):
            raise ValidationError(f"bbox must be 4 numbers [min_x, min_y, max_x, max_y], got {value!r}")

        bbox = Extent.from_sequence(value)
        if not bbox.is_valid():
            raise ValidationError(f"bbox minimum exceeds maximum: {list(bbox)}")
        return bbox

    @staticmethod
    def _parse_int(value: Any, name: str) -> int:
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            raise ValidationError(f"{name} must be an integer, got {value!r}")
        return int(value)

