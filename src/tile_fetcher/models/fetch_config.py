from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from tile_fetcher.models.tile_models import Extent, TileRange


DEFAULT_BBOX_CRS = "EPSG:4326"
DEFAULT_CRS = "EPSG:3857"
DEFAULT_TILE_SIZE = 256
DEFAULT_MAX_PARALLEL_DOWNLOADS = 6


@dataclass(frozen=True)
class FetchConfig:
    """Validated download session configuration.

    Built by ``ConfigService.build_fetch_config`` and never mutated afterwards.
    """
    url: str
    subdomains: Optional[Tuple[str, ...]]
    bbox: Extent
    bbox_crs: str
    crs: str
    crs_extent: Extent
    min_zoom: int
    max_zoom: int
    tile_size: int
    tile_ranges: Tuple[TileRange, ...]
    total_count: int

    @property
    def zoom_levels(self) -> Tuple[int, ...]:
        return tuple(tile_range.zoom for tile_range in self.tile_ranges)


@dataclass
class FetchOptions:
    """Download settings that are not part of the tile selection"""
    max_parallel_downloads: int = DEFAULT_MAX_PARALLEL_DOWNLOADS
    timeout: float = 30
    headers: Dict[str, str] = field(default_factory=dict)
