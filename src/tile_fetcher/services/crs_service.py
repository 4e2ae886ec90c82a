import logging
import math
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Iterable, Optional

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError

from tile_fetcher.exceptions.tile_fetcher_exceptions import TransformationError, UnknownCRSError
from tile_fetcher.interfaces.coordinate_resolver import CRSIdentifier, ICoordinateResolver
from tile_fetcher.models.tile_models import Extent


logger = logging.getLogger(__name__)

# Same square as OpenLayers and most XYZ services use for Web Mercator
WEB_MERCATOR_EXTENT = Extent(-20037508.342789244, -20037508.342789244,
                             20037508.342789244, 20037508.342789244)

WGS84 = "EPSG:4326"

_AUTHORITY_CODE = re.compile(r'^\s*([A-Za-z]+)\s*:\s*(\d+)\s*$')


@dataclass(frozen=True)
class CRSInfo:
    """Resolved CRS record"""
    code: str
    name: str
    bbox_wgs84: Extent
    extent: Extent


@lru_cache(maxsize=64)
def _get_transformer(from_code: str, to_code: str) -> Transformer:
    return Transformer.from_crs(from_code, to_code, always_xy=True)


class PyprojCoordinateResolver(ICoordinateResolver):
    """Coordinate resolver backed by the local PROJ database"""

    def __init__(self):
        self._cache: Dict[str, CRSInfo] = {}

    @staticmethod
    def normalize_crs_code(crs: CRSIdentifier) -> str:
        """Normalize 3857, "3857" and "epsg:3857" to "EPSG:3857".

        Anything that is not a bare number or an AUTHORITY:CODE pair is passed
        through unchanged for pyproj to interpret.
        """
        if isinstance(crs, bool):
            raise UnknownCRSError(f"Invalid CRS identifier: {crs!r}")
        if isinstance(crs, int):
            return f"EPSG:{crs}"
        if not isinstance(crs, str) or not crs.strip():
            raise UnknownCRSError(f"Invalid CRS identifier: {crs!r}")

        code = crs.strip()
        if code.isdigit():
            return f"EPSG:{code}"
        match = _AUTHORITY_CODE.match(code)
        if match:
            return f"{match.group(1).upper()}:{match.group(2)}"
        return code

    def get_crs_info(self, crs: CRSIdentifier) -> CRSInfo:
        """Resolve a CRS identifier, using the cache when possible"""
        code = self.normalize_crs_code(crs)
        cached = self._cache.get(code)
        if cached is not None:
            return cached

        try:
            crs_obj = CRS.from_user_input(code)
        except CRSError as e:
            raise UnknownCRSError(f"Couldn't get the extent for {code}: {e}") from e

        area = crs_obj.area_of_use
        if area is None:
            raise UnknownCRSError(f"Couldn't get the extent for {code}: no area of use defined")

        bbox_wgs84 = Extent(area.west, area.south, area.east, area.north)
        if code == "EPSG:3857":
            extent = WEB_MERCATOR_EXTENT
        elif code == WGS84:
            extent = bbox_wgs84
        else:
            extent = self.transform_extent(bbox_wgs84, WGS84, code)

        info = CRSInfo(code=code, name=crs_obj.name, bbox_wgs84=bbox_wgs84, extent=extent)
        self._cache[code] = info
        logger.debug("Resolved %s (%s) with extent %s", code, info.name, extent)
        return info

    def get_extent(self, crs: CRSIdentifier) -> Extent:
        """Get the native-unit extent of a CRS"""
        return self.get_crs_info(crs).extent

    def get_cached_crs_info(self, crs: CRSIdentifier) -> Optional[CRSInfo]:
        """Get cached CRS information without resolving"""
        return self._cache.get(self.normalize_crs_code(crs))

    def preload_common_crs(self, codes: Iterable[CRSIdentifier] = (4326, 3857)) -> None:
        """Resolve a set of CRSs up front"""
        for code in codes:
            self.get_crs_info(code)

    def clear_cache(self) -> None:
        self._cache.clear()

    def same_crs(self, first: CRSIdentifier, second: CRSIdentifier) -> bool:
        return self.normalize_crs_code(first) == self.normalize_crs_code(second)

    def transform_extent(self, extent: Extent, from_crs: CRSIdentifier,
                         to_crs: CRSIdentifier) -> Extent:
        """Transform the four corners and return their bounding box"""
        from_code = self.normalize_crs_code(from_crs)
        to_code = self.normalize_crs_code(to_crs)

        try:
            transformer = _get_transformer(from_code, to_code)
        except (CRSError, ProjError) as e:
            raise TransformationError(f"Cannot transform from {from_code} to {to_code}: {e}") from e

        min_x, min_y, max_x, max_y = extent
        corner_xs = [min_x, max_x, max_x, min_x]
        corner_ys = [min_y, min_y, max_y, max_y]

        try:
            xs, ys = transformer.transform(corner_xs, corner_ys, errcheck=True)
        except ProjError as e:
            raise TransformationError(
                f"Failed to transform extent {list(extent)} from {from_code} to {to_code}: {e}") from e

        xs = list(xs)
        ys = list(ys)
        if not all(math.isfinite(v) for v in xs + ys):
            raise TransformationError(
                f"Failed to transform extent {list(extent)} from {from_code} to {to_code}: "
                f"non-finite coordinates")

        return Extent(min(xs), min(ys), max(xs), max(ys))

    def contains_extent(self, outer: Extent, inner: Extent) -> bool:
        return (outer[0] <= inner[0] and outer[2] >= inner[2] and
                outer[1] <= inner[1] and outer[3] >= inner[3])
