import math
from typing import List

from tile_fetcher.exceptions.tile_fetcher_exceptions import ValidationError, ZoomOutOfRangeError
from tile_fetcher.interfaces.coordinate_resolver import CRSIdentifier, ICoordinateResolver
from tile_fetcher.models.fetch_config import DEFAULT_TILE_SIZE
from tile_fetcher.models.tile_models import Extent, TileGrid, TileRange


class TileGridCalculator:
    """Utility class for projection-aware tile grid calculations"""

    @staticmethod
    def calculate_resolutions(extent: Extent, max_zoom: int,
                              tile_size: int = DEFAULT_TILE_SIZE) -> List[float]:
        """Map units per pixel for zoom 0..max_zoom.

        The larger extent dimension is used so square tiles cover the whole
        extent.
        """
        max_dimension = Extent.from_sequence(extent).max_dimension
        return [max_dimension / (tile_size * 2 ** zoom) for zoom in range(max_zoom + 1)]

    @staticmethod
    def build_grid(extent: Extent, min_zoom: int = 0, max_zoom: int = 20,
                   tile_size: int = DEFAULT_TILE_SIZE) -> TileGrid:
        """Create an XYZ tile grid over a CRS extent"""
        extent = Extent.from_sequence(extent)
        if not extent.is_valid() or extent.max_dimension <= 0:
            raise ValidationError(f"Grid extent must have a positive size: {list(extent)}")
        if min_zoom < 0 or max_zoom < min_zoom:
            raise ValidationError(f"Invalid zoom range {min_zoom}-{max_zoom}")
        if tile_size <= 0:
            raise ValidationError(f"Tile size must be positive, got {tile_size}")

        resolutions = TileGridCalculator.calculate_resolutions(extent, max_zoom, tile_size)
        return TileGrid(
            extent=extent,
            min_zoom=min_zoom,
            max_zoom=max_zoom,
            tile_size=tile_size,
            resolutions=tuple(resolutions)
        )

    @staticmethod
    def tile_range_for_extent(extent: Extent, zoom: int, grid: TileGrid) -> TileRange:
        """Get the inclusive tile range covering an extent at one zoom level"""
        if zoom < 0 or zoom >= len(grid.resolutions):
            raise ZoomOutOfRangeError(
                f"Zoom level {zoom} not in grid resolutions (0-{len(grid.resolutions) - 1})")

        bbox_min_x, bbox_min_y, bbox_max_x, bbox_max_y = extent
        origin_x, origin_y = grid.origin
        tile_span = grid.resolutions[zoom] * grid.tile_size
        last_index = 2 ** zoom - 1

        # X grows to the right of the origin, Y grows down from it
        tile_min_x = math.floor((bbox_min_x - origin_x) / tile_span)
        tile_max_x = math.floor((bbox_max_x - origin_x) / tile_span)
        tile_min_y = math.floor((origin_y - bbox_max_y) / tile_span)
        tile_max_y = math.floor((origin_y - bbox_min_y) / tile_span)

        min_x, max_x = TileGridCalculator._normalize_and_clamp(tile_min_x, tile_max_x, last_index)
        min_y, max_y = TileGridCalculator._normalize_and_clamp(tile_min_y, tile_max_y, last_index)

        return TileRange(zoom=zoom, min_x=min_x, max_x=max_x, min_y=min_y, max_y=max_y)

    @staticmethod
    def tile_range_for_extent_and_zoom(bbox: Extent, source_crs: CRSIdentifier,
                                       target_crs: CRSIdentifier, zoom: int, grid: TileGrid,
                                       resolver: ICoordinateResolver) -> TileRange:
        """Get the tile range for a bbox given in another CRS"""
        if resolver.same_crs(source_crs, target_crs):
            target_extent = Extent.from_sequence(bbox)
        else:
            target_extent = resolver.transform_extent(Extent.from_sequence(bbox), source_crs, target_crs)

        return TileGridCalculator.tile_range_for_extent(target_extent, zoom, grid)

    @staticmethod
    def _normalize_and_clamp(first: int, second: int, last_index: int):
        low = max(0, min(first, second, last_index))
        high = min(last_index, max(first, second, 0))
        return low, high
