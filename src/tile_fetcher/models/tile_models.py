from dataclasses import dataclass, field
from typing import NamedTuple, Sequence, Tuple


class Extent(NamedTuple):
    """Axis-aligned extent [min_x, min_y, max_x, max_y] in native CRS units"""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> 'Extent':
        """Build an extent from any 4-item sequence"""
        if len(values) != 4:
            raise ValueError(f"Extent needs exactly 4 values, got {len(values)}")
        min_x, min_y, max_x, max_y = (float(v) for v in values)
        return cls(min_x, min_y, max_x, max_y)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def max_dimension(self) -> float:
        """Larger of width and height"""
        return max(self.width, self.height)

    def is_valid(self) -> bool:
        """Check min <= max on both axes"""
        return self.min_x <= self.max_x and self.min_y <= self.max_y


@dataclass(frozen=True)
class TileGrid:
    """XYZ tile grid over a CRS extent.

    ``resolutions`` always starts at zoom 0, whatever ``min_zoom`` is, so two
    grids over the same extent agree on every shared zoom level.
    """
    extent: Extent
    min_zoom: int
    max_zoom: int
    tile_size: int
    resolutions: Tuple[float, ...]

    @property
    def origin(self) -> Tuple[float, float]:
        """Top-left corner of the grid"""
        return self.extent.min_x, self.extent.max_y


@dataclass(frozen=True)
class TileRange:
    """Inclusive tile index rectangle for one zoom level"""
    zoom: int
    min_x: int
    max_x: int
    min_y: int
    max_y: int
    count: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'count',
                           (self.max_x - self.min_x + 1) * (self.max_y - self.min_y + 1))

    def __contains__(self, xy: Tuple[int, int]) -> bool:
        x, y = xy
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y


@dataclass(frozen=True)
class UnfetchedTile:
    """Tile descriptor waiting to be downloaded"""
    url: str
    x: int
    y: int
    z: int


@dataclass(frozen=True)
class FetchedTile:
    """Downloaded tile payload"""
    url: str
    x: int
    y: int
    z: int
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        """Payload size in bytes"""
        return len(self.data)

    @classmethod
    def from_unfetched(cls, tile: UnfetchedTile, data: bytes, content_type: str) -> 'FetchedTile':
        return cls(url=tile.url, x=tile.x, y=tile.y, z=tile.z,
                   data=data, content_type=content_type)
