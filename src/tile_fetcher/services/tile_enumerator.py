from typing import Iterable, Iterator, Optional, Sequence

from tile_fetcher.models.fetch_config import FetchConfig
from tile_fetcher.models.tile_models import TileRange, UnfetchedTile
from tile_fetcher.utils.url_template import UrlTemplate


class TileEnumerator:
    """Single-use iterator over the tiles of a list of tile ranges.

    Tiles come zoom by zoom in the order of the ranges, then by ascending x,
    then by ascending y. The subdomain cursor belongs to this instance and
    advances once per tile before it is read, so ``[a, b, c]`` yields
    ``b, c, a, b, ...``.
    """

    def __init__(self, tile_ranges: Iterable[TileRange], url: str,
                 subdomains: Optional[Sequence[str]] = None):
        self.tile_ranges = tuple(tile_ranges)
        self.template = UrlTemplate(url)
        self.subdomains = tuple(subdomains or ())
        self._cursor = 0
        self._tiles = self._generate()

    @classmethod
    def from_config(cls, config: FetchConfig) -> 'TileEnumerator':
        return cls(config.tile_ranges, config.url, config.subdomains)

    @property
    def total_count(self) -> int:
        return sum(tile_range.count for tile_range in self.tile_ranges)

    def __iter__(self) -> Iterator[UnfetchedTile]:
        return self

    def __next__(self) -> UnfetchedTile:
        return next(self._tiles)

    def _next_subdomain(self) -> Optional[str]:
        if not self.subdomains:
            return None
        self._cursor = (self._cursor + 1) % len(self.subdomains)
        return self.subdomains[self._cursor]

    def _generate(self) -> Iterator[UnfetchedTile]:
        for tile_range in self.tile_ranges:
            zoom = tile_range.zoom
            for x in range(tile_range.min_x, tile_range.max_x + 1):
                for y in range(tile_range.min_y, tile_range.max_y + 1):
                    url = self.template.render(x, y, zoom, self._next_subdomain())
                    yield UnfetchedTile(url=url, x=x, y=y, z=zoom)
