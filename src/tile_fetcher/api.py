import threading
from typing import Any, Dict, Iterator, Optional

from tile_fetcher.models.fetch_config import FetchConfig
from tile_fetcher.models.tile_models import FetchedTile, UnfetchedTile
from tile_fetcher.services.config_service import ConfigService
from tile_fetcher.services.crs_service import PyprojCoordinateResolver
from tile_fetcher.services.tile_enumerator import TileEnumerator
from tile_fetcher.services.tile_fetch_service import TileFetchService


class TileFetcherAPI:
    """Main tile fetcher API class"""
    
    def __init__(self, resolver: Optional[PyprojCoordinateResolver] = None,
                 fetch_service: Optional[TileFetchService] = None):
        self.resolver = resolver or PyprojCoordinateResolver()
        self.config_service = ConfigService(self.resolver)
        self.fetch_service = fetch_service or TileFetchService()
    
    def tiles_config(self, raw: Optional[Dict[str, Any]] = None, **fields: Any) -> FetchConfig:
        """Validate a target area and compute its tile ranges.

        Fields may be passed as a dict, as keyword arguments or both, e.g.
        ``tiles_config(url=..., bbox=[13.3, 52.5, 13.4, 52.55], min_zoom=11,
        max_zoom=13, crs="EPSG:3857")``.
        """
        merged = dict(raw or {})
        merged.update(fields)
        return self.config_service.build_fetch_config(merged)
    
    def enumerate_tiles(self, config: FetchConfig) -> Iterator[UnfetchedTile]:
        """Tile descriptors of a configuration, without downloading"""
        return TileEnumerator.from_config(config)
    
    def fetch_tile(self, tile: UnfetchedTile) -> FetchedTile:
        return self.fetch_service.fetch_tile(tile)
    
    def fetch_tiles(self, config: FetchConfig,
                    max_parallel_downloads: Optional[int] = None,
                    stop_event: Optional[threading.Event] = None) -> Iterator[FetchedTile]:
        """Download the tiles of a configuration, in completion order"""
        return self.fetch_service.fetch_tiles(config, max_parallel_downloads, stop_event)
