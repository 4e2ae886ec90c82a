from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, Optional

from tile_fetcher.models.fetch_config import FetchConfig
from tile_fetcher.models.tile_models import FetchedTile, UnfetchedTile


class ITileFetcher(ABC):
    """Interface for tile fetcher implementations"""
    
    @abstractmethod
    def fetch_tile(self, tile: UnfetchedTile) -> FetchedTile:
        """Download a single tile"""
        pass
    
    @abstractmethod
    def fetch_tiles(self, config: FetchConfig,
                    max_parallel_downloads: Optional[int] = None) -> Iterator[FetchedTile]:
        """Download every tile of a configuration"""
        pass


class IConfigLoader(ABC):
    """Interface for configuration loading"""
    
    @abstractmethod
    def load_config(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from file"""
        pass
    
    @abstractmethod
    def build_fetch_config(self, raw: Dict[str, Any]) -> FetchConfig:
        """Validate raw configuration and resolve it"""
        pass
