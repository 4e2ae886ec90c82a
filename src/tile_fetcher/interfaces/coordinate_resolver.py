from abc import ABC, abstractmethod
from typing import Union

from tile_fetcher.models.tile_models import Extent


CRSIdentifier = Union[str, int]


class ICoordinateResolver(ABC):
    """Interface for CRS extent lookup and extent transformation"""
    
    @abstractmethod
    def get_extent(self, crs: CRSIdentifier) -> Extent:
        """Get the native-unit extent of a CRS"""
        pass
    
    @abstractmethod
    def transform_extent(self, extent: Extent, from_crs: CRSIdentifier,
                         to_crs: CRSIdentifier) -> Extent:
        """Transform an extent between two CRSs"""
        pass
    
    @abstractmethod
    def contains_extent(self, outer: Extent, inner: Extent) -> bool:
        """Check whether inner lies within outer"""
        pass
    
    @abstractmethod
    def normalize_crs_code(self, crs: CRSIdentifier) -> str:
        """Get the canonical form of a CRS identifier"""
        pass
    
    @abstractmethod
    def same_crs(self, first: CRSIdentifier, second: CRSIdentifier) -> bool:
        """Check whether two identifiers name the same CRS"""
        pass
