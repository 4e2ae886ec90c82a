from typing import Optional


class TileFetcherException(Exception):
    """Base exception for tile fetcher"""
    pass


class ConfigurationError(TileFetcherException):
    """Configuration related errors"""
    pass


class ValidationError(ConfigurationError):
    """Validation related errors"""
    pass


class UnknownCRSError(ConfigurationError):
    """CRS identifier could not be resolved"""
    pass


class BoundingBoxOutOfExtentError(ConfigurationError):
    """Bounding box exceeds the extent of the target CRS"""
    pass


class MissingSubdomainsError(ConfigurationError):
    """URL template uses {s} but no subdomains were supplied"""
    pass


class ZoomOutOfRangeError(ConfigurationError):
    """Zoom level not covered by the tile grid"""
    pass


class TransformationError(TileFetcherException):
    """Coordinate transformation errors"""
    pass


class DownloadError(TileFetcherException):
    """Download related errors"""
    pass


class HttpStatusError(DownloadError):
    """Tile server answered with a non-success status"""

    def __init__(self, status_code: int, url: str, reason: Optional[str] = None):
        self.status_code = status_code
        self.url = url
        self.reason = reason
        message = f"GET {url} failed with {status_code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class NotAnImageError(DownloadError):
    """Tile server answered with something other than an image"""

    def __init__(self, url: str, content_type: Optional[str]):
        self.url = url
        self.content_type = content_type
        super().__init__(f"Response is not an image: {url} ({content_type or 'no content type'})")


class FetchCancelledError(DownloadError):
    """Fetch skipped because the download session was stopped"""
    pass
