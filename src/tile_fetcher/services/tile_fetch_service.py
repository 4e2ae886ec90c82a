import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, Iterator, Optional, Set

import requests
from requests.adapters import HTTPAdapter

from tile_fetcher.exceptions.tile_fetcher_exceptions import (
    DownloadError,
    FetchCancelledError,
    HttpStatusError,
    NotAnImageError,
    ValidationError,
)
from tile_fetcher.interfaces.tile_fetcher import ITileFetcher
from tile_fetcher.models.fetch_config import DEFAULT_MAX_PARALLEL_DOWNLOADS, FetchConfig, FetchOptions
from tile_fetcher.models.tile_models import FetchedTile, UnfetchedTile
from tile_fetcher.services.tile_enumerator import TileEnumerator


logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {'User-Agent': 'tile-fetcher/0.1'}


class TileFetchService(ITileFetcher):
    """Service for fetching map tiles with a bounded number of downloads in flight"""

    def __init__(self, max_parallel_downloads: int = DEFAULT_MAX_PARALLEL_DOWNLOADS,
                 timeout: float = 30, headers: Optional[Dict[str, str]] = None):
        self.max_parallel_downloads = max_parallel_downloads
        self.timeout = timeout
        self.headers = dict(DEFAULT_HEADERS)
        self.headers.update(headers or {})

    @classmethod
    def from_options(cls, options: FetchOptions) -> 'TileFetchService':
        return cls(max_parallel_downloads=options.max_parallel_downloads,
                   timeout=options.timeout, headers=options.headers)

    def create_session(self, pool_size: int = DEFAULT_MAX_PARALLEL_DOWNLOADS) -> requests.Session:
        """Create a session sized for the download pool, without retries"""
        session = requests.Session()
        session.headers.update(self.headers)

        adapter = HTTPAdapter(
            max_retries=0,
            pool_connections=pool_size,
            pool_maxsize=pool_size
        )

        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def fetch_tile(self, tile: UnfetchedTile, session: Optional[requests.Session] = None,
                   stop_event: Optional[threading.Event] = None) -> FetchedTile:
        """Download a single tile"""
        if stop_event is not None and stop_event.is_set():
            raise FetchCancelledError(f"Download stopped before requesting {tile.url}")

        own_session = session is None
        if own_session:
            session = self.create_session(pool_size=1)

        try:
            logger.debug("GET %s (%d/%d/%d)", tile.url, tile.z, tile.x, tile.y)
            response = session.get(tile.url, timeout=self.timeout)

            if not 200 <= response.status_code < 300:
                raise HttpStatusError(response.status_code, response.url or tile.url,
                                      getattr(response, 'reason', None))

            content_type = response.headers.get('Content-Type', '')
            if not content_type.lower().startswith('image/'):
                raise NotAnImageError(response.url or tile.url, content_type)

            return FetchedTile.from_unfetched(tile, response.content, content_type)
        except requests.RequestException as e:
            raise DownloadError(f"GET {tile.url} failed: {e}") from e
        finally:
            if own_session:
                session.close()

    def fetch_tiles(self, config: FetchConfig, max_parallel_downloads: Optional[int] = None,
                    stop_event: Optional[threading.Event] = None) -> Iterator[FetchedTile]:
        """Download every tile of a configuration.

        Tiles are yielded in completion order, not in enumeration order. At
        most ``max_parallel_downloads`` requests are in flight, and a new one
        is only started once the caller has taken a finished tile. The first
        failure is raised from the iterator and ends it. The remaining
        downloads are then stopped through ``stop_event``, which the caller
        may also set to stop the session early.
        """
        limit = self.max_parallel_downloads if max_parallel_downloads is None else max_parallel_downloads
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(f"max_parallel_downloads must be an integer >= 1, got {limit!r}")

        return self._run_downloads(TileEnumerator.from_config(config), limit,
                                   stop_event or threading.Event())

    def _run_downloads(self, tiles: TileEnumerator, limit: int,
                       stop_event: threading.Event) -> Iterator[FetchedTile]:
        session = self.create_session(pool_size=limit)
        executor = ThreadPoolExecutor(max_workers=limit, thread_name_prefix="tile-fetch")
        pending: Set[Future] = set()
        completed = 0

        try:
            for tile in tiles:
                if stop_event.is_set():
                    raise FetchCancelledError("Download stopped")
                pending.add(executor.submit(self.fetch_tile, tile, session, stop_event))

                while len(pending) >= limit:
                    yield self._take_first_completed(pending)
                    completed += 1

            while pending:
                yield self._take_first_completed(pending)
                completed += 1

            logger.debug("Fetched %d tiles", completed)
        except DownloadError as e:
            logger.warning("Stopping download after %d tiles: %s", completed, e)
            raise
        finally:
            stop_event.set()
            for future in pending:
                future.cancel()
            executor.shutdown(wait=False, cancel_futures=True)
            session.close()

    @staticmethod
    def _take_first_completed(pending: Set[Future]) -> FetchedTile:
        done, _ = wait(pending, return_when=FIRST_COMPLETED)
        future = next(iter(done))
        pending.discard(future)
        return future.result()
