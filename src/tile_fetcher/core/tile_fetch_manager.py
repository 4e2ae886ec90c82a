import argparse
from typing import Any, Dict, List, Optional

from tile_fetcher.api import TileFetcherAPI
from tile_fetcher.exceptions.tile_fetcher_exceptions import TileFetcherException
from tile_fetcher.models.fetch_config import FetchConfig, FetchOptions
from tile_fetcher.services.config_service import ConfigService
from tile_fetcher.services.tile_fetch_service import TileFetchService
from tile_fetcher.utils.format_utils import FormatUtils


class TileFetchManager:
    """Main manager class for tile fetching from the command line"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = ConfigService.normalize_keys(config or {})
        self.config_service = ConfigService()
        self.options: FetchOptions = self.config_service.get_fetch_options(self.config)
        self.api = TileFetcherAPI(
            resolver=self.config_service.resolver,
            fetch_service=TileFetchService.from_options(self.options)
        )

    def build_config(self, overrides: Dict[str, Any]) -> FetchConfig:
        """Merge command line values over the file configuration and resolve it"""
        raw = dict(self.config)
        raw.update({key: value for key, value in overrides.items() if value is not None})
        return self.api.tiles_config(raw)

    def print_plan(self, fetch_config: FetchConfig) -> None:
        """Print per-zoom tile ranges"""
        print(f"URL template: {fetch_config.url}")
        if fetch_config.subdomains:
            print(f"Subdomains: {', '.join(fetch_config.subdomains)}")
        print(f"Bounding Box: {list(fetch_config.bbox)} ({fetch_config.bbox_crs})")
        print(f"CRS: {fetch_config.crs}")
        print(f"Zoom Levels: {fetch_config.min_zoom} to {fetch_config.max_zoom}")
        for tile_range in fetch_config.tile_ranges:
            print(f"  Zoom {tile_range.zoom}: x {tile_range.min_x}-{tile_range.max_x}, "
                  f"y {tile_range.min_y}-{tile_range.max_y} ({tile_range.count} tiles)")
        print(f"Total tiles: {fetch_config.total_count}")

    def fetch(self, fetch_config: FetchConfig, max_parallel: Optional[int] = None) -> int:
        """Download all tiles and report progress. Returns the total payload size."""
        if max_parallel is None:
            max_parallel = self.options.max_parallel_downloads
        print(f"Starting download of {fetch_config.total_count} tiles "
              f"({max_parallel} in parallel)...")

        total_size = 0
        for index, tile in enumerate(self.api.fetch_tiles(fetch_config, max_parallel), start=1):
            total_size += tile.size
            print(f"[{index}/{fetch_config.total_count}] {tile.z}/{tile.x}/{tile.y} "
                  f"from {tile.url} ({FormatUtils.format_bytes(tile.size)})")

        print(f"Total downloaded size: {FormatUtils.format_bytes(total_size)}")
        return total_size

    @staticmethod
    def create_parser() -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description='Compute the XYZ/TMS tiles covering a bounding box and download them.',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=(
                'Examples:\n\n'
                '1) Show the tile ranges for a small area of Berlin:\n'
                '   tile-fetcher --url "https://tile.openstreetmap.org/{z}/{x}/{y}.png" '
                '--bbox 13.3 52.5 13.4 52.55 --min-zoom 11 --max-zoom 13 --plan\n\n'
                '2) Download with subdomain rotation:\n'
                '   tile-fetcher --url "https://{s}.tile.example.com/{z}/{x}/{y}.png" --subdomains a,b,c '
                '--bbox 13.3 52.5 13.4 52.55 --min-zoom 11 --max-zoom 12\n\n'
                '3) Use a JSON configuration file:\n'
                '   tile-fetcher --config fetch.json\n\n'
                'Notes:\n'
                '- Placeholders: {x} {y} {z} {-y} (TMS row) {s} (subdomain).\n'
                '- BBOX is given in lon/lat (EPSG:4326) unless "bbox_crs" is set in the config file.\n'
                '- Tiles are downloaded and reported, not written to disk.'
            )
        )
        parser.add_argument('--config', help='JSON configuration file (url, subdomains, bbox, crs, min_zoom, max_zoom, ...)')
        parser.add_argument('--url', help='Tile URL template, e.g. "https://{s}.tile.example.com/{z}/{x}/{y}.png"')
        parser.add_argument('--subdomains', help='Comma-separated subdomains for {s}, e.g. "a,b,c"')
        parser.add_argument('--bbox', nargs=4, type=float, metavar=('min_lon', 'min_lat', 'max_lon', 'max_lat'),
                            help='Bounding box (lon/lat)')
        parser.add_argument('--crs', help='Tile grid CRS (default: EPSG:3857)')
        parser.add_argument('--min-zoom', type=int, help='Minimum zoom level')
        parser.add_argument('--max-zoom', type=int, help='Maximum zoom level')
        parser.add_argument('--max-parallel', type=int, help='Maximum parallel downloads (default: 6)')
        parser.add_argument('--plan', action='store_true', help='Only print the tile ranges, do not download')
        parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
        return parser

    @staticmethod
    def parse_overrides(args: argparse.Namespace) -> Dict[str, Any]:
        """Configuration values given on the command line"""
        subdomains: Optional[List[str]] = None
        if args.subdomains:
            subdomains = [s.strip() for s in args.subdomains.split(',') if s.strip()]

        return {
            'url': args.url,
            'subdomains': subdomains,
            'bbox': args.bbox,
            'crs': args.crs,
            'min_zoom': args.min_zoom,
            'max_zoom': args.max_zoom,
        }

    def run(self, args: argparse.Namespace) -> bool:
        """Run one command line invocation"""
        try:
            fetch_config = self.build_config(self.parse_overrides(args))
            self.print_plan(fetch_config)
            if args.plan:
                return True

            print()
            self.fetch(fetch_config, args.max_parallel)
            return True
        except TileFetcherException as e:
            print(f"\nError: {e}")
            return False
