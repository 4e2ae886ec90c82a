#!/usr/bin/env python3
"""
Tile Fetcher - Main Entry Point
Computes the tiles covering a bounding box and downloads them
"""

import logging
import sys
from typing import List, Optional

from tile_fetcher.core.tile_fetch_manager import TileFetchManager
from tile_fetcher.exceptions.tile_fetcher_exceptions import TileFetcherException
from tile_fetcher.infrastructure.logging import LoggingManager
from tile_fetcher.services.config_service import ConfigService


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the tile fetcher application"""
    args = TileFetchManager.create_parser().parse_args(argv)
    
    try:
        config = ConfigService().load_config(args.config) if args.config else {}
        LoggingManager.setup_logging(config, verbose=args.verbose)
        logger = logging.getLogger(__name__)
        
        logger.info("Starting TileFetcher")
        
        manager = TileFetchManager(config)
        success = manager.run(args)
        
    except KeyboardInterrupt:
        print("\nDownload interrupted by user.")
        return 1
    except TileFetcherException as e:
        print(f"\nError: {e}")
        return 1
    
    if success:
        print("\nDone.")
        return 0
    
    print("\nFailed.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
