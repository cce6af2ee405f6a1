#!/usr/bin/env python
"""Main entry point for vocab-sync."""
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from vocab_sync import __version__
from vocab_sync.config import config
from vocab_sync.exceptions import ImportPhaseError
from vocab_sync.models.db_models import init_db
from vocab_sync.models.schema import ImportOptions
from vocab_sync.observability import configure_logging
from vocab_sync.services.sync_service import SyncService, format_summary, load_sources


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="vocab-sync",
        description="Import vocabulary notebooks into a database and export them back",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("VOCAB_SYNC_DATABASE_PATH"),
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("VOCAB_SYNC_LOG_LEVEL", "WARNING"),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import notebooks, histories and dictionary cache")
    import_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing",
    )
    import_parser.add_argument(
        "--refresh-existing",
        action="store_true",
        help="Overwrite meaning/level/dictionary number and cached responses of existing records",
    )

    export_parser = subparsers.add_parser("export", help="Export the database to YAML files")
    export_parser.add_argument(
        "--output-dir",
        help="Directory for the exported YAML files",
        type=str,
        default=None,
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.database_path:
        config.database_path = Path(args.database_path)


def format_error_chain(error: BaseException) -> str:
    """Render an exception and its causes as ``error <- cause <- ...``."""
    parts = []
    current: Optional[BaseException] = error
    while current is not None:
        parts.append(str(current) or type(current).__name__)
        current = current.__cause__
    return " <- ".join(parts)


def run_import(service: SyncService, args) -> int:
    options = ImportOptions(dry_run=args.dry_run, refresh_existing=args.refresh_existing)
    sources = load_sources(config)
    try:
        result = service.import_all(sources, options)
    except ImportPhaseError as e:
        print(format_summary(e.partial_result, dry_run=options.dry_run))
        raise
    print(format_summary(result, dry_run=options.dry_run))
    return 0


def run_export(service: SyncService, args) -> int:
    output_dir = Path(args.output_dir) if args.output_dir else config.get_absolute_path(config.export_dir)
    paths = service.export_all(output_dir)
    for path in paths:
        print(f"  Wrote {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Run vocab-sync."""
    args = parse_args(argv)
    update_config(args)

    # Configure logging (console + persistent file logging with rotation)
    log_level = getattr(logging, args.log_level.upper(), logging.WARNING)
    try:
        configure_logging(config.log_dir, level=log_level, console=True)
    except Exception as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")

    logger = logging.getLogger(__name__)

    try:
        logger.info(f"Using SQLite database: {config.get_db_url()}")
        engine = init_db()
        service = SyncService.from_engine(engine, out=sys.stdout)
        if args.command == "import":
            return run_import(service, args)
        return run_export(service, args)
    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"error: {format_error_chain(e)}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
