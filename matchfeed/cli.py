"""Command-line interface for matchfeed.

Commands:
    serve       Run the refresh scheduler and the read-side API
    crawl-once  Build one snapshot and print it as JSON
    sources     List the configured sources and their URLs
"""
import argparse
import json
import signal
import sys
from pathlib import Path
from typing import List, Optional

from config import MatchFeedConfig

from . import __version__
from .api import create_app, run_server
from .core.exceptions import BrowserError, ConfigurationError, SnapshotBuildError
from .models.match import SnapshotKind
from .scheduler import RefreshScheduler
from .scrapers.betexplorer import SessionManager, SnapshotBuilder
from .sources import SourceDescriptor, load_sources, today_sources
from .storage import CacheStore
from .utils import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='matchfeed',
        description='matchfeed - crawl-and-cache match fixtures, live scores and results',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the scheduler and serve the API on the configured port
  matchfeed serve

  # Build the "today" snapshot once and write it to a file
  matchfeed crawl-once --today --output today.json

  # Show which competitions are crawled
  matchfeed sources

  # Configuration is loaded from config.yaml and .env (overrides)
        """
    )
    parser.add_argument('--version', action='version', version=f'matchfeed {__version__}')
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to config.yaml (default: CONFIG_FILE_PATH or ./config.yaml)'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default=None,
        help='Logging level (overrides config)'
    )
    parser.add_argument('--json-logs', action='store_true', help='Write logs as JSON lines')
    parser.add_argument('--visible', action='store_true', help='Run the browser with a window')

    subparsers = parser.add_subparsers(dest='command', required=True)

    serve = subparsers.add_parser('serve', help='Run the scheduler and the API')
    serve.add_argument('--host', type=str, default=None, help='Bind address (overrides config)')
    serve.add_argument('--port', type=int, default=None, help='Port (overrides config)')

    crawl = subparsers.add_parser('crawl-once', help='Build one snapshot and print it')
    crawl.add_argument('--today', action='store_true', help='Build the "today" snapshot instead of the full one')
    crawl.add_argument('--output', type=str, default=None, help='Write JSON to this file instead of stdout')

    subparsers.add_parser('sources', help='List configured sources')

    return parser


def load_config(args: argparse.Namespace) -> MatchFeedConfig:
    """Load configuration and apply command-line overrides."""
    config = MatchFeedConfig(config_path=args.config)
    if args.log_level:
        config.logging.level = args.log_level
    if args.json_logs:
        config.logging.json = True
    if args.visible:
        config.browser.headless = False
    if getattr(args, 'host', None):
        config.api.host = args.host
    if getattr(args, 'port', None):
        config.api.port = args.port
    return config


def cmd_sources(config: MatchFeedConfig, sources: List[SourceDescriptor]) -> int:
    for source in sources + today_sources():
        print(f"{source.label:<45} {source.resolve_url(config.source)}")
    return 0


def cmd_crawl_once(config: MatchFeedConfig, sources: List[SourceDescriptor], args, logger) -> int:
    kind = SnapshotKind.TODAY if args.today else SnapshotKind.FULL
    session_manager = SessionManager(config)
    builder = SnapshotBuilder(config)

    try:
        with session_manager.session() as session:
            snapshot = builder.build(session, today_sources() if args.today else sources, kind)
    except (BrowserError, SnapshotBuildError) as e:
        logger.error(f"Crawl failed: {e}")
        return 1

    payload = json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False)
    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(payload, encoding='utf-8')
        logger.info(f"Wrote {snapshot.match_count} match(es) to {output}")
    else:
        print(payload)
    return 0


def cmd_serve(config: MatchFeedConfig, sources: List[SourceDescriptor], logger) -> int:
    cache = CacheStore()
    session_manager = SessionManager(config)
    scheduler = RefreshScheduler(
        config,
        session_manager=session_manager,
        builder=SnapshotBuilder(config),
        cache=cache,
        sources=sources,
    )
    app = create_app(cache, scheduler, sources=sources)

    def shutdown(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        scheduler.stop(timeout=config.timeouts.page_load)
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    scheduler.start()
    try:
        run_server(app, config.api.host, config.api.port)
    finally:
        if scheduler.is_running:
            scheduler.stop(timeout=config.timeouts.page_load)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    config = load_config(args)

    errors = config.validate()
    if errors:
        for error in errors:
            print(f"Configuration error: {error}", file=sys.stderr)
        return 2

    logger = setup_logging(
        name="matchfeed",
        log_dir=config.logging.dir,
        log_level=config.logging.level,
        log_format=config.logging.format,
        json_format=config.logging.json,
    )

    try:
        sources = load_sources(config.source.sources_file)
    except ConfigurationError as e:
        logger.error(str(e))
        return 2

    if args.command == 'sources':
        return cmd_sources(config, sources)
    if args.command == 'crawl-once':
        return cmd_crawl_once(config, sources, args, logger)

    logger.info("=" * 60)
    logger.info(f"matchfeed {__version__}")
    logger.info(f"  Sources: {len(sources)}")
    logger.info(f"  Interval: {config.scheduler.interval_seconds}s")
    logger.info(f"  Full refresh every: {config.scheduler.full_refresh_every} tick(s)")
    logger.info(f"  API: {config.api.host}:{config.api.port}")
    logger.info("=" * 60)
    return cmd_serve(config, sources, logger)


if __name__ == '__main__':
    sys.exit(main())
