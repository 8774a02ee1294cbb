"""
Command line entry point.

``visited-links server`` runs the background API; ``visited-links scan`` runs
one highlight pass over a saved HTML page entirely in-process.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from .config import HighlightConfig, load_settings
from .core.background import BackgroundService
from .core.config_store import InMemoryConfigStore
from .core.coordinator import HighlightCoordinator
from .core.history import HistoryStore, InMemoryHistoryStore, SqliteHistoryStore
from .core.matcher import HistoryMatcher, visited_by_domain
from .core.normalizer import parse_ignore_params
from .core.page import PageDocument
from .core.router import LocalBackgroundChannel, LocalPageChannel
from .logging import setup_logger

logger = setup_logger("visited_links")

SCAN_TAB_ID = "scan"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Visited Link Highlighter - mark links found in browsing history"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    server = subparsers.add_parser("server", help="Run the background API")
    server.add_argument("--host", default=None, help="Bind address (default: API_HOST)")
    server.add_argument("--port", type=int, default=None, help="Bind port (default: API_PORT)")

    scan = subparsers.add_parser("scan", help="Highlight visited links in a saved HTML page")
    scan.add_argument("file", help="HTML file to scan")
    scan.add_argument("--url", required=True, help="Address the page was loaded from")
    scan.add_argument("--history", help="Chromium History or Firefox places.sqlite file (default: HISTORY_DB_PATH)")
    scan.add_argument("--history-file", help="Plain text file with one visited URL per line")
    scan.add_argument("--ignore", default="", help="Query parameters to ignore, comma or space separated")
    scan.add_argument("--color", default=None, help="Highlight color as hex")
    scan.add_argument("--output", "-o", help="Write the highlighted HTML here")
    scan.add_argument("--json", action="store_true", help="Output results in JSON format")

    return parser.parse_args(argv)


def _history_store(args: argparse.Namespace) -> HistoryStore:
    if args.history_file:
        lines = Path(args.history_file).read_text(encoding="utf-8").splitlines()
        return InMemoryHistoryStore(line.strip() for line in lines if line.strip())
    path = args.history or load_settings().HISTORY_DB_PATH
    if not path:
        raise SystemExit("No history source: pass --history, --history-file or set HISTORY_DB_PATH")
    return SqliteHistoryStore(path)


async def run_scan(args: argparse.Namespace) -> dict:
    """Run one highlight cycle over ``args.file`` and return a summary."""
    options = {"ignore_params": parse_ignore_params(args.ignore)}
    if args.color:
        options["highlight_color"] = args.color
    config = HighlightConfig(**options)

    service = BackgroundService(InMemoryConfigStore(config), HistoryMatcher(_history_store(args)))
    page = PageDocument(Path(args.file).read_text(encoding="utf-8"), args.url)
    coordinator = HighlightCoordinator(
        page,
        LocalBackgroundChannel(service.router, SCAN_TAB_ID),
        debounce_ms=load_settings().DEBOUNCE_MS,
    )
    service.register_tab(SCAN_TAB_ID, url=args.url, channel=LocalPageChannel(coordinator.router))

    try:
        coordinator.start()
        await coordinator.wait_idle()
    finally:
        coordinator.stop()
        await service.close()

    visited = sorted(url for url, elements in coordinator.links.items() if any(page.has_marker(e) for e in elements))
    if args.output:
        Path(args.output).write_text(page.render(), encoding="utf-8")
        logger.info(f"Wrote highlighted page to {args.output}")

    return {
        "url": args.url,
        "visited": coordinator.stats.visited,
        "total": coordinator.stats.total,
        "percent": coordinator.stats.percent,
        "visited_urls": visited,
        "by_domain": visited_by_domain(visited),
    }


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Run the FastAPI server."""
    import uvicorn
    from .api import app

    settings = load_settings()
    uvicorn.run(app, host=host or settings.API_HOST, port=port or settings.API_PORT)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)

    if args.command == "server":
        logger.info("Starting FastAPI server...")
        run_server(args.host, args.port)
        return 0

    summary = asyncio.run(run_scan(args))
    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        print(f"{summary['visited']}/{summary['total']} links visited ({summary['percent']}%)")
        for url in summary["visited_urls"]:
            print(f"  {url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
