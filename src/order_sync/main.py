"""
Order sync command line.

    order-sync sync [--force] [--limit N]   run one synchronization and print its report
    order-sync init-db                      create database tables
    order-sync serve                        run the HTTP server with the scheduler
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

import uvicorn
from dotenv import load_dotenv

load_dotenv()

from elitespeed_api.config.settings import settings  # noqa: E402
from elitespeed_api.core.logger import setup_logger  # noqa: E402
from elitespeed_api.core.monitoring import init_monitoring  # noqa: E402
from order_sync.bootstrap import build_reconciliation_service  # noqa: E402
from order_sync.db import get_engine, get_session_factory, init_db  # noqa: E402

logger = setup_logger(__name__)


async def run_sync(force: bool = False, limit: Optional[int] = None) -> dict:
    """Run one manual sync against the configured database and carrier."""
    engine = get_engine(settings.database_url)
    service = build_reconciliation_service(settings, get_session_factory(engine))
    try:
        result = await service.run_sync(sync_type="manual", force=force, limit=limit)
        return result.to_dict()
    finally:
        await service.carrier.close()
        await engine.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="order-sync",
        description="Sync order statuses from the EliteSpeed shipping API.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Run one synchronization now.")
    sync_parser.add_argument(
        "--force", action="store_true", help="Force sync all orders regardless of status."
    )
    sync_parser.add_argument(
        "--limit", type=int, default=None, help="Limit number of orders to process."
    )

    subparsers.add_parser("init-db", help="Create database tables.")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server and scheduler.")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes.")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "init-db":
        asyncio.run(init_db(settings.database_url))
        logger.info("Database tables created")
        return 0

    if args.command == "serve":
        uvicorn.run(
            "order_sync.server.app:app",
            host=settings.host,
            port=settings.port,
            reload=args.reload,
            log_level=settings.log_level.lower(),
        )
        return 0

    if args.limit is not None and args.limit < 1:
        logger.error("--limit must be a positive integer")
        return 2

    init_monitoring(settings.glitchtip_dsn, settings.environment)
    summary = asyncio.run(run_sync(force=args.force, limit=args.limit))
    print(json.dumps(summary, indent=2, ensure_ascii=False))
    return 0 if summary.get("success") else 2


if __name__ == "__main__":
    sys.exit(main())
