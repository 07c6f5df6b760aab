#!/usr/bin/env python3
"""Background worker that deletes expired document shares.

Expired shares already grant nothing; this worker only keeps the table from
accumulating dead rows.

Usage:
    python -m docvault.workers.share_sweeper

Environment:
    DATABASE_URL: database connection string
    SHARE_SWEEP_INTERVAL_SECONDS: polling interval in seconds (default: 3600)
"""

from __future__ import annotations

import asyncio
import signal

from sqlalchemy.exc import SQLAlchemyError

from docvault.core.config import get_settings
from docvault.core.logging import configure_logging, get_logger
from docvault.db.session import get_sessionmaker
from docvault.services import share_service

logger = get_logger(__name__)

# Graceful shutdown flag
shutdown_flag = False


def signal_handler(signum, frame):
    global shutdown_flag
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_flag = True


def sweep_expired_shares() -> int:
    """Run one purge in its own session and return the number of removed shares."""
    db = get_sessionmaker()()
    try:
        return share_service.purge_expired_shares(db)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error purging expired shares: {e}", exc_info=True)
        return 0
    finally:
        db.close()


async def main():
    global shutdown_flag

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    settings = get_settings()
    configure_logging(log_level=settings.log_level, log_format=settings.log_format)
    interval = settings.share_sweep_interval_seconds

    logger.info("Share sweeper started", extra={"interval": interval})

    while not shutdown_flag:
        removed = sweep_expired_shares()
        if removed > 0:
            logger.info(f"Removed {removed} expired shares")

        # Sleep in short steps so a signal stops the worker promptly
        for _ in range(interval):
            if shutdown_flag:
                break
            await asyncio.sleep(1)

    logger.info("Share sweeper stopped gracefully")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
