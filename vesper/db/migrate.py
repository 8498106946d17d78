"""
Schema migration command.

Usage:
    vesper-migrate up      create the tasks table and its indexes
    vesper-migrate down    drop them again
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine

from vesper.config import Settings
from vesper.db.base import Base
from vesper.db import models  # noqa: F401  (registers tables on Base.metadata)
from vesper.db.session import create_engine_from_settings

logger = logging.getLogger(__name__)


async def migrate_up(engine: AsyncEngine) -> None:
    """Create every table and index that does not exist yet"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Applied schema: {', '.join(Base.metadata.tables)}")


async def migrate_down(engine: AsyncEngine) -> None:
    """Drop every table (reverse dependency order)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info(f"Dropped schema: {', '.join(Base.metadata.tables)}")


def ensure_data_dir(settings: Settings) -> None:
    """Create the directory of a SQLite database file if needed"""
    if not settings.is_sqlite:
        return
    database = make_url(settings.database_url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


async def run(command: str, settings: Settings) -> None:
    ensure_data_dir(settings)
    engine = create_engine_from_settings(settings)
    try:
        if command == "up":
            await migrate_up(engine)
        elif command == "down":
            await migrate_down(engine)
        else:
            raise ValueError(f"Unknown command: {command}. Use 'up' or 'down'")
    finally:
        await engine.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Usage: vesper-migrate [up|down]", file=sys.stderr)
        return 2

    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    try:
        asyncio.run(run(args[0], settings))
    except ValueError as e:
        logger.error(str(e))
        return 2
    logger.info(f"Migration '{args[0]}' completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
