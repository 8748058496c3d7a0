#!/usr/bin/env python3
"""
Create the SkinPlan tables.

    python scripts/init_db.py            create missing tables
    python scripts/init_db.py --reset    drop and recreate every table (dev only)

Production databases are migrated with alembic instead.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

from app.config import get_settings
from app.database import Base, drop_db, engine, init_db, redacted_url

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


async def main(reset: bool):
    logger.info(f"Database: {redacted_url(settings.database_url)}")
    try:
        if reset:
            await drop_db()
        await init_db()
        logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")

    except Exception as e:
        logger.error(f"Error initializing database: {str(e)}")
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the SkinPlan tables")
    parser.add_argument("--reset", action="store_true", help="drop existing tables first")
    args = parser.parse_args()
    asyncio.run(main(args.reset))
