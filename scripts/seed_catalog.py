#!/usr/bin/env python3
"""
Seed the starter rule set and product catalog.

Skips seeding when the database already holds rules.
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

from app.config import get_settings
from app.database import AsyncSessionLocal, engine, init_db
from app.repository import PlanRepository
from app.seed import SAMPLE_PRODUCTS, SAMPLE_RULES

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


async def main():
    repo = PlanRepository()
    try:
        await init_db()
        async with AsyncSessionLocal() as db:
            if await repo.list_rules(db):
                logger.info("Rules already present, skipping seed")
                return

            for rule in SAMPLE_RULES:
                await repo.add_rule(db, rule)
            await repo.add_products(db, SAMPLE_PRODUCTS)
            logger.info(f"Seeded {len(SAMPLE_RULES)} rules and {len(SAMPLE_PRODUCTS)} products")

    except Exception as e:
        logger.error(f"Error seeding catalog: {str(e)}")
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
