#!/usr/bin/env python3
"""
Regenerate plans for every user's latest profile version.

Run after rule or catalog edits. Usage:
    python scripts/regenerate_plans.py [user_id ...]
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

from app.config import get_settings
from app.database import AsyncSessionLocal, engine
from app.errors import PlanEngineError
from app.repository import PlanRepository
from app.services.plan_service import PlanService

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


async def main(user_ids: list[str]):
    repo = PlanRepository()
    service = PlanService(repo)
    failed = 0
    try:
        async with AsyncSessionLocal() as db:
            if not user_ids:
                user_ids = await repo.list_profile_user_ids(db)

            for user_id in user_ids:
                try:
                    plan = await service.generate(db, user_id)
                    logger.info(f"{user_id}: v{plan.profile_version}, rule {plan.rule_id}")
                except PlanEngineError as e:
                    failed += 1
                    logger.warning(f"{user_id}: {e.message}")

        logger.info(f"Regenerated {len(user_ids) - failed} plans, {failed} failed")
    finally:
        await engine.dispose()

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
