"""
PlanService: the plan store.

generate(db, user_id, profile_version?)  match → resolve → schedule → replace
get_current(db, user_id, profile_version?)  plan of the latest (or given) profile version
replace_step(db, user_id, step_category, old_product_id)  "swap product" action

The profile version is always an explicit argument (defaulting to the latest),
so batch scripts can regenerate plans without any request context.
"""

import asyncio
import logging
import weakref
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import PlanNotFound, ProfileNotFound
from app.repository import PlanRepository
from app.schemas import (
    Plan28,
    Product,
    RecommendationRule,
    SkinProfile,
    StepSpec,
    ValidationSeverity,
)
from app.services.categories import base_category, matches_prefix, step_kind
from app.services.phase_scheduler import build_schedule
from app.services.plan_validation import validate_plan
from app.services.rule_matcher import match_rule
from app.services.step_resolver import (
    find_replacement,
    rank_candidates,
    resolve_steps,
    spec_prefixes,
)

logger = logging.getLogger(__name__)


def build_plan(
    profile: SkinProfile,
    rules: Iterable[RecommendationRule],
    catalog: Iterable[Product],
) -> Plan28:
    """Pure composition of matcher, resolver, scheduler and validation."""
    rule = match_rule(profile, rules)
    resolved = resolve_steps(rule.steps, profile, catalog)
    schedule = build_schedule(resolved, profile)

    plan = Plan28(
        user_id=profile.user_id,
        skin_profile_id=profile.id,
        profile_version=profile.version,
        rule_id=rule.id,
        rule_name=rule.name,
        main_goals=list(profile.concerns),
        days=schedule.days,
    )

    validation = validate_plan(plan)
    if validation.severity == ValidationSeverity.ERROR:
        logger.error(
            f"Plan for user {profile.user_id} v{profile.version} failed validation: "
            f"{validation.errors}"
        )
    warnings = []
    for message in schedule.warnings + validation.warnings:
        if message not in warnings:
            warnings.append(message)
    return plan.model_copy(update={"warnings": warnings})


def find_rule_step(rule: Optional[RecommendationRule], step_category: str) -> tuple[str, StepSpec]:
    """Rule step whose category prefixes cover `step_category`.

    Baseline steps the rule never defined are rebuilt from the base category.
    """
    if rule:
        for step_key, spec in rule.steps.items():
            if any(matches_prefix(step_category, p) for p in spec_prefixes(step_key, spec)):
                return step_key, spec
    base = base_category(step_category)
    return base, StepSpec(category=[base])


class PlanService:
    def __init__(self, repo: Optional[PlanRepository] = None):
        self.repo = repo or PlanRepository()
        # Entries vanish once no coroutine holds or waits on the lock
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    def _lock(self, user_id: str, profile_version: int) -> asyncio.Lock:
        key = (user_id, profile_version)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _load_profile(
        self, db: AsyncSession, user_id: str, profile_version: Optional[int]
    ) -> SkinProfile:
        profile = await self.repo.get_profile(db, user_id, profile_version)
        if not profile:
            raise ProfileNotFound(user_id, profile_version)
        return profile

    async def generate(
        self, db: AsyncSession, user_id: str, profile_version: Optional[int] = None
    ) -> Plan28:
        profile = await self._load_profile(db, user_id, profile_version)

        async with self._lock(user_id, profile.version):
            rules = await self.repo.list_rules(db)
            catalog = await self.repo.list_published_products(db)
            plan = build_plan(profile, rules, catalog)
            await self.repo.replace_plan(db, plan)

        logger.info(
            f"Generated plan for user {user_id} v{profile.version} "
            f"(rule {plan.rule_id}, {len(plan.warnings)} warnings)"
        )
        return plan

    async def get_current(
        self, db: AsyncSession, user_id: str, profile_version: Optional[int] = None
    ) -> Optional[Plan28]:
        if profile_version is None:
            profile_version = await self.repo.latest_profile_version(db, user_id)
            if profile_version is None:
                return None
        return await self.repo.get_plan(db, user_id, profile_version)

    async def replace_step(
        self,
        db: AsyncSession,
        user_id: str,
        step_category: str,
        old_product_id: int,
    ) -> Optional[int]:
        """Swap `old_product_id` for the next-ranked candidate in every day of the plan.

        Only candidates of the same step kind are considered, so the step keeps
        its cadence; the swapped steps take the new product's category.
        Returns the new product id, or None when no other candidate exists
        (the plan is left untouched).
        """
        profile_version = await self.repo.latest_profile_version(db, user_id)
        if profile_version is None:
            raise PlanNotFound(user_id)

        async with self._lock(user_id, profile_version):
            # Read under the lock so concurrent swaps build on each other
            plan = await self.repo.get_plan(db, user_id, profile_version)
            if not plan:
                raise PlanNotFound(user_id)

            profile = await self._load_profile(db, user_id, plan.profile_version)
            rule = await self.repo.get_rule(db, plan.rule_id) if plan.rule_id else None
            kind = step_kind(step_category)
            catalog = [
                p for p in await self.repo.list_published_products(db)
                if step_kind(p.step) == kind
            ]

            step_key, spec = find_rule_step(rule, step_category)
            replacement = find_replacement(step_key, spec, profile, catalog, old_product_id)
            if not replacement:
                logger.info(
                    f"No replacement for product {old_product_id} "
                    f"({step_category}) for user {user_id}"
                )
                return None

            ranked = rank_candidates(step_key, spec, profile, catalog)
            alternatives = [
                p.id for p in ranked if p.id not in (old_product_id, replacement.id)
            ][: spec.max_items - 1]

            days = []
            swapped = 0
            for day in plan.days:
                slots = {}
                for slot in ("morning", "evening", "weekly"):
                    steps = []
                    for step in getattr(day, slot):
                        if step.step_category == step_category and step.product_id == old_product_id:
                            step = step.model_copy(
                                update={
                                    "step_category": replacement.step,
                                    "product_id": replacement.id,
                                    "alternatives": alternatives,
                                }
                            )
                            swapped += 1
                        steps.append(step)
                    slots[slot] = steps
                days.append(day.model_copy(update=slots))

            if not swapped:
                logger.warning(
                    f"Product {old_product_id} ({step_category}) is not in the plan "
                    f"of user {user_id}; nothing replaced"
                )
                return None

            await self.repo.replace_plan(db, plan.model_copy(update={"days": days}))
            await self.repo.log_replacement(
                db, user_id, step_category, old_product_id, replacement.id
            )

        logger.info(
            f"Replaced product {old_product_id} with {replacement.id} "
            f"({step_category} -> {replacement.step}, {swapped} steps) for user {user_id}"
        )
        return replacement.id
