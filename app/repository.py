"""
Plan repository: all DB access in one place.

The engine never talks to the database; the service loads its inputs here
and hands the generated plan back through `replace_plan`.
"""

import logging
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import StorageReplaceFailure
from app.models.db import (
    PlanProgressRow,
    PlanRow,
    ProductReplacementRow,
    ProductRow,
    RecommendationRuleRow,
    SkinProfileRow,
)
from app.schemas import (
    All,
    Plan28,
    PlanProgress,
    Product,
    ProfileCreate,
    RecommendationRule,
    SkinProfile,
    StepSpec,
    conditions_from_legacy,
)

logger = logging.getLogger(__name__)


def _rule_from_row(row: RecommendationRuleRow) -> RecommendationRule:
    conditions = row.conditions_json or {}
    if conditions.get("kind") == "all":
        parsed = All.model_validate(conditions)
    else:
        parsed = conditions_from_legacy(conditions)
    return RecommendationRule(
        id=row.id,
        name=row.name,
        priority=row.priority,
        is_active=row.is_active,
        conditions=parsed,
        steps={key: StepSpec.model_validate(spec) for key, spec in (row.steps_json or {}).items()},
    )


class PlanRepository:
    """Single repository for all DB operations."""

    # ── Profiles ────────────────────────────────────────────────────────────

    async def create_profile_version(
        self, db: AsyncSession, user_id: str, data: ProfileCreate
    ) -> SkinProfile:
        """Store a new immutable profile version (previous versions stay as-is)."""
        latest = await self.latest_profile_version(db, user_id)
        row = SkinProfileRow(
            user_id=user_id,
            version=(latest or 0) + 1,
            **data.model_dump(mode="json"),
        )
        db.add(row)
        await db.commit()
        await db.refresh(row)
        logger.info(f"Created profile v{row.version} for user {user_id}")
        return SkinProfile.model_validate(row)

    async def latest_profile_version(self, db: AsyncSession, user_id: str) -> Optional[int]:
        result = await db.execute(
            select(func.max(SkinProfileRow.version)).where(SkinProfileRow.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_profile(
        self, db: AsyncSession, user_id: str, version: Optional[int] = None
    ) -> Optional[SkinProfile]:
        stmt = select(SkinProfileRow).where(SkinProfileRow.user_id == user_id)
        if version is not None:
            stmt = stmt.where(SkinProfileRow.version == version)
        stmt = stmt.order_by(SkinProfileRow.version.desc()).limit(1)
        result = await db.execute(stmt)
        row = result.scalar_one_or_none()
        return SkinProfile.model_validate(row) if row else None

    async def list_profile_user_ids(self, db: AsyncSession) -> list[str]:
        result = await db.execute(
            select(SkinProfileRow.user_id).distinct().order_by(SkinProfileRow.user_id)
        )
        return list(result.scalars().all())

    # ── Rules & catalog ─────────────────────────────────────────────────────

    async def list_rules(self, db: AsyncSession) -> list[RecommendationRule]:
        result = await db.execute(select(RecommendationRuleRow).order_by(RecommendationRuleRow.id))
        return [_rule_from_row(row) for row in result.scalars().all()]

    async def get_rule(self, db: AsyncSession, rule_id: int) -> Optional[RecommendationRule]:
        row = await db.get(RecommendationRuleRow, rule_id)
        return _rule_from_row(row) if row else None

    async def add_rule(self, db: AsyncSession, rule: RecommendationRule) -> None:
        db.add(
            RecommendationRuleRow(
                id=rule.id,
                name=rule.name,
                priority=rule.priority,
                is_active=rule.is_active,
                conditions_json=rule.conditions.model_dump(mode="json"),
                steps_json={k: s.model_dump(mode="json") for k, s in rule.steps.items()},
            )
        )
        await db.commit()

    async def list_published_products(self, db: AsyncSession) -> list[Product]:
        result = await db.execute(
            select(ProductRow).where(ProductRow.published.is_(True)).order_by(ProductRow.id)
        )
        return [Product.model_validate(row) for row in result.scalars().all()]

    async def add_products(self, db: AsyncSession, products: list[Product]) -> None:
        db.add_all([ProductRow(**p.model_dump()) for p in products])
        await db.commit()

    # ── Plans ───────────────────────────────────────────────────────────────

    async def replace_plan(self, db: AsyncSession, plan: Plan28) -> None:
        """Delete-then-create the plan for (user_id, profile_version) in one transaction."""
        try:
            await db.execute(
                delete(PlanRow).where(
                    PlanRow.user_id == plan.user_id,
                    PlanRow.profile_version == plan.profile_version,
                )
            )
            db.add(
                PlanRow(
                    user_id=plan.user_id,
                    skin_profile_id=plan.skin_profile_id,
                    profile_version=plan.profile_version,
                    plan_json=plan.model_dump(mode="json"),
                )
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Plan replace failed for user {plan.user_id} "
                f"v{plan.profile_version}: {str(e)}"
            )
            raise StorageReplaceFailure(plan.user_id, plan.profile_version) from e
        logger.info(f"Stored plan for user {plan.user_id} v{plan.profile_version}")

    async def get_plan(
        self, db: AsyncSession, user_id: str, profile_version: int
    ) -> Optional[Plan28]:
        result = await db.execute(
            select(PlanRow).where(
                PlanRow.user_id == user_id,
                PlanRow.profile_version == profile_version,
            )
        )
        row = result.scalar_one_or_none()
        return Plan28.model_validate(row.plan_json) if row else None

    async def list_plan_versions(self, db: AsyncSession, user_id: str) -> list[int]:
        result = await db.execute(
            select(PlanRow.profile_version)
            .where(PlanRow.user_id == user_id)
            .order_by(PlanRow.profile_version.desc())
        )
        return list(result.scalars().all())

    async def log_replacement(
        self,
        db: AsyncSession,
        user_id: str,
        step_category: str,
        old_product_id: int,
        new_product_id: int,
        reason: str = "user_swap",
    ) -> None:
        db.add(
            ProductReplacementRow(
                user_id=user_id,
                step_category=step_category,
                old_product_id=old_product_id,
                new_product_id=new_product_id,
                reason=reason,
            )
        )
        await db.commit()

    # ── Progress ────────────────────────────────────────────────────────────

    async def get_progress(self, db: AsyncSession, user_id: str) -> Optional[PlanProgress]:
        result = await db.execute(
            select(PlanProgressRow).where(PlanProgressRow.user_id == user_id)
        )
        row = result.scalar_one_or_none()
        if not row:
            return None
        return PlanProgress(
            user_id=row.user_id,
            current_day=row.current_day,
            completed_days=row.completed_days or [],
            done_slots=row.done_slots or {},
        )

    async def save_progress(self, db: AsyncSession, progress: PlanProgress) -> PlanProgress:
        result = await db.execute(
            select(PlanProgressRow).where(PlanProgressRow.user_id == progress.user_id)
        )
        row = result.scalar_one_or_none()
        if not row:
            row = PlanProgressRow(user_id=progress.user_id)
            db.add(row)

        data = progress.model_dump(mode="json")
        row.current_day = data["current_day"]
        row.completed_days = data["completed_days"]
        row.done_slots = data["done_slots"]
        await db.commit()
        return progress
