"""
HTTP surface of the plan engine.

Engine errors (NoRuleMatched, ProfileNotFound, ...) propagate to the
exception handlers registered in app.main.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import PlanNotFound
from app.repository import PlanRepository
from app.schemas import (
    Plan28,
    PlanProgress,
    ProfileCreate,
    ProgressUpdate,
    ReplaceStepRequest,
    ReplaceStepResult,
    RuleTestResult,
    SkinProfile,
    SlotCompletion,
)
from app.services.plan_service import PlanService
from app.services.progress import ProgressTracker
from app.services.rule_matcher import explain_match

logger = logging.getLogger(__name__)

router = APIRouter()

repo = PlanRepository()
plan_service = PlanService(repo)
progress_tracker = ProgressTracker(repo)


@router.post("/users/{user_id}/profiles", response_model=SkinProfile, status_code=201)
async def create_profile(user_id: str, data: ProfileCreate, db: AsyncSession = Depends(get_db)):
    return await repo.create_profile_version(db, user_id, data)


@router.post("/users/{user_id}/plan/generate", response_model=Plan28)
async def generate_plan(
    user_id: str,
    profile_version: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    return await plan_service.generate(db, user_id, profile_version)


@router.get("/users/{user_id}/plan", response_model=Plan28)
async def get_plan(
    user_id: str,
    profile_version: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_current(db, user_id, profile_version)
    if not plan:
        raise PlanNotFound(user_id)
    return plan


@router.post("/users/{user_id}/plan/replace", response_model=ReplaceStepResult)
async def replace_step(
    user_id: str, request: ReplaceStepRequest, db: AsyncSession = Depends(get_db)
):
    new_product_id = await plan_service.replace_step(
        db, user_id, request.step_category, request.old_product_id
    )
    return ReplaceStepResult(
        step_category=request.step_category,
        old_product_id=request.old_product_id,
        new_product_id=new_product_id,
    )


@router.get("/users/{user_id}/progress", response_model=PlanProgress)
async def get_progress(user_id: str, db: AsyncSession = Depends(get_db)):
    return await progress_tracker.get(db, user_id)


@router.post("/users/{user_id}/progress", response_model=PlanProgress)
async def save_progress(user_id: str, update: ProgressUpdate, db: AsyncSession = Depends(get_db)):
    return await progress_tracker.save(db, user_id, update.current_day, update.completed_days)


@router.post("/users/{user_id}/progress/complete", response_model=PlanProgress)
async def complete_slot(
    user_id: str, completion: SlotCompletion, db: AsyncSession = Depends(get_db)
):
    return await progress_tracker.complete_slot(db, user_id, completion.day, completion.slot)


@router.post("/rules/{rule_id}/test", response_model=RuleTestResult)
async def run_rule_test(rule_id: int, data: ProfileCreate, db: AsyncSession = Depends(get_db)):
    """Evaluate one rule against an ad-hoc profile, predicate by predicate."""
    rule = await repo.get_rule(db, rule_id)
    if not rule:
        raise HTTPException(status_code=404, detail=f"Rule {rule_id} not found")

    profile = SkinProfile(user_id="rule-test", **data.model_dump())
    predicates = explain_match(profile, rule)
    return RuleTestResult(
        rule_id=rule.id,
        matched=rule.is_active and all(p.passed for p in predicates),
        predicates=predicates,
    )
