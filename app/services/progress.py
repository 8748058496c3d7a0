"""
Progress tracker: current day and completed days of the 28-day plan.

Reads only day indexes; never touches plan content.
"""

import logging
import math
from typing import Any, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.repository import PlanRepository
from app.schemas import PLAN_DAYS, PlanProgress, RoutineTime

logger = logging.getLogger(__name__)


def _as_day(value: Any) -> float:
    """Loose numeric coercion; anything unparseable becomes NaN."""
    if isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def clamp_day(value: Any) -> int:
    day = _as_day(value)
    if not math.isfinite(day) or day == 0:
        return 1
    return int(min(max(day, 1), PLAN_DAYS))


def normalize_completed_days(values: Iterable[Any]) -> list[int]:
    days = set()
    for value in values:
        day = _as_day(value)
        if math.isfinite(day) and day.is_integer() and 1 <= day <= PLAN_DAYS:
            days.add(int(day))
    return sorted(days)


class ProgressTracker:
    def __init__(self, repo: Optional[PlanRepository] = None):
        self.repo = repo or PlanRepository()

    async def get(self, db: AsyncSession, user_id: str) -> PlanProgress:
        progress = await self.repo.get_progress(db, user_id)
        return progress or PlanProgress(user_id=user_id)

    async def save(
        self, db: AsyncSession, user_id: str, current_day: Any, completed_days: Iterable[Any]
    ) -> PlanProgress:
        existing = await self.get(db, user_id)
        completed = normalize_completed_days(completed_days)
        progress = PlanProgress(
            user_id=user_id,
            current_day=clamp_day(current_day),
            completed_days=completed,
            # a day taken out of completed_days loses its slot marks
            done_slots={
                d: s for d, s in existing.done_slots.items()
                if d in completed or set(s) != set(RoutineTime)
            },
        )
        return await self.repo.save_progress(db, progress)

    async def complete_slot(
        self, db: AsyncSession, user_id: str, day: int, slot: RoutineTime
    ) -> PlanProgress:
        """Mark a morning / evening routine done; both done completes the day."""
        progress = await self.get(db, user_id)

        done_slots = {d: list(s) for d, s in progress.done_slots.items()}
        slots = done_slots.setdefault(day, [])
        if slot not in slots:
            slots.append(slot)
            slots.sort(key=lambda s: list(RoutineTime).index(s))

        completed = list(progress.completed_days)
        current_day = progress.current_day
        if set(slots) == set(RoutineTime) and day not in completed:
            completed = sorted(completed + [day])
            current_day = max(current_day, min(day + 1, PLAN_DAYS))
            logger.info(f"User {user_id} completed day {day}")

        progress = PlanProgress(
            user_id=user_id,
            current_day=current_day,
            completed_days=completed,
            done_slots=done_slots,
        )
        return await self.repo.save_progress(db, progress)
