"""
Phase scheduler: expands resolved steps into a 28-day regimen.

Phases are fixed: days 1-7 adaptation, 8-21 active, 22-28 support.

Cadence policy (see DUTY_CYCLES):
  - cleanser + moisturizer: morning and evening, every day
  - spf: every morning
  - gentle steps (toner, eye cream, hydrating serum): every day
  - active serums and leave-on acids (morning) and treatments (evening)
    follow a duty cycle per phase; profiles with an irritation risk get none
    of them in adaptation
  - conflicting actives (see INGREDIENT_CONFLICTS) never share a slot
  - masks / peels go to `weekly`, 1-2 times per 7-day window, never on
    adjacent days and never on a day whose morning or evening already
    carries an irritating step

Pure function of (resolved steps, profile): no randomness, no clock.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from app.schemas import PLAN_DAYS, DayPlan, DayStep, PlanPhase, ResolvedStep, RoutineTime, SkinProfile
from app.services.categories import (
    DUTY_KINDS,
    StepKind,
    base_category,
    conflicts_with,
    is_exfoliating,
    is_irritating,
    step_kind,
)

logger = logging.getLogger(__name__)

PHASE_BOUNDS = (
    (1, 7, PlanPhase.ADAPTATION),
    (8, 21, PlanPhase.ACTIVE),
    (22, 28, PlanPhase.SUPPORT),
)

# Step is placed on day d when (d - phase_start) % every == every - 1.
# None means never in that phase.
DUTY_CYCLES: dict[bool, dict[StepKind, dict[PlanPhase, Optional[int]]]] = {
    False: {
        StepKind.ACTIVE: {PlanPhase.ADAPTATION: 3, PlanPhase.ACTIVE: 1, PlanPhase.SUPPORT: 2},
        StepKind.EXFOLIANT: {PlanPhase.ADAPTATION: 3, PlanPhase.ACTIVE: 2, PlanPhase.SUPPORT: 2},
        StepKind.TREATMENT: {PlanPhase.ADAPTATION: 3, PlanPhase.ACTIVE: 2, PlanPhase.SUPPORT: 2},
    },
    # irritation risk (sensitivity_level == high)
    True: {
        StepKind.ACTIVE: {PlanPhase.ADAPTATION: None, PlanPhase.ACTIVE: 2, PlanPhase.SUPPORT: 3},
        StepKind.EXFOLIANT: {PlanPhase.ADAPTATION: None, PlanPhase.ACTIVE: 2, PlanPhase.SUPPORT: 3},
        StepKind.TREATMENT: {PlanPhase.ADAPTATION: None, PlanPhase.ACTIVE: 2, PlanPhase.SUPPORT: 3},
    },
}

# (first day, last day, placements)
WEEKLY_WINDOWS = ((1, 7, 1), (8, 14, 2), (15, 21, 2), (22, 28, 1))
# Preferred day offsets inside a window: 3rd and 6th day
WEEKLY_OFFSETS = (2, 5)

SLOT_ORDER = (
    "cleanser",
    "toner",
    "serum",
    "treatment",
    "spot_treatment",
    "eye_cream",
    "moisturizer",
    "balm",
    "spf",
    "lip_care",
)

EVENING_ONLY_BASES = {"lip_care", "balm"}


def phase_for_day(day_index: int) -> PlanPhase:
    for first, last, phase in PHASE_BOUNDS:
        if first <= day_index <= last:
            return phase
    raise ValueError(f"day_index out of range 1..{PLAN_DAYS}: {day_index}")


def phase_start(phase: PlanPhase) -> int:
    return next(first for first, _, p in PHASE_BOUNDS if p == phase)


def is_duty_day(kind: StepKind, day_index: int, irritation_risk: bool) -> bool:
    phase = phase_for_day(day_index)
    every = DUTY_CYCLES[irritation_risk][kind][phase]
    if every is None:
        return False
    return (day_index - phase_start(phase)) % every == every - 1


def _slot_rank(category: str) -> int:
    base = base_category(category)
    return SLOT_ORDER.index(base) if base in SLOT_ORDER else len(SLOT_ORDER)


def _to_day_step(step: ResolvedStep) -> DayStep:
    return DayStep(
        step_category=step.category,
        product_id=step.product_id,
        alternatives=step.alternative_ids,
    )


@dataclass
class Schedule:
    days: list[DayPlan]
    warnings: list[str] = field(default_factory=list)


class _SlotBuilder:
    """Picks at most one step per base category for one slot, day by day."""

    def __init__(self, slot: str, steps: list[ResolvedStep], irritation_risk: bool):
        self.slot = slot
        self.irritation_risk = irritation_risk
        self.warnings: list[str] = []
        self.groups: dict[str, list[ResolvedStep]] = {}
        for step in steps:
            self.groups.setdefault(base_category(step.category), []).append(step)
        self.rotation = {base: 0 for base in self.groups}

        for base, group in self.groups.items():
            every_day = [s for s in group if step_kind(s.category) not in DUTY_KINDS]
            for dropped in every_day[1:]:
                self._warn(
                    f"Step '{dropped.step_key}' ({dropped.category}) not scheduled: "
                    f"{every_day[0].category} already fills the {base} slot"
                )

    def _warn(self, message: str):
        if message not in self.warnings:
            logger.info(message)
            self.warnings.append(message)

    def build(self, day_index: int) -> list[DayStep]:
        picked = []
        for base, group in self.groups.items():
            on_duty = [
                s for s in group
                if step_kind(s.category) in DUTY_KINDS
                and is_duty_day(step_kind(s.category), day_index, self.irritation_risk)
            ]
            every_day = [s for s in group if step_kind(s.category) not in DUTY_KINDS]
            if on_duty:
                picked.append(on_duty[self.rotation[base] % len(on_duty)])
                self.rotation[base] += 1
            elif every_day:
                picked.append(every_day[0])
        picked.sort(key=lambda s: _slot_rank(s.category))

        # Earlier steps in slot order win an ingredient conflict
        kept: list[ResolvedStep] = []
        for step in picked:
            if step_kind(step.category) in DUTY_KINDS and conflicts_with(
                step.category, [s.category for s in kept]
            ):
                self._warn(
                    f"Step '{step.step_key}' ({step.category}) left out of {self.slot} "
                    f"routines that already carry a conflicting active"
                )
                continue
            kept.append(step)
        return [_to_day_step(s) for s in kept]


def _split_by_slot(resolved: list[ResolvedStep]):
    morning, evening, weekly = [], [], []
    for step in resolved:
        kind = step_kind(step.category)
        if kind == StepKind.WEEKLY:
            weekly.append(step)
        elif kind in (StepKind.SPF, StepKind.ACTIVE, StepKind.EXFOLIANT):
            morning.append(step)
        elif kind == StepKind.TREATMENT:
            evening.append(step)
        elif kind == StepKind.DAILY and base_category(step.category) in EVENING_ONLY_BASES:
            evening.append(step)
        else:
            morning.append(step)
            evening.append(step)
    return morning, evening, weekly


def _place_weekly(days: list[DayPlan], weekly: list[ResolvedStep], profile: SkinProfile) -> list[str]:
    warnings: list[str] = []
    if not weekly:
        return warnings

    by_index = {d.day_index: d for d in days}
    placed: set[int] = set()
    rotation = 0

    def can_place(day_index: int) -> bool:
        if day_index in placed or day_index - 1 in placed or day_index + 1 in placed:
            return False
        day = by_index[day_index]
        return not any(is_irritating(s.step_category) for s in day.morning + day.evening)

    for first, last, target in WEEKLY_WINDOWS:
        pool = weekly
        if phase_for_day(first) == PlanPhase.ADAPTATION:
            pool = [s for s in weekly if not is_exfoliating(s.category)]
        if not pool:
            continue

        for offset in WEEKLY_OFFSETS[:target]:
            day_index = first + offset
            while day_index <= last and not can_place(day_index):
                day_index += 1
            if day_index > last:
                message = (
                    f"Weekly step skipped for days {first}-{last}: "
                    f"no conflict-free day in the window"
                )
                logger.info(f"{message} (user {profile.user_id})")
                warnings.append(message)
                continue

            step = pool[rotation % len(pool)]
            rotation += 1
            day = by_index[day_index]
            day.weekly = [_to_day_step(step)]
            day.is_weekly_focus_day = True
            placed.add(day_index)

    return warnings


def build_schedule(resolved: dict[str, ResolvedStep], profile: SkinProfile) -> Schedule:
    morning_steps, evening_steps, weekly_steps = _split_by_slot(list(resolved.values()))
    morning = _SlotBuilder("morning", morning_steps, profile.irritation_risk)
    evening = _SlotBuilder("evening", evening_steps, profile.irritation_risk)

    days = [
        DayPlan(
            day_index=day_index,
            phase=phase_for_day(day_index),
            morning=morning.build(day_index),
            evening=evening.build(day_index),
        )
        for day_index in range(1, PLAN_DAYS + 1)
    ]
    warnings = []
    for message in morning.warnings + evening.warnings + _place_weekly(days, weekly_steps, profile):
        if message not in warnings:
            warnings.append(message)
    return Schedule(days=days, warnings=warnings)


def schedule(resolved: dict[str, ResolvedStep], profile: SkinProfile) -> list[DayPlan]:
    return build_schedule(resolved, profile).days
