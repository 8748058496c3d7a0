"""
Plan validation: structural checks run on every generated plan.

severity:
  error   - plan is structurally broken (empty day, no cleanser / moisturizer,
            duplicate categories in one slot)
  warning - plan is usable but degraded (missing SPF, days without products)
  ok      - nothing to report
"""

from app.schemas import Plan28, PlanValidationResult, ValidationSeverity
from app.services.categories import base_category


def validate_plan(plan: Plan28) -> PlanValidationResult:
    errors: list[str] = []
    warnings: list[str] = []

    bases_seen: set[str] = set()
    for day in plan.days:
        for slot_name, slot in (("morning", day.morning), ("evening", day.evening)):
            bases = [base_category(s.step_category) for s in slot]
            if len(bases) != len(set(bases)):
                errors.append(f"DAY_{day.day_index}_{slot_name.upper()}_DUPLICATE_CATEGORY")
            bases_seen.update(bases)

        steps = day.morning + day.evening + day.weekly
        if not steps:
            errors.append(f"DAY_{day.day_index}_HAS_NO_STEPS")
        elif not any(s.product_id for s in steps):
            warnings.append(f"DAY_{day.day_index}_HAS_NO_PRODUCTS")

    for required in ("cleanser", "moisturizer"):
        if required not in bases_seen:
            errors.append(f"MISSING_REQUIRED_STEP: {required}")
    if "spf" not in bases_seen:
        warnings.append("MISSING_RECOMMENDED_STEP: spf")

    unavailable = sorted({
        s.step_category
        for day in plan.days
        for s in day.morning + day.evening + day.weekly
        if s.product_id is None
    })
    for category in unavailable:
        warnings.append(f"PRODUCT_UNAVAILABLE: {category}")

    if errors:
        severity = ValidationSeverity.ERROR
    elif warnings:
        severity = ValidationSeverity.WARNING
    else:
        severity = ValidationSeverity.OK
    return PlanValidationResult(
        is_valid=not errors, severity=severity, errors=errors, warnings=warnings
    )
