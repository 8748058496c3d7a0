"""
Step category vocabulary shared by the resolver, the scheduler and validation.

A step category is `<base>[_<qualifier>...]`, e.g. `serum_niacinamide` or
`eye_cream_dark_circles`. Scheduling and de-duplication work on the base.
"""

import enum

# Multi-word bases must come before their single-word prefixes
KNOWN_BASES = (
    "spot_treatment",
    "eye_cream",
    "lip_care",
    "cleanser",
    "toner",
    "serum",
    "treatment",
    "moisturizer",
    "spf",
    "mask",
    "peel",
    "balm",
)

# Rule vocabulary → catalog vocabulary
CATEGORY_ALIASES = {
    "cream": "moisturizer",
    "sunscreen": "spf",
}

# Fallback categories when a rule omits a baseline step
BASELINE_FALLBACKS = {
    "cleanser": "cleanser_gentle",
    "moisturizer": "moisturizer_light",
    "spf": "spf_50_face",
}

GENTLE_SERUMS = {"serum_hydrating", "serum_anti_redness"}

# Ingredient families recognised from category tokens (`toner_bha` -> acid)
ACTIVE_FAMILIES = {
    "retinoid": ("retinoid", "retinol", "retinal", "adapalene", "tretinoin"),
    "acid": ("aha", "bha", "pha", "salicylic", "glycolic", "lactic", "mandelic", "exfoliant"),
    "benzoyl_peroxide": ("benzoyl", "bpo"),
    "vitamin_c": ("vitamin_c", "ascorbic"),
}

# Pairs kept apart within one slot; acids go in the morning, retinoids at night
INGREDIENT_CONFLICTS = (
    ("retinoid", "acid"),
    ("retinoid", "benzoyl_peroxide"),
    ("retinoid", "vitamin_c"),
    ("acid", "vitamin_c"),
)

IRRITATING_FAMILIES = {"retinoid", "acid", "benzoyl_peroxide"}


class StepKind(str, enum.Enum):
    BASELINE = "baseline"     # morning + evening, every day
    SPF = "spf"               # morning, every day
    DAILY = "daily"           # gentle, every day
    ACTIVE = "active"         # active serum, morning, duty cycle
    EXFOLIANT = "exfoliant"   # leave-on acid, morning, duty cycle
    TREATMENT = "treatment"   # evening, duty cycle
    WEEKLY = "weekly"         # masks / peels, weekly window


DUTY_KINDS = (StepKind.ACTIVE, StepKind.EXFOLIANT, StepKind.TREATMENT)


def normalize_prefix(prefix: str) -> str:
    prefix = prefix.strip().lower()
    return CATEGORY_ALIASES.get(prefix, prefix)


def base_category(category: str) -> str:
    category = normalize_prefix(category)
    for base in KNOWN_BASES:
        if category == base or category.startswith(base + "_"):
            return base
    return category.split("_", 1)[0]


def matches_prefix(category: str, prefix: str) -> bool:
    category = category.lower()
    prefix = normalize_prefix(prefix)
    return category == prefix or category.startswith(prefix + "_")


def active_families(category: str) -> set[str]:
    padded = f"_{category.lower()}_"
    return {
        family
        for family, markers in ACTIVE_FAMILIES.items()
        if any(f"_{marker}_" in padded for marker in markers)
    }


def step_kind(category: str) -> StepKind:
    base = base_category(category)
    if base in ("mask", "peel") or category == "treatment_exfoliant_strong":
        return StepKind.WEEKLY
    if base in ("cleanser", "moisturizer"):
        return StepKind.BASELINE
    if base == "spf":
        return StepKind.SPF
    if base in ("treatment", "spot_treatment"):
        return StepKind.TREATMENT
    if "acid" in active_families(category):
        return StepKind.EXFOLIANT
    if base == "serum" and category not in GENTLE_SERUMS and category != "serum":
        return StepKind.ACTIVE
    return StepKind.DAILY


def is_irritating(category: str) -> bool:
    """Treatments, leave-on acids and retinoid / peroxide categories."""
    kind = step_kind(category)
    if kind in (StepKind.BASELINE, StepKind.SPF):
        return False
    if kind in (StepKind.TREATMENT, StepKind.EXFOLIANT):
        return True
    return bool(active_families(category) & IRRITATING_FAMILIES)


def conflicts_with(category: str, others: list[str]) -> bool:
    families = active_families(category)
    if not families:
        return False
    for other in others:
        other_families = active_families(other)
        for a, b in INGREDIENT_CONFLICTS:
            if (a in families and b in other_families) or (b in families and a in other_families):
                return True
    return False


def is_exfoliating(category: str) -> bool:
    return base_category(category) == "peel" or "exfoliant" in category
