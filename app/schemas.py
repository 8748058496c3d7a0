"""
Pydantic schemas: the single source of truth for all data contracts.

SkinProfile is the input contract handed over by questionnaire ingestion.
Plan28 is the output contract consumed by the day view, the calendar and the
progress tracker. It is serialized as JSON in the DB, one document per
(user_id, profile_version).
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PLAN_DAYS = 28


# ── Enums ────────────────────────────────────────────────────────────────────


class SkinType(str, enum.Enum):
    DRY = "dry"
    OILY = "oily"
    COMBINATION_DRY = "combination_dry"
    COMBINATION_OILY = "combination_oily"
    NORMAL = "normal"
    SENSITIVE = "sensitive"


class SensitivityLevel(str, enum.Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PlanPhase(str, enum.Enum):
    ADAPTATION = "adaptation"
    ACTIVE = "active"
    SUPPORT = "support"


class RoutineTime(str, enum.Enum):
    """Enum for routine time of day"""

    MORNING = "morning"
    EVENING = "evening"


class ValidationSeverity(str, enum.Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


def _normalize_tags(values: list[str]) -> list[str]:
    """Lower-case, strip and de-duplicate tags, keeping first-seen order."""
    seen: list[str] = []
    for value in values:
        tag = str(value).strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


# ── Profile ──────────────────────────────────────────────────────────────────


class SkinProfile(BaseModel):
    """One immutable version of a user's derived skin attributes.

    Changed answers produce a new version; rows are never updated in place.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: Optional[int] = None
    user_id: str
    version: int = Field(default=1, ge=1)

    # Categorical
    skin_type: SkinType
    sensitivity_level: SensitivityLevel = SensitivityLevel.LOW
    age_group: Optional[str] = None
    concerns: list[str] = Field(default_factory=list)
    acne_level: Optional[int] = Field(default=None, ge=0, le=5)

    # Axis scores (0-100)
    inflammation: float = Field(default=0, ge=0, le=100)
    pigmentation: float = Field(default=0, ge=0, le=100)
    hydration: float = Field(default=0, ge=0, le=100)
    photoaging: float = Field(default=0, ge=0, le=100)
    oiliness: float = Field(default=0, ge=0, le=100)
    barrier: float = Field(default=0, ge=0, le=100)

    # Medical markers
    has_pregnancy: bool = False
    rosacea_risk: bool = False
    pigmentation_risk: bool = False
    contraindications: list[str] = Field(default_factory=list)

    @field_validator("concerns", "contraindications")
    @classmethod
    def _clean_tags(cls, v: list[str]) -> list[str]:
        return _normalize_tags(v)

    @property
    def irritation_risk(self) -> bool:
        return self.sensitivity_level == SensitivityLevel.HIGH

    @property
    def medical_tags(self) -> set[str]:
        """Tags matched against Product.avoid_if."""
        tags = set(self.contraindications)
        if self.has_pregnancy:
            tags.add("pregnant")
        if self.rosacea_risk:
            tags.add("rosacea")
        if self.pigmentation_risk:
            tags.add("pigmentation_risk")
        if self.sensitivity_level == SensitivityLevel.HIGH:
            tags.add("very_high_sensitivity")
        return tags


class ProfileCreate(BaseModel):
    """Payload of the profile source; user_id and version are assigned by the store."""

    skin_type: SkinType
    sensitivity_level: SensitivityLevel = SensitivityLevel.LOW
    age_group: Optional[str] = None
    concerns: list[str] = Field(default_factory=list)
    acne_level: Optional[int] = Field(default=None, ge=0, le=5)
    inflammation: float = Field(default=0, ge=0, le=100)
    pigmentation: float = Field(default=0, ge=0, le=100)
    hydration: float = Field(default=0, ge=0, le=100)
    photoaging: float = Field(default=0, ge=0, le=100)
    oiliness: float = Field(default=0, ge=0, le=100)
    barrier: float = Field(default=0, ge=0, le=100)
    has_pregnancy: bool = False
    rosacea_risk: bool = False
    pigmentation_risk: bool = False
    contraindications: list[str] = Field(default_factory=list)


# ── Rule conditions ──────────────────────────────────────────────────────────

# camelCase names used by the rule editor and the legacy JSON
FIELD_ALIASES = {
    "skinType": "skin_type",
    "sensitivity": "sensitivity_level",
    "sensitivityLevel": "sensitivity_level",
    "ageGroup": "age_group",
    "age": "age_group",
    "acneLevel": "acne_level",
    "hasPregnancy": "has_pregnancy",
    "pregnant": "has_pregnancy",
    "rosaceaRisk": "rosacea_risk",
    "pigmentationRisk": "pigmentation_risk",
}

_NON_CONDITION_FIELDS = {"id", "user_id", "version"}


def normalize_condition_field(name: str) -> str:
    field_name = FIELD_ALIASES.get(name, name)
    if field_name in _NON_CONDITION_FIELDS or field_name not in SkinProfile.model_fields:
        raise ValueError(f"unknown profile field in rule condition: {name!r}")
    return field_name


def profile_value(profile: SkinProfile, field_name: str) -> Any:
    value = getattr(profile, field_name)
    if isinstance(value, enum.Enum):
        return value.value
    return value


Scalar = Union[bool, int, float, str]


class FieldPredicate(BaseModel):
    field: str

    @field_validator("field")
    @classmethod
    def _known_field(cls, v: str) -> str:
        return normalize_condition_field(v)


class Equals(FieldPredicate):
    kind: Literal["equals"] = "equals"
    value: Scalar

    def evaluate(self, profile: SkinProfile) -> bool:
        actual = profile_value(profile, self.field)
        if actual is None:
            return False
        if isinstance(actual, list):
            return self.value in actual
        return actual == self.value


class OneOf(FieldPredicate):
    """Set membership. Over a list-valued field (concerns) the sets must intersect."""

    kind: Literal["one_of"] = "one_of"
    values: list[Scalar]

    def evaluate(self, profile: SkinProfile) -> bool:
        actual = profile_value(profile, self.field)
        if actual is None:
            return False
        if isinstance(actual, list):
            return any(item in self.values for item in actual)
        return actual in self.values


class Range(FieldPredicate):
    kind: Literal["range"] = "range"
    gte: Optional[float] = None
    lte: Optional[float] = None

    @model_validator(mode="after")
    def _has_bound(self) -> "Range":
        if self.gte is None and self.lte is None:
            raise ValueError("range condition needs gte and/or lte")
        return self

    def evaluate(self, profile: SkinProfile) -> bool:
        actual = profile_value(profile, self.field)
        if isinstance(actual, bool) or not isinstance(actual, (int, float)):
            return False
        if self.gte is not None and actual < self.gte:
            return False
        if self.lte is not None and actual > self.lte:
            return False
        return True


Condition = Annotated[Union[Equals, OneOf, Range], Field(discriminator="kind")]


class All(BaseModel):
    """Conjunction of predicates. An empty conjunction always holds."""

    kind: Literal["all"] = "all"
    predicates: list[Condition] = Field(default_factory=list)

    def evaluate(self, profile: SkinProfile) -> bool:
        return all(p.evaluate(profile) for p in self.predicates)


def conditions_from_legacy(raw: dict[str, Any]) -> All:
    """Convert the loose rule JSON ({"skinType": "oily", "acneLevel": {"gte": 1}})
    into a tagged conjunction."""
    predicates: list[Union[Equals, OneOf, Range]] = []
    for key, cond in raw.items():
        if isinstance(cond, list):
            predicates.append(OneOf(field=key, values=cond))
        elif isinstance(cond, dict):
            if "hasSome" in cond:
                predicates.append(OneOf(field=key, values=cond["hasSome"]))
            elif "in" in cond:
                predicates.append(OneOf(field=key, values=cond["in"]))
            elif "gte" in cond or "lte" in cond:
                predicates.append(Range(field=key, gte=cond.get("gte"), lte=cond.get("lte")))
            else:
                raise ValueError(f"unsupported operator in condition {key!r}: {sorted(cond)}")
        else:
            predicates.append(Equals(field=key, value=cond))
    return All(predicates=predicates)


# ── Rules & catalog ──────────────────────────────────────────────────────────


class StepSpec(BaseModel):
    """Abstract care step of a rule, resolved against the catalog."""

    category: list[str] = Field(default_factory=list)
    skin_types: Optional[list[str]] = None
    concerns: Optional[list[str]] = None
    max_items: int = Field(default=1, ge=1)

    @field_validator("category")
    @classmethod
    def _clean_category(cls, v: list[str]) -> list[str]:
        return _normalize_tags(v)


class RecommendationRule(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    priority: int = 0
    is_active: bool = True
    conditions: All = Field(default_factory=All)
    steps: dict[str, StepSpec] = Field(default_factory=dict)

    @property
    def catch_all_skin_types(self) -> Optional[set[str]]:
        """Skin types of a skin-type-only rule, None for any other rule."""
        preds = self.conditions.predicates
        if len(preds) != 1 or preds[0].field != "skin_type":
            return None
        pred = preds[0]
        if isinstance(pred, Equals):
            return {str(pred.value)}
        if isinstance(pred, OneOf):
            return {str(v) for v in pred.values}
        return None

    @classmethod
    def from_legacy(
        cls,
        *,
        id: int,
        name: str,
        priority: int,
        conditions_json: dict[str, Any],
        steps_json: dict[str, Any],
        is_active: bool = True,
    ) -> "RecommendationRule":
        return cls(
            id=id,
            name=name,
            priority=priority,
            is_active=is_active,
            conditions=conditions_from_legacy(conditions_json),
            steps={key: StepSpec.model_validate(spec) for key, spec in steps_json.items()},
        )


class Product(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    brand: str = ""
    price: Optional[float] = None
    step: str
    skin_types: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    avoid_if: list[str] = Field(default_factory=list)
    is_hero: bool = False
    priority: int = 0
    published: bool = True


class ResolvedStep(BaseModel):
    """A rule step bound to concrete products (primary may be missing)."""

    step_key: str
    category: str
    spec: StepSpec
    primary: Optional[Product] = None
    alternatives: list[Product] = Field(default_factory=list)

    @property
    def product_id(self) -> Optional[int]:
        return self.primary.id if self.primary else None

    @property
    def alternative_ids(self) -> list[int]:
        return [p.id for p in self.alternatives]


# ── Plan ─────────────────────────────────────────────────────────────────────


class DayStep(BaseModel):
    step_category: str
    product_id: Optional[int] = None  # None → "product unavailable"
    alternatives: list[int] = Field(default_factory=list)


class DayPlan(BaseModel):
    day_index: int = Field(ge=1, le=PLAN_DAYS)
    phase: PlanPhase
    morning: list[DayStep] = Field(default_factory=list)
    evening: list[DayStep] = Field(default_factory=list)
    weekly: list[DayStep] = Field(default_factory=list)
    is_weekly_focus_day: bool = False


class Plan28(BaseModel):
    """Full 28-day regimen for one profile version."""

    user_id: str
    skin_profile_id: Optional[int] = None
    profile_version: int
    rule_id: Optional[int] = None
    rule_name: Optional[str] = None
    main_goals: list[str] = Field(default_factory=list)
    days: list[DayPlan]
    warnings: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_days(self) -> "Plan28":
        indexes = [d.day_index for d in self.days]
        if indexes != list(range(1, PLAN_DAYS + 1)):
            raise ValueError(f"plan must contain days 1..{PLAN_DAYS} in order")
        return self


class PlanValidationResult(BaseModel):
    is_valid: bool
    severity: ValidationSeverity
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# ── Progress ─────────────────────────────────────────────────────────────────


class PlanProgress(BaseModel):
    user_id: str
    current_day: int = Field(default=1, ge=1, le=PLAN_DAYS)
    completed_days: list[int] = Field(default_factory=list)
    done_slots: dict[int, list[RoutineTime]] = Field(default_factory=dict)


# ── API payloads ─────────────────────────────────────────────────────────────


class ReplaceStepRequest(BaseModel):
    step_category: str
    old_product_id: int


class ReplaceStepResult(BaseModel):
    step_category: str
    old_product_id: int
    new_product_id: Optional[int] = None


class ProgressUpdate(BaseModel):
    current_day: Any = 1
    completed_days: list[Any] = Field(default_factory=list)


class SlotCompletion(BaseModel):
    day: int = Field(ge=1, le=PLAN_DAYS)
    slot: RoutineTime


class PredicateResult(BaseModel):
    field: str
    kind: str
    expected: Any
    actual: Any
    passed: bool


class RuleTestResult(BaseModel):
    rule_id: int
    matched: bool
    predicates: list[PredicateResult]
