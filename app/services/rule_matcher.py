"""
Rule matcher: picks the recommendation rule for a skin profile.

Contract:
  - only active rules are considered
  - every predicate of a rule must hold (AND)
  - highest priority wins; equal priorities are broken by rule id ascending
  - no full match → lowest-priority skin-type-only rule for the profile's
    skin type family
  - nothing at all → NoRuleMatched
"""

import logging
from typing import Iterable, Optional

from app.errors import NoRuleMatched
from app.schemas import (
    PredicateResult,
    RecommendationRule,
    SkinProfile,
    SkinType,
    profile_value,
)

logger = logging.getLogger(__name__)

# Broader skin type a profile may fall back to when no rule of its own exists
SKIN_TYPE_FALLBACK = {
    SkinType.SENSITIVE: SkinType.DRY,
    SkinType.COMBINATION_DRY: SkinType.DRY,
    SkinType.COMBINATION_OILY: SkinType.OILY,
}


def _rank_key(rule: RecommendationRule) -> tuple[int, int]:
    return (-rule.priority, rule.id)


def _fallback_rule(
    profile: SkinProfile, rules: list[RecommendationRule]
) -> Optional[RecommendationRule]:
    accepted = {profile.skin_type.value}
    family = SKIN_TYPE_FALLBACK.get(profile.skin_type)
    if family:
        accepted.add(family.value)

    candidates = [
        r for r in rules
        if r.catch_all_skin_types and r.catch_all_skin_types & accepted
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda r: (r.priority, r.id))


def match_rule(
    profile: SkinProfile, rules: Iterable[RecommendationRule]
) -> RecommendationRule:
    active = [r for r in rules if r.is_active]
    matched = [r for r in active if r.conditions.evaluate(profile)]

    if matched:
        rule = min(matched, key=_rank_key)
        logger.info(
            f"Matched rule {rule.id} '{rule.name}' (priority {rule.priority}) "
            f"for user {profile.user_id} v{profile.version}; {len(matched)} candidates"
        )
        return rule

    rule = _fallback_rule(profile, active)
    if rule:
        logger.warning(
            f"No rule fully matched user {profile.user_id} v{profile.version}; "
            f"falling back to catch-all rule {rule.id} '{rule.name}'"
        )
        return rule

    logger.warning(
        f"No rule and no catch-all for user {profile.user_id} "
        f"(skin type {profile.skin_type.value}, {len(active)} active rules)"
    )
    raise NoRuleMatched(profile.user_id, profile.skin_type.value)


def explain_match(profile: SkinProfile, rule: RecommendationRule) -> list[PredicateResult]:
    """Evaluate each predicate separately (rule test screen / debugging)."""
    results = []
    for pred in rule.conditions.predicates:
        if pred.kind == "equals":
            expected = pred.value
        elif pred.kind == "one_of":
            expected = pred.values
        else:
            expected = {"gte": pred.gte, "lte": pred.lte}
        results.append(
            PredicateResult(
                field=pred.field,
                kind=pred.kind,
                expected=expected,
                actual=profile_value(profile, pred.field),
                passed=pred.evaluate(profile),
            )
        )
    return results
