"""
Step resolver: binds a rule's abstract steps to concrete catalog products.

For every step spec the catalog is filtered (category prefix, skin type,
concerns, contra-indications, published) and ranked:
  1. hero products first
  2. priority descending
  3. product id ascending

The top candidate becomes the primary product, the next `max_items - 1` the
alternatives. A step with no candidates resolves to primary=None; callers
render it as "product unavailable".
"""

import logging
from typing import Iterable, Optional

from app.schemas import Product, ResolvedStep, SkinProfile, SkinType, StepSpec
from app.services.categories import (
    BASELINE_FALLBACKS,
    base_category,
    matches_prefix,
    normalize_prefix,
)

logger = logging.getLogger(__name__)

COMBINATION_TYPES = {SkinType.COMBINATION_DRY, SkinType.COMBINATION_OILY}


def spec_prefixes(step_key: str, spec: StepSpec) -> list[str]:
    """Category prefixes of a spec; a spec without categories uses its key."""
    if spec.category:
        return [normalize_prefix(c) for c in spec.category]
    return [normalize_prefix(step_key)]


def _accepted_skin_types(profile: SkinProfile) -> set[str]:
    accepted = {profile.skin_type.value}
    if profile.skin_type in COMBINATION_TYPES:
        accepted.add("combination")
    return accepted


def _wanted_concerns(spec: StepSpec, profile: SkinProfile) -> set[str]:
    # Strict: a concern-tagged step only admits products for concerns the
    # profile actually has; no shared concern leaves the step unresolved.
    spec_concerns = {c.lower() for c in spec.concerns or []}
    return spec_concerns & set(profile.concerns)


def is_eligible(product: Product, prefixes: list[str], spec: StepSpec, profile: SkinProfile) -> bool:
    if not product.published:
        return False
    if not any(matches_prefix(product.step, p) for p in prefixes):
        return False
    if spec.skin_types and not set(product.skin_types) & _accepted_skin_types(profile):
        return False
    if spec.concerns and not set(product.concerns) & _wanted_concerns(spec, profile):
        return False
    if set(product.avoid_if) & profile.medical_tags:
        return False
    return True


def rank_key(product: Product) -> tuple[bool, int, int]:
    return (not product.is_hero, -product.priority, product.id)


def rank_candidates(
    step_key: str, spec: StepSpec, profile: SkinProfile, catalog: Iterable[Product]
) -> list[Product]:
    prefixes = spec_prefixes(step_key, spec)
    candidates = [p for p in catalog if is_eligible(p, prefixes, spec, profile)]
    return sorted(candidates, key=rank_key)


def resolve_step(
    step_key: str, spec: StepSpec, profile: SkinProfile, catalog: Iterable[Product]
) -> ResolvedStep:
    ranked = rank_candidates(step_key, spec, profile, catalog)
    if not ranked:
        logger.warning(
            f"Step '{step_key}' unresolved for user {profile.user_id}: "
            f"no eligible product for {spec_prefixes(step_key, spec)}"
        )
        return ResolvedStep(
            step_key=step_key,
            category=spec_prefixes(step_key, spec)[0],
            spec=spec,
        )

    primary = ranked[0]
    return ResolvedStep(
        step_key=step_key,
        category=primary.step,
        spec=spec,
        primary=primary,
        alternatives=ranked[1:spec.max_items],
    )


def with_baseline_steps(steps: dict[str, StepSpec]) -> dict[str, StepSpec]:
    """Append cleanser / moisturizer / spf steps the rule does not define."""
    present = {
        base_category(prefix)
        for key, spec in steps.items()
        for prefix in spec_prefixes(key, spec)
    }
    completed = dict(steps)
    for base, fallback in BASELINE_FALLBACKS.items():
        if base not in present and base not in completed:
            completed[base] = StepSpec(category=[base])
            logger.info(f"Rule has no {base} step; adding baseline step ({fallback} fallback)")
    return completed


def resolve_steps(
    steps: dict[str, StepSpec], profile: SkinProfile, catalog: Iterable[Product]
) -> dict[str, ResolvedStep]:
    catalog = list(catalog)
    resolved = {}
    for step_key, spec in with_baseline_steps(steps).items():
        step = resolve_step(step_key, spec, profile, catalog)
        if step.primary is None and step_key in BASELINE_FALLBACKS:
            step.category = BASELINE_FALLBACKS[step_key]
        resolved[step_key] = step
    return resolved


def find_replacement(
    step_key: str,
    spec: StepSpec,
    profile: SkinProfile,
    catalog: Iterable[Product],
    old_product_id: int,
) -> Optional[Product]:
    """Next candidate in initial-resolution order once `old_product_id` is removed.

    The replacement takes the old product's rank position, so it is never a
    worse match than what initial resolution put at that position.
    """
    ranked = rank_candidates(step_key, spec, profile, catalog)
    position = next((i for i, p in enumerate(ranked) if p.id == old_product_id), 0)
    remaining = [p for p in ranked if p.id != old_product_id]
    if not remaining:
        return None
    return remaining[min(position, len(remaining) - 1)]
