"""
Rule matcher tests: predicate evaluation, priority, tiebreak, fallback.
"""

import pytest
from pydantic import ValidationError

from app.errors import NoRuleMatched
from app.schemas import (
    All,
    Equals,
    OneOf,
    Range,
    RecommendationRule,
    SkinProfile,
    conditions_from_legacy,
)
from app.seed import SAMPLE_RULES
from app.services.rule_matcher import explain_match, match_rule


def _profile(**overrides) -> SkinProfile:
    defaults = dict(
        user_id="u1",
        skin_type="oily",
        concerns=["acne"],
        inflammation=55,
        sensitivity_level="low",
    )
    defaults.update(overrides)
    return SkinProfile(**defaults)


def _rule(id: int, priority: int, *predicates, is_active: bool = True) -> RecommendationRule:
    return RecommendationRule(
        id=id,
        name=f"rule {id}",
        priority=priority,
        is_active=is_active,
        conditions=All(predicates=list(predicates)),
    )


# ── Predicates ──────────────────────────────────────────────────────────────


class TestPredicates:
    def test_equals_on_scalar_field(self):
        assert Equals(field="skin_type", value="oily").evaluate(_profile())
        assert not Equals(field="skin_type", value="dry").evaluate(_profile())

    def test_equals_on_list_field_is_membership(self):
        assert Equals(field="concerns", value="acne").evaluate(_profile())
        assert not Equals(field="concerns", value="wrinkles").evaluate(_profile())

    def test_one_of_intersects_list_field(self):
        pred = OneOf(field="concerns", values=["pigmentation", "acne"])
        assert pred.evaluate(_profile())
        assert not pred.evaluate(_profile(concerns=["redness"]))

    def test_range_bounds_are_inclusive(self):
        pred = Range(field="inflammation", gte=40, lte=55)
        assert pred.evaluate(_profile(inflammation=40))
        assert pred.evaluate(_profile(inflammation=55))
        assert not pred.evaluate(_profile(inflammation=56))

    def test_range_on_missing_value_fails(self):
        assert not Range(field="acne_level", gte=0).evaluate(_profile(acne_level=None))

    def test_range_ignores_booleans(self):
        assert not Range(field="has_pregnancy", gte=0).evaluate(_profile(has_pregnancy=True))

    def test_range_needs_a_bound(self):
        with pytest.raises(ValidationError):
            Range(field="inflammation")

    def test_camel_case_field_is_normalized(self):
        assert Equals(field="skinType", value="oily").field == "skin_type"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            Equals(field="shoe_size", value=42)

    def test_identity_fields_rejected(self):
        with pytest.raises(ValidationError):
            Equals(field="user_id", value="u1")

    def test_empty_conjunction_holds(self):
        assert All().evaluate(_profile())


class TestLegacyConditions:
    def test_operators_map_to_variants(self):
        cond = conditions_from_legacy({
            "skinType": "oily",
            "concerns": {"hasSome": ["acne"]},
            "sensitivity": {"in": ["low", "medium"]},
            "acneLevel": {"gte": 2},
            "ageGroup": ["18_25", "25_35"],
        })
        kinds = {p.field: p.kind for p in cond.predicates}
        assert kinds == {
            "skin_type": "equals",
            "concerns": "one_of",
            "sensitivity_level": "one_of",
            "acne_level": "range",
            "age_group": "one_of",
        }

    def test_unsupported_operator_rejected(self):
        with pytest.raises(ValueError):
            conditions_from_legacy({"acneLevel": {"between": [1, 3]}})

    def test_tagged_form_round_trips_through_json(self):
        cond = SAMPLE_RULES[0].conditions
        assert All.model_validate(cond.model_dump(mode="json")) == cond


# ── Matching ────────────────────────────────────────────────────────────────


class TestMatchRule:
    def test_oily_acne_profile_selects_moderate_rule(self):
        rule = match_rule(_profile(), SAMPLE_RULES)
        assert rule.id == 1
        assert rule.priority == 91

    def test_mild_inflammation_selects_mild_rule(self):
        assert match_rule(_profile(inflammation=20), SAMPLE_RULES).id == 2

    def test_higher_priority_wins_regardless_of_order(self):
        low = _rule(1, 5, Equals(field="skin_type", value="oily"))
        high = _rule(2, 10, OneOf(field="concerns", values=["acne"]))
        assert match_rule(_profile(), [low, high]).id == 2
        assert match_rule(_profile(), [high, low]).id == 2

    def test_equal_priority_breaks_ties_by_id(self):
        a = _rule(7, 10, Equals(field="skin_type", value="oily"))
        b = _rule(3, 10, Equals(field="skin_type", value="oily"))
        assert match_rule(_profile(), [a, b]).id == 3
        assert match_rule(_profile(), [b, a]).id == 3

    def test_inactive_rules_are_ignored(self):
        inactive = _rule(1, 100, Equals(field="skin_type", value="oily"), is_active=False)
        active = _rule(2, 1, Equals(field="skin_type", value="oily"))
        assert match_rule(_profile(), [inactive, active]).id == 2

    def test_all_predicates_must_hold(self):
        rule = _rule(
            1, 10,
            Equals(field="skin_type", value="oily"),
            OneOf(field="concerns", values=["wrinkles"]),
        )
        with pytest.raises(NoRuleMatched):
            match_rule(_profile(), [rule])

    def test_sensitive_skin_falls_back_to_dry_catch_all(self):
        rule = match_rule(_profile(skin_type="sensitive", concerns=[]), SAMPLE_RULES)
        assert rule.name == "Dry — base care"

    def test_fallback_picks_lowest_priority_catch_all(self):
        rules = [
            _rule(12, 5, Equals(field="skin_type", value="dry")),
            _rule(20, 2, OneOf(field="skin_type", values=["dry", "normal"])),
        ]
        profile = _profile(skin_type="combination_dry", concerns=[])
        assert match_rule(profile, rules).id == 20

    def test_no_rule_and_no_catch_all_raises(self):
        rules = [_rule(1, 5, Equals(field="skin_type", value="oily"))]
        with pytest.raises(NoRuleMatched) as exc_info:
            match_rule(_profile(skin_type="normal"), rules)
        assert "normal" in exc_info.value.message
        assert exc_info.value.user_id == "u1"


class TestExplainMatch:
    def test_reports_each_predicate(self):
        results = explain_match(_profile(inflammation=20), SAMPLE_RULES[0])
        by_field = {r.field: r for r in results}
        assert by_field["skin_type"].passed
        assert by_field["concerns"].passed
        assert not by_field["inflammation"].passed
        assert by_field["inflammation"].actual == 20
        assert by_field["inflammation"].expected == {"gte": 40, "lte": 100}
