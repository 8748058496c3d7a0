from app.schemas import DayPlan, DayStep, Plan28, SkinProfile, ValidationSeverity
from app.seed import SAMPLE_PRODUCTS, SAMPLE_RULES
from app.services.phase_scheduler import phase_for_day
from app.services.plan_service import build_plan
from app.services.plan_validation import validate_plan


def _plan(morning=None, evening=None, overrides=None) -> Plan28:
    """Plan with the same slots every day; `overrides` maps day_index → DayPlan kwargs."""
    days = []
    for d in range(1, 29):
        kwargs = dict(
            day_index=d,
            phase=phase_for_day(d),
            morning=list(morning or []),
            evening=list(evening or []),
        )
        kwargs.update((overrides or {}).get(d, {}))
        days.append(DayPlan(**kwargs))
    return Plan28(user_id="u1", profile_version=1, days=days)


CLEANSER = DayStep(step_category="cleanser_gentle", product_id=101)
MOISTURIZER = DayStep(step_category="moisturizer_light", product_id=501)
SPF = DayStep(step_category="spf_50_face", product_id=601)


class TestValidatePlan:
    def test_generated_plan_is_clean(self):
        profile = SkinProfile(user_id="u1", skin_type="oily", concerns=["acne"], inflammation=55)
        result = validate_plan(build_plan(profile, SAMPLE_RULES, SAMPLE_PRODUCTS))
        assert result.is_valid
        assert result.severity == ValidationSeverity.OK

    def test_missing_spf_is_a_warning(self):
        result = validate_plan(_plan([CLEANSER, MOISTURIZER], [CLEANSER, MOISTURIZER]))
        assert result.is_valid
        assert result.severity == ValidationSeverity.WARNING
        assert result.warnings == ["MISSING_RECOMMENDED_STEP: spf"]

    def test_missing_moisturizer_is_an_error(self):
        result = validate_plan(_plan([CLEANSER, SPF], [CLEANSER]))
        assert not result.is_valid
        assert result.severity == ValidationSeverity.ERROR
        assert "MISSING_REQUIRED_STEP: moisturizer" in result.errors

    def test_duplicate_base_category_in_slot(self):
        second_cleanser = DayStep(step_category="cleanser_oil_control", product_id=102)
        plan = _plan(
            [CLEANSER, MOISTURIZER, SPF],
            [CLEANSER, MOISTURIZER],
            overrides={5: {"evening": [CLEANSER, second_cleanser, MOISTURIZER]}},
        )
        result = validate_plan(plan)
        assert result.errors == ["DAY_5_EVENING_DUPLICATE_CATEGORY"]

    def test_empty_day_is_an_error(self):
        plan = _plan(
            [CLEANSER, MOISTURIZER, SPF],
            [CLEANSER, MOISTURIZER],
            overrides={12: {"morning": [], "evening": []}},
        )
        assert validate_plan(plan).errors == ["DAY_12_HAS_NO_STEPS"]

    def test_unavailable_products_are_warnings(self):
        missing = DayStep(step_category="serum_niacinamide")
        result = validate_plan(_plan([CLEANSER, missing, MOISTURIZER, SPF], [CLEANSER, MOISTURIZER]))
        assert result.is_valid
        assert result.warnings == ["PRODUCT_UNAVAILABLE: serum_niacinamide"]
