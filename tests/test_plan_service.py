"""
Plan store tests: generate / get_current / replace_step against SQLite.
"""

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.errors import NoRuleMatched, PlanNotFound, ProfileNotFound, StorageReplaceFailure
from app.models.db import PlanRow, ProductReplacementRow
from app.repository import PlanRepository
from app.schemas import ProfileCreate
from app.seed import SAMPLE_PRODUCTS, SAMPLE_RULES
from app.services.plan_service import PlanService, find_rule_step

repo = PlanRepository()


def _acne_profile(**overrides) -> ProfileCreate:
    defaults = dict(skin_type="oily", concerns=["acne"], inflammation=55, sensitivity_level="low")
    defaults.update(overrides)
    return ProfileCreate(**defaults)


async def _plan_rows(db, user_id: str) -> int:
    result = await db.execute(select(func.count()).select_from(PlanRow).where(PlanRow.user_id == user_id))
    return result.scalar_one()


def _product_ids(plan, category: str) -> set:
    return {
        s.product_id
        for d in plan.days
        for s in d.morning + d.evening + d.weekly
        if s.step_category == category
    }


class TestGenerate:
    @pytest.mark.anyio
    async def test_generate_persists_plan(self, seeded_db):
        await repo.create_profile_version(seeded_db, "u1", _acne_profile())
        service = PlanService()

        plan = await service.generate(seeded_db, "u1")

        assert plan.profile_version == 1
        assert plan.rule_id == 1
        assert plan.skin_profile_id is not None
        assert await service.get_current(seeded_db, "u1") == plan

    @pytest.mark.anyio
    async def test_regenerate_replaces_same_version(self, seeded_db):
        await repo.create_profile_version(seeded_db, "u1", _acne_profile())
        service = PlanService()

        first = await service.generate(seeded_db, "u1")
        second = await service.generate(seeded_db, "u1")

        assert first.model_dump_json() == second.model_dump_json()
        assert await _plan_rows(seeded_db, "u1") == 1

    @pytest.mark.anyio
    async def test_new_profile_version_keeps_history(self, seeded_db):
        service = PlanService()
        await repo.create_profile_version(seeded_db, "u1", _acne_profile())
        await service.generate(seeded_db, "u1")
        await repo.create_profile_version(seeded_db, "u1", _acne_profile(inflammation=20))
        await service.generate(seeded_db, "u1")

        assert await repo.list_plan_versions(seeded_db, "u1") == [2, 1]
        current = await service.get_current(seeded_db, "u1")
        assert current.profile_version == 2
        assert current.rule_id == 2
        older = await service.get_current(seeded_db, "u1", profile_version=1)
        assert older.rule_id == 1

    @pytest.mark.anyio
    async def test_current_is_none_before_generation(self, seeded_db):
        service = PlanService()
        assert await service.get_current(seeded_db, "u1") is None
        await repo.create_profile_version(seeded_db, "u1", _acne_profile())
        assert await service.get_current(seeded_db, "u1") is None

    @pytest.mark.anyio
    async def test_missing_profile(self, seeded_db):
        with pytest.raises(ProfileNotFound):
            await PlanService().generate(seeded_db, "nobody")

    @pytest.mark.anyio
    async def test_no_rule_matched_stores_nothing(self, db):
        await repo.add_rule(db, SAMPLE_RULES[0])
        await repo.create_profile_version(db, "u1", _acne_profile(skin_type="normal"))

        with pytest.raises(NoRuleMatched):
            await PlanService().generate(db, "u1")
        assert await _plan_rows(db, "u1") == 0

    @pytest.mark.anyio
    async def test_storage_failure_keeps_previous_plan(self, seeded_db, monkeypatch):
        await repo.create_profile_version(seeded_db, "u1", _acne_profile())
        service = PlanService()
        original = await service.generate(seeded_db, "u1")

        async def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(seeded_db, "commit", failing_commit)
        with pytest.raises(StorageReplaceFailure) as exc_info:
            await service.generate(seeded_db, "u1")
        assert exc_info.value.retryable
        monkeypatch.undo()

        assert await service.get_current(seeded_db, "u1") == original
        assert await _plan_rows(seeded_db, "u1") == 1

    @pytest.mark.anyio
    async def test_concurrent_generation_leaves_one_row(self, session_factory):
        async with session_factory() as db:
            for rule in SAMPLE_RULES:
                await repo.add_rule(db, rule)
            await repo.add_products(db, SAMPLE_PRODUCTS)
            await repo.create_profile_version(db, "u1", _acne_profile())

        service = PlanService()

        async def generate():
            async with session_factory() as db:
                return await service.generate(db, "u1")

        first, second = await asyncio.gather(generate(), generate())

        assert first == second
        async with session_factory() as db:
            assert await _plan_rows(db, "u1") == 1

    @pytest.mark.anyio
    async def test_locks_are_released_after_use(self, seeded_db):
        await repo.create_profile_version(seeded_db, "u1", _acne_profile())
        service = PlanService()

        await service.generate(seeded_db, "u1")
        await service.replace_step(seeded_db, "u1", "serum_niacinamide", 301)

        assert len(service._locks) == 0


class TestReplaceStep:
    @pytest.mark.anyio
    async def test_swaps_product_in_every_day(self, seeded_db):
        await repo.create_profile_version(seeded_db, "u1", _acne_profile())
        service = PlanService()
        await service.generate(seeded_db, "u1")

        new_id = await service.replace_step(seeded_db, "u1", "serum_niacinamide", 301)

        assert new_id == 302
        plan = await service.get_current(seeded_db, "u1")
        assert _product_ids(plan, "serum_niacinamide") == {302}
        serum = next(s for d in plan.days for s in d.morning if s.product_id == 302)
        # 303 is a salicylic serum, which follows a different cadence
        assert serum.alternatives == []

        result = await seeded_db.execute(select(ProductReplacementRow))
        audit = result.scalars().all()
        assert [(a.old_product_id, a.new_product_id) for a in audit] == [(301, 302)]

    @pytest.mark.anyio
    async def test_swap_stays_within_step_kind(self, seeded_db):
        await repo.create_profile_version(seeded_db, "u1", _acne_profile())
        service = PlanService()
        await service.generate(seeded_db, "u1")

        assert await service.replace_step(seeded_db, "u1", "serum_niacinamide", 301) == 302
        assert await service.replace_step(seeded_db, "u1", "serum_niacinamide", 302) == 301

        plan = await service.get_current(seeded_db, "u1")
        assert _product_ids(plan, "serum_salicylic") == set()
        assert _product_ids(plan, "serum_niacinamide") == {301}

    @pytest.mark.anyio
    async def test_swapped_step_takes_the_new_category(self, seeded_db):
        await repo.create_profile_version(seeded_db, "u1", _acne_profile())
        service = PlanService()
        await service.generate(seeded_db, "u1")

        assert await service.replace_step(seeded_db, "u1", "cleanser_oil_control", 102) == 103
        plan = await service.get_current(seeded_db, "u1")
        assert _product_ids(plan, "cleanser_oil_control") == set()
        assert _product_ids(plan, "cleanser_acne") == {103}

        # the swapped step is addressable under its new category
        assert await service.replace_step(seeded_db, "u1", "cleanser_acne", 103) == 102
        plan = await service.get_current(seeded_db, "u1")
        assert _product_ids(plan, "cleanser_oil_control") == {102}

    @pytest.mark.anyio
    async def test_concurrent_swaps_are_both_kept(self, session_factory):
        async with session_factory() as db:
            for rule in SAMPLE_RULES:
                await repo.add_rule(db, rule)
            await repo.add_products(db, SAMPLE_PRODUCTS)
            await repo.create_profile_version(db, "u1", _acne_profile())
            service = PlanService()
            await service.generate(db, "u1")

        async def swap(category: str, old_product_id: int):
            async with session_factory() as db:
                return await service.replace_step(db, "u1", category, old_product_id)

        results = await asyncio.gather(swap("serum_niacinamide", 301), swap("spf_50_face", 601))

        assert results == [302, 602]
        async with session_factory() as db:
            plan = await service.get_current(db, "u1")
            assert _product_ids(plan, "serum_niacinamide") == {302}
            assert _product_ids(plan, "spf_50_face") == {602}
            assert await _plan_rows(db, "u1") == 1

    @pytest.mark.anyio
    async def test_swaps_spf(self, seeded_db):
        await repo.create_profile_version(seeded_db, "u1", _acne_profile(skin_type="normal", concerns=[]))
        service = PlanService()
        plan = await service.generate(seeded_db, "u1")
        assert plan.rule_id == 13

        new_id = await service.replace_step(seeded_db, "u1", "spf_50_face", 601)
        assert new_id == 602

    @pytest.mark.anyio
    async def test_no_candidate_leaves_plan_untouched(self, seeded_db):
        await repo.create_profile_version(seeded_db, "u1", _acne_profile(has_pregnancy=True))
        service = PlanService()
        before = await service.generate(seeded_db, "u1")

        assert await service.replace_step(seeded_db, "u1", "treatment_acne", 401) is None
        assert await service.get_current(seeded_db, "u1") == before

    @pytest.mark.anyio
    async def test_product_not_in_plan(self, seeded_db):
        await repo.create_profile_version(seeded_db, "u1", _acne_profile())
        service = PlanService()
        await service.generate(seeded_db, "u1")

        assert await service.replace_step(seeded_db, "u1", "serum_niacinamide", 302) is None

    @pytest.mark.anyio
    async def test_without_plan(self, seeded_db):
        with pytest.raises(PlanNotFound):
            await PlanService().replace_step(seeded_db, "u1", "serum_niacinamide", 301)


class TestFindRuleStep:
    def test_matches_rule_step_by_prefix(self):
        key, spec = find_rule_step(SAMPLE_RULES[0], "serum_salicylic")
        assert key == "serum"
        assert spec.max_items == 3

    def test_aliased_rule_step(self):
        key, _ = find_rule_step(SAMPLE_RULES[6], "moisturizer_rich")
        assert key == "cream"

    def test_baseline_step_missing_from_rule(self):
        key, spec = find_rule_step(SAMPLE_RULES[0].model_copy(update={"steps": {}}), "spf_50_face")
        assert key == "spf"
        assert spec.category == ["spf"]
