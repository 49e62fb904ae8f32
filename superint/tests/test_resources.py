"""
Tests for the resource economy.

Tests:
- Affordability checks over every cost field
- All-or-nothing spending and the spending audit
- Compute pool allocation
- Per-turn generation and influence bounds
- The deployment effect bundle
"""

import pytest

from ..engine_core.events import Topics
from ..engine_core.state import INFLUENCE_MAX, INFLUENCE_MIN, DeploymentInfo
from ..systems.costs import DataCost, DataRequirement, ResourceCost, can_afford, missing_resources
from ..systems.effects import compute_resource_effects
from .conftest import EventRecorder


class TestAffordability:
    """can_afford never mutates and checks every present field."""

    def test_empty_cost_is_affordable(self, engine):
        assert engine.resources.can_afford(ResourceCost())

    @pytest.mark.parametrize("cost", [
        ResourceCost(computing=10),
        ResourceCost(funding=500),
        ResourceCost(influence={"academic": 10, "public": 5}),
        ResourceCost(data=DataCost(tiers=("public_text",))),
        ResourceCost(data=DataCost(requirements={"text": DataRequirement(min_amount=50)})),
    ])
    def test_affordable(self, engine, cost):
        before = engine.state

        assert engine.resources.can_afford(cost)
        assert engine.state is before

    @pytest.mark.parametrize("cost, fragment", [
        (ResourceCost(computing=10_000), "computing"),
        (ResourceCost(funding=1_000_000), "funding"),
        (ResourceCost(influence={"government": 99}), "influence.government"),
        (ResourceCost(influence={"military": 1}), "unknown channel"),
        (ResourceCost(data=DataCost(tiers=("public_video",))), "data tier"),
        (ResourceCost(data=DataCost(specialized_sets=("medical_records",))), "specialized data set"),
        (ResourceCost(data=DataCost(requirements={"video": DataRequirement(min_amount=1)})), "data type"),
        (ResourceCost(data=DataCost(requirements={"text": DataRequirement(min_quality=0.99)})), "data type"),
    ])
    def test_unaffordable(self, engine, cost, fragment):
        missing = missing_resources(engine.state.resources, cost)

        assert not can_afford(engine.state.resources, cost)
        assert any(fragment in reason for reason in missing)

    def test_data_ids_split_into_tiers_and_sets(self):
        cost = DataCost.from_ids(("public_text", "clinical_notes"))

        assert cost.tiers == ("public_text",)
        assert cost.specialized_sets == ("clinical_notes",)

    def test_cost_dict_round_trip(self):
        cost = ResourceCost(
            computing=5, funding=10, influence={"public": 2},
            data=DataCost(tiers=("public_text",), requirements={"text": DataRequirement(min_amount=3)}),
            recurring=True,
        )

        assert ResourceCost.from_dict(cost.to_dict()) == cost


class TestSpending:
    """Tests for spend_resources."""

    def test_unaffordable_spend_changes_nothing(self, engine):
        recorder = EventRecorder(engine.bus, Topics.RESOURCE_SPEND_FAILED, Topics.RESOURCES_SPENT)
        before = engine.state.resources
        cost = ResourceCost(funding=1_000_000)

        assert not engine.resources.spend_resources(cost, reason="megaproject")

        assert engine.state.resources is before
        (failure,) = recorder.payloads(Topics.RESOURCE_SPEND_FAILED)
        assert failure["reason"] == "megaproject"
        assert failure["costs"] is cost
        assert "funding" in failure["message"]
        assert recorder.payloads(Topics.RESOURCES_SPENT) == []

    def test_one_missing_field_blocks_the_rest(self, engine):
        before = engine.state.resources
        cost = ResourceCost(computing=10, funding=10, influence={"government": 99})

        assert not engine.resources.spend_resources(cost, reason="partial")
        assert engine.state.resources is before

    def test_successful_spend(self, engine):
        recorder = EventRecorder(engine.bus, Topics.RESOURCES_SPENT)
        before = engine.state.resources
        cost = ResourceCost(computing=10, funding=100, influence={"academic": 5}, recurring=True)

        assert engine.resources.spend_resources(cost, reason="lab")

        after = engine.state.resources
        assert after.computing.allocated["lab"] == 10
        assert after.funding.current == before.funding.current - 100
        assert after.funding.expenses == before.funding.expenses + 100
        assert after.influence.academic == before.influence.academic - 5
        entry = after.funding.spending_history[-1]
        assert (entry.reason, entry.recurring, entry.amount, entry.turn) == ("lab", True, 100, engine.state.turn)
        assert recorder.payloads(Topics.RESOURCES_SPENT) == [{"costs": cost, "reason": "lab"}]

    def test_one_off_spend_leaves_expenses(self, engine):
        before = engine.state.resources.funding.expenses

        assert engine.resources.spend_resources(ResourceCost(funding=50), reason="grant_fee")

        assert engine.state.resources.funding.expenses == before

    def test_data_cost_is_not_consumed(self, engine):
        before = engine.state.resources.data

        assert engine.resources.spend_resources(
            ResourceCost(data=DataCost(tiers=("public_text",))), reason="dataset"
        )

        assert engine.state.resources.data is before

    def test_spend_via_bus_with_plain_dict(self, engine):
        before = engine.state.resources.funding.current

        engine.bus.emit(Topics.RESOURCE_SPEND, {"costs": {"funding": 25}, "reason": "conference"})

        assert engine.state.resources.funding.current == before - 25
        assert engine.state.resources.funding.spending_history[-1].reason == "conference"


class TestComputePool:
    """Tests for allocate/deallocate."""

    def test_allocation_failure_event(self, engine):
        recorder = EventRecorder(engine.bus, Topics.ALLOCATION_FAILED)
        before = engine.state

        assert not engine.resources.allocate_computing("job", 10_000)

        assert engine.state is before
        (failure,) = recorder.payloads(Topics.ALLOCATION_FAILED)
        assert (failure["target"], failure["amount"]) == ("job", 10_000)

    def test_allocate_then_deallocate(self, engine):
        recorder = EventRecorder(engine.bus, Topics.COMPUTING_ALLOCATED, Topics.COMPUTING_DEALLOCATED)
        available = engine.state.resources.computing.available

        assert engine.resources.allocate_computing("job", 30)
        assert engine.state.resources.computing.available == available - 30
        assert engine.resources.deallocate_computing("job", 30)
        assert engine.state.resources.computing.available == available

        assert recorder.topics() == [Topics.COMPUTING_ALLOCATED, Topics.COMPUTING_DEALLOCATED]

    def test_cannot_release_more_than_held(self, engine):
        recorder = EventRecorder(engine.bus, Topics.DEALLOCATION_FAILED)
        engine.resources.allocate_computing("job", 5)

        assert not engine.resources.deallocate_computing("job", 6)
        assert engine.state.resources.computing.allocated["job"] == 5
        assert len(recorder.payloads(Topics.DEALLOCATION_FAILED)) == 1


    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), 0])
    def test_non_finite_or_empty_amounts_are_refused(self, engine, amount):
        engine.resources.allocate_computing("job", 5)
        before = engine.state

        assert not engine.resources.allocate_computing("job", amount)
        assert not engine.resources.deallocate_computing("job", amount)

        assert engine.state is before
        assert engine.state.resources.computing.allocated["job"] == 5


class TestGeneration:
    """Tests for per-turn generation."""

    def test_one_turn_of_generation(self, engine):
        before = engine.state.resources

        engine.end_turn()

        after = engine.state.resources
        assert after.computing.total == before.computing.total + before.computing.generation
        assert after.funding.current == before.funding.current + before.funding.income - before.funding.expenses
        # Academic organizations grow academic influence
        assert after.influence.academic == before.influence.academic + 1
        assert after.influence.industry == before.influence.industry
        assert after.data.types["text"].amount == before.data.types["text"].amount + 10

    def test_generation_emits_update(self, engine):
        recorder = EventRecorder(engine.bus, Topics.RESOURCES_UPDATED)

        engine.end_turn()

        assert recorder.payloads(Topics.RESOURCES_UPDATED) == [{"turn": engine.state.turn}]

    def test_influence_stays_bounded(self, engine):
        for _ in range(5):
            engine.resources.spend_resources(ResourceCost(influence={"academic": 4}), reason="outreach")
            engine.end_turn()
            for value in engine.state.resources.influence.channels().values():
                assert INFLUENCE_MIN <= value <= INFLUENCE_MAX

    def test_deployment_bonuses_feed_generation(self, engine):
        engine.deployments.deploy("ads", "api", effects={
            "funding_multiplier": 0.5,
            "generation_bonus": {"computing": 3, "funding": 10},
        })
        before = engine.state.resources

        engine.end_turn()

        after = engine.state.resources
        assert after.funding.current == before.funding.current + 100 * 1.5 + 10 - before.funding.expenses
        assert after.computing.total == before.computing.total + before.computing.generation + 3


class TestEffects:
    """Tests for the effect bundle."""

    def test_empty_bundle_is_neutral(self):
        effects = compute_resource_effects([])

        assert effects.computing_efficiency == 1.0
        assert effects.funding_multiplier == 1.0
        assert set(effects.influence_multiplier.values()) == {1.0}
        assert effects.data_quality_bonus == 0.0

    def test_multipliers_compose_and_bonuses_add(self):
        deployments = [
            DeploymentInfo(id="a", type="x", effects={
                "computing_efficiency": 0.1,
                "influence_growth": {"public": 0.5},
                "data_quality_bonus": 0.05,
            }),
            DeploymentInfo(id="b", type="y", effects={
                "computing_efficiency": 0.2,
                "influence_growth": {"public": 0.5, "unknown": 9.0},
                "data_quality_bonus": 0.1,
            }),
        ]

        effects = compute_resource_effects(deployments)

        assert effects.computing_efficiency == pytest.approx(1.1 * 1.2)
        assert effects.influence_multiplier["public"] == pytest.approx(2.25)
        assert "unknown" not in effects.influence_multiplier
        assert effects.data_quality_bonus == pytest.approx(0.15)

    def test_effects_are_written_to_state(self, engine):
        recorder = EventRecorder(engine.bus, Topics.RESOURCE_EFFECTS_UPDATED)

        engine.deployments.deploy("curation", "data_pipeline", effects={
            "computing_efficiency": 0.25, "data_quality_bonus": 0.2,
        })

        resources = engine.state.resources
        assert resources.computing.efficiency == pytest.approx(1.25)
        assert resources.data.quality == pytest.approx(1.2)
        assert recorder.payloads(Topics.RESOURCE_EFFECTS_UPDATED)

    def test_removing_deployment_resets_bundle(self, engine):
        engine.deployments.deploy("curation", "data_pipeline", effects={"computing_efficiency": 0.25})
        engine.deployments.remove("curation")

        assert engine.state.resources.computing.efficiency == 1.0
        assert engine.resources.effects.computing_efficiency == 1.0

    def test_influence_multiplier_scales_growth(self, engine):
        engine.deployments.deploy("journal", "outreach", effects={"influence_growth": {"academic": 1.0}})

        assert engine.resources.influence_growth()["academic"] == pytest.approx(2.0)


class TestMetrics:
    def test_metrics(self, engine):
        engine.resources.allocate_computing("job", 41)
        metrics = engine.resources.resource_metrics()

        computing = metrics["computing"]
        assert computing["allocated"] == 41
        assert computing["utilization"] == pytest.approx(41 / engine.state.resources.computing.total)
        assert metrics["influence"]["dominant"] == "academic"
        assert metrics["funding"]["net_flow"] == pytest.approx(20)
