"""
Tests for the deployment system.
"""

from ..engine_core.events import Topics
from ..systems.deployments import deployment_claim_key
from .conftest import EventRecorder


class TestDeploy:
    def test_deploy_claims_compute(self, engine):
        recorder = EventRecorder(engine.bus, Topics.DEPLOYMENT_ACTIVE)

        assert engine.deployments.deploy("api", "inference_api", compute=20)

        state = engine.state
        assert state.deployments.active["api"].compute_allocated == 20
        assert state.resources.computing.allocated[deployment_claim_key("api")] == 20
        assert recorder.payloads(Topics.DEPLOYMENT_ACTIVE) == [{"deployment_id": "api", "active": True}]

    def test_no_free_slot(self, engine):
        assert engine.deployments.deploy("one", "x")
        assert engine.deployments.free_slots == 0

        assert not engine.deployments.deploy("two", "x")
        assert "two" not in engine.state.deployments.active

    def test_duplicate_id_is_rejected(self, engine):
        engine.bus.emit(Topics.DEPLOYMENT_CAPACITY, {"slots": 1})
        assert engine.deployments.deploy("one", "x")
        assert not engine.deployments.deploy("one", "x")

    def test_ungranted_compute_leaves_no_deployment(self, engine):
        before = engine.state

        assert not engine.deployments.deploy("huge", "x", compute=10_000)
        assert engine.state is before

    def test_remove_releases_compute(self, engine):
        engine.deployments.deploy("api", "inference_api", compute=20)

        assert engine.deployments.remove("api")

        state = engine.state
        assert state.deployments.active == {}
        assert deployment_claim_key("api") not in state.resources.computing.allocated
        assert state.deployments.history[-1].id == "api"
        assert not engine.deployments.remove("api")


class TestCapacityAndUnlocks:
    def test_capacity_event_adds_slots(self, engine):
        engine.bus.emit(Topics.DEPLOYMENT_CAPACITY, {"slots": 2})
        assert engine.state.deployments.slots == 3

    def test_non_positive_capacity_is_ignored(self, engine):
        before = engine.state
        engine.bus.emit(Topics.DEPLOYMENT_CAPACITY, {"slots": 0})
        assert engine.state is before

    def test_unlock_event_is_idempotent(self, engine):
        engine.bus.emit(Topics.DEPLOYMENT_UNLOCK, {"type": "inference_api"})
        engine.bus.emit(Topics.DEPLOYMENT_UNLOCK, {"type": "inference_api"})

        assert engine.state.deployments.unlocked_types == ("inference_api",)
