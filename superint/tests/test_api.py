"""
Tests for API layer.

Tests:
- API service methods
- Error classification
- Turn and save flows via the service
- Route registration
"""

import pytest

from ..api.schemas import (
    AllocateComputeRequest,
    DataCostModel,
    ErrorCode,
    ErrorResponse,
    SpendRequest,
    StartResearchRequest,
)
from ..api.service import GameService


@pytest.fixture
def service(make_engine):
    """A service over the scenario engine."""
    return GameService(engine=make_engine())


class TestReadEndpoints:
    """Tests for read-only service methods."""

    def test_health(self, service):
        response = service.health()

        assert response.status == "healthy"
        assert response.service == "superint-engine"

    def test_get_state(self, service):
        response = service.get_state()

        assert response.turn == 1
        assert response.phase == "action"
        assert response.game_time.year == 2025
        assert response.state["meta"]["turn"] == 1
        assert set(response.state["research"]["nodes"]) == {"node_a", "node_b", "node_c", "node_d"}

    def test_list_research(self, service):
        response = service.list_research()

        statuses = {node.id: node.status for node in response.nodes}
        assert statuses["node_a"] == "unlocked"
        assert statuses["node_b"] == "locked"
        assert response.metrics["total"] == 4
        assert response.active_research == []

    def test_get_resources(self, service):
        response = service.get_resources()

        assert response.computing.total == 205
        assert response.computing.available == 205
        assert set(response.influence) == {"academic", "industry", "government", "public", "open_source"}


class TestResearchEndpoints:
    """Tests for research operations and their error codes."""

    def test_start_research(self, service):
        response = service.start_research("node_a", StartResearchRequest(compute_amount=50))

        assert not isinstance(response, ErrorResponse)
        assert response.success
        assert response.node.status == "in_progress"
        assert response.available_computing == 155

    @pytest.mark.parametrize("node_id, amount, code", [
        ("missing", 10, ErrorCode.NODE_NOT_FOUND),
        ("node_b", 10, ErrorCode.INVALID_ACTION),
        ("node_a", 0, ErrorCode.INVALID_ACTION),
        ("node_a", 10_000, ErrorCode.INSUFFICIENT_RESOURCES),
    ])
    def test_start_research_errors(self, service, node_id, amount, code):
        response = service.start_research(node_id, StartResearchRequest(compute_amount=amount))

        assert isinstance(response, ErrorResponse)
        assert response.error_code == code

    def test_cancel_research(self, service):
        service.start_research("node_a", StartResearchRequest(compute_amount=40))

        response = service.cancel_research("node_a")

        assert response.node.status == "unlocked"
        assert response.available_computing == 205

    def test_cancel_idle_research_is_invalid(self, service):
        response = service.cancel_research("node_a")
        assert response.error_code == ErrorCode.INVALID_ACTION

    def test_allocate_compute(self, service):
        service.start_research("node_a", StartResearchRequest(compute_amount=40))

        response = service.allocate_compute("node_a", AllocateComputeRequest(amount=10))
        assert response.node.compute_allocated == 50

        too_much = service.allocate_compute("node_a", AllocateComputeRequest(amount=10_000))
        assert too_much.error_code == ErrorCode.INSUFFICIENT_RESOURCES


class TestSpendEndpoint:
    """Tests for the spend endpoint."""

    def test_spend(self, service):
        before = service.get_resources().funding.current

        response = service.spend(SpendRequest(funding=100, reason="hiring"))

        assert response.success
        assert response.reason == "hiring"
        assert response.resources.funding.current == before - 100

    def test_unaffordable_spend(self, service):
        before = service.get_resources()

        response = service.spend(SpendRequest(
            funding=10, data=DataCostModel(specialized_sets=["genomics"]), reason="lab",
        ))

        assert response.error_code == ErrorCode.INSUFFICIENT_RESOURCES
        assert "genomics" in response.error
        assert service.get_resources() == before


class TestTurnsAndSaves:
    """Tests for turn and save flows."""

    def test_end_turn_reports_completions(self, service):
        service.start_research("node_a", StartResearchRequest(compute_amount=100))

        response = service.end_turn()

        assert response.turn == 2
        assert response.completed_research == ["node_a"]
        assert response.game_time.days_passed == 86

    def test_save_list_and_load(self, service):
        assert service.save_game("first").success
        service.end_turn()

        saves = service.list_saves()
        assert saves.count == 1
        assert (saves.saves[0].name, saves.saves[0].turn) == ("first", 1)

        loaded = service.load_game("first")
        assert loaded.turn == 1
        assert service.get_state().turn == 1

    def test_load_missing_save(self, service):
        response = service.load_game("nothing")
        assert response.error_code == ErrorCode.SAVE_NOT_FOUND


class TestApp:
    """Tests for the FastAPI application factory."""

    def test_routes_are_registered(self, service):
        pytest.importorskip("fastapi")
        from ..api.app import create_app

        app = create_app(service)
        paths = {route.path for route in app.routes}

        for path in [
            "/api/v1/health",
            "/api/v1/state",
            "/api/v1/research/{node_id}/start",
            "/api/v1/resources/spend",
            "/api/v1/turns/end",
            "/api/v1/saves/{name}/load",
        ]:
            assert path in paths
