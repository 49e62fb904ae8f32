"""
Tests for API Pydantic schemas.

Validates that:
- Request models reject malformed input
- Error responses serialize their codes
- Engine dataclasses convert into response models
"""

import pytest
from pydantic import ValidationError


class TestPydanticSchemas:
    """Tests for Pydantic schema validation."""

    def test_error_response_schema(self):
        """ErrorResponse carries a machine-readable code."""
        from superint.api.schemas import ErrorCode, ErrorResponse

        response = ErrorResponse(
            error="Research node 'x' not found",
            error_code=ErrorCode.NODE_NOT_FOUND,
        )

        data = response.model_dump(mode="json")
        assert data["error_code"] == "NODE_NOT_FOUND"
        assert data["api_version"] == "v1"
        assert data["details"] is None

    def test_every_error_code_has_a_status(self):
        """Each error code maps to an HTTP status."""
        from superint.api.schemas import ERROR_STATUS, ErrorCode

        assert set(ERROR_STATUS) == set(ErrorCode)
        assert ERROR_STATUS[ErrorCode.INSUFFICIENT_RESOURCES] == 409

    def test_start_request_requires_amount(self):
        """StartResearchRequest needs compute_amount."""
        from superint.api.schemas import StartResearchRequest

        with pytest.raises(ValidationError):
            StartResearchRequest()

    @pytest.mark.parametrize("amount", [0, -3, float("nan"), float("inf")])
    def test_compute_requests_need_a_positive_finite_amount(self, amount):
        from superint.api.schemas import AllocateComputeRequest, StartResearchRequest

        with pytest.raises(ValidationError):
            StartResearchRequest(compute_amount=amount)
        with pytest.raises(ValidationError):
            AllocateComputeRequest(amount=amount)

    def test_spend_request_defaults(self):
        """Absent spend fields stay None."""
        from superint.api.schemas import SpendRequest

        request = SpendRequest.model_validate({"funding": 20})

        assert request.computing is None
        assert request.influence is None
        assert request.reason == "general"
        assert request.recurring is False

    def test_spend_request_rejects_negative_cost(self):
        from superint.api.schemas import SpendRequest

        with pytest.raises(ValidationError):
            SpendRequest(funding=-5)

    def test_game_time_from_engine_dataclass(self):
        """GameTimeInfo reads the engine's GameTime via attributes."""
        from superint.api.schemas import GameTimeInfo
        from superint.engine_core.state import GameTime

        info = GameTimeInfo.model_validate(GameTime(month=4, quarter=2))

        assert info.month == 4
        assert info.quarter == 2
        assert info.time_scale == 90.0

    def test_progress_is_bounded(self):
        """ResearchNodeInfo rejects progress above 1."""
        from superint.api.schemas import ResearchNodeInfo

        with pytest.raises(ValidationError):
            ResearchNodeInfo(
                id="a", name="A", category="Foundations", status="in_progress",
                progress=1.5, compute_allocated=10,
            )
