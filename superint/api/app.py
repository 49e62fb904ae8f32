"""
FastAPI Application - REST API for the simulation core.

Endpoints:
    GET    /api/v1/health                    Health check
    GET    /api/v1/state                     Full game state snapshot
    GET    /api/v1/research                  Research tree with metrics
    POST   /api/v1/research/{id}/start       Start research on a node
    POST   /api/v1/research/{id}/cancel      Cancel in-progress research
    POST   /api/v1/research/{id}/compute     Add compute to in-progress research
    GET    /api/v1/resources                 Resource pools and metrics
    POST   /api/v1/resources/spend           Spend a cost bundle
    POST   /api/v1/turns/end                 End the current turn
    GET    /api/v1/saves                     List save slots
    POST   /api/v1/saves/{name}              Save to a slot
    POST   /api/v1/saves/{name}/load         Load a slot

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Optional, Union
import os

# Environment configuration
SUPERINT_ENV = os.getenv("SUPERINT_ENV", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional GameService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install 'superint[api]'"
        )

    from .service import GameService
    from .schemas import (
        # Request models
        AllocateComputeRequest,
        SpendRequest,
        StartResearchRequest,
        # Response models
        ErrorResponse,
        HealthResponse,
        ResearchActionResponse,
        ResearchListResponse,
        ResourcesResponse,
        SaveListResponse,
        SaveResponse,
        SpendResponse,
        StateResponse,
        TurnResponse,
        ERROR_STATUS,
    )

    app = FastAPI(
        title="SuperInt Engine API",
        description="""
Turn-based AI research strategy simulation.

## Error Codes

| Code | Description |
|------|-------------|
| `NODE_NOT_FOUND` | Research node does not exist |
| `INVALID_ACTION` | Operation not allowed in the current state |
| `INSUFFICIENT_RESOURCES` | Cost cannot be covered |
| `SAVE_NOT_FOUND` | Save slot does not exist |
        """,
        version="0.1.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    game_service = service or GameService()

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=ERROR_STATUS.get(error.error_code, 400),
            content=error.model_dump(mode="json"),
        )

    def respond(response):
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    error_responses = {
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    }

    # =========================================================================
    # System
    # =========================================================================

    @app.get("/api/v1/health", response_model=HealthResponse, tags=["System"], summary="Health check")
    def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return game_service.health()

    @app.get("/api/v1/state", response_model=StateResponse, tags=["State"], summary="Game state")
    def get_state() -> StateResponse:
        return game_service.get_state()

    # =========================================================================
    # Research
    # =========================================================================

    @app.get("/api/v1/research", response_model=ResearchListResponse, tags=["Research"])
    def list_research() -> ResearchListResponse:
        return game_service.list_research()

    @app.post(
        "/api/v1/research/{node_id}/start",
        response_model=ResearchActionResponse,
        responses=error_responses,
        tags=["Research"],
        summary="Start research on an unlocked node",
    )
    def start_research(
        node_id: str, request: StartResearchRequest
    ) -> Union[ResearchActionResponse, JSONResponse]:
        return respond(game_service.start_research(node_id, request))

    @app.post(
        "/api/v1/research/{node_id}/cancel",
        response_model=ResearchActionResponse,
        responses=error_responses,
        tags=["Research"],
        summary="Cancel in-progress research (progress is kept)",
    )
    def cancel_research(node_id: str) -> Union[ResearchActionResponse, JSONResponse]:
        return respond(game_service.cancel_research(node_id))

    @app.post(
        "/api/v1/research/{node_id}/compute",
        response_model=ResearchActionResponse,
        responses=error_responses,
        tags=["Research"],
        summary="Add compute to in-progress research",
    )
    def allocate_compute(
        node_id: str, request: AllocateComputeRequest
    ) -> Union[ResearchActionResponse, JSONResponse]:
        return respond(game_service.allocate_compute(node_id, request))

    # =========================================================================
    # Resources
    # =========================================================================

    @app.get("/api/v1/resources", response_model=ResourcesResponse, tags=["Resources"])
    def get_resources() -> ResourcesResponse:
        return game_service.get_resources()

    @app.post(
        "/api/v1/resources/spend",
        response_model=SpendResponse,
        responses=error_responses,
        tags=["Resources"],
        summary="Spend a bundle of resources, all or nothing",
    )
    def spend_resources(request: SpendRequest) -> Union[SpendResponse, JSONResponse]:
        return respond(game_service.spend(request))

    # =========================================================================
    # Turns
    # =========================================================================

    @app.post("/api/v1/turns/end", response_model=TurnResponse, tags=["Turns"], summary="End the turn")
    def end_turn() -> TurnResponse:
        return game_service.end_turn()

    # =========================================================================
    # Saves
    # =========================================================================

    @app.get("/api/v1/saves", response_model=SaveListResponse, tags=["Saves"])
    def list_saves() -> SaveListResponse:
        return game_service.list_saves()

    @app.post("/api/v1/saves/{name}", response_model=SaveResponse, responses=error_responses, tags=["Saves"])
    def save_game(name: str) -> Union[SaveResponse, JSONResponse]:
        return respond(game_service.save_game(name))

    @app.post(
        "/api/v1/saves/{name}/load", response_model=SaveResponse, responses=error_responses, tags=["Saves"],
    )
    def load_game(name: str) -> Union[SaveResponse, JSONResponse]:
        return respond(game_service.load_game(name))

    @app.get("/", tags=["System"])
    def root():
        """Root endpoint with API info."""
        return {
            "name": "SuperInt Engine API",
            "environment": SUPERINT_ENV,
            "docs": "/api/docs",
            "health": "/api/v1/health",
        }

    return app


app: Optional[object] = None


def get_app():
    """Lazily build the module-level app for `uvicorn superint.api.app:get_app --factory`."""
    global app
    if app is None:
        app = create_app()
    return app
