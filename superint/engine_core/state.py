"""
Game State - The immutable state tree.

Design principles:
- Immutable: every dataclass is frozen, transitions build new objects
- Sliced: one subtree per reducer (meta, resources, research, deployments,
  competitors, world)
- Serializable: plain dataclasses, dumped/validated by pydantic for saves
- Identity-friendly: untouched subtrees are shared between old and new state,
  so observers can detect change with `is`
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


HISTORY_LIMIT = 10
INFLUENCE_CHANNELS = ("academic", "industry", "government", "public", "open_source")
INFLUENCE_MIN = 0.0
INFLUENCE_MAX = 100.0
START_YEAR = 2025
DAYS_IN_MONTH = 30
MONTHS_IN_YEAR = 12
DEFAULT_TIME_SCALE = 90.0


def append_bounded(entries: tuple, entry: Any, limit: int = HISTORY_LIMIT) -> tuple:
    """Return a new tuple with entry appended, keeping only the last `limit`."""
    return (entries + (entry,))[-limit:]


def clamp_influence(value: float) -> float:
    return max(INFLUENCE_MIN, min(INFLUENCE_MAX, value))


class GamePhase(Enum):
    """Phases of a single turn."""
    START = "start"
    ACTION = "action"
    RESOLUTION = "resolution"
    END = "end"


class OrganizationType(Enum):
    """The player's organization archetype, drives base influence growth."""
    ACADEMIC = "academic"
    STARTUP = "startup"
    BIG_TECH = "big_tech"
    GOVERNMENT = "government"
    OSS = "oss"


class ResearchStatus(Enum):
    """Lifecycle of a research node. COMPLETED is terminal."""
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class NodeType(Enum):
    """Kinds of research nodes."""
    STANDARD = "standard"
    BREAKTHROUGH = "breakthrough"
    TIERED = "tiered"
    RISK = "risk"
    DIVERGENT = "divergent"


class DataType(Enum):
    """Typed data assets held by the player."""
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    SYNTHETIC = "synthetic"
    BEHAVIORAL = "behavioral"
    SCIENTIFIC = "scientific"


# =============================================================================
# Meta
# =============================================================================

@dataclass(frozen=True)
class GameTime:
    """In-game calendar. Days per turn shrink as time compression rises."""
    year: int = START_YEAR
    quarter: int = 1
    month: int = 1
    day: int = 1
    time_scale: float = DEFAULT_TIME_SCALE
    compression_factor: float = 1.0
    days_passed: int = 0


@dataclass(frozen=True)
class TurnHistoryEntry:
    turn: int
    days_advanced: int
    game_time: GameTime
    completed_research: int
    timestamp: float = 0.0


@dataclass(frozen=True)
class MetaState:
    """Game-wide information."""
    turn: int = 1
    phase: GamePhase = GamePhase.START
    game_time: GameTime = field(default_factory=GameTime)
    organization: OrganizationType = OrganizationType.ACADEMIC
    start_date: float = 0.0
    last_saved: float | None = None
    turn_history: tuple[TurnHistoryEntry, ...] = ()


# =============================================================================
# Resources
# =============================================================================

@dataclass(frozen=True)
class AllocationEntry:
    turn: int
    target: str
    amount: float  # negative for deallocation
    timestamp: float = 0.0


@dataclass(frozen=True)
class ComputingGenerationEntry:
    turn: int
    previous: float
    generated: float
    new_total: float
    timestamp: float = 0.0


@dataclass(frozen=True)
class ComputingResource:
    """The shared compute pool. `allocated` maps consumer key -> claim."""
    total: float = 50.0
    allocated: dict[str, float] = field(default_factory=dict)
    cap: float = 100.0
    generation: float = 5.0
    efficiency: float = 1.0
    allocation_history: tuple[AllocationEntry, ...] = ()
    generation_history: tuple[ComputingGenerationEntry, ...] = ()

    @property
    def allocated_total(self) -> float:
        return sum(self.allocated.values())

    @property
    def available(self) -> float:
        return self.total - self.allocated_total


@dataclass(frozen=True)
class FundingHistoryEntry:
    turn: int
    previous: float
    income: float
    expenses: float
    change: float
    timestamp: float = 0.0


@dataclass(frozen=True)
class SpendingEntry:
    """Audit record written by every successful spend."""
    turn: int
    reason: str
    recurring: bool
    amount: float = 0.0
    timestamp: float = 0.0


@dataclass(frozen=True)
class FundingResource:
    current: float = 1000.0
    income: float = 100.0
    expenses: float = 80.0
    reserves: float = 0.0
    max_reserves: float = 5000.0
    history: tuple[FundingHistoryEntry, ...] = ()
    spending_history: tuple[SpendingEntry, ...] = ()


@dataclass(frozen=True)
class InfluenceHistoryEntry:
    turn: int
    previous: dict[str, float]
    changes: dict[str, float]
    reason: str | None = None
    timestamp: float = 0.0


@dataclass(frozen=True)
class InfluenceResource:
    """Five influence channels, each kept within [0, 100]."""
    academic: float = 20.0
    industry: float = 5.0
    government: float = 5.0
    public: float = 10.0
    open_source: float = 15.0
    history: tuple[InfluenceHistoryEntry, ...] = ()

    def channels(self) -> dict[str, float]:
        """Snapshot of the five channel values."""
        return {name: getattr(self, name) for name in INFLUENCE_CHANNELS}


@dataclass(frozen=True)
class DataTypeInfo:
    amount: float = 0.0
    quality: float = 0.5
    decay_rate: float = 0.02
    sources: tuple[str, ...] = ()
    generation_rate: float = 0.0
    last_updated: int = 0


DEFAULT_DECAY_RATES = {
    DataType.TEXT: 0.01,
    DataType.IMAGE: 0.02,
    DataType.VIDEO: 0.03,
    DataType.SYNTHETIC: 0.02,
    DataType.BEHAVIORAL: 0.04,
    DataType.SCIENTIFIC: 0.015,
}


def _initial_data_types() -> dict[str, DataTypeInfo]:
    types = {
        data_type.value: DataTypeInfo(decay_rate=DEFAULT_DECAY_RATES[data_type])
        for data_type in DataType
    }
    # Everyone starts with some public text and image data
    types[DataType.TEXT.value] = DataTypeInfo(
        amount=100.0, quality=0.7, decay_rate=0.01,
        sources=("academic_library", "public_web"), generation_rate=10.0,
    )
    types[DataType.IMAGE.value] = DataTypeInfo(
        amount=50.0, quality=0.5, decay_rate=0.02,
        sources=("public_web",), generation_rate=5.0,
    )
    return types


@dataclass(frozen=True)
class DataResource:
    """Data assets. `types` is keyed by DataType value."""
    types: dict[str, DataTypeInfo] = field(default_factory=_initial_data_types)
    tiers: dict[str, bool] = field(default_factory=lambda: {"public_text": True, "public_image": True})
    specialized_sets: dict[str, bool] = field(default_factory=dict)
    quality: float = 1.0


@dataclass(frozen=True)
class ResourceState:
    computing: ComputingResource = field(default_factory=ComputingResource)
    funding: FundingResource = field(default_factory=FundingResource)
    influence: InfluenceResource = field(default_factory=InfluenceResource)
    data: DataResource = field(default_factory=DataResource)


# =============================================================================
# Research
# =============================================================================

@dataclass(frozen=True)
class Risk:
    probability: float = 0.0  # 0.0 to 1.0
    severity: float = 0.0     # 0.0 to 1.0


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class ResearchDefinition:
    """
    Static content for a research node.

    Loaded once from content tables; never changed by the engine.
    `effects` keys understood by the engine: compute_efficiency,
    influence_multiplier, unlock_deployments, deployment_slots.
    """
    id: str
    name: str
    description: str = ""
    category: str = "Foundations"
    subcategory: str = ""
    type: NodeType = NodeType.STANDARD
    prerequisites: tuple[str, ...] = ()
    exclusions: tuple[str, ...] = ()
    compute_cost: float | None = None
    influence_cost: dict[str, float] = field(default_factory=dict)
    data_cost: tuple[str, ...] = ()
    deployment_requirements: tuple[str, ...] = ()
    effects: dict[str, Any] = field(default_factory=dict)
    risk: Risk = field(default_factory=Risk)
    position: Position = field(default_factory=Position)


@dataclass(frozen=True)
class ResearchNode:
    """Runtime state of one node in the research graph."""
    id: str
    definition: ResearchDefinition
    status: ResearchStatus = ResearchStatus.LOCKED
    progress: float = 0.0
    compute_allocated: float = 0.0
    effective_compute_rate: float = 0.0
    deployment_boosts: dict[str, float] = field(default_factory=dict)
    start_turn: int | None = None
    completion_turn: int | None = None

    @property
    def category(self) -> str:
        return self.definition.category

    @property
    def prerequisites(self) -> tuple[str, ...]:
        return self.definition.prerequisites

    @property
    def exclusions(self) -> tuple[str, ...]:
        return self.definition.exclusions

    @classmethod
    def from_definition(cls, definition: ResearchDefinition) -> ResearchNode:
        return cls(id=definition.id, definition=definition)


@dataclass(frozen=True)
class ResearchState:
    nodes: dict[str, ResearchNode] = field(default_factory=dict)
    active_research: tuple[str, ...] = ()
    completed: tuple[str, ...] = ()
    category_boosts: dict[str, float] = field(default_factory=dict)
    data_types: dict[str, float] = field(default_factory=dict)
    research_budget: float = 0.0


# =============================================================================
# Deployments, competitors, world
# =============================================================================

@dataclass(frozen=True)
class DeploymentInfo:
    """
    An active deployment.

    `effects` keys: computing_efficiency, funding_multiplier,
    influence_growth {channel: delta}, data_quality_bonus,
    generation_bonus {computing, funding}, research_boosts {category: boost},
    node_boosts {node_id: boost}.
    """
    id: str
    type: str
    compute_allocated: float = 0.0
    turn_deployed: int = 0
    effects: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeploymentHistoryEntry:
    id: str
    type: str
    turn_deployed: int
    turn_removed: int | None
    impact: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeploymentState:
    slots: int = 1
    active: dict[str, DeploymentInfo] = field(default_factory=dict)
    unlocked_types: tuple[str, ...] = ()
    history: tuple[DeploymentHistoryEntry, ...] = ()


@dataclass(frozen=True)
class CompetitorInfo:
    id: str
    name: str
    type: OrganizationType = OrganizationType.BIG_TECH
    research: tuple[str, ...] = ()
    capabilities: tuple[str, ...] = ()
    influence: dict[str, float] = field(default_factory=dict)
    relationship: float = 0.0
    regions: tuple[str, ...] = ()


@dataclass(frozen=True)
class CompetitorState:
    organizations: dict[str, CompetitorInfo] = field(default_factory=dict)
    player_ranking: int = 1


@dataclass(frozen=True)
class RegionInfo:
    id: str
    name: str
    influence: float = 0.0
    ai_adoption: float = 0.0
    regulation: float = 0.0
    sentiment: float = 0.0
    competitors: tuple[str, ...] = ()


@dataclass(frozen=True)
class WorldState:
    regions: dict[str, RegionInfo] = field(default_factory=dict)
    global_awareness: float = 0.0
    global_alignment: float = 0.0
    global_regulation: float = 0.0


# =============================================================================
# Aggregate root
# =============================================================================

@dataclass(frozen=True)
class GameState:
    """
    Complete game state at a point in time.

    Replaced wholesale on every transition; all changes go through the
    reducer via the StateManager.
    """
    meta: MetaState = field(default_factory=MetaState)
    resources: ResourceState = field(default_factory=ResourceState)
    research: ResearchState = field(default_factory=ResearchState)
    deployments: DeploymentState = field(default_factory=DeploymentState)
    competitors: CompetitorState = field(default_factory=CompetitorState)
    world: WorldState = field(default_factory=WorldState)

    @property
    def turn(self) -> int:
        return self.meta.turn

    def get_node(self, node_id: str) -> ResearchNode | None:
        return self.research.nodes.get(node_id)


def create_initial_state(
    organization: OrganizationType = OrganizationType.ACADEMIC,
    start_date: float = 0.0,
) -> GameState:
    """Create the initial game state. Research nodes are filled in by the ResearchSystem."""
    return GameState(meta=MetaState(organization=organization, start_date=start_date))
