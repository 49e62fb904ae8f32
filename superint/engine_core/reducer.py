"""
Reducer - Pure slice reducers and their composition.

The reducer is the single point of state mutation.
All state changes must go through the StateManager, which calls root_reducer.

Design principles:
- Pure functions: (slice, action) -> new slice
- One reducer per slice; a slice reducer only reads its own slice and the action
- Irrelevant action -> the exact same slice object is returned
- Guards keep invariants (e.g. COMPLETED nodes are never touched)
"""

from __future__ import annotations
from collections.abc import Callable, Mapping
from dataclasses import fields, replace
from typing import Any, TypeVar

from .action import Action, ActionType
from .state import (
    AllocationEntry,
    CompetitorState,
    ComputingGenerationEntry,
    DataResource,
    DeploymentHistoryEntry,
    DeploymentInfo,
    DeploymentState,
    FundingHistoryEntry,
    GameState,
    GameTime,
    INFLUENCE_CHANNELS,
    InfluenceHistoryEntry,
    InfluenceResource,
    MetaState,
    ResearchState,
    ResearchStatus,
    ResourceState,
    SpendingEntry,
    WorldState,
    append_bounded,
    clamp_influence,
)


S = TypeVar("S")
Reducer = Callable[[S, Action], S]

MIN_DATA_QUALITY = 0.1


def _timestamp(action: Action) -> float:
    return action.timestamp if action.timestamp is not None else 0.0


def _make_slice_reducer(handlers: Mapping[ActionType, Reducer]) -> Reducer:
    """Build a slice reducer that returns its input for unhandled actions."""

    def reducer(state, action: Action):
        handler = handlers.get(action.action_type)
        if handler is None:
            return state
        return handler(state, action)

    return reducer


# =============================================================================
# Meta
# =============================================================================

_META_FIELDS = {f.name for f in fields(MetaState)}


def _meta_update(state: MetaState, action: Action) -> MetaState:
    updates = {k: v for k, v in action.payload.items() if k in _META_FIELDS}
    if not updates:
        return state
    return replace(state, **updates)


def _advance_turn(state: MetaState, action: Action) -> MetaState:
    return replace(state, turn=state.turn + 1)


def _set_phase(state: MetaState, action: Action) -> MetaState:
    phase = action.payload["phase"]
    if phase == state.phase:
        return state
    return replace(state, phase=phase)


def _update_game_time(state: MetaState, action: Action) -> MetaState:
    game_time = action.payload["game_time"]
    if isinstance(game_time, GameTime):
        return replace(state, game_time=game_time)
    return replace(state, game_time=replace(state.game_time, **game_time))


def _update_time_compression(state: MetaState, action: Action) -> MetaState:
    return replace(
        state,
        game_time=replace(
            state.game_time,
            compression_factor=action.payload["compression_factor"],
            time_scale=action.payload["time_scale"],
        ),
    )


def _add_turn_history(state: MetaState, action: Action) -> MetaState:
    return replace(state, turn_history=append_bounded(state.turn_history, action.payload["entry"]))


meta_reducer = _make_slice_reducer({
    ActionType.META_UPDATE: _meta_update,
    ActionType.ADVANCE_TURN: _advance_turn,
    ActionType.SET_PHASE: _set_phase,
    ActionType.UPDATE_GAME_TIME: _update_game_time,
    ActionType.UPDATE_TIME_COMPRESSION: _update_time_compression,
    ActionType.ADD_TURN_HISTORY: _add_turn_history,
})


# =============================================================================
# Resources
# =============================================================================

def allocate_computing(
    state: ResourceState, target: str, amount: float, turn: int, timestamp: float
) -> ResourceState:
    computing = state.computing
    allocated = dict(computing.allocated)
    allocated[target] = allocated.get(target, 0.0) + amount
    entry = AllocationEntry(turn=turn, target=target, amount=amount, timestamp=timestamp)
    return replace(
        state,
        computing=replace(
            computing,
            allocated=allocated,
            allocation_history=append_bounded(computing.allocation_history, entry),
        ),
    )


def deallocate_computing(
    state: ResourceState, target: str, amount: float, turn: int, timestamp: float
) -> ResourceState:
    computing = state.computing
    allocated = dict(computing.allocated)
    remaining = max(0.0, allocated.get(target, 0.0) - amount)
    if remaining > 0:
        allocated[target] = remaining
    else:
        allocated.pop(target, None)
    entry = AllocationEntry(turn=turn, target=target, amount=-amount, timestamp=timestamp)
    return replace(
        state,
        computing=replace(
            computing,
            allocated=allocated,
            allocation_history=append_bounded(computing.allocation_history, entry),
        ),
    )


def change_influence(
    influence: InfluenceResource,
    changes: Mapping[str, float],
    turn: int,
    timestamp: float,
    reason: str | None = None,
) -> InfluenceResource:
    """Apply signed per-channel deltas, clamp to [0, 100] and record history."""
    previous = influence.channels()
    updated = {
        channel: clamp_influence(previous[channel] + changes.get(channel, 0.0))
        for channel in INFLUENCE_CHANNELS
    }
    entry = InfluenceHistoryEntry(
        turn=turn,
        previous=previous,
        changes={channel: changes.get(channel, 0.0) for channel in INFLUENCE_CHANNELS},
        reason=reason,
        timestamp=timestamp,
    )
    return replace(influence, **updated, history=append_bounded(influence.history, entry))


def _allocate_computing(state: ResourceState, action: Action) -> ResourceState:
    p = action.payload
    return allocate_computing(state, p["target"], p["amount"], p.get("turn", 0), _timestamp(action))


def _deallocate_computing(state: ResourceState, action: Action) -> ResourceState:
    p = action.payload
    return deallocate_computing(state, p["target"], p["amount"], p.get("turn", 0), _timestamp(action))


def _generate_computing(state: ResourceState, turn: int, bonus: float, timestamp: float) -> ResourceState:
    computing = state.computing
    generated = computing.generation + bonus
    new_total = min(computing.total + generated, computing.cap)
    entry = ComputingGenerationEntry(
        turn=turn, previous=computing.total, generated=generated, new_total=new_total, timestamp=timestamp,
    )
    return replace(
        state,
        computing=replace(
            computing,
            total=max(computing.total, new_total),
            generation_history=append_bounded(computing.generation_history, entry),
        ),
    )


def _generate_funding(
    state: ResourceState, turn: int, multiplier: float, bonus: float, timestamp: float
) -> ResourceState:
    funding = state.funding
    income = funding.income * multiplier + bonus
    change = income - funding.expenses
    entry = FundingHistoryEntry(
        turn=turn, previous=funding.current, income=income, expenses=funding.expenses,
        change=change, timestamp=timestamp,
    )
    return replace(
        state,
        funding=replace(funding, current=funding.current + change, history=append_bounded(funding.history, entry)),
    )


def _generate_and_decay_data(state: ResourceState, turn: int) -> ResourceState:
    types = {}
    for key, info in state.data.types.items():
        types[key] = replace(
            info,
            amount=info.amount + max(0.0, info.generation_rate),
            quality=max(MIN_DATA_QUALITY, info.quality - info.decay_rate),
            last_updated=turn,
        )
    return replace(state, data=replace(state.data, types=types))


def _generate_resources(state: ResourceState, action: Action) -> ResourceState:
    p = action.payload
    turn = p.get("turn", 0)
    timestamp = _timestamp(action)
    new_state = _generate_computing(state, turn, p.get("computing_bonus", 0.0), timestamp)
    new_state = _generate_funding(
        new_state, turn, p.get("funding_multiplier", 1.0), p.get("funding_bonus", 0.0), timestamp,
    )
    new_state = replace(
        new_state,
        influence=change_influence(new_state.influence, p.get("influence_growth", {}), turn, timestamp),
    )
    return _generate_and_decay_data(new_state, turn)


def _update_resource(state: ResourceState, action: Action) -> ResourceState:
    """Generic single-field update: {resource_type, field, amount[, key, value]}."""
    p = action.payload
    resource_type, field_name = p["resource_type"], p["field"]

    if resource_type == "data" and field_name in ("tiers", "specialized_sets"):
        current = getattr(state.data, field_name)
        if current.get(p["key"]) == p["value"]:
            return state
        return replace(state, data=replace(state.data, **{field_name: {**current, p["key"]: p["value"]}}))

    amount = p["amount"]
    if resource_type == "influence" and field_name in INFLUENCE_CHANNELS:
        amount = clamp_influence(amount)

    sub_state = getattr(state, resource_type, None)
    if sub_state is None or not hasattr(sub_state, field_name):
        return state
    if getattr(sub_state, field_name) == amount:
        return state
    return replace(state, **{resource_type: replace(sub_state, **{field_name: amount})})


def _update_data_type(state: ResourceState, action: Action) -> ResourceState:
    key = action.payload["data_type"]
    info = state.data.types.get(key)
    if info is None:
        return state
    types = {**state.data.types, key: replace(info, **action.payload["updates"])}
    return replace(state, data=replace(state.data, types=types))


def _spend_resources(state: ResourceState, action: Action) -> ResourceState:
    """
    Apply every deduction of one spend at once.

    Payload: computing, funding, influence {channel: amount}, reason,
    recurring, turn. Data requirements are not consumed.
    """
    p = action.payload
    reason = p.get("reason") or "general"
    turn = p.get("turn", 0)
    recurring = bool(p.get("recurring", False))
    timestamp = _timestamp(action)
    new_state = state

    computing = p.get("computing") or 0.0
    if computing:
        new_state = allocate_computing(new_state, reason, computing, turn, timestamp)

    funding_amount = p.get("funding") or 0.0
    funding = new_state.funding
    entry = SpendingEntry(turn=turn, reason=reason, recurring=recurring, amount=funding_amount, timestamp=timestamp)
    new_state = replace(
        new_state,
        funding=replace(
            funding,
            current=funding.current - funding_amount,
            expenses=funding.expenses + (funding_amount if recurring else 0.0),
            spending_history=append_bounded(funding.spending_history, entry),
        ),
    )

    influence_costs = p.get("influence") or {}
    if influence_costs:
        changes = {k: -v for k, v in influence_costs.items() if k in INFLUENCE_CHANNELS}
        new_state = replace(
            new_state,
            influence=change_influence(new_state.influence, changes, turn, timestamp, reason=reason),
        )

    return new_state


def _update_resource_caps(state: ResourceState, action: Action) -> ResourceState:
    p = action.payload
    new_state = state
    if p.get("computing") is not None:
        new_state = replace(new_state, computing=replace(new_state.computing, cap=p["computing"]))
    if p.get("funding") is not None:
        new_state = replace(new_state, funding=replace(new_state.funding, max_reserves=p["funding"]))
    return new_state


resource_reducer = _make_slice_reducer({
    ActionType.ALLOCATE_COMPUTING: _allocate_computing,
    ActionType.DEALLOCATE_COMPUTING: _deallocate_computing,
    ActionType.GENERATE_RESOURCES: _generate_resources,
    ActionType.UPDATE_RESOURCE: _update_resource,
    ActionType.UPDATE_DATA_TYPE: _update_data_type,
    ActionType.SPEND_RESOURCES: _spend_resources,
    ActionType.UPDATE_RESOURCE_CAPS: _update_resource_caps,
})


# =============================================================================
# Research
# =============================================================================

def _initialize_research(state: ResearchState, action: Action) -> ResearchState:
    return replace(state, nodes=dict(action.payload["nodes"]))


def _start_research(state: ResearchState, action: Action) -> ResearchState:
    p = action.payload
    node = state.nodes.get(p["node_id"])
    if node is None or node.status != ResearchStatus.UNLOCKED:
        return state
    started = replace(
        node,
        status=ResearchStatus.IN_PROGRESS,
        compute_allocated=p["compute_amount"],
        start_turn=node.start_turn if node.start_turn is not None else p.get("turn"),
    )
    return replace(
        state,
        nodes={**state.nodes, node.id: started},
        active_research=state.active_research + (node.id,),
    )


def _cancel_research(state: ResearchState, action: Action) -> ResearchState:
    node = state.nodes.get(action.payload["node_id"])
    if node is None or node.status != ResearchStatus.IN_PROGRESS:
        return state
    # Progress is kept so the node can be resumed later
    eligible = (
        all(p in state.completed for p in node.prerequisites)
        and not any(e in state.completed for e in node.exclusions)
    )
    status = ResearchStatus.UNLOCKED if eligible else ResearchStatus.LOCKED
    cancelled = replace(node, status=status, compute_allocated=0.0, effective_compute_rate=0.0)
    return replace(
        state,
        nodes={**state.nodes, node.id: cancelled},
        active_research=tuple(i for i in state.active_research if i != node.id),
    )


def _allocate_research_compute(state: ResearchState, action: Action) -> ResearchState:
    p = action.payload
    node = state.nodes.get(p["node_id"])
    if node is None or node.status != ResearchStatus.IN_PROGRESS:
        return state
    updated = replace(node, compute_allocated=node.compute_allocated + p["amount"])
    return replace(state, nodes={**state.nodes, node.id: updated})


def _update_research_progress(state: ResearchState, action: Action) -> ResearchState:
    progress_updates = action.payload.get("progress_updates", {})
    rates = action.payload.get("effective_rates", {})
    nodes = dict(state.nodes)
    changed = False
    for node_id in set(progress_updates) | set(rates):
        node = nodes.get(node_id)
        if node is None or node.status != ResearchStatus.IN_PROGRESS:
            continue
        # Progress never decreases while in progress and never exceeds 1
        progress = max(node.progress, min(1.0, progress_updates.get(node_id, node.progress)))
        rate = rates.get(node_id, node.effective_compute_rate)
        if progress != node.progress or rate != node.effective_compute_rate:
            nodes[node_id] = replace(node, progress=progress, effective_compute_rate=rate)
            changed = True
    if not changed:
        return state
    return replace(state, nodes=nodes)


def _complete_research(state: ResearchState, action: Action) -> ResearchState:
    p = action.payload
    node = state.nodes.get(p["node_id"])
    if node is None or node.status != ResearchStatus.IN_PROGRESS:
        return state
    completed = replace(
        node,
        status=ResearchStatus.COMPLETED,
        progress=1.0,
        compute_allocated=0.0,
        effective_compute_rate=0.0,
        completion_turn=p.get("turn"),
    )
    return replace(
        state,
        nodes={**state.nodes, node.id: completed},
        active_research=tuple(i for i in state.active_research if i != node.id),
        completed=state.completed + (node.id,),
    )


def _update_research_statuses(state: ResearchState, action: Action) -> ResearchState:
    nodes = dict(state.nodes)
    changed = False
    for node_id, status in action.payload["status_updates"].items():
        node = nodes.get(node_id)
        if node is None or node.status in (ResearchStatus.IN_PROGRESS, ResearchStatus.COMPLETED):
            continue
        if status not in (ResearchStatus.LOCKED, ResearchStatus.UNLOCKED) or node.status == status:
            continue
        nodes[node_id] = replace(node, status=status)
        changed = True
    if not changed:
        return state
    return replace(state, nodes=nodes)


def _update_research_boosts(state: ResearchState, action: Action) -> ResearchState:
    category_boosts = dict(action.payload.get("category_boosts", {}))
    node_boosts = action.payload.get("node_boosts", {})
    nodes = dict(state.nodes)
    nodes_changed = False
    for node_id, node in state.nodes.items():
        boosts = dict(node_boosts.get(node_id, {}))
        if boosts != node.deployment_boosts:
            nodes[node_id] = replace(node, deployment_boosts=boosts)
            nodes_changed = True
    if not nodes_changed and category_boosts == state.category_boosts:
        return state
    return replace(
        state,
        nodes=nodes if nodes_changed else state.nodes,
        category_boosts=category_boosts,
    )


research_reducer = _make_slice_reducer({
    ActionType.INITIALIZE_RESEARCH: _initialize_research,
    ActionType.START_RESEARCH: _start_research,
    ActionType.CANCEL_RESEARCH: _cancel_research,
    ActionType.ALLOCATE_RESEARCH_COMPUTE: _allocate_research_compute,
    ActionType.UPDATE_RESEARCH_PROGRESS: _update_research_progress,
    ActionType.COMPLETE_RESEARCH: _complete_research,
    ActionType.UPDATE_RESEARCH_STATUSES: _update_research_statuses,
    ActionType.UPDATE_RESEARCH_BOOSTS: _update_research_boosts,
})


# =============================================================================
# Deployments
# =============================================================================

def _deploy_system(state: DeploymentState, action: Action) -> DeploymentState:
    p = action.payload
    info = DeploymentInfo(
        id=p["id"],
        type=p["type"],
        compute_allocated=p.get("computing", 0.0),
        turn_deployed=p.get("turn", 0),
        effects=dict(p.get("effects", {})),
    )
    return replace(state, active={**state.active, info.id: info})


def _remove_deployment(state: DeploymentState, action: Action) -> DeploymentState:
    deployment = state.active.get(action.payload["deployment_id"])
    if deployment is None:
        return state
    active = {k: v for k, v in state.active.items() if k != deployment.id}
    entry = DeploymentHistoryEntry(
        id=deployment.id,
        type=deployment.type,
        turn_deployed=deployment.turn_deployed,
        turn_removed=action.payload.get("turn"),
        impact=dict(deployment.effects),
    )
    return replace(state, active=active, history=state.history + (entry,))


def _update_deployment_slots(state: DeploymentState, action: Action) -> DeploymentState:
    slots = action.payload["slots"]
    if slots == state.slots:
        return state
    return replace(state, slots=slots)


def _unlock_deployment_type(state: DeploymentState, action: Action) -> DeploymentState:
    deployment_type = action.payload["type"]
    if deployment_type in state.unlocked_types:
        return state
    return replace(state, unlocked_types=state.unlocked_types + (deployment_type,))


deployment_reducer = _make_slice_reducer({
    ActionType.DEPLOY_SYSTEM: _deploy_system,
    ActionType.REMOVE_DEPLOYMENT: _remove_deployment,
    ActionType.UPDATE_DEPLOYMENT_SLOTS: _update_deployment_slots,
    ActionType.UNLOCK_DEPLOYMENT_TYPE: _unlock_deployment_type,
})


# =============================================================================
# Competitors / world (trivial merges)
# =============================================================================

def _update_competitor(state: CompetitorState, action: Action) -> CompetitorState:
    competitor = state.organizations.get(action.payload["competitor_id"])
    if competitor is None:
        return state
    updated = replace(competitor, **action.payload["fields"])
    return replace(state, organizations={**state.organizations, competitor.id: updated})


def _update_player_ranking(state: CompetitorState, action: Action) -> CompetitorState:
    return replace(state, player_ranking=action.payload["ranking"])


competitor_reducer = _make_slice_reducer({
    ActionType.UPDATE_COMPETITOR: _update_competitor,
    ActionType.UPDATE_PLAYER_RANKING: _update_player_ranking,
})


def _update_global_values(state: WorldState, action: Action) -> WorldState:
    p = action.payload
    return replace(
        state,
        global_awareness=p.get("awareness", state.global_awareness),
        global_alignment=p.get("alignment", state.global_alignment),
        global_regulation=p.get("regulation", state.global_regulation),
    )


def _update_region(state: WorldState, action: Action) -> WorldState:
    p = action.payload
    region = state.regions.get(p["region_id"])
    if region is None:
        return state
    updated = replace(region, **{p["field"]: p["value"]})
    return replace(state, regions={**state.regions, region.id: updated})


world_reducer = _make_slice_reducer({
    ActionType.UPDATE_GLOBAL_VALUES: _update_global_values,
    ActionType.UPDATE_REGION: _update_region,
})


# =============================================================================
# Root
# =============================================================================

def combine_reducers(reducers: Mapping[str, Reducer]) -> Reducer[GameState]:
    """
    Compose slice reducers into one state transition function.

    Each reducer sees only its own slice. If no slice changes, the input
    state object is returned so the manager can skip notification.
    """

    def root(state: GameState, action: Action) -> GameState:
        changes: dict[str, Any] = {}
        for name, reducer in reducers.items():
            old_slice = getattr(state, name)
            new_slice = reducer(old_slice, action)
            if new_slice is not old_slice:
                changes[name] = new_slice
        if not changes:
            return state
        return replace(state, **changes)

    return root


root_reducer = combine_reducers({
    "meta": meta_reducer,
    "resources": resource_reducer,
    "research": research_reducer,
    "deployments": deployment_reducer,
    "competitors": competitor_reducer,
    "world": world_reducer,
})
