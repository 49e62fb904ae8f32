"""
Research Tree - Built-in research definitions.

This module contains a small slice of the research tree, enough for demos
and tests. Larger trees are loaded from content tables by the host.

Node structure:
- Category / subcategory (Foundations, Alignment, Capabilities, Strategy)
- Prerequisites and exclusions (other node ids)
- Costs: compute (turn-progress denominator), influence, data tiers
- Effects understood by the engine:
    compute_efficiency    multiplier delta, announced via resource:effect
    influence_multiplier  {channel: delta}, announced via resource:effect
    unlock_deployments    deployment types made available
    deployment_slots      extra deployment capacity
"""

from ..engine_core.state import NodeType, Position, ResearchDefinition, Risk


# ============================================================================
# Foundations
# ============================================================================

TRANSFORMER_ARCHITECTURE = ResearchDefinition(
    id="transformer_architecture",
    name="Transformer Architecture",
    description="Basic attention-based model architecture behind most large language models.",
    category="Foundations",
    subcategory="Architecture",
    compute_cost=10,
    influence_cost={"academic": 5},
    data_cost=("public_text",),
    effects={"compute_efficiency": 0.05},
    risk=Risk(probability=0.05, severity=0.1),
    position=Position(0, 0),
)

ATTENTION_MECHANISMS = ResearchDefinition(
    id="attention_mechanisms",
    name="Advanced Attention Mechanisms",
    description="Improvements to attention that increase efficiency and capability.",
    category="Foundations",
    subcategory="Architecture",
    prerequisites=("transformer_architecture",),
    compute_cost=20,
    influence_cost={"academic": 10},
    data_cost=("public_text",),
    effects={"compute_efficiency": 0.1},
    risk=Risk(probability=0.05, severity=0.1),
    position=Position(1, 0),
)

BASIC_LANGUAGE_MODELING = ResearchDefinition(
    id="basic_language_modeling",
    name="Basic Language Modeling",
    description="Next-token prediction training for language models.",
    category="Foundations",
    subcategory="Training Methods",
    prerequisites=("transformer_architecture",),
    compute_cost=15,
    influence_cost={"academic": 10},
    data_cost=("public_text",),
    effects={"unlock_deployments": ["research_assistant"]},
    risk=Risk(probability=0.05, severity=0.1),
    position=Position(1, -2),
)

MULTIHEAD_ATTENTION = ResearchDefinition(
    id="multihead_attention",
    name="Multi-head Attention",
    description="Parallel attention heads that focus on different aspects of the input.",
    category="Foundations",
    subcategory="Architecture",
    prerequisites=("attention_mechanisms",),
    compute_cost=25,
    influence_cost={"academic": 15},
    data_cost=("public_text",),
    risk=Risk(probability=0.05, severity=0.1),
    position=Position(2, -0.5),
)

SPARSE_ATTENTION = ResearchDefinition(
    id="sparse_attention",
    name="Sparse Attention Patterns",
    description="Selective attention that cuts compute while keeping model quality.",
    category="Foundations",
    subcategory="Architecture",
    prerequisites=("attention_mechanisms",),
    compute_cost=25,
    influence_cost={"academic": 15},
    data_cost=("public_text",),
    effects={"compute_efficiency": 0.3},
    risk=Risk(probability=0.05, severity=0.1),
    position=Position(2, 0.5),
)

MIXTURE_OF_EXPERTS = ResearchDefinition(
    id="mixture_of_experts",
    name="Mixture of Experts",
    description="Routes inputs to specialized sub-networks, adding capacity without proportional compute.",
    category="Foundations",
    subcategory="Architecture",
    type=NodeType.BREAKTHROUGH,
    prerequisites=("multihead_attention", "sparse_attention"),
    compute_cost=50,
    influence_cost={"academic": 25, "industry": 10},
    data_cost=("public_text", "specialized_text"),
    effects={
        "compute_efficiency": 0.5,
        "unlock_deployments": ["inference_api"],
        "deployment_slots": 1,
    },
    risk=Risk(probability=0.1, severity=0.2),
    position=Position(3, 0),
)


# ============================================================================
# Alignment
# ============================================================================

BASIC_INTERPRETABILITY = ResearchDefinition(
    id="basic_interpretability",
    name="Basic Interpretability",
    description="Tools for inspecting what a model attends to.",
    category="Alignment",
    subcategory="Interpretability",
    prerequisites=("transformer_architecture",),
    compute_cost=20,
    influence_cost={"academic": 10},
    data_cost=("public_text",),
    effects={"influence_multiplier": {"academic": 0.1, "public": 0.05}},
    risk=Risk(probability=0.02, severity=0.05),
    position=Position(1, 2),
)

HUMAN_FEEDBACK_LEARNING = ResearchDefinition(
    id="human_feedback_learning",
    name="Learning from Human Feedback",
    description="Fine-tuning models against human preference judgements.",
    category="Alignment",
    subcategory="Value Learning",
    prerequisites=("basic_language_modeling",),
    compute_cost=30,
    influence_cost={"academic": 10, "public": 5},
    data_cost=("public_text",),
    effects={"influence_multiplier": {"public": 0.1}},
    risk=Risk(probability=0.05, severity=0.1),
    position=Position(2, -3),
)


# ============================================================================
# Strategy (mutually exclusive release paths)
# ============================================================================

OPEN_WEIGHTS_RELEASE = ResearchDefinition(
    id="open_weights_release",
    name="Open Weights Release",
    description="Publish model weights to the community.",
    category="Strategy",
    subcategory="Release",
    type=NodeType.DIVERGENT,
    prerequisites=("basic_language_modeling",),
    exclusions=("proprietary_models",),
    compute_cost=20,
    effects={"influence_multiplier": {"open_source": 0.25, "academic": 0.1}},
    position=Position(2, -1.5),
)

PROPRIETARY_MODELS = ResearchDefinition(
    id="proprietary_models",
    name="Proprietary Models",
    description="Keep weights closed and sell access.",
    category="Strategy",
    subcategory="Release",
    type=NodeType.DIVERGENT,
    prerequisites=("basic_language_modeling",),
    exclusions=("open_weights_release",),
    compute_cost=20,
    effects={
        "influence_multiplier": {"industry": 0.25},
        "unlock_deployments": ["enterprise_api"],
    },
    position=Position(2, -2.5),
)


RESEARCH_TREE = [
    TRANSFORMER_ARCHITECTURE,
    ATTENTION_MECHANISMS,
    BASIC_LANGUAGE_MODELING,
    MULTIHEAD_ATTENTION,
    SPARSE_ATTENTION,
    MIXTURE_OF_EXPERTS,
    BASIC_INTERPRETABILITY,
    HUMAN_FEEDBACK_LEARNING,
    OPEN_WEIGHTS_RELEASE,
    PROPRIETARY_MODELS,
]


def get_all_research_definitions() -> list[ResearchDefinition]:
    """Get the built-in research tree."""
    return list(RESEARCH_TREE)


def get_definition_by_id(node_id: str) -> ResearchDefinition | None:
    """Look up a built-in definition by id."""
    for definition in RESEARCH_TREE:
        if definition.id == node_id:
            return definition
    return None
