"""
Tests for research content and its validation.

Tests:
- The built-in tree is valid and playable
- Cycles, dangling references and duplicates are rejected
- JSON content tables
"""

import json

import pytest

from ..config import EngineConfig
from ..content import (
    ContentValidationError,
    definitions_from_json,
    find_dependency_cycles,
    get_all_research_definitions,
    get_definition_by_id,
    load_research_definitions,
    validate_research_tree,
)
from ..engine import GameEngine
from ..engine_core.state import ResearchDefinition, ResearchStatus, Risk
from .conftest import fixed_clock


def definition(node_id: str, **kwargs) -> ResearchDefinition:
    return ResearchDefinition(id=node_id, name=node_id.upper(), **kwargs)


class TestBuiltinTree:
    """Tests for the shipped research tree."""

    def test_builtin_tree_is_valid(self):
        result = validate_research_tree(get_all_research_definitions())

        assert result.valid, result.errors
        assert result.warnings == []

    def test_lookup_by_id(self):
        assert get_definition_by_id("transformer_architecture").name == "Transformer Architecture"
        assert get_definition_by_id("nope") is None

    def test_release_paths_exclude_each_other(self):
        open_weights = get_definition_by_id("open_weights_release")
        proprietary = get_definition_by_id("proprietary_models")

        assert "proprietary_models" in open_weights.exclusions
        assert "open_weights_release" in proprietary.exclusions

    def test_builtin_tree_plays(self):
        engine = GameEngine(EngineConfig(seed=3), clock=fixed_clock)
        engine.start()
        assert engine.state.get_node("transformer_architecture").status == ResearchStatus.UNLOCKED
        assert engine.state.get_node("attention_mechanisms").status == ResearchStatus.LOCKED

        assert engine.research.start_research("transformer_architecture", 10)
        engine.end_turn()

        nodes = engine.state.research.nodes
        assert nodes["transformer_architecture"].status == ResearchStatus.COMPLETED
        for node_id in ("attention_mechanisms", "basic_language_modeling", "basic_interpretability"):
            assert nodes[node_id].status == ResearchStatus.UNLOCKED


class TestValidation:
    """Tests for rejection of malformed trees."""

    def test_cycle_is_found(self):
        cycles = find_dependency_cycles([
            definition("a", prerequisites=("b",)),
            definition("b", prerequisites=("a",)),
            definition("c"),
        ])

        assert cycles == [["a", "b", "a"]]

    def test_cycle_fails_loading(self):
        with pytest.raises(ContentValidationError) as exc_info:
            load_research_definitions([
                definition("root"),
                definition("a", prerequisites=("b",)),
                definition("b", prerequisites=("a",)),
            ])

        assert any("cycle" in error for error in exc_info.value.errors)

    def test_engine_refuses_cyclic_content(self):
        with pytest.raises(ContentValidationError):
            GameEngine(definitions=[definition("a", prerequisites=("a",))])

    @pytest.mark.parametrize("definitions, fragment", [
        ([definition("a", prerequisites=("ghost",))], "unknown prerequisite"),
        ([definition("a", exclusions=("ghost",))], "unknown exclusion"),
        ([definition("a"), definition("a")], "Duplicate"),
        ([definition("a", compute_cost=0)], "non-positive compute_cost"),
        ([definition("a", influence_cost={"military": 1})], "unknown influence channel"),
        ([definition("a", risk=Risk(probability=1.5))], "risk probability"),
        (
            [definition("a"), definition("b", prerequisites=("a",), exclusions=("a",))],
            "both requires and excludes",
        ),
    ])
    def test_invalid_definitions(self, definitions, fragment):
        result = validate_research_tree(definitions)

        assert not result.valid
        assert any(fragment in error for error in result.errors)

    def test_tree_without_roots_warns(self):
        result = validate_research_tree([
            definition("a", prerequisites=("b",)),
            definition("b", prerequisites=("a",)),
        ])

        assert "No root nodes - nothing can ever be unlocked" in result.warnings


class TestJsonContent:
    """Tests for loading JSON content tables."""

    def test_loads_plain_json(self):
        raw = json.dumps([
            {"id": "a", "name": "A", "compute_cost": 40, "effects": {"deployment_slots": 1}},
            {"id": "b", "name": "B", "prerequisites": ["a"], "type": "breakthrough"},
        ])

        loaded = definitions_from_json(raw)

        assert [d.id for d in loaded] == ["a", "b"]
        assert loaded[1].prerequisites == ("a",)
        assert loaded[1].type.value == "breakthrough"
        assert loaded[0].compute_cost == 40

    def test_malformed_json_is_a_validation_error(self):
        with pytest.raises(ContentValidationError):
            definitions_from_json("[{\"id\": \"a\"}]")  # name missing

    def test_json_is_validated_as_a_tree(self):
        raw = json.dumps([{"id": "a", "name": "A", "prerequisites": ["zzz"]}])

        with pytest.raises(ContentValidationError) as exc_info:
            definitions_from_json(raw)

        assert "unknown prerequisite" in exc_info.value.errors[0]
