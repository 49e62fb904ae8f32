"""
Content Validation - Checks for research tree definitions.

Validates that:
1. Required fields are present and costs are sane
2. Ids are unique
3. References are valid (prerequisites, exclusions)
4. The prerequisite graph is acyclic
5. Risk values are probabilities
"""

from __future__ import annotations
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from pydantic import TypeAdapter

from ..engine_core.state import INFLUENCE_CHANNELS, ResearchDefinition


_DEFINITIONS_ADAPTER = TypeAdapter(list[ResearchDefinition])


class ContentValidationError(Exception):
    """Raised when research content fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Research content failed validation with {len(errors)} error(s)")


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str]
    warnings: list[str]


def validate_research_tree(definitions: Iterable[ResearchDefinition]) -> ValidationResult:
    """
    Validate a complete set of research definitions.

    Returns ValidationResult with errors and warnings.
    """
    definitions = list(definitions)
    errors: list[str] = []
    warnings: list[str] = []

    # Duplicate ids
    seen: set[str] = set()
    for definition in definitions:
        if definition.id in seen:
            errors.append(f"Duplicate research id '{definition.id}'")
        seen.add(definition.id)

    for definition in definitions:
        errors.extend(_validate_definition(definition, seen))

    for cycle in find_dependency_cycles(definitions):
        errors.append(f"Prerequisite cycle: {' -> '.join(cycle)}")

    # Warnings for trees that can never progress
    if definitions and not any(not d.prerequisites for d in definitions):
        warnings.append("No root nodes - nothing can ever be unlocked")
    if not definitions:
        warnings.append("No research definitions")

    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _validate_definition(definition: ResearchDefinition, known_ids: set[str]) -> list[str]:
    """Validate a single definition."""
    errors = []
    node_id = definition.id
    if not node_id:
        errors.append("Research node has empty id")
    if not definition.name:
        errors.append(f"Research node '{node_id}' has empty name")
    if definition.compute_cost is not None and definition.compute_cost <= 0:
        errors.append(f"Research node '{node_id}' has non-positive compute_cost")

    for channel in definition.influence_cost:
        if channel not in INFLUENCE_CHANNELS:
            errors.append(f"Research node '{node_id}' has unknown influence channel '{channel}'")

    for ref in definition.prerequisites:
        if ref == node_id:
            errors.append(f"Research node '{node_id}' lists itself as a prerequisite")
        elif ref not in known_ids:
            errors.append(f"Research node '{node_id}' references unknown prerequisite '{ref}'")
    for ref in definition.exclusions:
        if ref not in known_ids:
            errors.append(f"Research node '{node_id}' references unknown exclusion '{ref}'")
    overlap = set(definition.prerequisites) & set(definition.exclusions)
    if overlap:
        errors.append(
            f"Research node '{node_id}' both requires and excludes {sorted(overlap)}"
        )

    risk = definition.risk
    if not 0.0 <= risk.probability <= 1.0:
        errors.append(f"Research node '{node_id}' risk probability must be in [0, 1]")
    if not 0.0 <= risk.severity <= 1.0:
        errors.append(f"Research node '{node_id}' risk severity must be in [0, 1]")

    return errors


def find_dependency_cycles(definitions: Iterable[ResearchDefinition]) -> list[list[str]]:
    """
    Find prerequisite cycles with a depth-first search.

    Each cycle is reported once, as the path from its first revisited
    node back to itself (e.g. ["a", "b", "a"]). Unknown references are
    ignored here; they are reported separately.
    """
    graph = {d.id: [p for p in d.prerequisites] for d in definitions}
    visited: set[str] = set()
    on_stack: list[str] = []
    cycles: list[list[str]] = []

    def visit(node_id: str) -> None:
        if node_id in on_stack:
            start = on_stack.index(node_id)
            cycles.append(on_stack[start:] + [node_id])
            return
        if node_id in visited or node_id not in graph:
            return
        visited.add(node_id)
        on_stack.append(node_id)
        for prerequisite in graph[node_id]:
            visit(prerequisite)
        on_stack.pop()

    for node_id in graph:
        visit(node_id)
    return cycles


def load_research_definitions(
    definitions: Iterable[ResearchDefinition | dict[str, Any]],
) -> list[ResearchDefinition]:
    """
    Validate and return research definitions.

    Accepts ResearchDefinition objects or plain mappings (e.g. parsed JSON
    content tables). Raises ContentValidationError on any error.
    """
    items = list(definitions)
    try:
        parsed = _DEFINITIONS_ADAPTER.validate_python(items)
    except ValueError as e:
        raise ContentValidationError([str(e)]) from e

    result = validate_research_tree(parsed)
    if not result.valid:
        raise ContentValidationError(result.errors)
    return parsed


def definitions_from_json(raw: str | bytes) -> list[ResearchDefinition]:
    """Parse and validate a JSON array of research definitions."""
    try:
        parsed = _DEFINITIONS_ADAPTER.validate_json(raw)
    except ValueError as e:
        raise ContentValidationError([str(e)]) from e
    return load_research_definitions(parsed)
