"""Research content - built-in tree and content validation."""

from .research_tree import get_all_research_definitions, get_definition_by_id
from .validation import (
    ContentValidationError,
    ValidationResult,
    definitions_from_json,
    find_dependency_cycles,
    load_research_definitions,
    validate_research_tree,
)

__all__ = [
    "get_all_research_definitions",
    "get_definition_by_id",
    "ContentValidationError",
    "ValidationResult",
    "definitions_from_json",
    "find_dependency_cycles",
    "load_research_definitions",
    "validate_research_tree",
]
