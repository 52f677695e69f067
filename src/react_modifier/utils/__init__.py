"""Utilities for the React modification engine."""

from react_modifier.utils.diff_generator import (
    count_changed_lines,
    generate_unified_diff,
)
from react_modifier.utils.structure_validator import (
    extract_file_structure,
    preserves_skeleton,
    repair_file_structure,
    validate_structure_preservation,
    validate_syntax,
)

__all__ = [
    "count_changed_lines",
    "extract_file_structure",
    "generate_unified_diff",
    "preserves_skeleton",
    "repair_file_structure",
    "validate_structure_preservation",
    "validate_syntax",
]
