"""Utility functions for querying layered filesystem views."""

from .digest import calculate_digest, validate_digest
from .filters import filter_by_path, filter_by_pattern, match_pattern
from .tree import build_tree, group_entries

__all__ = [
    "calculate_digest",
    "validate_digest",
    "filter_by_path",
    "filter_by_pattern",
    "match_pattern",
    "build_tree",
    "group_entries",
]
