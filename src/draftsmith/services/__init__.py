"""Hierarchy engine services."""

from draftsmith.services.cycle_checker import find_cycle, would_create_cycle
from draftsmith.services.hierarchy_mutator import HierarchyMutator
from draftsmith.services.tree_builder import build_forest
from draftsmith.services.tree_filter import filter_forest

__all__ = [
    "HierarchyMutator",
    "build_forest",
    "filter_forest",
    "find_cycle",
    "would_create_cycle",
]
