"""Storage layer for Draftsmith."""

from draftsmith.storage.base import GraphStore
from draftsmith.storage.graph_store import SqlGraphStore

__all__ = [
    "GraphStore",
    "SqlGraphStore",
]
