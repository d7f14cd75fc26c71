"""In-memory Graph Store for testing.

FakeGraphStore keeps nodes, edges and associations in plain Python
structures so engine tests run without a database. ``atomic()`` snapshots
the state and restores it when the block raises, which mirrors a real
transaction rollback. Every write is counted, so tests can assert that a
rejected edit never reached the store.
"""
import copy
from contextlib import contextmanager
from typing import Dict, List, Optional, Set, Tuple

from draftsmith.exceptions import ErrorCode, StorageError
from draftsmith.models.schema import Edge, Node, NoteRef, Partition
from draftsmith.storage.base import GraphStore


class FakeGraphStore(GraphStore):
    """Dict-backed GraphStore with snapshot/rollback transactions."""

    def __init__(self) -> None:
        self.nodes: Dict[Partition, Dict[int, str]] = {p: {} for p in Partition}
        self.edges: Dict[Partition, List[Edge]] = {p: [] for p in Partition}
        self.note_tags: List[Tuple[int, int]] = []
        self.task_note_ids: Set[int] = set()
        self.write_count = 0
        self.atomic_count = 0
        # Operation name -> error raised the next time it runs
        self.fail_on: Dict[str, Exception] = {}
        self._next_edge_id = 1

    # ----- Seeding helpers -----

    def add_node(self, partition: Partition, node_id: int, label: str) -> Node:
        self.nodes[partition][node_id] = label
        return Node(id=node_id, label=label)

    def seed_edge(
        self,
        partition: Partition,
        parent_id: int,
        child_id: int,
        relation_kind=None,
    ) -> Edge:
        """Insert an edge directly, bypassing every hierarchy check."""
        edge = Edge(
            id=self._next_edge_id,
            partition=partition,
            parent_id=parent_id,
            child_id=child_id,
            relation_kind=relation_kind,
        )
        self._next_edge_id += 1
        self.edges[partition].append(edge)
        return edge

    def pairs(self, partition: Partition) -> List[Tuple[int, int]]:
        return [e.pair for e in self.edges[partition]]

    # ----- GraphStore -----

    @contextmanager
    def atomic(self):
        self.atomic_count += 1
        snapshot = (copy.deepcopy(self.edges), self._next_edge_id)
        try:
            yield self
        except Exception:
            self.edges, self._next_edge_id = snapshot
            raise

    def _maybe_fail(self, operation: str) -> None:
        error = self.fail_on.pop(operation, None)
        if error is not None:
            raise error

    def list_nodes(self, partition: Partition) -> List[Node]:
        self._maybe_fail("list_nodes")
        return [Node(id=i, label=label) for i, label in self.nodes[partition].items()]

    def list_edges(self, partition: Partition) -> List[Edge]:
        self._maybe_fail("list_edges")
        return list(self.edges[partition])

    def _find_edge(self, partition: Partition, child_id: int) -> Optional[Edge]:
        return next((e for e in self.edges[partition] if e.child_id == child_id), None)

    def get_edge(self, partition: Partition, child_id: int) -> Optional[Edge]:
        self._maybe_fail("get_edge")
        return self._find_edge(partition, child_id)

    def insert_edge(self, edge: Edge) -> Edge:
        self._maybe_fail("insert_edge")
        self.write_count += 1
        if self._find_edge(edge.partition, edge.child_id) is not None:
            raise StorageError(
                "UNIQUE constraint failed",
                operation="insert_edge",
                code=ErrorCode.STORAGE_WRITE_FAILED,
            )
        return self.seed_edge(
            edge.partition, edge.parent_id, edge.child_id, edge.relation_kind
        )

    def replace_edge(self, edge: Edge) -> Optional[Edge]:
        self._maybe_fail("replace_edge")
        self.write_count += 1
        edges = self.edges[edge.partition]
        for index, current in enumerate(edges):
            if current.child_id == edge.child_id:
                edges[index] = edge.model_copy(update={"id": current.id})
                return edges[index]
        return None

    def delete_edge(self, partition: Partition, child_id: int) -> bool:
        self._maybe_fail("delete_edge")
        self.write_count += 1
        before = len(self.edges[partition])
        self.edges[partition] = [
            e for e in self.edges[partition] if e.child_id != child_id
        ]
        return len(self.edges[partition]) < before

    def delete_edges_for_node(self, partition: Partition, node_id: int) -> int:
        self.write_count += 1
        before = len(self.edges[partition])
        self.edges[partition] = [
            e
            for e in self.edges[partition]
            if e.parent_id != node_id and e.child_id != node_id
        ]
        return before - len(self.edges[partition])

    def list_note_tags(self) -> List[Tuple[int, NoteRef]]:
        notes = self.nodes[Partition.NOTES]
        return [
            (tag_id, NoteRef(id=note_id, title=notes[note_id]))
            for note_id, tag_id in self.note_tags
            if note_id in notes
        ]

    def list_task_note_ids(self) -> Set[int]:
        return set(self.task_note_ids)
