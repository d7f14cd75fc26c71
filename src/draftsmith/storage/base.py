"""Graph Store interface consumed by the hierarchy engine."""
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import List, Optional, Set, Tuple

from draftsmith.models.schema import Edge, Node, NoteRef, Partition


class GraphStore(ABC):
    """Durable nodes and edges, per partition.

    No hierarchy logic lives here. Implementations only read and write
    records; validation is the job of the HierarchyMutator, which runs its
    read-check-write sequence inside ``atomic()``.
    """

    @abstractmethod
    def atomic(self) -> AbstractContextManager["GraphStore"]:
        """Open a transaction.

        Yields a store whose reads and writes all belong to one transaction.
        Commits on normal exit and rolls back if the block raises.
        """

    @abstractmethod
    def list_nodes(self, partition: Partition) -> List[Node]:
        """All nodes of a partition, in store order."""

    @abstractmethod
    def list_edges(self, partition: Partition) -> List[Edge]:
        """All edges of a partition, in store order."""

    @abstractmethod
    def get_edge(self, partition: Partition, child_id: int) -> Optional[Edge]:
        """The edge whose child is ``child_id``, if any."""

    @abstractmethod
    def insert_edge(self, edge: Edge) -> Edge:
        """Persist a new edge and return it with its assigned id."""

    @abstractmethod
    def replace_edge(self, edge: Edge) -> Optional[Edge]:
        """Overwrite the parent and relation kind of the edge for ``edge.child_id``.

        Returns None if the child has no edge.
        """

    @abstractmethod
    def delete_edge(self, partition: Partition, child_id: int) -> bool:
        """Remove the edge for ``child_id``. Returns False if there was none."""

    @abstractmethod
    def delete_edges_for_node(self, partition: Partition, node_id: int) -> int:
        """Remove every edge where ``node_id`` is parent or child."""

    @abstractmethod
    def list_note_tags(self) -> List[Tuple[int, NoteRef]]:
        """(tag_id, note) pairs for every note/tag association."""

    @abstractmethod
    def list_task_note_ids(self) -> Set[int]:
        """IDs of notes that have at least one task."""
