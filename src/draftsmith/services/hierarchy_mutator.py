"""Validated writes to a partition's hierarchy edges."""
import logging
from typing import Optional, Union

from draftsmith.exceptions import (
    CycleDetectedError,
    DuplicateChildError,
    EdgeNotFoundError,
    InvalidRelationKindError,
)
from draftsmith.models.schema import Edge, Partition, RelationKind
from draftsmith.services.cycle_checker import find_cycle
from draftsmith.storage.base import GraphStore

logger = logging.getLogger(__name__)

RelationKindInput = Optional[Union[str, RelationKind]]


def validate_relation_kind(
    partition: Partition, relation_kind: RelationKindInput
) -> Optional[RelationKind]:
    """Check a relation kind against the partition's allowed values.

    Notes accept page, block or subpage (or nothing). Tags carry no kind,
    so any supplied value is rejected.

    Raises:
        InvalidRelationKindError: If the value is not allowed.
    """
    if relation_kind is None:
        return None
    if partition is Partition.TAGS:
        raise InvalidRelationKindError(relation_kind, partition=partition.value)
    if isinstance(relation_kind, RelationKind):
        return relation_kind
    try:
        return RelationKind(str(relation_kind).strip().lower())
    except ValueError:
        raise InvalidRelationKindError(
            relation_kind,
            partition=partition.value,
            allowed=[k.value for k in RelationKind],
        ) from None


class HierarchyMutator:
    """Gatekeeper for every write to the hierarchy edge sets.

    Each operation runs its read-check-write sequence inside one
    ``store.atomic()`` block and checks for cycles before any write that
    changes a parent link. A rejected operation leaves the store untouched.
    Store failures propagate unchanged.
    """

    def __init__(self, store: GraphStore):
        self.store = store

    def add_edge(
        self,
        partition: Partition,
        parent_id: int,
        child_id: int,
        relation_kind: RelationKindInput = None,
    ) -> Edge:
        """Give ``child_id`` the parent ``parent_id``.

        Raises:
            InvalidRelationKindError: Relation kind not allowed (checked
                before any store access).
            CycleDetectedError: The parent is the child or one of its
                descendants.
            DuplicateChildError: The child already has a parent.
        """
        kind = validate_relation_kind(partition, relation_kind)
        candidate = Edge(
            partition=partition,
            parent_id=parent_id,
            child_id=child_id,
            relation_kind=kind,
        )

        with self.store.atomic() as tx:
            edges = tx.list_edges(partition)
            self._check_cycle(partition, [e.pair for e in edges], candidate)

            existing = tx.get_edge(partition, child_id)
            if existing is not None:
                logger.info(
                    f"Rejected {partition.value} edge {parent_id} -> {child_id}: "
                    f"child already has parent {existing.parent_id}"
                )
                raise DuplicateChildError(partition.value, child_id, existing.parent_id)

            created = tx.insert_edge(candidate)

        logger.info(
            f"Added {partition.value} edge {parent_id} -> {child_id} (id={created.id})"
        )
        return created

    def update_edge(
        self,
        partition: Partition,
        child_id: int,
        new_parent_id: int,
        relation_kind: RelationKindInput = None,
    ) -> Edge:
        """Re-point the parent of ``child_id``.

        Without a relation kind the edge keeps its current one. The cycle
        check runs against the edge set minus the child's current edge
        before the edge is looked up, so a candidate that closes a loop
        is reported as a cycle even when the child has no edge yet.

        Raises:
            InvalidRelationKindError: Relation kind not allowed.
            CycleDetectedError: The new parent is the child or one of its
                descendants.
            EdgeNotFoundError: The child has no parent edge.
        """
        kind = validate_relation_kind(partition, relation_kind)

        with self.store.atomic() as tx:
            current = tx.get_edge(partition, child_id)
            if kind is None and current is not None:
                kind = current.relation_kind
            candidate = Edge(
                partition=partition,
                parent_id=new_parent_id,
                child_id=child_id,
                relation_kind=kind,
            )
            remaining = [
                e.pair for e in tx.list_edges(partition) if e.child_id != child_id
            ]
            self._check_cycle(partition, remaining, candidate)

            if current is None:
                raise EdgeNotFoundError(partition.value, child_id)
            updated = tx.replace_edge(candidate)
            if updated is None:
                raise EdgeNotFoundError(partition.value, child_id)

        logger.info(
            f"Moved {partition.value} node {child_id}: "
            f"parent {current.parent_id} -> {new_parent_id}"
        )
        return updated

    def delete_edge(self, partition: Partition, child_id: int) -> None:
        """Remove the parent edge of ``child_id``, making it a root.

        The child's own subtree keeps its edges.

        Raises:
            EdgeNotFoundError: The child has no parent edge.
        """
        with self.store.atomic() as tx:
            if not tx.delete_edge(partition, child_id):
                raise EdgeNotFoundError(partition.value, child_id)
        logger.info(f"Deleted {partition.value} edge for child {child_id}")

    def detach_node(self, partition: Partition, node_id: int) -> int:
        """Remove every edge touching ``node_id`` ahead of deleting the node.

        The node's former children become roots. Removing edges can never
        create a cycle, so no check is needed.

        Returns:
            Number of edges removed.
        """
        with self.store.atomic() as tx:
            removed = tx.delete_edges_for_node(partition, node_id)
        logger.info(f"Detached {partition.value} node {node_id} ({removed} edges)")
        return removed

    @staticmethod
    def _check_cycle(partition: Partition, pairs, candidate: Edge) -> None:
        cycle = find_cycle([*pairs, candidate.pair])
        if cycle is not None:
            logger.info(
                f"Rejected {partition.value} edge "
                f"{candidate.parent_id} -> {candidate.child_id}: cycle "
                f"{' -> '.join(str(n) for n in cycle)}"
            )
            raise CycleDetectedError(
                partition.value, candidate.parent_id, candidate.child_id, cycle
            )
