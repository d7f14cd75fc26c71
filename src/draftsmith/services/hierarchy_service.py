"""Service layer for hierarchy reads and writes."""

import logging
from typing import AbstractSet, Any, List, Optional, Union

from draftsmith.config import SIBLING_ORDERS, config
from draftsmith.exceptions import ConfigurationError, ErrorCode, ValidationError
from draftsmith.models.schema import Edge, Partition, TagWithNotes, TreeNode
from draftsmith.services.association_view import (
    annotate_forest,
    group_by_node,
    tags_with_notes,
)
from draftsmith.services.hierarchy_mutator import HierarchyMutator, RelationKindInput
from draftsmith.services.tree_builder import build_forest, by_label
from draftsmith.services.tree_filter import filter_forest
from draftsmith.storage.base import GraphStore
from draftsmith.storage.graph_store import SqlGraphStore

logger = logging.getLogger(__name__)

PartitionInput = Union[str, Partition]


def _parse_partition(value: PartitionInput) -> Partition:
    try:
        return Partition.parse(value)
    except ValueError as e:
        raise ValidationError(
            str(e), field="partition", value=value, code=ErrorCode.INVALID_PARTITION
        ) from None


class HierarchyService:
    """Entry point for the note and tag hierarchies.

    Writes go through the HierarchyMutator; reads fetch nodes and edges
    from the store and rebuild tree views on every call.
    """

    def __init__(
        self,
        store: Optional[GraphStore] = None,
        engine: Optional[Any] = None,
        sibling_order: Optional[str] = None,
    ):
        """Initialize the service.

        Args:
            store: Graph Store backend. A SqlGraphStore is created if None.
            engine: SQLAlchemy engine for the default store. Only used when
                store is None.
            sibling_order: "insertion" or "label". Defaults to
                config.sibling_order.
        """
        self.store = store if store is not None else SqlGraphStore(engine=engine)
        self.mutator = HierarchyMutator(self.store)
        self.sibling_order = sibling_order or config.sibling_order
        if self.sibling_order not in SIBLING_ORDERS:
            raise ConfigurationError(
                f"Unknown sibling order: {self.sibling_order}",
                config_key="sibling_order",
            )

    # ========== Writes ==========

    def add_hierarchy_entry(
        self,
        partition: PartitionInput,
        parent_id: int,
        child_id: int,
        relation_kind: RelationKindInput = None,
    ) -> Edge:
        """Create the parent edge for a child."""
        return self.mutator.add_edge(
            _parse_partition(partition), parent_id, child_id, relation_kind
        )

    def update_hierarchy_entry(
        self,
        partition: PartitionInput,
        child_id: int,
        parent_id: int,
        relation_kind: RelationKindInput = None,
    ) -> Edge:
        """Move a child under a different parent."""
        return self.mutator.update_edge(
            _parse_partition(partition), child_id, parent_id, relation_kind
        )

    def delete_hierarchy_entry(self, partition: PartitionInput, child_id: int) -> None:
        """Remove a child's parent edge."""
        self.mutator.delete_edge(_parse_partition(partition), child_id)

    def detach_node(self, partition: PartitionInput, node_id: int) -> int:
        """Remove all edges of a node that is about to be deleted."""
        return self.mutator.detach_node(_parse_partition(partition), node_id)

    # ========== Reads ==========

    def get_tree(
        self, partition: PartitionInput, sibling_order: Optional[str] = None
    ) -> List[TreeNode]:
        """Rebuild the full forest of a partition."""
        partition = _parse_partition(partition)
        order = sibling_order or self.sibling_order
        if order not in SIBLING_ORDERS:
            raise ValidationError(
                f"Unknown sibling order: {order}", field="sibling_order", value=order
            )

        nodes = self.store.list_nodes(partition)
        edges = self.store.list_edges(partition)
        forest = build_forest(
            nodes, edges, sort_key=by_label if order == "label" else None
        )
        logger.debug(
            f"Built {partition.value} forest: {len(nodes)} nodes, "
            f"{len(edges)} edges, {len(forest)} roots"
        )
        return forest

    def get_filtered_tree(
        self,
        partition: PartitionInput,
        keep: AbstractSet[int],
        sibling_order: Optional[str] = None,
    ) -> List[TreeNode]:
        """Forest reduced to ``keep`` and the ancestors connecting it."""
        return filter_forest(self.get_tree(partition, sibling_order), keep)

    def get_task_tree(self, sibling_order: Optional[str] = None) -> List[TreeNode]:
        """Note forest reduced to notes that have tasks."""
        task_note_ids = self.store.list_task_note_ids()
        return self.get_filtered_tree(Partition.NOTES, task_note_ids, sibling_order)

    def get_tag_tree(self, sibling_order: Optional[str] = None) -> List[TreeNode]:
        """Tag forest where every tag carries the notes tagged with it."""
        forest = self.get_tree(Partition.TAGS, sibling_order)
        notes_by_tag = group_by_node(self.store.list_note_tags())
        return annotate_forest(forest, "notes", notes_by_tag)

    def get_tags_with_notes(self) -> List[TagWithNotes]:
        """Flat list of tags, each with its notes."""
        return tags_with_notes(
            self.store.list_nodes(Partition.TAGS), self.store.list_note_tags()
        )
