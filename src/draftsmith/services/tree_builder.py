"""Rebuild tree views from a partition's flat node and edge lists."""
import logging
from typing import Callable, Dict, Iterable, List, Optional, Set

from draftsmith.models.schema import Edge, Node, TreeNode

logger = logging.getLogger(__name__)

SortKey = Callable[[TreeNode], object]


def by_label(node: TreeNode):
    """Case-insensitive alphabetical order, ties broken by id."""
    return (node.label.casefold(), node.id)


def build_forest(
    nodes: Iterable[Node],
    edges: Iterable[Edge],
    sort_key: Optional[SortKey] = None,
) -> List[TreeNode]:
    """Build one tree per root from flat nodes and edges.

    Every node gets a wrapper, then each edge hangs its child wrapper under
    its parent wrapper, tagging the child with the edge's relation kind. A
    node that was never attached is a root; isolated nodes come back as
    single-node trees.

    Edges that cannot be applied are skipped without failing the build:
    edges naming a missing parent or child (the child then stays a root if
    it has no other parent edge), and any further edge for a child that
    already has a parent.

    Args:
        nodes: Nodes of one partition.
        edges: Edges of the same partition.
        sort_key: If given, roots and every sibling list are sorted by it.
            Otherwise roots follow node order and children follow edge order.

    Returns:
        Root tree nodes.
    """
    wrappers: Dict[int, TreeNode] = {
        node.id: TreeNode(id=node.id, label=node.label) for node in nodes
    }
    attached: Set[int] = set()

    for edge in edges:
        parent = wrappers.get(edge.parent_id)
        child = wrappers.get(edge.child_id)
        if parent is None or child is None:
            logger.debug(
                f"Skipping dangling edge {edge.parent_id} -> {edge.child_id}"
            )
            continue
        if edge.child_id in attached:
            logger.warning(
                f"Skipping edge {edge.parent_id} -> {edge.child_id}: "
                "child already has a parent"
            )
            continue
        child.relation_kind = edge.relation_kind
        parent.children.append(child)
        attached.add(edge.child_id)

    roots = [wrapper for node_id, wrapper in wrappers.items() if node_id not in attached]

    reachable = sum(1 for root in roots for _ in root.walk())
    if reachable < len(wrappers):
        logger.warning(
            f"{len(wrappers) - reachable} nodes are unreachable from any root "
            "(cycle in stored edges)"
        )

    if sort_key is not None:
        sort_forest(roots, sort_key)
    return roots


def sort_forest(forest: List[TreeNode], sort_key: SortKey = by_label) -> List[TreeNode]:
    """Sort a forest's roots and all sibling lists in place."""
    forest.sort(key=sort_key)
    for root in forest:
        for node in root.walk():
            node.children.sort(key=sort_key)
    return forest
