"""Prune a forest down to interesting nodes and their ancestor chains."""
from typing import AbstractSet, List

from draftsmith.models.schema import TreeNode, transform_forest


def filter_forest(forest: List[TreeNode], keep: AbstractSet[int]) -> List[TreeNode]:
    """Keep only nodes in ``keep`` plus the ancestors needed to reach them.

    A node in ``keep`` survives with whatever of its subtree survives. A
    node outside ``keep`` survives only as a connector, when at least one
    descendant survives. Everything else is dropped with its subtree.
    Connectors and kept nodes look the same in the output.

    Children are filtered before their parent, so the decision for a
    node sees its already pruned children. The input forest is not
    modified; surviving nodes are copies.

    Args:
        forest: Roots produced by ``build_forest``.
        keep: IDs of the interesting nodes.

    Returns:
        The pruned roots, in their original relative order.
    """

    def prune(node: TreeNode, children: List[TreeNode]):
        if node.id in keep or children:
            return node.model_copy(update={"children": children})
        return None

    return transform_forest(forest, prune)
