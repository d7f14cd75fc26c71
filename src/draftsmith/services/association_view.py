"""Attach cross-partition annotations (e.g. notes per tag) to tree views."""
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from draftsmith.models.schema import (
    Node,
    NoteRef,
    TagWithNotes,
    TreeNode,
    transform_forest,
)


def group_by_node(pairs: Iterable[Tuple[int, Any]]) -> Dict[int, List[Any]]:
    """Group (node_id, value) pairs into node_id -> [values], keeping pair order."""
    grouped: Dict[int, List[Any]] = defaultdict(list)
    for node_id, value in pairs:
        grouped[node_id].append(value)
    return dict(grouped)


def annotate_forest(
    forest: List[TreeNode],
    key: str,
    annotations: Mapping[int, List[Any]],
) -> List[TreeNode]:
    """Return a copy of ``forest`` with ``annotations[node.id]`` stored under ``key``.

    Nodes without annotations get an empty list, so every node in the
    result carries the key. The input forest is not modified.
    """

    def annotate(node: TreeNode, children: List[TreeNode]) -> TreeNode:
        node_annotations = dict(node.annotations)
        node_annotations[key] = list(annotations.get(node.id, []))
        return node.model_copy(
            update={"annotations": node_annotations, "children": children}
        )

    return transform_forest(forest, annotate)


def tags_with_notes(
    tags: Iterable[Node], note_tags: Iterable[Tuple[int, NoteRef]]
) -> List[TagWithNotes]:
    """Flat tag listing with the notes carrying each tag.

    Tags are ordered by name and notes by title. Tags without notes are
    included with an empty list; associations to unknown tags are ignored.
    """
    notes_by_tag = group_by_node(note_tags)
    result = [
        TagWithNotes(
            tag_id=tag.id,
            tag_name=tag.label,
            notes=sorted(notes_by_tag.get(tag.id, []), key=lambda n: (n.title, n.id)),
        )
        for tag in tags
    ]
    result.sort(key=lambda t: (t.tag_name, t.tag_id))
    return result
