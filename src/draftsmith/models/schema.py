"""Data models for the Draftsmith hierarchy engine."""

import json
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator


class Partition(str, Enum):
    """Independent hierarchy domains. Edges never cross partitions."""

    NOTES = "notes"
    TAGS = "tags"

    @classmethod
    def parse(cls, value: Union[str, "Partition"]) -> "Partition":
        """Resolve a partition from its name, case-insensitively.

        Raises:
            ValueError: If the value names no partition.
        """
        if isinstance(value, Partition):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid partition: {value}. "
                f"Valid partitions are: {', '.join(p.value for p in cls)}"
            ) from None


class RelationKind(str, Enum):
    """How a child note is presented under its parent."""

    PAGE = "page"  # Child is a page of its own under the parent
    BLOCK = "block"  # Child is rendered inline as a block of the parent
    SUBPAGE = "subpage"  # Child is a nested page of the parent


class Node(BaseModel):
    """A note or tag as seen by the hierarchy engine."""

    id: int = Field(..., description="Store-assigned node ID")
    label: str = Field(..., description="Note title or tag name")

    model_config = {"frozen": True}


class Edge(BaseModel):
    """A parent/child relation inside one partition."""

    id: Optional[int] = Field(default=None, description="Store-assigned edge ID")
    partition: Partition = Field(..., description="Partition the edge belongs to")
    parent_id: int = Field(..., description="ID of the parent node")
    child_id: int = Field(..., description="ID of the child node")
    relation_kind: Optional[RelationKind] = Field(
        default=None, description="Presentation of the child (notes only)"
    )

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def pair(self) -> Tuple[int, int]:
        """The (parent_id, child_id) pair used by the cycle checker."""
        return (self.parent_id, self.child_id)


class TreeNode(BaseModel):
    """One node of a rebuilt tree view. Never persisted."""

    id: int
    label: str
    relation_kind: Optional[RelationKind] = None
    children: List["TreeNode"] = Field(default_factory=list)
    annotations: Dict[str, List[Any]] = Field(default_factory=dict)

    def walk(self):
        """Yield this node and all of its descendants, depth-first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def node_fields(self) -> Dict[str, Any]:
        """This node's own JSON-ready fields, without its children."""
        data: Dict[str, Any] = {"id": self.id, "label": self.label}
        if self.relation_kind is not None:
            data["relation_kind"] = self.relation_kind.value
        for key, values in self.annotations.items():
            data[key] = [
                v.model_dump() if isinstance(v, BaseModel) else v for v in values
            ]
        return data

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation; empty children and annotations are omitted."""
        return transform_forest([self], _node_dict)[0]


TreeNode.model_rebuild()


def _node_dict(node: TreeNode, children: List[Dict[str, Any]]) -> Dict[str, Any]:
    data = node.node_fields()
    if children:
        data["children"] = children
    return data


def transform_forest(
    forest: List[TreeNode],
    rebuild: Callable[[TreeNode, List[Any]], Optional[Any]],
) -> List[Any]:
    """Rebuild a forest bottom-up with an explicit stack.

    ``rebuild(node, children)`` is called once per node, after all of its
    children, with the results already produced for them. Returning None
    drops the node from its parent's list. Sibling order is preserved and
    the call stack stays flat however deep the forest is.

    Returns:
        The non-None results for the roots, in root order.
    """
    results: Dict[int, Any] = {}
    stack: List[Tuple[TreeNode, bool]] = [(root, False) for root in reversed(forest)]
    while stack:
        node, expanded = stack.pop()
        if not expanded:
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children))
            continue
        children = [
            results.pop(id(child)) for child in node.children if id(child) in results
        ]
        result = rebuild(node, children)
        if result is not None:
            results[id(node)] = result
    return [results.pop(id(root)) for root in forest if id(root) in results]


def forest_to_json(forest: List[TreeNode]) -> str:
    """Serialize a forest as a JSON list of ``to_dict`` documents.

    The document is written piece by piece from a stack, so arbitrarily
    deep chains serialize without hitting the recursion limit of
    ``json.dumps``. Output is compact.
    """
    parts: List[str] = []
    # Each entry is a node to open or literal text to emit
    stack: List[Union[TreeNode, str]] = ["]"]
    for index, root in enumerate(reversed(forest)):
        if index:
            stack.append(", ")
        stack.append(root)
    parts.append("[")

    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
            continue
        # Drop the closing brace so children can follow the fields
        parts.append(json.dumps(item.node_fields())[:-1])
        if not item.children:
            parts.append("}")
            continue
        parts.append(', "children": [')
        stack.append("]}")
        for index, child in enumerate(reversed(item.children)):
            if index:
                stack.append(", ")
            stack.append(child)

    return "".join(parts)


class NoteRef(BaseModel):
    """Basic note information attached to tags."""

    id: int
    title: str

    model_config = {"frozen": True}


class TagWithNotes(BaseModel):
    """A tag together with the notes carrying it."""

    tag_id: int
    tag_name: str
    notes: List[NoteRef] = Field(default_factory=list)


class Task(BaseModel):
    """A task attached to a note. Only its note link matters here."""

    id: int
    note_id: int
    status: str = Field(default="todo")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        """Validate that the status is not empty."""
        if not v.strip():
            raise ValueError("Status cannot be empty")
        return v
