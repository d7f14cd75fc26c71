"""Cycle detection over a partition's parent/child edges."""
from collections import defaultdict
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

Pair = Tuple[Hashable, Hashable]

_ON_STACK = 1
_DONE = 2


def find_cycle(edges: Iterable[Pair]) -> Optional[List[Hashable]]:
    """Return one directed cycle in ``edges``, or None if there is none.

    Runs an iterative depth-first search from every unvisited parent,
    keeping an on-stack marker per node. Reaching a node that is still on
    the stack closes a cycle. A self-loop ``(x, x)`` is reported as
    ``[x, x]``.

    Start nodes are taken in order of first appearance, so the cycle
    returned for a given edge list is always the same. Whether a cycle is
    found at all does not depend on that order.

    Args:
        edges: (parent_id, child_id) pairs.

    Returns:
        The cycle as a node path whose first and last entries are equal.
    """
    graph: Dict[Hashable, List[Hashable]] = defaultdict(list)
    for parent, child in edges:
        graph[parent].append(child)

    state: Dict[Hashable, int] = {}
    for start in list(graph):
        if start in state:
            continue
        state[start] = _ON_STACK
        path = [start]
        pending = [iter(graph[start])]

        while pending:
            for child in pending[-1]:
                mark = state.get(child)
                if mark == _ON_STACK:
                    return path[path.index(child):] + [child]
                if mark is None:
                    state[child] = _ON_STACK
                    path.append(child)
                    pending.append(iter(graph.get(child, ())))
                    break
            else:
                # All children explored
                pending.pop()
                state[path.pop()] = _DONE

    return None


def would_create_cycle(edges: Iterable[Pair], candidate: Pair) -> bool:
    """Check whether adding ``candidate`` to ``edges`` creates a cycle.

    When the candidate replaces an existing parent link, the caller must
    leave the replaced edge out of ``edges``.

    Args:
        edges: Current (parent_id, child_id) pairs of one partition.
        candidate: The proposed (parent_id, child_id) pair.

    Returns:
        True if ``edges`` plus ``candidate`` contains a cycle.
    """
    return find_cycle([*edges, candidate]) is not None
