"""Iterative depth-first traversal of the node arena.

The walk keeps an explicit stack instead of recursing, so arbitrarily deep
trees cannot exhaust the interpreter's recursion limit.
"""

from typing import Dict, Iterator, Optional, Tuple

from .._common.config import TraversalOrder
from .._common.paths import join_path
from .node import ZNode


def walk_arena(
    nodes: Dict[int, ZNode],
    start_id: int,
    start_path: str,
    order: TraversalOrder = TraversalOrder.PRE_ORDER,
    max_depth: Optional[int] = None,
) -> Iterator[Tuple[str, ZNode]]:
    """Walk a subtree depth-first, children visited in name order.

    Args:
        nodes: Arena mapping node id to node
        start_id: Id of the subtree root
        start_path: Full path of the subtree root
        order: PRE_ORDER yields a parent before its children,
               POST_ORDER yields children before their parent
        max_depth: Maximum depth below the start node (None = unlimited)

    Yields:
        Tuples of (path, node)
    """
    if order is TraversalOrder.PRE_ORDER:
        yield from _walk_pre_order(nodes, start_id, start_path, max_depth)
    else:
        yield from _walk_post_order(nodes, start_id, start_path, max_depth)


def _children_of(nodes: Dict[int, ZNode], node: ZNode, path: str):
    """(child_id, child_path) pairs in name order."""
    for name in node.child_names():
        yield node.children[name], join_path(path, name)


def _walk_pre_order(nodes, start_id, start_path, max_depth):
    stack = [(start_id, start_path, 0)]
    while stack:
        node_id, path, depth = stack.pop()
        node = nodes[node_id]
        yield path, node

        if max_depth is not None and depth >= max_depth:
            continue
        # Push reversed so the smallest name is popped first
        for child_id, child_path in reversed(list(_children_of(nodes, node, path))):
            stack.append((child_id, child_path, depth + 1))


def _walk_post_order(nodes, start_id, start_path, max_depth):
    # Each entry carries an "expanded" flag; a node is yielded the second
    # time it reaches the top of the stack, once all its children are done.
    stack = [(start_id, start_path, 0, False)]
    while stack:
        node_id, path, depth, expanded = stack.pop()
        node = nodes[node_id]

        if expanded or node.is_leaf() or (max_depth is not None and depth >= max_depth):
            yield path, node
            continue

        stack.append((node_id, path, depth, True))
        for child_id, child_path in reversed(list(_children_of(nodes, node, path))):
            stack.append((child_id, child_path, depth + 1, False))
