# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
from collections import deque
from typing import AbstractSet, Iterable, List, Optional, Set

from .graph import Edge, Graph


def inbound_edges(graph: Graph, node_id: str) -> List[Edge]:
    """Edges pointing at node_id."""
    return [e for e in graph.edges.values() if e.to_node == node_id]


def undirected_reachable(graph: Graph, start: str) -> Set[str]:
    """
    All nodes reachable from start when edges are walked both ways.
    start itself is not included. Cycles terminate via the visited set.
    """
    adjacency = {node_id: set() for node_id in graph.nodes}
    for e in graph.edges.values():
        adjacency[e.from_node].add(e.to_node)
        adjacency[e.to_node].add(e.from_node)

    visited = {start}
    stack = [start]
    while stack:
        current = stack.pop()
        for neighbour in adjacency.get(current, ()):
            if neighbour not in visited:
                visited.add(neighbour)
                stack.append(neighbour)

    visited.discard(start)
    return visited


def inbound_bfs(graph: Graph, start: str, exclude: Optional[AbstractSet[str]] = None) -> List[str]:
    """
    Breadth-first walk against the arrows, starting at start.

    Returns node ids in discovery order (start first, then closest
    ancestors). A node is never visited twice and nodes in exclude are never
    entered. Reverse the result for oldest-first order.
    """
    exclude = exclude or set()
    # from_node lists per target, in edge order
    parents = {}
    for e in graph.edges.values():
        parents.setdefault(e.to_node, []).append(e.from_node)

    visited = {start}
    queue = deque([start])
    order = []

    while queue:
        current = queue.popleft()
        order.append(current)
        for parent in parents.get(current, ()):
            if parent not in visited and parent not in exclude:
                visited.add(parent)
                queue.append(parent)

    return order


def directly_connected(graph: Graph, node_ids: Iterable[str]) -> bool:
    """True if some edge has both endpoints inside node_ids."""
    selected = set(node_ids)
    return any(e.from_node in selected and e.to_node in selected for e in graph.edges.values())
