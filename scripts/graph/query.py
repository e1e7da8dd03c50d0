from __future__ import annotations

from collections import Counter, defaultdict, deque
from typing import Dict, List, Set, Tuple

from .types import FlowGraph, GraphEdge, GraphNode


def _adjacency(graph: FlowGraph) -> Dict[str, List[str]]:
    adjacency: Dict[str, List[str]] = defaultdict(list)
    for edge in graph.edges:
        adjacency[edge.source].append(edge.target)
    return adjacency


def entry_points(graph: FlowGraph) -> List[GraphNode]:
    return [node for node in graph.nodes if node.entry_type]


def reachable_from(graph: FlowGraph, start_id: str) -> Tuple[List[GraphNode], List[GraphEdge]]:
    """Nodes and edges reachable from ``start_id`` (breadth-first)."""
    adjacency = _adjacency(graph)
    visited: Set[str] = {start_id}
    queue = deque([start_id])
    while queue:
        current = queue.popleft()
        for neighbor in adjacency.get(current, []):
            if neighbor not in visited:
                visited.add(neighbor)
                queue.append(neighbor)
    nodes = [node for node in graph.nodes if node.id in visited]
    edges = [edge for edge in graph.edges if edge.source in visited and edge.target in visited]
    return nodes, edges


def paths_between(graph: FlowGraph, from_id: str, to_id: str, max_paths: int = 10) -> List[List[str]]:
    """Simple paths from ``from_id`` to ``to_id``, at most ``max_paths`` of them."""
    adjacency = _adjacency(graph)
    results: List[List[str]] = []
    path = [from_id]
    on_path = {from_id}

    def walk(current: str) -> None:
        if len(results) >= max_paths:
            return
        if current == to_id:
            results.append(list(path))
            return
        for neighbor in adjacency.get(current, []):
            if neighbor in on_path:
                continue
            on_path.add(neighbor)
            path.append(neighbor)
            walk(neighbor)
            path.pop()
            on_path.discard(neighbor)

    walk(from_id)
    return results


def edge_type_counts(graph: FlowGraph) -> Dict[str, int]:
    return dict(sorted(Counter(edge.type for edge in graph.edges).items()))
