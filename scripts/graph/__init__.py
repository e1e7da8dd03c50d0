from .builder import GraphBuilder
from .query import edge_type_counts, entry_points, paths_between, reachable_from
from .store import GRAPH_FILE, GraphStore
from .types import FlowGraph, GraphEdge, GraphNode

__all__ = [
    "GRAPH_FILE",
    "FlowGraph",
    "GraphBuilder",
    "GraphEdge",
    "GraphNode",
    "GraphStore",
    "edge_type_counts",
    "entry_points",
    "paths_between",
    "reachable_from",
]
