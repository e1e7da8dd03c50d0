from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from extractor import Extractor, SourceExtractor, SymbolInfo, is_async_symbol, local_callee_names
from hasher import ContentHasher
from ir import edge_id, node_id, normalize_path
from matchers import MATCHERS, FrameworkMatcher, match_entry_point
from resolver.types import VerifiedConnection, normalize_connection_type
from utils import ProgressCallback, silent_progress

from .types import FlowGraph, GraphEdge, GraphNode

RUNTIME_TARGET_KEYS = ("taskId", "eventTrigger")


class _EdgeSet:
    def __init__(self, edges: Optional[List[GraphEdge]] = None) -> None:
        self.edges: List[GraphEdge] = list(edges or [])
        self._ids = {edge.id for edge in self.edges}
        self._order: Dict[str, int] = defaultdict(int)
        for edge in self.edges:
            if edge.order is not None:
                self._order[edge.source] = max(self._order[edge.source], edge.order + 1)

    def add(self, source: str, target: str, edge_type: str, *, is_async: bool, label: Optional[str] = None) -> bool:
        if source == target:
            return False
        key = edge_id(source, target, edge_type)
        if key in self._ids:
            return False
        self._ids.add(key)
        order = self._order[source]
        self._order[source] += 1
        self.edges.append(
            GraphEdge(
                id=key,
                source=source,
                target=target,
                type=edge_type,
                is_async=is_async,
                label=label,
                order=order,
            )
        )
        return True


class GraphBuilder:
    """Assemble a FlowGraph from source files.

    Nodes come from extracted symbols; entry points are claimed by the first
    matching framework matcher. Edges are same-file direct calls plus runtime
    dispatches that matchers can see statically. Edges whose target is not a
    known node are dropped.
    """

    def __init__(
        self,
        extractor: Optional[Extractor] = None,
        hasher: Optional[ContentHasher] = None,
        matchers: Optional[Sequence[FrameworkMatcher]] = None,
        project_root: Optional[Path] = None,
        on_progress: ProgressCallback = silent_progress,
    ) -> None:
        self.extractor = extractor or SourceExtractor()
        self.hasher = hasher or ContentHasher()
        self.matchers = list(MATCHERS if matchers is None else matchers)
        self.project_root = Path(project_root) if project_root else None
        self.on_progress = on_progress
        self.warnings: List[str] = []

    def _source_path(self, file_path: Union[str, Path]) -> str:
        path = Path(file_path)
        if not path.is_absolute() and self.project_root:
            path = self.project_root / path
        return str(path)

    def build(self, files: Iterable[Union[str, Path]]) -> FlowGraph:
        self.warnings = []
        graph = FlowGraph()
        symbols: List[Tuple[str, str, SymbolInfo]] = []
        by_file: Dict[str, Dict[str, str]] = defaultdict(dict)

        self.on_progress("Extracting symbols...", "progress")
        for file_path in files:
            source_path = self._source_path(file_path)
            result = self.extractor.extract_symbols(source_path)
            self.warnings.extend(result.errors)
            rel_path = normalize_path(source_path, self.project_root)
            for symbol in result.symbols:
                nid = node_id(rel_path, symbol.name)
                if symbol.name in by_file[rel_path]:
                    continue
                by_file[rel_path][symbol.name] = nid
                symbols.append((nid, rel_path, symbol))
                graph.nodes.append(self._node(nid, rel_path, symbol))
        self.on_progress(f"Extracted {len(graph.nodes)} symbols", "info")

        edges = _EdgeSet()
        async_ids = {node.id for node in graph.nodes if node.is_async}
        for nid, rel_path, symbol in symbols:
            local = by_file[rel_path]
            for call in self.extractor.extract_call_sites(symbol.file_path, symbol.name):
                target = next(
                    (local[name] for name in local_callee_names(call.name, symbol) if name in local),
                    None,
                )
                if target:
                    edges.add(nid, target, "direct-call", is_async=target in async_ids)

        runtime_index = self._runtime_index(graph.nodes)
        for nid, _, symbol in symbols:
            for matcher in self.matchers:
                for connection in matcher.runtime_connections(symbol):
                    for target in runtime_index.get((connection.target_key, connection.target), []):
                        edges.add(nid, target, connection.type, is_async=True, label=connection.target)

        graph.edges = edges.edges
        self.on_progress(f"Built graph: {len(graph.nodes)} nodes, {len(graph.edges)} edges", "progress")
        return graph

    def _node(self, nid: str, rel_path: str, symbol: SymbolInfo) -> GraphNode:
        node = GraphNode(
            id=nid,
            name=symbol.name,
            kind=symbol.kind,
            file_path=rel_path,
            is_async=is_async_symbol(symbol),
            hash=self.hasher.hash_symbol(symbol),
            line_range=(symbol.start_line, symbol.end_line),
        )
        found = match_entry_point(replace(symbol, file_path=rel_path), self.matchers)
        if found:
            _, entry = found
            node.entry_type = entry.entry_type
            node.metadata = dict(entry.metadata) or None
        return node

    @staticmethod
    def _runtime_index(nodes: Iterable[GraphNode]) -> Dict[Tuple[str, str], List[str]]:
        index: Dict[Tuple[str, str], List[str]] = defaultdict(list)
        for node in nodes:
            if not node.entry_type:
                continue
            if node.entry_type == "task":
                index[("name", node.name)].append(node.id)
            for key in RUNTIME_TARGET_KEYS:
                value = (node.metadata or {}).get(key)
                if value:
                    index[(key, value)].append(node.id)
        return index

    def add_verified_connections(self, graph: FlowGraph, verified: Sequence[VerifiedConnection]) -> int:
        """Merge verified runtime connections into ``graph``; returns edges added."""
        known = graph.node_ids()
        edges = _EdgeSet(graph.edges)
        added = 0
        for item in verified:
            if not isinstance(item, VerifiedConnection):
                raise TypeError(f"expected VerifiedConnection, got {type(item).__name__}")
            source = node_id(
                normalize_path(self._source_path(item.source_symbol.file_path), self.project_root),
                item.source_symbol.name,
            )
            target = node_id(
                normalize_path(self._source_path(item.target_file_path), self.project_root),
                item.target_symbol.name,
            )
            if source not in known or target not in known:
                continue
            if edges.add(
                source,
                target,
                normalize_connection_type(item.connection.type),
                is_async=True,
                label=item.connection.target_hint,
            ):
                added += 1
        graph.edges = edges.edges
        return added
