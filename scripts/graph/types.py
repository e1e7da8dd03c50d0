from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from ir import GRAPH_VERSION, now_iso


@dataclass
class GraphNode:
    id: str
    name: str
    kind: str
    file_path: str
    is_async: bool
    hash: str
    line_range: Tuple[int, int]
    entry_type: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "filePath": self.file_path,
            "isAsync": self.is_async,
            "hash": self.hash,
            "lineRange": [self.line_range[0], self.line_range[1]],
        }
        if self.entry_type:
            payload["entryType"] = self.entry_type
        if self.metadata:
            payload["metadata"] = dict(self.metadata)
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "GraphNode":
        line_range = payload.get("lineRange") or [0, 0]
        metadata = payload.get("metadata")
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name", "")),
            kind=str(payload.get("kind", "")),
            file_path=str(payload.get("filePath", "")),
            is_async=bool(payload.get("isAsync", False)),
            hash=str(payload.get("hash", "")),
            line_range=(int(line_range[0]), int(line_range[1])),
            entry_type=payload.get("entryType"),
            metadata=dict(metadata) if isinstance(metadata, dict) else None,
        )


@dataclass
class GraphEdge:
    id: str
    source: str
    target: str
    type: str
    is_async: bool = False
    label: Optional[str] = None
    condition: Optional[str] = None
    order: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type,
            "isAsync": self.is_async,
        }
        if self.label is not None:
            payload["label"] = self.label
        if self.condition is not None:
            payload["condition"] = self.condition
        if self.order is not None:
            payload["order"] = self.order
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "GraphEdge":
        order = payload.get("order")
        return cls(
            id=str(payload["id"]),
            source=str(payload["source"]),
            target=str(payload["target"]),
            type=str(payload.get("type", "")),
            is_async=bool(payload.get("isAsync", False)),
            label=payload.get("label"),
            condition=payload.get("condition"),
            order=int(order) if order is not None else None,
        )


@dataclass
class FlowGraph:
    version: str = GRAPH_VERSION
    generated_at: str = field(default_factory=now_iso)
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    def node_ids(self) -> Set[str]:
        return {node.id for node in self.nodes}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "generatedAt": self.generated_at,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "FlowGraph":
        return cls(
            version=str(payload.get("version", GRAPH_VERSION)),
            generated_at=str(payload.get("generatedAt", "")),
            nodes=[GraphNode.from_dict(item) for item in payload.get("nodes") or []],
            edges=[GraphEdge.from_dict(item) for item in payload.get("edges") or []],
        )
