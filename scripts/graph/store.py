from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from .types import FlowGraph

GRAPH_FILE = "graph.json"


class GraphStore:
    """Single-file snapshot of the flow graph, overwritten on every write."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    @property
    def path(self) -> Path:
        return self.output_dir / GRAPH_FILE

    def write(self, graph: FlowGraph) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(graph.to_dict(), ensure_ascii=True, indent=2), encoding="utf-8")
        return self.path

    def read(self) -> Optional[FlowGraph]:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        if not isinstance(payload, dict):
            raise ValueError(f"{self.path}: graph snapshot is not a JSON object")
        return FlowGraph.from_dict(payload)
