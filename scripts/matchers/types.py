from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from extractor import SymbolInfo

ENTRY_TYPES = (
    "api-route",
    "page",
    "event-function",
    "task",
    "middleware",
    "server-action",
)


@dataclass
class EntryPointMatch:
    entry_type: str
    metadata: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.entry_type not in ENTRY_TYPES:
            raise ValueError(f"unknown entry type {self.entry_type!r}")


@dataclass(frozen=True)
class RuntimeConnection:
    """A string-keyed dispatch visible in source, e.g. ``tasks.trigger("id")``.

    ``target_key`` names the node field the builder matches ``target`` against:
    a metadata key such as ``taskId`` / ``eventTrigger``, or ``name`` for the
    symbol name of a task entry point.
    """

    type: str
    target: str
    target_key: str
    expression: str = ""


class FrameworkMatcher:
    name = ""

    def match(self, symbol: SymbolInfo) -> Optional[EntryPointMatch]:
        raise NotImplementedError

    def runtime_connections(self, symbol: SymbolInfo) -> List[RuntimeConnection]:
        return []
