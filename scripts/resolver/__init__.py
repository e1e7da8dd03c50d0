from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Set, Union

from ai_client import AIClient
from extractor import Extractor, SourceExtractor, SymbolInfo, symbol_key
from utils import ProgressCallback, silent_progress

from .discover import build_discovery_prompt, discover_connections, parse_discovery_response
from .types import (
    DiscoveredConnection,
    Rejected,
    Verified,
    VerifiedConnection,
    VerifyResult,
    normalize_connection_type,
)
from .verify import (
    VERIFIERS,
    ConnectionVerifier,
    TaskDispatchVerifier,
    find_project_files,
    find_task_definition,
    resolve_task_symbol,
    verify_connection,
)


class ConnectionResolver:
    """Discover runtime connections with the model, then verify each against the tree."""

    def __init__(self, ai_client: AIClient, extractor: Optional[Extractor] = None) -> None:
        self.ai_client = ai_client
        self.extractor = extractor or SourceExtractor()

    async def resolve_connections(
        self,
        symbols: Sequence[SymbolInfo],
        project_root: Union[str, Path],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[VerifiedConnection]:
        report = on_progress or silent_progress

        report("Scanning project for task definitions...", "progress")
        files = find_project_files(project_root)
        report(f"Scanned {len(files)} source files", "info")

        accepted: List[VerifiedConnection] = []
        seen: Set[str] = set()
        for symbol in symbols:
            report(f"Discovering runtime connections in {symbol.name}...", "progress")
            connections = await discover_connections(self.ai_client, symbol)
            if not connections:
                report(f"No runtime connections found in {symbol.name}", "info")
                continue

            report(f"AI found {len(connections)} potential connection(s) in {symbol.name}", "info")
            for connection in connections:
                report(f'"{connection.target_hint}" ({connection.type}): {connection.reason}', "detail")

            discarded: List[str] = []
            for connection in connections:
                result = verify_connection(connection, files, self.extractor)
                if isinstance(result, Rejected):
                    discarded.append(f'  "{connection.target_hint}" ({connection.type}): {result.reason}')
                    continue
                key = symbol_key(result.target_symbol)
                if key in seen:
                    continue
                seen.add(key)
                accepted.append(result.for_source(symbol))

            if discarded:
                report(f"Discarded {len(discarded)} unverified connection(s) from {symbol.name}", "info")
                for line in discarded:
                    report(line, "detail")

        if accepted:
            names = ", ".join(item.target_symbol.name for item in accepted)
            report(f"Verified {len(accepted)} runtime connection(s): {names}", "info")
        return accepted


__all__ = [
    "VERIFIERS",
    "ConnectionResolver",
    "ConnectionVerifier",
    "DiscoveredConnection",
    "Rejected",
    "TaskDispatchVerifier",
    "Verified",
    "VerifiedConnection",
    "VerifyResult",
    "build_discovery_prompt",
    "discover_connections",
    "find_project_files",
    "find_task_definition",
    "normalize_connection_type",
    "parse_discovery_response",
    "resolve_task_symbol",
    "verify_connection",
]
