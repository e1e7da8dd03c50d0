from __future__ import annotations

import re
from pathlib import Path
from typing import FrozenSet, List, Optional, Sequence, Union

from discovery import find_source_files
from extractor import Extractor, SymbolInfo

from .types import DiscoveredConnection, Rejected, Verified, VerifyResult, normalize_connection_type

PathLike = Union[str, Path]


def find_project_files(root_dir: PathLike) -> List[str]:
    """Source files eligible for verification (build, dependency and VCS dirs skipped)."""
    return find_source_files(Path(root_dir))


def task_id_pattern(task_id: str) -> "re.Pattern[str]":
    # the quote right after the id keeps "analyze-image" from matching "analyze-image-full"
    return re.compile(rf"""(?:\bid\s*:|\bname\s*=)\s*["']{re.escape(task_id)}["']""")


def find_task_definition(task_id: str, files: Sequence[PathLike]) -> Optional[str]:
    pattern = task_id_pattern(task_id)
    for file_path in files:
        try:
            content = Path(file_path).read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            continue
        if pattern.search(content):
            return str(file_path)
    return None


def resolve_task_symbol(file_path: PathLike, task_id: str, extractor: Extractor) -> Optional[SymbolInfo]:
    pattern = task_id_pattern(task_id)
    for symbol in extractor.extract_symbols(file_path).symbols:
        if pattern.search(symbol.full_text):
            return symbol
    return None


class ConnectionVerifier:
    connection_types: FrozenSet[str] = frozenset()

    def handles(self, normalized_type: str) -> bool:
        return normalized_type in self.connection_types

    def verify(
        self, connection: DiscoveredConnection, files: Sequence[PathLike], extractor: Extractor
    ) -> VerifyResult:
        raise NotImplementedError


class TaskDispatchVerifier(ConnectionVerifier):
    """Task ids dispatched by string must be declared by some task definition."""

    connection_types = frozenset(
        {
            "trigger-task",
            "task-dispatch",
            "task-trigger",
            "trigger-dev-task",
            "queue-dispatch",
        }
    )

    def verify(
        self, connection: DiscoveredConnection, files: Sequence[PathLike], extractor: Extractor
    ) -> VerifyResult:
        hint = connection.target_hint
        target_file = find_task_definition(hint, files)
        if not target_file:
            return Rejected(connection, f'no file defines id "{hint}"')
        target_symbol = resolve_task_symbol(target_file, hint, extractor)
        if not target_symbol:
            return Rejected(connection, f'found id "{hint}" in {target_file} but could not extract symbol')
        return Verified(connection, target_symbol, target_file)


# Closed set: a new dispatch flavor needs its own verifier added here.
VERIFIERS: Sequence[ConnectionVerifier] = (TaskDispatchVerifier(),)


def verify_connection(
    connection: DiscoveredConnection, files: Sequence[PathLike], extractor: Extractor
) -> VerifyResult:
    normalized = normalize_connection_type(connection.type)
    for verifier in VERIFIERS:
        if verifier.handles(normalized):
            return verifier.verify(connection, files, extractor)
    return Rejected(connection, f'unknown connection type "{connection.type}"')
