from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple, Union

from discovery import language_for_path

from .python import extract_py_symbols, py_call_sites
from .types import (
    SYMBOL_KINDS,
    CallSite,
    ExtractionResult,
    SymbolInfo,
    declaration_header,
    is_async_symbol,
    local_callee_names,
    symbol_key,
)
from .typescript import extract_ts_symbols, ts_call_sites

PathLike = Union[str, Path]

__all__ = [
    "SYMBOL_KINDS",
    "CallSite",
    "ExtractionResult",
    "Extractor",
    "SourceExtractor",
    "SymbolInfo",
    "declaration_header",
    "is_async_symbol",
    "local_callee_names",
    "symbol_key",
]


class Extractor(Protocol):
    def extract_symbols(self, file_path: PathLike) -> ExtractionResult:
        ...

    def extract_symbol(self, file_path: PathLike, name: str) -> Optional[SymbolInfo]:
        ...

    def extract_call_sites(self, file_path: PathLike, name: str) -> List[CallSite]:
        ...


class SourceExtractor:
    """Symbol extraction for TypeScript/JavaScript and Python sources.

    Parses are cached per file and reused until the file's mtime or size
    changes, so repeated lookups during graph builds and planning stay cheap.
    """

    def __init__(self) -> None:
        self._cache: Dict[str, Tuple[Tuple[int, int], ExtractionResult]] = {}

    def extract_symbols(self, file_path: PathLike) -> ExtractionResult:
        path = str(file_path)
        try:
            stat = os.stat(path)
        except FileNotFoundError:
            return ExtractionResult(errors=[f"File not found: {path}"])
        stamp = (stat.st_mtime_ns, stat.st_size)
        cached = self._cache.get(path)
        if cached and cached[0] == stamp:
            result = cached[1]
        else:
            result = self._parse(path)
            self._cache[path] = (stamp, result)
        return ExtractionResult(symbols=list(result.symbols), errors=list(result.errors))

    def _parse(self, path: str) -> ExtractionResult:
        language = language_for_path(path)
        if language == "unknown":
            return ExtractionResult(errors=[f"Unsupported file type: {path}"])
        content = Path(path).read_text(encoding="utf-8", errors="replace")
        if language == "py":
            return extract_py_symbols(content, path)
        return extract_ts_symbols(content, path)

    def extract_symbol(self, file_path: PathLike, name: str) -> Optional[SymbolInfo]:
        for symbol in self.extract_symbols(file_path).symbols:
            if symbol.name == name:
                return symbol
        return None

    def extract_call_sites(self, file_path: PathLike, name: str) -> List[CallSite]:
        symbol = self.extract_symbol(file_path, name)
        if not symbol:
            return []
        if language_for_path(symbol.file_path) == "py":
            return py_call_sites(symbol)
        return ts_call_sites(symbol)
