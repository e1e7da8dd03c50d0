from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

SYMBOL_KINDS = ("function", "class", "const", "method")


@dataclass(frozen=True)
class SymbolInfo:
    name: str
    kind: str
    file_path: str
    params: str
    body: str
    full_text: str
    start_line: int
    end_line: int

    def __post_init__(self) -> None:
        if self.kind not in SYMBOL_KINDS:
            raise ValueError(f"unknown symbol kind {self.kind!r}")


@dataclass(frozen=True)
class CallSite:
    name: str
    expression: str


@dataclass
class ExtractionResult:
    symbols: List[SymbolInfo] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def symbol_key(symbol: SymbolInfo) -> str:
    return f"{symbol.file_path}:{symbol.name}"


def declaration_header(symbol: SymbolInfo) -> str:
    if symbol.body:
        idx = symbol.full_text.find(symbol.body)
        if idx > 0:
            return symbol.full_text[:idx]
    return symbol.full_text.split("\n", 1)[0]


def is_async_symbol(symbol: SymbolInfo) -> bool:
    return re.search(r"\basync\b", declaration_header(symbol)) is not None


def line_number_for_offset(content: str, offset: int) -> int:
    return content[:offset].count("\n") + 1


def local_callee_names(call_name: str, caller: SymbolInfo) -> List[str]:
    """Same-file symbol names a call site may refer to, most specific first.

    ``self.helper()`` / ``this.helper()`` inside ``Service.run`` resolves to
    ``Service.helper``; any other call resolves by its literal name.
    """
    names = [call_name]
    head, _, attr = call_name.partition(".")
    if head in ("self", "this", "cls") and attr and "." not in attr and caller.kind == "method":
        owner = caller.name.rsplit(".", 1)[0]
        names.insert(0, f"{owner}.{attr}")
    return names
