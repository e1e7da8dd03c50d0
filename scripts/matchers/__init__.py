from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from extractor import SymbolInfo

from .inngest import InngestMatcher
from .nextjs import NextjsMatcher
from .python_web import CeleryMatcher, PythonWebMatcher
from .trigger_dev import TriggerDevMatcher
from .types import ENTRY_TYPES, EntryPointMatch, FrameworkMatcher, RuntimeConnection

# Evaluated in order; the first matcher that claims a symbol wins.
# Support for a new framework is added by appending its matcher here.
MATCHERS: List[FrameworkMatcher] = [
    NextjsMatcher(),
    InngestMatcher(),
    TriggerDevMatcher(),
    PythonWebMatcher(),
    CeleryMatcher(),
]


def match_entry_point(
    symbol: SymbolInfo, matchers: Sequence[FrameworkMatcher] = MATCHERS
) -> Optional[Tuple[FrameworkMatcher, EntryPointMatch]]:
    for matcher in matchers:
        found = matcher.match(symbol)
        if found:
            return matcher, found
    return None


__all__ = [
    "ENTRY_TYPES",
    "MATCHERS",
    "CeleryMatcher",
    "EntryPointMatch",
    "FrameworkMatcher",
    "InngestMatcher",
    "NextjsMatcher",
    "PythonWebMatcher",
    "RuntimeConnection",
    "TriggerDevMatcher",
    "match_entry_point",
]
