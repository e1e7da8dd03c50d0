from __future__ import annotations

import re
from typing import List, Optional

from extractor import SymbolInfo

from .types import EntryPointMatch, FrameworkMatcher, RuntimeConnection

_CREATE_FUNCTION = re.compile(r"\.createFunction\s*\(")
_FUNCTION_ID = re.compile(r"""\bid\s*:\s*["']([^"']+)["']""")
_EVENT = re.compile(r"""\bevent\s*:\s*["']([^"']+)["']""")
_CRON = re.compile(r"""\bcron\s*:\s*["']([^"']+)["']""")
_SEND = re.compile(
    r"""\.send(?:Event)?\s*\(\s*(?:["'][^"']*["']\s*,\s*)?\[?\s*\{[^{}]*?\bname\s*:\s*["']([^"']+)["']"""
)


class InngestMatcher(FrameworkMatcher):
    """``inngest.createFunction(...)`` handlers and ``inngest.send`` emitters."""

    name = "inngest"

    def match(self, symbol: SymbolInfo) -> Optional[EntryPointMatch]:
        found = _CREATE_FUNCTION.search(symbol.body)
        if not found:
            return None
        config = symbol.body[found.end() :]
        metadata = {}
        function_id = _FUNCTION_ID.search(config)
        if function_id:
            metadata["functionId"] = function_id.group(1)
        event = _EVENT.search(config)
        cron = _CRON.search(config)
        if event:
            metadata["eventTrigger"] = event.group(1)
        elif cron:
            metadata["eventTrigger"] = f"cron: {cron.group(1)}"
        return EntryPointMatch("event-function", metadata)

    def runtime_connections(self, symbol: SymbolInfo) -> List[RuntimeConnection]:
        return [
            RuntimeConnection("send-event", match.group(1), "eventTrigger", match.group(0))
            for match in _SEND.finditer(symbol.body)
        ]
