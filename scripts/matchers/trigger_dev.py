from __future__ import annotations

import re
from typing import List, Optional

from extractor import SymbolInfo

from .types import EntryPointMatch, FrameworkMatcher, RuntimeConnection

_TASK_CALL = re.compile(r"(?<![\w$.])(schedules\.task|schemaTask|task)\s*(?:<[^>]*>)?\s*\(\s*\{")
_TASK_ID = re.compile(r"""\bid\s*:\s*["']([^"']+)["']""")
_CRON = re.compile(r"""\bcron\s*:\s*["']([^"']+)["']""")
_TRIGGER = re.compile(
    r"""\btasks\.(trigger|triggerAndWait|batchTrigger|batchTriggerAndWait)\s*(?:<[^>]*>)?\s*\(\s*["']([^"']+)["']"""
)


class TriggerDevMatcher(FrameworkMatcher):
    """Trigger.dev ``task({ id })`` definitions and ``tasks.trigger("id")`` calls."""

    name = "trigger-dev"

    def match(self, symbol: SymbolInfo) -> Optional[EntryPointMatch]:
        if symbol.kind != "const":
            return None
        found = _TASK_CALL.search(symbol.body)
        if not found:
            return None
        task_id = _TASK_ID.search(symbol.body, found.end())
        if not task_id:
            return None
        metadata = {"taskId": task_id.group(1)}
        if found.group(1) == "schedules.task":
            cron = _CRON.search(symbol.body, found.end())
            if cron:
                metadata["schedule"] = cron.group(1)
        return EntryPointMatch("task", metadata)

    def runtime_connections(self, symbol: SymbolInfo) -> List[RuntimeConnection]:
        return [
            RuntimeConnection("trigger-task", match.group(2), "taskId", match.group(0))
            for match in _TRIGGER.finditer(symbol.body)
        ]
