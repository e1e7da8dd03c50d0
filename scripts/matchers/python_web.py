from __future__ import annotations

import re
from typing import List, Optional

from extractor import SymbolInfo, declaration_header

from .types import EntryPointMatch, FrameworkMatcher, RuntimeConnection

_ROUTE_DECORATOR = re.compile(
    r"""^\s*@[\w.]*?\.(get|post|put|delete|patch|options|head|route|api_route|websocket)\s*\(\s*["']([^"']*)["']""",
    re.MULTILINE,
)
_METHODS_ARG = re.compile(r"""methods\s*=\s*[\[(]\s*["'](\w+)["']""")
_TASK_DECORATOR = re.compile(r"^\s*@(?:[\w.]+\.)?(shared_task|task)\b(\([^\n]*\))?", re.MULTILINE)
_TASK_NAME = re.compile(r"""\bname\s*=\s*["']([^"']+)["']""")
_SEND_TASK = re.compile(r"""\bsend_task\s*\(\s*["']([^"']+)["']""")
_DELAY = re.compile(r"(?<![\w.])(\w+)\.(delay|apply_async|s|si)\s*\(")


def _is_python(symbol: SymbolInfo) -> bool:
    return symbol.file_path.endswith(".py") and symbol.kind in ("function", "method")


class PythonWebMatcher(FrameworkMatcher):
    """FastAPI / Flask style ``@app.get("/path")`` route handlers."""

    name = "python-web"

    def match(self, symbol: SymbolInfo) -> Optional[EntryPointMatch]:
        if not _is_python(symbol):
            return None
        found = _ROUTE_DECORATOR.search(declaration_header(symbol))
        if not found:
            return None
        verb, route = found.group(1), found.group(2)
        if verb in ("route", "api_route"):
            methods = _METHODS_ARG.search(found.string, found.end())
            method = methods.group(1).upper() if methods else "GET"
        elif verb == "websocket":
            method = "WEBSOCKET"
        else:
            method = verb.upper()
        return EntryPointMatch("api-route", {"httpMethod": method, "route": route})


class CeleryMatcher(FrameworkMatcher):
    """Celery ``@shared_task`` / ``@app.task`` workers and their dispatch calls."""

    name = "celery"

    def match(self, symbol: SymbolInfo) -> Optional[EntryPointMatch]:
        if not _is_python(symbol):
            return None
        found = _TASK_DECORATOR.search(declaration_header(symbol))
        if not found:
            return None
        task_name = _TASK_NAME.search(found.group(2) or "")
        return EntryPointMatch("task", {"taskId": task_name.group(1) if task_name else symbol.name})

    def runtime_connections(self, symbol: SymbolInfo) -> List[RuntimeConnection]:
        if not symbol.file_path.endswith(".py"):
            return []
        connections = [
            RuntimeConnection("task-dispatch", match.group(1), "taskId", match.group(0))
            for match in _SEND_TASK.finditer(symbol.body)
        ]
        connections.extend(
            RuntimeConnection("task-dispatch", match.group(1), "name", match.group(0))
            for match in _DELAY.finditer(symbol.body)
        )
        return connections
