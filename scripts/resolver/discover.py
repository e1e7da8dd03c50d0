from __future__ import annotations

import json
import re
from typing import Any, List

from ai_client import AIClient
from discovery import language_for_path
from extractor import SymbolInfo

from .types import DiscoveredConnection

DISCOVERY_MAX_TOKENS = 1024

_FENCE_OPEN = re.compile(r"^```[\w-]*\s*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")

_FENCE_LANGUAGES = {
    "ts": "typescript",
    "tsx": "tsx",
    "js": "javascript",
    "jsx": "jsx",
    "py": "python",
}


def build_discovery_prompt(symbol: SymbolInfo) -> str:
    fence = _FENCE_LANGUAGES.get(language_for_path(symbol.file_path), "")
    return f"""Analyze this code and identify runtime dispatch calls: connections to other code that are made via string identifiers rather than direct function imports.

Examples of what to look for:
- Task/job queue dispatches: tasks.trigger("task-id"), queue.add("job-name"), send_task("name")
- Event emissions: emit("event-name"), eventBus.publish("topic"), inngest.send({{ name: "event" }})
- Internal API calls: fetch("/api/..."), axios.post("/api/...")
- Dynamic routing: router.push("/path"), navigate("/path")

Do NOT include:
- Direct function/method calls (handled by static analysis)
- Calls to external third-party APIs (Stripe, Supabase, AWS, etc.)

Source code of `{symbol.name}` ({symbol.kind}) from `{symbol.file_path}`:

```{fence}
{symbol.full_text}
```

Respond with ONLY a JSON array. Each item needs "type", "targetHint", and "reason".
Return [] if no runtime dispatches found."""


def _is_connection(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    return all(
        isinstance(item.get(key), str) and item.get(key).strip()
        for key in ("type", "targetHint", "reason")
    )


def parse_discovery_response(response: str) -> List[DiscoveredConnection]:
    """Structured connections from a model response; [] for anything malformed."""
    cleaned = (response or "").strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", cleaned, count=1), count=1).strip()
    try:
        parsed = json.loads(cleaned)
    except (ValueError, RecursionError):
        return []
    if not isinstance(parsed, list):
        return []
    return [
        DiscoveredConnection(type=item["type"], target_hint=item["targetHint"], reason=item["reason"])
        for item in parsed
        if _is_connection(item)
    ]


async def discover_connections(ai_client: AIClient, symbol: SymbolInfo) -> List[DiscoveredConnection]:
    response = await ai_client.send_prompt(build_discovery_prompt(symbol), DISCOVERY_MAX_TOKENS)
    return parse_discovery_response(response)
