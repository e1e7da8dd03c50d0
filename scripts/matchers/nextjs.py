from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import List, Optional

from discovery import TS_EXTENSIONS
from extractor import SymbolInfo

from .types import EntryPointMatch, FrameworkMatcher

HTTP_METHODS = {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"}

_USE_SERVER = re.compile(r"""^\s*["']use server["']""")
_EXPORT = re.compile(r"^export\b")
_EXPORT_DEFAULT = re.compile(r"^export\s+default\b")


def normalize_dynamic_segment(segment: str) -> str:
    if segment.startswith("[[...") and segment.endswith("]]"):
        return "*" + segment[5:-2]
    if segment.startswith("[...") and segment.endswith("]"):
        return "*" + segment[4:-1]
    if segment.startswith("[") and segment.endswith("]"):
        return ":" + segment[1:-1]
    return segment


def _route_from_parts(parts: List[str]) -> str:
    kept = []
    for part in parts:
        if not part or part == "index":
            continue
        # route groups and parallel slots do not appear in the URL
        if (part.startswith("(") and part.endswith(")")) or part.startswith("@"):
            continue
        kept.append(normalize_dynamic_segment(part))
    return "/" + "/".join(kept) if kept else "/"


def _base_after(path: str, roots: tuple) -> Optional[str]:
    for root in roots:
        if path.startswith(root):
            return path[len(root) :]
        idx = path.find(f"/{root}")
        if idx != -1:
            return path[idx + len(root) + 1 :]
    return None


def app_router_base(path: str) -> Optional[str]:
    return _base_after(path, ("src/app/", "app/"))


def pages_router_base(path: str) -> Optional[str]:
    return _base_after(path, ("src/pages/", "pages/"))


def nextjs_route_path(path: str) -> Optional[str]:
    """URL path served by an App Router or Pages Router file, or None."""
    base = app_router_base(path)
    if base is not None:
        parts = base.rsplit(".", 1)[0].split("/")
        if parts and parts[-1] in ("page", "route"):
            parts = parts[:-1]
        return _route_from_parts(parts)
    base = pages_router_base(path)
    if base is not None:
        return _route_from_parts(base.rsplit(".", 1)[0].split("/"))
    return None


class NextjsMatcher(FrameworkMatcher):
    name = "nextjs"

    def match(self, symbol: SymbolInfo) -> Optional[EntryPointMatch]:
        path = PurePosixPath(symbol.file_path.replace("\\", "/"))
        if path.suffix not in TS_EXTENSIONS:
            return None
        posix = path.as_posix()
        stem = path.stem
        exported = bool(_EXPORT.match(symbol.full_text))
        if symbol.kind == "function" and _USE_SERVER.match(symbol.body.lstrip("{")):
            return EntryPointMatch("server-action")
        if stem == "middleware" and exported and symbol.name in ("middleware", "default"):
            if app_router_base(posix) is None and pages_router_base(posix) is None:
                return EntryPointMatch("middleware")
        route = nextjs_route_path(posix)
        if route is None:
            return None
        if app_router_base(posix) is not None:
            if stem == "route" and exported and symbol.name in HTTP_METHODS:
                return EntryPointMatch("api-route", {"httpMethod": symbol.name, "route": route})
            if stem == "page" and _EXPORT_DEFAULT.match(symbol.full_text):
                return EntryPointMatch("page", {"route": route})
            return None
        if stem.startswith("_") or not _EXPORT_DEFAULT.match(symbol.full_text):
            return None
        if route == "/api" or route.startswith("/api/"):
            return EntryPointMatch("api-route", {"route": route})
        return EntryPointMatch("page", {"route": route})
