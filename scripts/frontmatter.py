from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import yaml

DELIMITER = "---"


class FrontmatterError(ValueError):
    pass


@dataclass(frozen=True)
class DocDependency:
    path: str
    symbol: str
    hash: str
    as_of: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        payload = {"path": self.path, "symbol": self.symbol, "hash": self.hash}
        if self.as_of:
            payload["asOf"] = self.as_of
        return payload


def render_frontmatter(title: str, generated: str, dependencies: Sequence[DocDependency]) -> str:
    meta = {
        "title": title,
        "generated": generated,
        "dependencies": [dep.to_dict() for dep in dependencies],
    }
    body = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"{DELIMITER}\n{body}{DELIMITER}\n"


def split_frontmatter(text: str) -> Tuple[str, str]:
    """(header YAML, remaining markdown). Raises FrontmatterError without a header."""
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != DELIMITER:
        raise FrontmatterError("missing frontmatter")
    for idx in range(1, len(lines)):
        if lines[idx].strip() == DELIMITER:
            return "".join(lines[1:idx]), "".join(lines[idx + 1 :])
    raise FrontmatterError("unterminated frontmatter")


def read_document(path: Union[str, Path]) -> str:
    """Text of a generated doc; undecodable bytes are a FrontmatterError."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise FrontmatterError(f"not valid UTF-8: {exc.reason} at byte {exc.start}") from exc


def parse_frontmatter(text: str) -> Dict[str, Any]:
    header, _ = split_frontmatter(text)
    try:
        meta = yaml.safe_load(header)
    except yaml.YAMLError as exc:
        raise FrontmatterError(f"invalid frontmatter YAML: {exc}") from exc
    if not isinstance(meta, dict):
        raise FrontmatterError("frontmatter is not a mapping")
    return meta


def parse_dependencies(meta: Dict[str, Any]) -> List[DocDependency]:
    raw = meta.get("dependencies")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise FrontmatterError("dependencies must be a list")
    dependencies: List[DocDependency] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise FrontmatterError(f"dependency #{idx + 1} is not a mapping")
        missing = [key for key in ("path", "symbol", "hash") if item.get(key) in (None, "")]
        if missing:
            raise FrontmatterError(f"dependency #{idx + 1} is missing {', '.join(missing)}")
        as_of = item.get("asOf")
        dependencies.append(
            DocDependency(
                path=str(item["path"]),
                symbol=str(item["symbol"]),
                hash=str(item["hash"]),
                as_of=str(as_of) if as_of is not None else None,
            )
        )
    return dependencies
