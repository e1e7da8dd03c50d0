from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Optional, Union


GRAPH_VERSION = "1.0"


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def normalize_path(path: Union[str, Path], repo: Optional[Path] = None) -> str:
    """Project-relative posix path when ``path`` lives under ``repo``, else the posix form."""
    full = Path(path)
    if repo is None:
        return full.as_posix()
    root = repo.resolve()
    if not full.is_absolute():
        full = root / full
    try:
        return full.resolve().relative_to(root).as_posix()
    except ValueError:
        return Path(os.path.normpath(str(full))).as_posix()


def node_id(path: str, name: str) -> str:
    return f"{path}:{name}"


def edge_id(source: str, target: str, edge_type: str) -> str:
    return f"{source}->{target}#{edge_type}"
