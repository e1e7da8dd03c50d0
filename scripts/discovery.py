from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List

from utils import progress


EXCLUDE_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".next",
    ".turbo",
    ".nuxt",
    ".output",
    ".vercel",
    ".venv",
    "venv",
    "__pycache__",
    ".mypy_cache",
    ".pytest_cache",
    ".tox",
    "node_modules",
    "dist",
    "build",
    "coverage",
    "out",
    "_docsync",
}

TS_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
PY_EXTENSIONS = (".py",)
SOURCE_EXTENSIONS = TS_EXTENSIONS + PY_EXTENSIONS

NOISE_FILE_NAMES = {
    "next-env.d.ts",
    ".pnp.cjs",
    ".pnp.js",
}


def language_for_path(path: str) -> str:
    if path.endswith(".tsx"):
        return "tsx"
    if path.endswith(".ts"):
        return "ts"
    if path.endswith(".jsx"):
        return "jsx"
    if path.endswith((".js", ".mjs", ".cjs")):
        return "js"
    if path.endswith(".py"):
        return "py"
    return "unknown"


def is_source_file(path: str) -> bool:
    name = Path(path).name.lower()
    if name in NOISE_FILE_NAMES:
        return False
    if name.endswith(".d.ts"):
        return False
    return name.endswith(SOURCE_EXTENSIONS)


def _walk_sources(root: Path) -> Iterable[Path]:
    for current, dirs, filenames in os.walk(root):
        dirs[:] = sorted(d for d in dirs if d not in EXCLUDE_DIRS)
        for filename in sorted(filenames):
            full = Path(current) / filename
            if full.is_symlink():
                continue
            if is_source_file(filename):
                yield full


def list_source_files(repo: Path) -> List[str]:
    """Project-relative posix paths of every source file under ``repo``."""
    progress("Discovering source files...")
    root = repo.resolve()
    files = sorted({path.relative_to(root).as_posix() for path in _walk_sources(root)})
    progress(f"Found {len(files)} source files", done=True)
    return files


def find_source_files(root_dir: Path) -> List[str]:
    """Absolute paths of every source file under ``root_dir``; missing roots give []."""
    root = Path(root_dir).resolve()
    if not root.is_dir():
        return []
    return [str(path) for path in _walk_sources(root)]
