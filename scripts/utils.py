from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Set

ProgressCallback = Callable[[str, str], None]

PROGRESS_KINDS = ("progress", "info", "detail")


@dataclass
class ToolState:
    missing: Set[str] = field(default_factory=set)
    used: Set[str] = field(default_factory=set)


def progress(message: str, done: bool = False) -> None:
    """Print a progress message to stderr (doesn't interfere with stdout output)."""
    if done:
        print(f"  [done] {message}", file=sys.stderr)
    else:
        print(f"  [....] {message}", file=sys.stderr)


def progress_reporter(verbose: bool = False) -> ProgressCallback:
    """Build an ``on_progress(message, kind)`` callback that writes to stderr.

    ``progress`` and ``info`` messages always print; ``detail`` messages only
    when ``verbose`` is set.
    """

    def report(message: str, kind: str = "progress") -> None:
        if kind not in PROGRESS_KINDS:
            raise ValueError(f"unknown progress kind {kind!r}")
        if kind == "detail":
            if verbose:
                print(f"         {message}", file=sys.stderr)
            return
        if kind == "info":
            print(f"  [info] {message}", file=sys.stderr)
            return
        progress(message)

    return report


def silent_progress(message: str, kind: str = "progress") -> None:
    return None


def run_cmd(
    cmd: Sequence[str],
    *,
    cwd: Optional[Path],
    warnings: List[str],
    tools: ToolState,
    capture: bool = True,
) -> Optional[subprocess.CompletedProcess]:
    tool = cmd[0]
    if tool in tools.missing:
        return None
    tools.used.add(tool)
    try:
        return subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            check=False,
            text=True,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.PIPE if capture else None,
        )
    except FileNotFoundError:
        tools.missing.add(tool)
        warnings.append(f"Missing tool: {tool}")
        return None


def git_head(repo: Path, *, warnings: List[str], tools: ToolState) -> Optional[str]:
    """Current commit of ``repo``, or None outside a git checkout."""
    result = run_cmd(["git", "rev-parse", "HEAD"], cwd=repo, warnings=warnings, tools=tools)
    if not result or result.returncode != 0 or not result.stdout:
        return None
    return result.stdout.strip() or None
