from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from extractor import Extractor, SourceExtractor
from frontmatter import (
    DocDependency,
    FrontmatterError,
    parse_dependencies,
    parse_frontmatter,
    read_document,
)
from hasher import ContentHasher

STALE_REASONS = ("changed", "not-found", "file-not-found")


@dataclass(frozen=True)
class StaleDependency:
    path: str
    symbol: str
    reason: str
    old_hash: Optional[str] = None
    new_hash: Optional[str] = None

    def __post_init__(self) -> None:
        if self.reason not in STALE_REASONS:
            raise ValueError(f"unknown stale reason {self.reason!r}")

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"path": self.path, "symbol": self.symbol, "reason": self.reason}
        if self.old_hash is not None:
            payload["oldHash"] = self.old_hash
        if self.new_hash is not None:
            payload["newHash"] = self.new_hash
        return payload


@dataclass
class StaleDoc:
    doc_path: str
    stale_dependencies: List[StaleDependency] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "docPath": self.doc_path,
            "staleDependencies": [dep.to_dict() for dep in self.stale_dependencies],
        }


@dataclass
class StalenessReport:
    total_docs: int = 0
    stale_docs: List[StaleDoc] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalDocs": self.total_docs,
            "staleDocs": [doc.to_dict() for doc in self.stale_docs],
            "errors": list(self.errors),
        }


class StaleChecker:
    """Compare the hashes recorded in generated docs against the current source.

    Dependency paths are resolved against ``project_root`` (the working
    directory by default). A malformed document is reported in ``errors`` and
    skipped; it never aborts the scan.
    """

    def __init__(
        self,
        extractor: Optional[Extractor] = None,
        hasher: Optional[ContentHasher] = None,
        project_root: Optional[Path] = None,
    ) -> None:
        self.extractor = extractor or SourceExtractor()
        self.hasher = hasher or ContentHasher()
        self.project_root = Path(project_root) if project_root else Path.cwd()

    def check_docs(self, docs_dir: Union[str, Path]) -> StalenessReport:
        report = StalenessReport()
        root = Path(docs_dir)
        if not root.is_dir():
            report.errors.append(f"Docs directory not found: {root}")
            return report
        for doc_path in sorted(root.rglob("*.md")):
            report.total_docs += 1
            try:
                stale = self.check_doc(doc_path)
            except FrontmatterError as exc:
                report.errors.append(f"{doc_path}: {exc}")
                continue
            except FileNotFoundError:
                report.errors.append(f"{doc_path}: document disappeared during scan")
                continue
            if stale:
                report.stale_docs.append(stale)
        return report

    def check_doc(self, doc_path: Path) -> Optional[StaleDoc]:
        meta = parse_frontmatter(read_document(doc_path))
        stale = StaleDoc(doc_path=str(doc_path))
        for dependency in parse_dependencies(meta):
            problem = self.check_dependency(dependency)
            if problem:
                stale.stale_dependencies.append(problem)
        return stale if stale.stale_dependencies else None

    def check_dependency(self, dependency: DocDependency) -> Optional[StaleDependency]:
        source = Path(dependency.path)
        if not source.is_absolute():
            source = self.project_root / source
        if not source.is_file():
            return StaleDependency(dependency.path, dependency.symbol, "file-not-found")
        symbol = self.extractor.extract_symbol(source, dependency.symbol)
        if not symbol:
            return StaleDependency(dependency.path, dependency.symbol, "not-found")
        current = self.hasher.hash_symbol(symbol)
        if current != dependency.hash:
            return StaleDependency(
                dependency.path,
                dependency.symbol,
                "changed",
                old_hash=dependency.hash,
                new_hash=current,
            )
        return None


__all__ = ["STALE_REASONS", "StaleChecker", "StaleDependency", "StaleDoc", "StalenessReport"]
