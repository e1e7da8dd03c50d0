from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set

from extractor import Extractor, SourceExtractor, SymbolInfo, local_callee_names, symbol_key
from frontmatter import FrontmatterError, parse_dependencies, parse_frontmatter, read_document
from hasher import ContentHasher
from ir import normalize_path


def kebab_case(name: str) -> str:
    """``processImage`` -> ``process-image``; ``Service.run`` -> ``service.run``."""
    return re.sub(r"([A-Z])", r"-\1", name).lower().lstrip("-").replace(".-", ".")


@dataclass
class PlannedDoc:
    symbol: SymbolInfo
    doc_path: Path
    related: List[SymbolInfo] = field(default_factory=list)


@dataclass
class GenerationPlan:
    """Roots are always generated; callees unless already fresh (``skipped``)."""

    roots: List[PlannedDoc] = field(default_factory=list)
    callees: List[PlannedDoc] = field(default_factory=list)
    skipped: List[PlannedDoc] = field(default_factory=list)

    @property
    def to_generate(self) -> List[PlannedDoc]:
        return self.roots + self.callees


class CallTreePlanner:
    def __init__(
        self,
        output_dir: Path,
        extractor: Optional[Extractor] = None,
        hasher: Optional[ContentHasher] = None,
        project_root: Optional[Path] = None,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.extractor = extractor or SourceExtractor()
        self.hasher = hasher or ContentHasher()
        self.project_root = Path(project_root) if project_root else Path.cwd()

    def resolve_call_tree(
        self, symbol: SymbolInfo, depth: int, visited: Optional[Set[str]] = None
    ) -> List[SymbolInfo]:
        """Same-file callees of ``symbol`` up to ``depth`` hops, depth-first.

        ``visited`` is shared across the whole expansion and owned by the
        caller, so cycles terminate and every symbol is returned at most once.
        """
        if depth <= 0:
            return []
        if visited is None:
            visited = set()
        visited.add(symbol_key(symbol))
        local: Dict[str, SymbolInfo] = {
            candidate.name: candidate for candidate in self.extractor.extract_symbols(symbol.file_path).symbols
        }
        found: List[SymbolInfo] = []
        for call in self.extractor.extract_call_sites(symbol.file_path, symbol.name):
            match = next((local[name] for name in local_callee_names(call.name, symbol) if name in local), None)
            if match is None or match.name == symbol.name:
                continue
            key = symbol_key(match)
            if key in visited:
                continue
            visited.add(key)
            found.append(match)
            found.extend(self.resolve_call_tree(match, depth - 1, visited))
        return found

    def doc_path_for(self, symbol: SymbolInfo) -> Path:
        """``<output>/<source dir>/<source stem>/<kebab-name>.md``"""
        relative = Path(normalize_path(symbol.file_path, self.project_root))
        if relative.is_absolute():
            relative = relative.relative_to(relative.anchor)
        return self.output_dir / relative.parent / relative.stem / f"{kebab_case(symbol.name)}.md"

    def is_doc_up_to_date(self, symbol: SymbolInfo) -> bool:
        doc_path = self.doc_path_for(symbol)
        try:
            meta = parse_frontmatter(read_document(doc_path))
            dependencies = parse_dependencies(meta)
        except (FileNotFoundError, FrontmatterError):
            return False
        current = self.hasher.hash_symbol(symbol)
        return any(dep.symbol == symbol.name and dep.hash == current for dep in dependencies)

    def plan_for_symbols(
        self, roots: Sequence[SymbolInfo], depth: int = 0, force: bool = False
    ) -> GenerationPlan:
        plan = GenerationPlan()
        root_keys = {symbol_key(root) for root in roots}
        visited = set(root_keys)
        callees: List[SymbolInfo] = []
        for root in roots:
            callees.extend(self.resolve_call_tree(root, depth, visited))
        for root in roots:
            related = [callee for callee in self.resolve_call_tree(root, depth) if symbol_key(callee) not in root_keys]
            plan.roots.append(PlannedDoc(root, self.doc_path_for(root), related))
        seen: Set[str] = set()
        for callee in callees:
            key = symbol_key(callee)
            if key in root_keys or key in seen:
                continue
            seen.add(key)
            planned = PlannedDoc(callee, self.doc_path_for(callee))
            if not force and self.is_doc_up_to_date(callee):
                plan.skipped.append(planned)
            else:
                plan.callees.append(planned)
        return plan

    def root_symbols(self, file_path: Path, symbol_name: Optional[str] = None) -> List[SymbolInfo]:
        """One named symbol of ``file_path``, or every symbol when no name is given."""
        if symbol_name:
            symbol = self.extractor.extract_symbol(file_path, symbol_name)
            if not symbol:
                raise LookupError(f'Symbol "{symbol_name}" not found in {file_path}')
            roots = [symbol]
        else:
            result = self.extractor.extract_symbols(file_path)
            if not result.symbols:
                detail = f": {'; '.join(result.errors)}" if result.errors else ""
                raise LookupError(f"No symbols found in {file_path}{detail}")
            roots = result.symbols
        return roots

    def plan(
        self, file_path: Path, symbol_name: Optional[str] = None, depth: int = 0, force: bool = False
    ) -> GenerationPlan:
        return self.plan_for_symbols(self.root_symbols(file_path, symbol_name), depth=depth, force=force)
