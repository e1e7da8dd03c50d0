from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ai_client import AIClient
from discovery import language_for_path
from extractor import SymbolInfo, symbol_key
from frontmatter import DocDependency, render_frontmatter
from hasher import ContentHasher
from ir import normalize_path, now_iso
from planner import CallTreePlanner, GenerationPlan, PlannedDoc
from resolver import VerifiedConnection
from utils import ProgressCallback, ToolState, git_head, silent_progress

DOC_STYLES = ("technical", "beginner-friendly", "comprehensive")
DOC_MAX_TOKENS = 4096

STYLE_GUIDANCE = {
    "technical": "Write for experienced developers. Be precise and concise; focus on behavior, inputs, outputs and side effects.",
    "beginner-friendly": "Write for developers new to this codebase. Explain concepts plainly and walk through the flow step by step.",
    "comprehensive": "Cover purpose, parameters, return values, side effects, error cases, and how it fits with the related code.",
}

_TITLE = re.compile(r"^#\s+(.+)$", re.MULTILINE)


@dataclass
class GenerationResult:
    symbol: str
    file_path: str
    skipped: bool = False


def extract_title(content: str) -> Optional[str]:
    match = _TITLE.search(content)
    return match.group(1).strip() if match else None


class DocGenerator:
    """Executes a GenerationPlan: prompts the model and writes markdown with frontmatter."""

    def __init__(
        self,
        ai_client: AIClient,
        planner: CallTreePlanner,
        style: str = "technical",
        hasher: Optional[ContentHasher] = None,
    ) -> None:
        if style not in DOC_STYLES:
            raise ValueError(f"unknown doc style {style!r}; expected one of {', '.join(DOC_STYLES)}")
        self.ai_client = ai_client
        self.planner = planner
        self.style = style
        self.hasher = hasher or ContentHasher()
        self.warnings: List[str] = []
        self.tools = ToolState()

    def build_prompt(
        self,
        symbol: SymbolInfo,
        related: Sequence[SymbolInfo] = (),
        discovered: Sequence[VerifiedConnection] = (),
    ) -> str:
        fence = {"py": "python", "ts": "typescript", "tsx": "tsx", "js": "javascript", "jsx": "jsx"}.get(
            language_for_path(symbol.file_path), ""
        )
        lines = [
            f"Write markdown documentation for `{symbol.name}` ({symbol.kind}) "
            f"from `{self._relative(symbol)}`.",
            STYLE_GUIDANCE[self.style],
            "Start with a level-1 heading naming the symbol.",
            "",
            f"```{fence}",
            symbol.full_text,
            "```",
        ]
        if related:
            lines.extend(["", "It calls these symbols from the same file:"])
            for callee in related:
                lines.extend(["", f"`{callee.name}` ({callee.kind}):", f"```{fence}", callee.full_text, "```"])
        if discovered:
            lines.extend(["", "At runtime it dispatches to:"])
            for item in discovered:
                lines.append(
                    f"- `{item.target_symbol.name}` in `{item.target_file_path}` "
                    f"via {item.connection.type}: {item.connection.reason}"
                )
        return "\n".join(lines)

    def _relative(self, symbol: SymbolInfo) -> str:
        return normalize_path(symbol.file_path, self.planner.project_root)

    def dependency_for(self, symbol: SymbolInfo, as_of: Optional[str]) -> DocDependency:
        return DocDependency(
            path=self._relative(symbol),
            symbol=symbol.name,
            hash=self.hasher.hash_symbol(symbol),
            as_of=as_of,
        )

    def write_doc(self, doc_path: Path, title: str, content: str, dependencies: Sequence[DocDependency]) -> None:
        doc_path.parent.mkdir(parents=True, exist_ok=True)
        header = render_frontmatter(title, now_iso(), dependencies)
        doc_path.write_text(f"{header}\n{content.strip()}\n", encoding="utf-8")

    async def generate(
        self,
        planned: PlannedDoc,
        *,
        as_of: Optional[str] = None,
        discovered: Sequence[VerifiedConnection] = (),
    ) -> GenerationResult:
        symbol = planned.symbol
        related = list(planned.related)
        known = {symbol_key(item) for item in related}
        for item in discovered:
            if symbol_key(item.target_symbol) not in known:
                known.add(symbol_key(item.target_symbol))
                related.append(item.target_symbol)
        prompt = self.build_prompt(symbol, planned.related, discovered)
        content = await self.ai_client.send_prompt(prompt, DOC_MAX_TOKENS)
        dependencies = [self.dependency_for(symbol, as_of)]
        dependencies.extend(self.dependency_for(item, as_of) for item in related)
        self.write_doc(planned.doc_path, extract_title(content) or symbol.name, content, dependencies)
        return GenerationResult(symbol=symbol.name, file_path=str(planned.doc_path))

    async def execute(
        self,
        plan: GenerationPlan,
        discovered: Sequence[VerifiedConnection] = (),
        on_progress: ProgressCallback = silent_progress,
    ) -> List[GenerationResult]:
        as_of = git_head(self.planner.project_root, warnings=self.warnings, tools=self.tools)
        by_source: Dict[str, List[VerifiedConnection]] = {}
        for item in discovered:
            by_source.setdefault(symbol_key(item.source_symbol), []).append(item)

        results: List[GenerationResult] = []
        for planned in plan.roots:
            on_progress(f"Generating {planned.symbol.name}...", "progress")
            results.append(
                await self.generate(
                    planned, as_of=as_of, discovered=by_source.get(symbol_key(planned.symbol), [])
                )
            )
        for planned in plan.callees:
            on_progress(f"Generating callee {planned.symbol.name}...", "progress")
            results.append(await self.generate(planned, as_of=as_of))
        for planned in plan.skipped:
            on_progress(f"{planned.symbol.name} is up to date", "detail")
            results.append(GenerationResult(planned.symbol.name, str(planned.doc_path), skipped=True))
        return results
