#!/usr/bin/env python3
"""docsync CLI: build the flow graph, check doc staleness, generate docs."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import httpx

from ai_client import AnthropicClient
from checker import StaleChecker, StalenessReport
from discovery import list_source_files
from extractor import SourceExtractor, SymbolInfo
from generator import DOC_STYLES, DocGenerator
from graph import FlowGraph, GraphBuilder, GraphStore, edge_type_counts, entry_points
from planner import CallTreePlanner
from resolver import ConnectionResolver, VerifiedConnection
from utils import ProgressCallback, progress, progress_reporter

from .config import DocsyncConfig, load_config, resolve_output_dir

REASON_LABELS = {
    "changed": "changed",
    "not-found": "missing",
    "file-not-found": "file deleted",
}


def parse_target(target: str) -> Tuple[str, Optional[str]]:
    """``path/to/file.ts:symbol`` -> (path, symbol); the symbol part is optional."""
    path, sep, symbol = target.rpartition(":")
    if not sep or not path or not symbol or "/" in symbol or "\\" in symbol:
        return target, None
    return path, symbol


def resolve_source(repo: Path, file_arg: str) -> Path:
    path = Path(file_arg)
    if path.is_absolute():
        return path
    in_repo = repo / path
    if in_repo.exists():
        return in_repo.resolve()
    return path.resolve()


def print_warnings(warnings: Sequence[str]) -> None:
    for warning in warnings:
        print(f"warning: {warning}", file=sys.stderr)


def build_graph(repo: Path, extractor: SourceExtractor, report: ProgressCallback) -> Tuple[FlowGraph, GraphBuilder]:
    builder = GraphBuilder(extractor=extractor, project_root=repo, on_progress=report)
    graph = builder.build(list_source_files(repo))
    print_warnings(builder.warnings)
    return graph, builder


def run_graph(args: argparse.Namespace, repo: Path, out_dir: Path, report: ProgressCallback) -> int:
    graph, _ = build_graph(repo, SourceExtractor(), report)
    path = GraphStore(out_dir).write(graph)
    progress(f"Wrote {path}", done=True)
    entries = entry_points(graph)
    print(f"nodes: {len(graph.nodes)}")
    print(f"edges: {len(graph.edges)}")
    for edge_type, count in edge_type_counts(graph).items():
        print(f"  {edge_type}: {count}")
    print(f"entry points: {len(entries)}")
    for node in entries:
        detail = ", ".join(f"{key}={value}" for key, value in sorted((node.metadata or {}).items()))
        print(f"  [{node.entry_type}] {node.id}" + (f" ({detail})" if detail else ""))
    return 0


def format_report(report: StalenessReport, repo: Path) -> List[str]:
    lines: List[str] = []
    for error in report.errors:
        lines.append(f"error: {error}")
    if not report.stale_docs:
        lines.append(f"All {report.total_docs} documents are up to date")
        return lines
    plural = "" if len(report.stale_docs) == 1 else "s"
    lines.append(f"Found {len(report.stale_docs)} stale document{plural} (of {report.total_docs}):")
    for doc in report.stale_docs:
        doc_path = Path(doc.doc_path)
        try:
            shown = doc_path.resolve().relative_to(repo).as_posix()
        except ValueError:
            shown = doc_path.as_posix()
        lines.append(f"  {shown}")
        for dep in doc.stale_dependencies:
            lines.append(f"    {REASON_LABELS.get(dep.reason, dep.reason)} {dep.path}:{dep.symbol}")
            if dep.reason == "changed" and dep.old_hash and dep.new_hash:
                lines.append(f"      old: {dep.old_hash[:8]}")
                lines.append(f"      new: {dep.new_hash[:8]}")
    return lines


def run_check(args: argparse.Namespace, repo: Path, out_dir: Path) -> int:
    progress(f"Scanning {out_dir}...")
    report = StaleChecker(project_root=repo).check_docs(out_dir)
    progress(f"Scanned {report.total_docs} document(s)", done=True)
    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=True, indent=2))
    else:
        print("\n".join(format_report(report, repo)))
    return 1 if report.stale_docs else 0


async def resolve_runtime(
    config: DocsyncConfig,
    extractor: SourceExtractor,
    symbols: Sequence[SymbolInfo],
    repo: Path,
    report: ProgressCallback,
) -> List[VerifiedConnection]:
    resolver = ConnectionResolver(AnthropicClient(model=config.model), extractor)
    return await resolver.resolve_connections(symbols, repo, on_progress=report)


async def generate_docs(
    args: argparse.Namespace, config: DocsyncConfig, repo: Path, out_dir: Path, report: ProgressCallback
) -> int:
    file_arg, symbol_name = parse_target(args.target)
    source = resolve_source(repo, file_arg)
    extractor = SourceExtractor()
    planner = CallTreePlanner(out_dir, extractor=extractor, project_root=repo)
    roots = planner.root_symbols(source, symbol_name)
    plan = planner.plan_for_symbols(roots, depth=args.depth, force=args.force)
    report(
        f"Plan: {len(plan.roots)} root(s), {len(plan.callees)} callee(s), {len(plan.skipped)} up to date",
        "info",
    )
    discovered: List[VerifiedConnection] = []
    if args.discover:
        discovered = await resolve_runtime(config, extractor, roots, repo, report)
    client = AnthropicClient(model=config.model)
    generator = DocGenerator(client, planner, style=args.style or config.style)
    results = await generator.execute(plan, discovered, on_progress=report)
    print_warnings(generator.warnings)
    for result in results:
        status = "skipped (up to date)" if result.skipped else "generated"
        print(f"{status}: {result.file_path}")
    return 0


async def find_connections(
    args: argparse.Namespace, config: DocsyncConfig, repo: Path, out_dir: Path, report: ProgressCallback
) -> int:
    file_arg, symbol_name = parse_target(args.target)
    extractor = SourceExtractor()
    planner = CallTreePlanner(out_dir, extractor=extractor, project_root=repo)
    roots = planner.root_symbols(resolve_source(repo, file_arg), symbol_name)
    verified = await resolve_runtime(config, extractor, roots, repo, report)
    for item in verified:
        print(
            f"{item.source_symbol.name} -[{item.connection.type}]-> "
            f"{item.target_symbol.name} ({item.target_file_path})"
        )
    if not verified:
        print("No verified runtime connections")
        return 0
    store = GraphStore(out_dir)
    graph = store.read()
    if graph is None:
        graph, builder = build_graph(repo, extractor, report)
    else:
        builder = GraphBuilder(extractor=extractor, project_root=repo, on_progress=report)
    added = builder.add_verified_connections(graph, verified)
    store.write(graph)
    progress(f"Merged {added} runtime edge(s) into {store.path}", done=True)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Keep generated documentation in sync with source")
    parser.add_argument("--repo", default=".", help="Project root (default: .)")
    parser.add_argument("--out", default=None, help="Docs output dir (default: config outputDir)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show per-item detail")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("graph", help="Build and store the flow graph")

    check_parser = subparsers.add_parser("check", help="Report stale generated docs")
    check_parser.add_argument("--json", action="store_true", help="Emit the report as JSON")

    generate_parser = subparsers.add_parser("generate", help="Generate docs for a file or symbol")
    generate_parser.add_argument("target", help="path/to/file[:symbol]")
    generate_parser.add_argument("--depth", type=int, default=0, help="Call-tree depth to follow (default: 0)")
    generate_parser.add_argument("--force", action="store_true", help="Regenerate up-to-date callee docs")
    generate_parser.add_argument("--style", choices=DOC_STYLES, default=None)
    generate_parser.add_argument(
        "--discover", action="store_true", help="Resolve runtime connections of the roots first"
    )

    connections_parser = subparsers.add_parser(
        "connections", help="Discover and verify runtime connections"
    )
    connections_parser.add_argument("target", help="path/to/file[:symbol]")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    repo = Path(args.repo).resolve()
    warnings: List[str] = []
    config = load_config(repo, warnings)
    print_warnings(warnings)
    out_dir = resolve_output_dir(repo, config, args.out)
    report = progress_reporter(args.verbose)

    try:
        if args.command == "graph":
            return run_graph(args, repo, out_dir, report)
        if args.command == "check":
            return run_check(args, repo, out_dir)
        if args.command == "generate":
            return asyncio.run(generate_docs(args, config, repo, out_dir, report))
        if args.command == "connections":
            return asyncio.run(find_connections(args, config, repo, out_dir, report))
    except (OSError, ValueError, LookupError, RuntimeError, httpx.HTTPError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
