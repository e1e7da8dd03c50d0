from __future__ import annotations

import ast
import textwrap
from typing import Dict, Iterable, List, Optional, Union

from .types import CallSite, ExtractionResult, SymbolInfo

FunctionNode = Union[ast.FunctionDef, ast.AsyncFunctionDef]

MAX_EXPRESSION_CHARS = 200


def _first_line(node: ast.AST) -> int:
    decorators = getattr(node, "decorator_list", None) or []
    return min([node.lineno, *(d.lineno for d in decorators)])


def _slice_lines(lines: List[str], start: int, end: int) -> str:
    return "".join(lines[start - 1 : end]).rstrip("\n")


def _body_text(lines: List[str], node: ast.AST, statements: List[ast.stmt]) -> str:
    first = statements[0]
    if first.lineno > node.lineno:
        return _slice_lines(lines, first.lineno, node.end_lineno)
    # one-line definition: the body shares the header line
    line = lines[first.lineno - 1].encode("utf-8")[first.col_offset :].decode("utf-8", errors="replace")
    rest = _slice_lines(lines, first.lineno + 1, node.end_lineno)
    return (line.rstrip("\n") + ("\n" + rest if rest else "")).rstrip("\n")


def _function_symbol(lines: List[str], node: FunctionNode, path: str, name: str, kind: str) -> SymbolInfo:
    start = _first_line(node)
    return SymbolInfo(
        name=name,
        kind=kind,
        file_path=path,
        params=ast.unparse(node.args),
        body=_body_text(lines, node, node.body),
        full_text=_slice_lines(lines, start, node.end_lineno),
        start_line=start,
        end_line=node.end_lineno,
    )


def _class_symbols(lines: List[str], node: ast.ClassDef, path: str) -> Iterable[SymbolInfo]:
    start = _first_line(node)
    bases = [ast.unparse(base) for base in node.bases]
    bases.extend(ast.unparse(keyword) for keyword in node.keywords)
    yield SymbolInfo(
        name=node.name,
        kind="class",
        file_path=path,
        params=", ".join(bases),
        body=_body_text(lines, node, node.body),
        full_text=_slice_lines(lines, start, node.end_lineno),
        start_line=start,
        end_line=node.end_lineno,
    )
    for child in node.body:
        if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef)):
            yield _function_symbol(lines, child, path, f"{node.name}.{child.name}", "method")


def _assignment_symbol(content: str, lines: List[str], node: ast.stmt, path: str) -> Optional[SymbolInfo]:
    if isinstance(node, ast.Assign):
        if len(node.targets) != 1:
            return None
        target = node.targets[0]
    elif isinstance(node, ast.AnnAssign) and node.value is not None:
        target = node.target
    else:
        return None
    if not isinstance(target, ast.Name):
        return None
    name = target.id
    if name.startswith("__") and name.endswith("__"):
        return None
    value = node.value
    kind = "const"
    params = ""
    body = ast.get_source_segment(content, value) or ast.unparse(value)
    if isinstance(value, ast.Lambda):
        kind = "function"
        params = ast.unparse(value.args)
        body = ast.get_source_segment(content, value.body) or ast.unparse(value.body)
    return SymbolInfo(
        name=name,
        kind=kind,
        file_path=path,
        params=params,
        body=body,
        full_text=_slice_lines(lines, node.lineno, node.end_lineno),
        start_line=node.lineno,
        end_line=node.end_lineno,
    )


def extract_py_symbols(content: str, path: str) -> ExtractionResult:
    """Module-level functions, classes (with methods) and simple assignments."""
    try:
        tree = ast.parse(content, filename=path)
    except SyntaxError as exc:
        return ExtractionResult(errors=[f"{path}:{exc.lineno or 0}: {exc.msg}"])
    lines = content.splitlines(keepends=True)
    found: Dict[str, SymbolInfo] = {}
    for node in tree.body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            found[node.name] = _function_symbol(lines, node, path, node.name, "function")
        elif isinstance(node, ast.ClassDef):
            for symbol in _class_symbols(lines, node, path):
                found[symbol.name] = symbol
        else:
            symbol = _assignment_symbol(content, lines, node, path)
            if symbol:
                found[symbol.name] = symbol
    # redefinitions keep the first position but the last definition
    return ExtractionResult(symbols=list(found.values()))


def _call_name(call: ast.Call) -> str:
    if isinstance(call.func, ast.Name):
        return call.func.id
    return ast.unparse(call.func)


def py_call_sites(symbol: SymbolInfo) -> List[CallSite]:
    source = textwrap.dedent(symbol.full_text)
    try:
        tree = ast.parse(source)
    except SyntaxError:
        return []
    if not tree.body:
        return []
    node = tree.body[0]
    if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
        roots: List[ast.AST] = list(node.body)
    elif isinstance(node, (ast.Assign, ast.AnnAssign)) and node.value is not None:
        roots = [node.value]
    else:
        roots = [node]
    calls = [child for root in roots for child in ast.walk(root) if isinstance(child, ast.Call)]
    calls.sort(key=lambda call: (call.lineno, call.col_offset))
    sites: List[CallSite] = []
    for call in calls:
        expression = ast.get_source_segment(source, call) or ast.unparse(call)
        if len(expression) > MAX_EXPRESSION_CHARS:
            expression = expression[: MAX_EXPRESSION_CHARS - 3] + "..."
        sites.append(CallSite(name=_call_name(call), expression=expression))
    return sites
