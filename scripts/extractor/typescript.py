from __future__ import annotations

import re
from typing import Iterator, List, Optional, Tuple

from .types import CallSite, ExtractionResult, SymbolInfo, line_number_for_offset

_IDENT = r"[A-Za-z_$][A-Za-z0-9_$]*"

_FUNCTION_DECL = re.compile(
    rf"^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*({_IDENT})?\s*(?:<[^>(]*>)?\s*\(",
    re.MULTILINE,
)
_CLASS_DECL = re.compile(
    rf"^(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+({_IDENT})",
    re.MULTILINE,
)
_VAR_DECL = re.compile(
    rf"^(?:export\s+)?(?:const|let|var)\s+({_IDENT})\s*(?::[^=\n]+)?=(?!=)\s*",
    re.MULTILINE,
)
_METHOD_DECL = re.compile(
    rf"[ \t]+(?:(?:public|private|protected|static|readonly|override|abstract)\s+)*"
    rf"(?:async\s+)?\*?\s*({_IDENT})\s*(?:<[^>(]*>)?\s*\("
)
_FUNCTION_EXPR = re.compile(r"(?:async\s+)?function\b[^(]*\(")
_ASYNC_PREFIX = re.compile(r"(?:async\b\s*)?")
_IDENT_RE = re.compile(_IDENT)
_ARROW = re.compile(r"\s*(?::[^=]+)?=>\s*")
_CALL = re.compile(
    rf"(?<![\w$.])((?:{_IDENT}\s*\??\.\s*)*{_IDENT})\s*(?:<[A-Za-z0-9_$\s,.\[\]]*>)?\s*\("
)

CALL_KEYWORDS = {
    "if",
    "for",
    "while",
    "switch",
    "catch",
    "return",
    "typeof",
    "await",
    "async",
    "yield",
    "void",
    "delete",
    "function",
    "class",
    "super",
    "import",
    "constructor",
}

_BRACKETS = {"(": ")", "[": "]", "{": "}"}
_QUOTES = "\"'`"
_CONTINUATION_TAIL = ("=", "=>", "(", "[", "{", ",", "+", "-", "*", "/", "&&", "||", "??", "?", ":", ".")
_CONTINUATION_HEAD = (".", "?", ":", "+", "-", "*", "/", "&", "|", "=", ",", ")", "]", "}")


def skip_string(text: str, start: int) -> int:
    quote = text[start]
    idx = start + 1
    size = len(text)
    while idx < size:
        ch = text[idx]
        if ch == "\\":
            idx += 2
            continue
        if quote == "`" and ch == "$" and idx + 1 < size and text[idx + 1] == "{":
            idx = match_bracket(text, idx + 1) + 1
            continue
        if ch == quote:
            return idx + 1
        if ch == "\n" and quote != "`":
            return idx + 1
        idx += 1
    return size


def skip_comment(text: str, start: int) -> int:
    if text.startswith("//", start):
        end = text.find("\n", start)
        return len(text) if end == -1 else end
    end = text.find("*/", start + 2)
    return len(text) if end == -1 else end + 2


def _is_comment_start(text: str, idx: int) -> bool:
    return text[idx] == "/" and idx + 1 < len(text) and text[idx + 1] in "/*"


def match_bracket(text: str, open_idx: int) -> int:
    """Index of the bracket closing ``text[open_idx]`` (last index when unbalanced)."""
    stack = [_BRACKETS[text[open_idx]]]
    idx = open_idx + 1
    size = len(text)
    while idx < size:
        ch = text[idx]
        if ch in _QUOTES:
            idx = skip_string(text, idx)
            continue
        if _is_comment_start(text, idx):
            idx = skip_comment(text, idx)
            continue
        if ch in _BRACKETS:
            stack.append(_BRACKETS[ch])
        elif ch in ")]}":
            stack.pop()
            if not stack:
                return idx
        idx += 1
    return size - 1


def mask_strings_and_comments(text: str) -> str:
    """Blank out string literal and comment contents, keeping offsets stable."""
    out = list(text)
    idx = 0
    size = len(text)
    while idx < size:
        ch = text[idx]
        if ch in _QUOTES:
            end = min(skip_string(text, idx), size)
            for pos in range(idx + 1, max(idx + 1, end - 1)):
                if out[pos] != "\n":
                    out[pos] = " "
            idx = end
            continue
        if _is_comment_start(text, idx):
            end = skip_comment(text, idx)
            for pos in range(idx, end):
                if out[pos] != "\n":
                    out[pos] = " "
            idx = end
            continue
        idx += 1
    return "".join(out)


def _body_brace(text: str, start: int, limit: int) -> int:
    brace = text.find("{", start, limit)
    if brace == -1:
        return -1
    if text.find(";", start, brace) != -1:
        return -1
    return brace


def _statement_end(text: str, start: int) -> int:
    idx = start
    size = len(text)
    while idx < size:
        ch = text[idx]
        if ch in _QUOTES:
            idx = skip_string(text, idx)
            continue
        if _is_comment_start(text, idx):
            idx = skip_comment(text, idx)
            continue
        if ch in _BRACKETS:
            idx = match_bracket(text, idx) + 1
            continue
        if ch == ";":
            return idx
        if ch == "\n":
            before = text[start:idx].rstrip()
            after = text[idx + 1 :].lstrip(" \t")
            if before and not before.endswith(_CONTINUATION_TAIL) and not after.startswith(_CONTINUATION_HEAD):
                return idx
        idx += 1
    return size


def _function_symbol(text: str, path: str, match: re.Match) -> Optional[Tuple[SymbolInfo, int]]:
    name = match.group(1) or "default"
    paren = match.end() - 1
    params_close = match_bracket(text, paren)
    brace = _body_brace(text, params_close + 1, len(text))
    if brace == -1:
        return None
    end = match_bracket(text, brace)
    symbol = SymbolInfo(
        name=name,
        kind="function",
        file_path=path,
        params=text[paren + 1 : params_close].strip(),
        body=text[brace : end + 1],
        full_text=text[match.start() : end + 1],
        start_line=line_number_for_offset(text, match.start()),
        end_line=line_number_for_offset(text, end),
    )
    return symbol, end + 1


def _methods(text: str, path: str, class_name: str, body_open: int, body_close: int) -> Iterator[SymbolInfo]:
    idx = body_open + 1
    while idx < body_close:
        ch = text[idx]
        if ch in _QUOTES:
            idx = skip_string(text, idx)
            continue
        if _is_comment_start(text, idx):
            idx = skip_comment(text, idx)
            continue
        if ch in _BRACKETS:
            idx = match_bracket(text, idx) + 1
            continue
        if text[idx - 1] == "\n":
            match = _METHOD_DECL.match(text, idx)
            if match and match.group(1) not in CALL_KEYWORDS - {"constructor"}:
                paren = match.end() - 1
                params_close = match_bracket(text, paren)
                brace = _body_brace(text, params_close + 1, body_close)
                if brace != -1:
                    end = match_bracket(text, brace)
                    start = match.start() + len(match.group(0)) - len(match.group(0).lstrip(" \t"))
                    yield SymbolInfo(
                        name=f"{class_name}.{match.group(1)}",
                        kind="method",
                        file_path=path,
                        params=text[paren + 1 : params_close].strip(),
                        body=text[brace : end + 1],
                        full_text=text[start : end + 1],
                        start_line=line_number_for_offset(text, start),
                        end_line=line_number_for_offset(text, end),
                    )
                    idx = end + 1
                    continue
        idx += 1


def _class_symbols(text: str, path: str, match: re.Match) -> Optional[Tuple[List[SymbolInfo], int]]:
    name = match.group(1)
    brace = text.find("{", match.end())
    if brace == -1:
        return None
    end = match_bracket(text, brace)
    symbol = SymbolInfo(
        name=name,
        kind="class",
        file_path=path,
        params="",
        body=text[brace : end + 1],
        full_text=text[match.start() : end + 1],
        start_line=line_number_for_offset(text, match.start()),
        end_line=line_number_for_offset(text, end),
    )
    return [symbol, *_methods(text, path, name, brace, end)], end + 1


def _function_like(initializer: str) -> Optional[Tuple[str, str]]:
    """(params, body) when the initializer is a function or arrow expression."""
    match = _FUNCTION_EXPR.match(initializer)
    if match:
        paren = match.end() - 1
        close = match_bracket(initializer, paren)
        brace = _body_brace(initializer, close + 1, len(initializer))
        if brace == -1:
            return None
        return initializer[paren + 1 : close].strip(), initializer[brace : match_bracket(initializer, brace) + 1]
    pos = _ASYNC_PREFIX.match(initializer).end()
    if initializer.startswith("(", pos):
        close = match_bracket(initializer, pos)
        params = initializer[pos + 1 : close].strip()
        after = close + 1
    else:
        ident = _IDENT_RE.match(initializer, pos)
        if not ident:
            return None
        params = ident.group(0)
        after = ident.end()
    arrow = _ARROW.match(initializer, after)
    if not arrow:
        return None
    body_start = arrow.end()
    if initializer.startswith("{", body_start):
        return params, initializer[body_start : match_bracket(initializer, body_start) + 1]
    return params, initializer[body_start:].strip()


def _variable_symbol(text: str, path: str, match: re.Match) -> Tuple[SymbolInfo, int]:
    init_start = match.end()
    init_end = _statement_end(text, init_start)
    initializer = text[init_start:init_end].rstrip()
    full_end = init_end + 1 if init_end < len(text) and text[init_end] == ";" else init_start + len(initializer)
    kind = "const"
    params = ""
    body = initializer
    function_like = _function_like(initializer)
    if function_like:
        kind = "function"
        params, body = function_like
    symbol = SymbolInfo(
        name=match.group(1),
        kind=kind,
        file_path=path,
        params=params,
        body=body,
        full_text=text[match.start() : full_end],
        start_line=line_number_for_offset(text, match.start()),
        end_line=line_number_for_offset(text, max(match.start(), full_end - 1)),
    )
    return symbol, full_end


def extract_ts_symbols(content: str, path: str) -> ExtractionResult:
    """Top-level functions, classes (with methods) and variable declarations."""
    result = ExtractionResult()
    masked = mask_strings_and_comments(content)
    candidates = []
    for pattern, handler in (
        (_FUNCTION_DECL, "function"),
        (_CLASS_DECL, "class"),
        (_VAR_DECL, "variable"),
    ):
        for match in pattern.finditer(masked):
            candidates.append((match.start(), handler, match))
    candidates.sort(key=lambda item: item[0])

    covered_until = 0
    seen = set()
    for start, handler, match in candidates:
        if start < covered_until:
            continue
        if handler == "function":
            found = _function_symbol(content, path, match)
            if not found:
                # overload signature
                continue
            symbols, covered_until = [found[0]], found[1]
        elif handler == "class":
            found_class = _class_symbols(content, path, match)
            if not found_class:
                continue
            symbols, covered_until = found_class
        else:
            symbol, covered_until = _variable_symbol(content, path, match)
            symbols = [symbol]
        if covered_until >= len(content) and content.rstrip()[-1:] not in {"}", ";", ")"}:
            result.errors.append(
                f"{path}:{line_number_for_offset(content, start)}: unterminated declaration of {symbols[0].name}"
            )
        for symbol in symbols:
            if symbol.name in seen:
                continue
            seen.add(symbol.name)
            result.symbols.append(symbol)
    return result


def ts_call_sites(symbol: SymbolInfo) -> List[CallSite]:
    body = symbol.body
    masked = mask_strings_and_comments(body)
    calls: List[CallSite] = []
    for match in _CALL.finditer(masked):
        name = re.sub(r"\s+", "", match.group(1)).replace("?.", ".")
        if name in CALL_KEYWORDS:
            continue
        prefix = masked[: match.start()].rstrip()
        if prefix.endswith("function"):
            continue
        paren = match.end() - 1
        close = match_bracket(body, paren)
        expression = body[match.start() : close + 1]
        if len(expression) > 200:
            expression = expression[:197] + "..."
        calls.append(CallSite(name=name, expression=expression))
    return calls
