from __future__ import annotations

import hashlib

from extractor import SymbolInfo


class ContentHasher:
    """SHA-256 content addressing for symbols.

    The digest covers the parameter list and the body exactly as extracted.
    Nothing is normalized, so comment or whitespace edits inside a symbol
    produce a new hash and mark documents that depend on it as stale.
    """

    def hash_text(self, text: str) -> str:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    def hash_symbol(self, symbol: SymbolInfo) -> str:
        return self.hash_text(f"{symbol.params}\n{symbol.body}")
