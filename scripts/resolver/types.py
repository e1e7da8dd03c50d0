from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from extractor import SymbolInfo


@dataclass(frozen=True)
class DiscoveredConnection:
    """A runtime dispatch suggested by the model. Never trusted as-is."""

    type: str
    target_hint: str
    reason: str


@dataclass(frozen=True)
class VerifiedConnection:
    """A discovered connection whose target was found in the source tree.

    Only verifiers construct these; the graph accepts nothing else.
    """

    source_symbol: SymbolInfo
    connection: DiscoveredConnection
    target_symbol: SymbolInfo
    target_file_path: str


@dataclass(frozen=True)
class Verified:
    connection: DiscoveredConnection
    target_symbol: SymbolInfo
    target_file_path: str
    verified: bool = True

    def for_source(self, source_symbol: SymbolInfo) -> VerifiedConnection:
        return VerifiedConnection(
            source_symbol=source_symbol,
            connection=self.connection,
            target_symbol=self.target_symbol,
            target_file_path=self.target_file_path,
        )


@dataclass(frozen=True)
class Rejected:
    connection: DiscoveredConnection
    reason: str
    verified: bool = False


VerifyResult = Union[Verified, Rejected]


def normalize_connection_type(connection_type: str) -> str:
    return connection_type.lower().replace("_", "-")
