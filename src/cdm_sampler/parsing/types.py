from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Sequence


class Codec(str, Enum):
    """Compression applied to a source file, picked from its suffix."""
    none = "none"
    gz = "gz"
    bz2 = "bz2"
    zstd = "zstd"


class ColumnKind(str, Enum):
    """How a destination column's declared type drives value casting."""
    integer = "integer"
    real = "real"
    text = "text"


@dataclass(frozen=True, slots=True)
class SourceFile:
    """A discovered input file. Never mutated after discovery."""
    path: Path
    codec: Codec

    @property
    def base_name(self) -> str:
        return self.path.name


@dataclass(frozen=True, slots=True)
class ParsedTable:
    """Header plus data records of one delimited file (blank records already dropped)."""
    header: tuple[str, ...]
    records: list[list[str]]

    def column_index(self, name: str) -> int:
        """Case-insensitive header lookup, `-1` when absent."""
        target = name.lower()
        for i, h in enumerate(self.header):
            if h.lower() == target:
                return i
        return -1


@dataclass(frozen=True, slots=True)
class ColumnSpec:
    """One destination column, as reported by the schema."""
    name: str
    declared_type: str
    kind: ColumnKind


@dataclass(frozen=True, slots=True)
class PlannedColumn:
    """A destination column paired with the header index feeding it."""
    column: ColumnSpec
    source_index: int


@dataclass(frozen=True, slots=True)
class InsertPlan:
    """
    Resolved mapping from a file's header onto a destination table.

    Column order follows the destination schema, not the source file.
    """
    table_name: str
    columns: tuple[PlannedColumn, ...]

    @property
    def is_empty(self) -> bool:
        return not self.columns

    @property
    def column_names(self) -> Sequence[str]:
        return [c.column.name for c in self.columns]
