from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TableLoadSummary:
    """Per-table outcome of one build."""
    table_name: str
    files: int                      # source files classified into this table
    inserted: int
    ignored_duplicates: int
    skipped_files: int = 0          # files sharing no column with the destination table
    skipped: bool = False           # no source file at all

    def render_one_line(self) -> str:
        """How each table's summary is formatted for the terminal."""
        if self.skipped:
            return f"{self.table_name}: skipped (no source file)"
        line = f"{self.table_name}: inserted={self.inserted} ignored_duplicates={self.ignored_duplicates} files={self.files}"
        if self.skipped_files:
            line += f" skipped_files={self.skipped_files}"
        return line


@dataclass(frozen=True)
class BuildSummary:
    """Everything a committed build reports."""
    sample_size: int                # requested
    sampled: int                    # person ids actually kept
    tables: tuple[TableLoadSummary, ...]

    def table(self, table_name: str) -> TableLoadSummary:
        for t in self.tables:
            if t.table_name == table_name:
                return t
        raise KeyError(table_name)

    def render_lines(self) -> list[str]:
        lines = [t.render_one_line() for t in self.tables]
        lines.append(f"sampled {self.sampled} of {self.sample_size} requested person ids")
        return lines
