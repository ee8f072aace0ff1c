from __future__ import annotations

from pathlib import Path


class SampleBuildError(Exception):
    """Base for structural failures that abort a sample build."""


class UnsupportedCodecError(SampleBuildError):
    """A source file carries a compression suffix with no known decoder."""

    def __init__(self, path: Path, suffix: str) -> None:
        super().__init__(f"unsupported compression {suffix!r} for {path}")
        self.path = path
        self.suffix = suffix


class NoSourceFilesError(SampleBuildError):
    """The input directory holds no `.csv`/`.txt` candidates at all."""

    def __init__(self, source_dir: Path) -> None:
        super().__init__(f"no source files found in {source_dir}")
        self.source_dir = source_dir


class NoPersonSourceError(SampleBuildError):
    """No file was classified into the person table."""

    def __init__(self, person_table: str) -> None:
        super().__init__(f"could not find a source file for table {person_table!r}")
        self.person_table = person_table


class MissingPersonIdColumnError(SampleBuildError):
    """A person file has no person id column in its header."""

    def __init__(self, path: Path, column: str) -> None:
        super().__init__(f"{column} column not found in {path}")
        self.path = path
        self.column = column


class NoOverlappingColumnsError(SampleBuildError):
    """The person file and the destination person table share no column names."""

    def __init__(self, path: Path, table_name: str) -> None:
        super().__init__(f"no overlapping {table_name} columns between {path} and the destination schema")
        self.path = path
        self.table_name = table_name
