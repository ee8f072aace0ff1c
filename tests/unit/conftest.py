from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

import pytest

import cdm_sampler.cli.loader as loader
from cdm_sampler.parsing.primitives import classify_declared_type
from cdm_sampler.parsing.schema import plan_values
from cdm_sampler.parsing.types import ColumnSpec, InsertPlan


# table -> ((column, declared type), ...). The first column is the table's key.
FAKE_SCHEMA: dict[str, tuple[tuple[str, str], ...]] = {
    "person": (
        ("person_id", "text"),
        ("year_of_birth", "integer"),
        ("gender_source_value", "character varying"),
    ),
    "visit_occurrence": (
        ("visit_occurrence_id", "bigint"),
        ("person_id", "text"),
        ("visit_start_date", "date"),
    ),
    "measurement": (
        ("measurement_id", "bigint"),
        ("person_id", "text"),
        ("value_as_number", "double precision"),
    ),
    "death": (
        ("person_id", "text"),
        ("death_date", "date"),
    ),
    "cdm_source": (
        ("cdm_source_name", "character varying"),
        ("cdm_version", "character varying"),
    ),
}


@dataclass
class FakeCdmDatabase:
    """
    In-memory stand-in for the destination connection.

    Rows written since the last commit live in `pending`; `rollback` drops them.
    Conflicts are detected on each table's first column across committed and pending rows.
    `fail_on` = `(table, n)` raises on the n-th insert attempt into `table`.
    """
    schema: Mapping[str, tuple[tuple[str, str], ...]] = field(default_factory=lambda: dict(FAKE_SCHEMA))
    committed: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    pending: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    fail_on: Optional[tuple[str, int]] = None
    commits: int = 0
    rollbacks: int = 0
    spec_fetches: list[str] = field(default_factory=list)
    _attempts: dict[str, int] = field(default_factory=dict)

    def column_specs(self, table_name: str) -> tuple[ColumnSpec, ...]:
        self.spec_fetches.append(table_name)
        return tuple(
            ColumnSpec(name=n, declared_type=t, kind=classify_declared_type(t))
            for n, t in self.schema.get(table_name, ())
        )

    def rows(self, table_name: str) -> list[dict[str, Any]]:
        """Committed rows only."""
        return list(self.committed.get(table_name, []))

    def insert(self, table_name: str, row: Mapping[str, Any]) -> bool:
        n = self._attempts.get(table_name, 0) + 1
        self._attempts[table_name] = n
        if self.fail_on == (table_name, n):
            raise RuntimeError(f"backend failure inserting into {table_name}")

        key = self.schema[table_name][0][0]
        existing = self.committed.get(table_name, []) + self.pending.get(table_name, [])
        if any(r.get(key) == row.get(key) for r in existing):
            return False
        self.pending.setdefault(table_name, []).append(dict(row))
        return True

    def commit(self) -> None:
        self.commits += 1
        for table, rows in self.pending.items():
            self.committed.setdefault(table, []).extend(rows)
        self.pending = {}

    def rollback(self) -> None:
        self.rollbacks += 1
        self.pending = {}


class FakeTableInserter:
    """Same surface as `TableInserter`, writing into a `FakeCdmDatabase`."""

    def __init__(self, conn: FakeCdmDatabase, plan: InsertPlan) -> None:
        self.conn = conn
        self.plan = plan

    def insert(self, record: Sequence[str]) -> bool:
        values = plan_values(self.plan, record)
        return self.conn.insert(self.plan.table_name, dict(zip(self.plan.column_names, values)))


@pytest.fixture()
def fake_db(monkeypatch: pytest.MonkeyPatch) -> Callable[..., FakeCdmDatabase]:
    """
    Factory for a `FakeCdmDatabase`, with the loader patched to talk to it.
    Core features are patched to test without Postgres.
    """
    monkeypatch.setattr(loader, "fetch_column_specs", lambda conn, *, table_name: conn.column_specs(table_name))
    monkeypatch.setattr(loader, "TableInserter", FakeTableInserter)

    def _make(**kwargs: Any) -> FakeCdmDatabase:
        return FakeCdmDatabase(**kwargs)

    return _make
