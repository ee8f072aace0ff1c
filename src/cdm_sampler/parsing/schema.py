from __future__ import annotations

from typing import Any, Sequence

from .primitives import cast_value
from .types import ColumnSpec, InsertPlan, PlannedColumn


def build_insert_plan(table_name: str, columns: Sequence[ColumnSpec], header: Sequence[str]) -> InsertPlan:
    """
    Intersect destination `columns` with a file's `header`, case-insensitive.

    Destination order is kept, source order does not matter. If a header name
    repeats, its last occurrence feeds the column.
    An empty plan is a valid result; callers decide whether that is fatal.
    """
    source_index: dict[str, int] = {}
    for i, h in enumerate(header):
        source_index[h.lower()] = i

    planned = tuple(
        PlannedColumn(column=c, source_index=source_index[c.name.lower()])
        for c in columns
        if c.name.lower() in source_index
    )
    return InsertPlan(table_name=table_name, columns=planned)


def plan_values(plan: InsertPlan, record: Sequence[str]) -> tuple[Any, ...]:
    """
    Cast one record into insert parameters, in plan order.

    Cells past the end of a short record count as empty (so `None`).
    """
    out: list[Any] = []
    for pc in plan.columns:
        raw = record[pc.source_index] if pc.source_index < len(record) else ""
        out.append(cast_value(raw, pc.column.kind))
    return tuple(out)
