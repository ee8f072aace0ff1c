from __future__ import annotations

from typing import Any, Sequence

from psycopg import Connection, sql

from cdm_sampler.parsing.primitives import classify_declared_type
from cdm_sampler.parsing.schema import plan_values
from cdm_sampler.parsing.types import ColumnSpec, InsertPlan


def fetch_column_specs(conn: Connection, *, table_name: str) -> tuple[ColumnSpec, ...]:
    """
    Destination columns of `table_name` in the connection's current schema, in table order.

    A table missing from the schema yields no columns.
    """
    rows = conn.execute(
        """
        SELECT column_name, data_type
        FROM information_schema.columns
        WHERE table_schema = current_schema()
          AND table_name = %s
        ORDER BY ordinal_position
        """,
        (table_name,),
    ).fetchall()
    return tuple(
        ColumnSpec(name=name, declared_type=data_type, kind=classify_declared_type(data_type))
        for name, data_type in rows
    )


def compose_insert_ignore(plan: InsertPlan) -> sql.Composed:
    """
    `INSERT ... ON CONFLICT DO NOTHING` for the columns of `plan`.

    Identifiers come only from destination metadata carried by the plan,
    values are always placeholders.
    """
    return sql.SQL("INSERT INTO {tbl} ({cols}) VALUES ({vals}) ON CONFLICT DO NOTHING").format(
        tbl=sql.Identifier(plan.table_name),
        cols=sql.SQL(", ").join(sql.Identifier(c) for c in plan.column_names),
        vals=sql.SQL(", ").join(sql.Placeholder() for _ in plan.columns),
    )


class TableInserter:
    """
    Conflict-ignore inserts of parsed records for one file's `InsertPlan`.

    The statement is composed once; each `insert` reports whether a row was written
    (`False` means a key or uniqueness conflict swallowed it).
    """

    def __init__(self, conn: Connection, plan: InsertPlan) -> None:
        if plan.is_empty:
            raise ValueError(f"cannot insert into {plan.table_name} with an empty plan")
        self.conn = conn
        self.plan = plan
        self.query = compose_insert_ignore(plan)

    def params(self, record: Sequence[str]) -> tuple[Any, ...]:
        return plan_values(self.plan, record)

    def insert(self, record: Sequence[str]) -> bool:
        with self.conn.cursor() as cur:
            cur.execute(self.query, self.params(record))
            return cur.rowcount > 0
