from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import psycopg

from cdm_sampler.db.connect import connect

logger = logging.getLogger(__name__)


def split_sql_statements(sql: str) -> list[str]:
    """
    Split a DDL script on `;` so a failing statement can be surfaced as-is.

    `--` comments are dropped first; a `;` inside one would otherwise cut a statement.
    """
    lines = [line.split("--", 1)[0] for line in sql.splitlines()]
    return [s.strip() for s in "\n".join(lines).split(";") if s.strip()]


def _run_sql_file(conn: psycopg.Connection, sql_path: Path) -> None:
    """Read and execute a `.sql` file, statement by statement."""
    statements = split_sql_statements(sql_path.read_text(encoding="utf-8"))

    with conn.cursor() as cur:
        for i, stmt in enumerate(statements, 1):
            try:
                cur.execute(stmt)
            except Exception as e:
                raise RuntimeError(
                    f"DB init failed in {sql_path} on statement #{i}\n"
                    f"Postgres raised with: {e}\n"
                    f"--- statement ---\n{stmt}\n--- end ---\n"
                ) from e
    logger.info("applied %d statements from %s", len(statements), sql_path)


def apply_schema_sql(conn: psycopg.Connection, sql_path: Path) -> None:
    """
    Apply CDM DDL on `conn` and commit.

    - If `sql_path` is a dir, run all `*.sql` files in ascending order.
    - If `sql_path` is just one file, run just that file.
    """
    if sql_path.is_dir():
        for p in sorted(sql_path.glob("*.sql")):
            _run_sql_file(conn, p)
    else:
        _run_sql_file(conn, sql_path)
    conn.commit()


def db_init(*, sql_path: Path, database_url: Optional[str] = None) -> None:
    """Initialize (or re-initialize) the destination schema from `sql_path`."""
    with connect(database_url) as conn:
        apply_schema_sql(conn, sql_path)
