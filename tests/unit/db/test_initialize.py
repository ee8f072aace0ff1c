from __future__ import annotations

from pathlib import Path

from cdm_sampler.config import CDM_TABLES
from cdm_sampler.db.initialize import split_sql_statements


def test_shipped_ddl_splits_into_whole_statements(repo_root: Path) -> None:
    sql = (repo_root / "sql" / "000_omop_cdm.sql").read_text(encoding="utf-8")

    statements = split_sql_statements(sql)

    assert statements[0].startswith("DROP TABLE IF EXISTS")
    creates = statements[1:]
    assert all(s.startswith("CREATE TABLE") for s in creates)
    assert len(creates) == len(CDM_TABLES)
    for table in CDM_TABLES:
        assert any(s.startswith(f"CREATE TABLE {table} (") for s in creates), table


def test_semicolon_inside_a_comment_does_not_split() -> None:
    sql = (
        "-- header; with a semicolon\n"
        "CREATE TABLE t (\n"
        "  id bigint,  -- key; not null later\n"
        "  v text\n"
        ");\n"
        "DROP TABLE u;\n"
    )

    assert split_sql_statements(sql) == [
        "CREATE TABLE t (\n  id bigint,  \n  v text\n)",
        "DROP TABLE u",
    ]


def test_blank_and_comment_only_chunks_are_dropped() -> None:
    assert split_sql_statements("-- nothing here;\n\n;\n  ;") == []
