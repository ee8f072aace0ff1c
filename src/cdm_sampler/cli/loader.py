from __future__ import annotations

import logging
import random
from enum import Enum
from pathlib import Path
from typing import AbstractSet, Optional, Sequence

from psycopg import Connection

from cdm_sampler.config import BuildConfig
from cdm_sampler.db.cdm_writers import TableInserter, fetch_column_specs
from cdm_sampler.ingest.classify import bucket_source_files, discover_source_files
from cdm_sampler.ingest.errors import MissingPersonIdColumnError, NoOverlappingColumnsError, NoPersonSourceError
from cdm_sampler.ingest.readers import read_source_text
from cdm_sampler.ingest.summary import BuildSummary, TableLoadSummary
from cdm_sampler.parsing.delimited import parse_delimited
from cdm_sampler.parsing.schema import build_insert_plan
from cdm_sampler.parsing.types import ColumnSpec, ParsedTable, SourceFile
from cdm_sampler.sampling.patients import sample_person_ids

logger = logging.getLogger(__name__)


class BuildStage(str, Enum):
    """Last stage a build reached, named in the abort log. Any failure rolls everything back."""
    start = "start"
    person_parsed = "person_parsed"
    sampling_done = "sampling_done"
    table_loop = "table_loop"


def _cell(record: Sequence[str], idx: int) -> str:
    """Cell at `idx`, or `""` past the end of a short record."""
    return record[idx] if idx < len(record) else ""


def load_parsed(source: SourceFile) -> ParsedTable:
    """Decompress and parse one source file."""
    parsed = parse_delimited(read_source_text(source))
    logger.debug("parsed %s: %d columns, %d records", source.path, len(parsed.header), len(parsed.records))
    return parsed


class _ColumnCache:
    """Destination column metadata, fetched at most once per table."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn
        self._specs: dict[str, tuple[ColumnSpec, ...]] = {}

    def get(self, table_name: str) -> tuple[ColumnSpec, ...]:
        if table_name not in self._specs:
            self._specs[table_name] = fetch_column_specs(self.conn, table_name=table_name)
        return self._specs[table_name]


def _read_person_files(
    person_files: Sequence[SourceFile], *, person_id_column: str
) -> list[tuple[SourceFile, ParsedTable, int]]:
    """Parse every person file and locate its person id column. Raises if any file lacks it."""
    out: list[tuple[SourceFile, ParsedTable, int]] = []
    for f in person_files:
        parsed = load_parsed(f)
        idx = parsed.column_index(person_id_column)
        if idx < 0:
            raise MissingPersonIdColumnError(f.path, person_id_column)
        out.append((f, parsed, idx))
    return out


def _load_person_table(
    conn: Connection,
    *,
    table_name: str,
    columns: Sequence[ColumnSpec],
    person_tables: Sequence[tuple[SourceFile, ParsedTable, int]],
    sample: AbstractSet[str],
) -> TableLoadSummary:
    """Insert person records whose id was sampled. An empty plan is fatal here."""
    inserted = ignored = 0
    for f, parsed, idx in person_tables:
        plan = build_insert_plan(table_name, columns, parsed.header)
        if plan.is_empty:
            raise NoOverlappingColumnsError(f.path, table_name)

        inserter = TableInserter(conn, plan)
        for record in parsed.records:
            if _cell(record, idx) not in sample:
                continue
            if inserter.insert(record):
                inserted += 1
            else:
                ignored += 1

    logger.info("inserted %s rows: %d (ignored duplicates: %d)", table_name, inserted, ignored)
    return TableLoadSummary(
        table_name=table_name,
        files=len(person_tables),
        inserted=inserted,
        ignored_duplicates=ignored,
    )


def _load_dependent_table(
    conn: Connection,
    *,
    table_name: str,
    files: Sequence[SourceFile],
    columns: Sequence[ColumnSpec],
    person_id_column: str,
    sample: AbstractSet[str],
) -> TableLoadSummary:
    """
    Load every file of one non-person table, one file at a time.

    Rows are kept only if their person id was sampled; files without a
    person id column load unfiltered. Files sharing no column with the
    destination are skipped.
    """
    inserted = ignored = skipped_files = 0
    for f in files:
        parsed = load_parsed(f)
        plan = build_insert_plan(table_name, columns, parsed.header)
        if plan.is_empty:
            skipped_files += 1
            logger.warning("no overlapping %s columns in %s, file skipped", table_name, f.path)
            continue

        pid_idx = parsed.column_index(person_id_column)
        inserter = TableInserter(conn, plan)
        for record in parsed.records:
            if pid_idx >= 0 and _cell(record, pid_idx) not in sample:
                continue
            if inserter.insert(record):
                inserted += 1
            else:
                ignored += 1
        logger.debug("loaded %s into %s", f.path, table_name)

    logger.info("inserted %s rows: %d (ignored duplicates: %d)", table_name, inserted, ignored)
    return TableLoadSummary(
        table_name=table_name,
        files=len(files),
        inserted=inserted,
        ignored_duplicates=ignored,
        skipped_files=skipped_files,
    )


def build_sample_db(
    conn: Connection,
    *,
    source_dir: Path,
    config: BuildConfig,
    rng: Optional[random.Random] = None,
) -> BuildSummary:
    """
    End-to-end sample build orchestrator:
      - Discover and classify source files under `source_dir`,
      - Parse every person file and sample person ids from all of them,
      - Insert the sampled person records,
      - Load every other configured table, filtered on the sampled ids,
      - Commit once at the end.

    Everything runs in the connection's single transaction. Any exception rolls
    the whole build back and is re-raised unchanged, so the destination never
    holds a partial sample.
    """
    stage = BuildStage.start
    try:
        files = discover_source_files(source_dir)
        buckets = bucket_source_files(files, config.tables, fan_out=config.fan_out)

        person_files = buckets[config.person_table]
        if not person_files:
            raise NoPersonSourceError(config.person_table)

        person_tables = _read_person_files(person_files, person_id_column=config.person_id_column)
        stage = BuildStage.person_parsed

        columns = _ColumnCache(conn)
        sample = sample_person_ids(
            (_cell(record, idx) for _, parsed, idx in person_tables for record in parsed.records),
            config.sample_size,
            rng=rng,
        )
        stage = BuildStage.sampling_done

        summaries = [
            _load_person_table(
                conn,
                table_name=config.person_table,
                columns=columns.get(config.person_table),
                person_tables=person_tables,
                sample=sample,
            )
        ]
        # person records are not needed past this point
        del person_tables
        stage = BuildStage.table_loop

        for table in config.dependent_tables:
            table_files = buckets[table]
            if not table_files:
                logger.info("skip table (no source file): %s", table)
                summaries.append(
                    TableLoadSummary(table_name=table, files=0, inserted=0, ignored_duplicates=0, skipped=True)
                )
                continue

            summaries.append(
                _load_dependent_table(
                    conn,
                    table_name=table,
                    files=table_files,
                    columns=columns.get(table),
                    person_id_column=config.person_id_column,
                    sample=sample,
                )
            )

        conn.commit()
        logger.info("sample build committed: %d person ids", len(sample))

        return BuildSummary(sample_size=config.sample_size, sampled=len(sample), tables=tuple(summaries))

    except Exception:
        logger.error("sample build aborted during %s, rolling back", stage.value)
        conn.rollback()
        raise
