from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from cdm_sampler.cli.loader import build_sample_db
from cdm_sampler.config import CDM_TABLES, DEFAULT_SAMPLE_SIZE, BuildConfig
from cdm_sampler.db.connect import connect
from cdm_sampler.db.initialize import apply_schema_sql, db_init
from cdm_sampler.ingest.errors import SampleBuildError


def _positive_int(s: str) -> int:
    try:
        n = int(s)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {s!r}")
    if n <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {s!r}")
    return n


def _table_list(s: str) -> tuple[str, ...]:
    tables = tuple(t.strip() for t in s.split(",") if t.strip())
    if not tables:
        raise argparse.ArgumentTypeError("expected a comma separated list of tables")
    return tables


def main(argv: list[str] | None = None) -> int:
    """
    A CLI for building a sampled CDM database in Postgres.

    The `cmd` options are:
    ## build:
    Loads a directory of (possibly compressed) CDM `.csv`/`.txt` files, keeping
    only a random sample of persons, in one transaction.
    - `--input-dir` the directory holding the source files,
    - `--sample-size` how many person ids to keep (default 1000),
    - `--schema-sql` optional DDL file/dir applied before loading.

    One summary line per table prints in the terminal upon completion.

    ### Example build usage:
    - `cdm-sample build --input-dir data/synpuf --sample-size 1000 --schema-sql sql`

    ## db:
    Database controlling commands, includes schema initialization.
    - `init` applies the CDM DDL
    - `--sql` is an optional pointer to the SQL file or dir to apply.

    `--dsn` defaults to the `CDM_DSN` environment variable.
    """
    p = argparse.ArgumentParser(prog="cdm-sample")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = p.add_subparsers(dest="cmd", required=True)

    # build cmd
    build = sub.add_parser("build", help="Build a sampled CDM database from a directory of source files.")
    build.add_argument("--input-dir", required=True, help="Directory of CDM source files (searched recursively).")
    build.add_argument("--sample-size", type=_positive_int, default=DEFAULT_SAMPLE_SIZE, help="Number of persons to keep.")
    build.add_argument(
        "--tables",
        type=_table_list,
        default=CDM_TABLES,
        help="Comma separated tables to load, in order (default: all CDM tables).",
    )
    build.add_argument(
        "--no-fan-out",
        dest="fan_out",
        action="store_false",
        help="Load a file matching several tables only into its most specific table.",
    )
    build.add_argument("--schema-sql", default=None, help="Optional DDL file or dir of `.sql` files applied first.")
    build.add_argument("--dsn", default=None, help="Destination Postgres DSN (default: $CDM_DSN).")

    # db cmd
    db = sub.add_parser("db", help="Database utilities.")
    db_sub = db.add_subparsers(dest="db_cmd", required=True)

    db_init_p = db_sub.add_parser("init", help="Initialize the CDM schema from SQL file(s).")
    db_init_p.add_argument("--sql", default="sql", help="Path to schema SQL file OR a directory of `.sql` files.")
    db_init_p.add_argument("--dsn", default=None, help="Destination Postgres DSN (default: $CDM_DSN).")

    args = p.parse_args(argv)

    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.cmd == "build":
        try:
            config = BuildConfig(sample_size=args.sample_size, tables=args.tables, fan_out=args.fan_out)
        except ValueError as e:
            p.error(str(e))

        try:
            with connect(args.dsn) as conn:
                if args.schema_sql:
                    apply_schema_sql(conn, Path(args.schema_sql))
                summary = build_sample_db(conn, source_dir=Path(args.input_dir), config=config)
        except SampleBuildError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1

        for line in summary.render_lines():
            print(line)
        return 0

    if args.cmd == "db" and args.db_cmd == "init":
        db_init(sql_path=Path(args.sql), database_url=args.dsn)
        print(f"Initialized schema from {args.sql}")
        return 0

    return 2
