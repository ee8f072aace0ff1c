from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Sequence

from cdm_sampler.ingest.errors import NoSourceFilesError
from cdm_sampler.ingest.readers import detect_codec, is_compression_suffix
from cdm_sampler.parsing.types import SourceFile

logger = logging.getLogger(__name__)


_DATA_EXT = re.compile(r"\.(csv|txt)$", re.IGNORECASE)
_CODEC_EXT = re.compile(r"\.(gz|gzip|bz2|zst)$", re.IGNORECASE)
_NON_NAME_CHARS = re.compile(r"[^a-z0-9_]")


def is_candidate_name(name: str) -> bool:
    """`*.csv`/`*.txt`, optionally followed by one compression suffix."""
    if _DATA_EXT.search(name):
        return True
    stem, dot, ext = name.rpartition(".")
    return bool(dot) and is_compression_suffix(f".{ext}") and bool(_DATA_EXT.search(stem))


def discover_source_files(source_dir: Path) -> list[SourceFile]:
    """
    Walk `source_dir` recursively and return its candidate files, sorted by path.

    The codec of each file is resolved here, so an unsupported compression suffix
    fails the run before any table is touched.
    Raises `NoSourceFilesError` when nothing qualifies.
    """
    out: list[SourceFile] = []
    for p in sorted(source_dir.rglob("*")):
        if not p.is_file() or not is_candidate_name(p.name):
            continue
        out.append(SourceFile(path=p, codec=detect_codec(p)))

    if not out:
        raise NoSourceFilesError(source_dir)
    logger.info("discovered %d source files in %s", len(out), source_dir)
    return out


def strip_data_extensions(name: str) -> str:
    """Drop one `.csv`/`.txt` and one compression suffix, in either order."""
    s = _DATA_EXT.sub("", name, count=1)
    s = _CODEC_EXT.sub("", s, count=1)
    return _DATA_EXT.sub("", s, count=1)


def normalize_table_name(base_name: str) -> str:
    """
    `cdm_Person.csv.gz` -> `person`.

    Lower case, no `cdm_` prefix, only `[a-z0-9_]` left.
    """
    stripped = strip_data_extensions(base_name).lower()
    if stripped.startswith("cdm_"):
        stripped = stripped[len("cdm_"):]
    return _NON_NAME_CHARS.sub("", stripped)


def _unprefixed_name(base_name: str) -> str:
    """Like `normalize_table_name`, but keeping a `cdm_` prefix."""
    return _NON_NAME_CHARS.sub("", strip_data_extensions(base_name).lower())


def classify_table(base_name: str, tables: Sequence[str]) -> tuple[str, ...]:
    """
    Every table in `tables` that `base_name` matches.

    A normalized name matches `table` when it equals `table` or `cdm_<table>`,
    ends with `_<table>`, or starts with `<table>_`. The rules overlap, so one
    file can land in several tables; all of them are returned.
    An empty result means the file is not loaded.
    """
    normalized = normalize_table_name(base_name)
    # a table whose own name starts with `cdm_` would lose it to the prefix strip
    unprefixed = _unprefixed_name(base_name)

    matched: list[str] = []
    for table in tables:
        if (
            normalized == table
            or normalized == f"cdm_{table}"
            or normalized.endswith(f"_{table}")
            or normalized.startswith(f"{table}_")
            or unprefixed == table
        ):
            matched.append(table)
    return tuple(matched)


def most_specific_table(base_name: str, matched: Sequence[str]) -> str:
    """
    Pick one table out of several matches: an exact name match first, otherwise
    the longest table name (first one on ties).
    """
    normalized = normalize_table_name(base_name)
    unprefixed = _unprefixed_name(base_name)
    for table in matched:
        if table in (normalized, unprefixed) or normalized == f"cdm_{table}":
            return table
    return max(matched, key=len)


def bucket_source_files(
    files: Iterable[SourceFile],
    tables: Sequence[str],
    *,
    fan_out: bool = True,
) -> dict[str, list[SourceFile]]:
    """
    Group `files` by target table, keeping discovery order within each table.

    Every table in `tables` gets a key, possibly with no files. With `fan_out`
    a file goes to every table it matches, otherwise only to `most_specific_table`.
    """
    buckets: dict[str, list[SourceFile]] = {t: [] for t in tables}
    for f in files:
        matched = classify_table(f.base_name, tables)
        if not matched:
            logger.debug("no table matches %s, dropped", f.path)
            continue
        if len(matched) > 1:
            if not fan_out:
                matched = (most_specific_table(f.base_name, matched),)
            else:
                logger.warning("%s matches several tables: %s", f.path, ", ".join(matched))
        for table in matched:
            buckets[table].append(f)
    return buckets
