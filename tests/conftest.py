from __future__ import annotations

import bz2
import gzip
from pathlib import Path
from typing import Callable

import pytest
import zstandard


def _find_repo_root(start: Path) -> Path:
    marker = "pyproject.toml"
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if (p / marker).exists():
            return p
    raise RuntimeError(f"Could not find repo root from: {start}")


@pytest.fixture(scope="session")
def repo_root() -> Path:
    """The absolute path to the repo root (finds by walking up to `pyproject.toml`)."""
    return _find_repo_root(Path(__file__))


WriteSource = Callable[[str, str], Path]


@pytest.fixture()
def source_dir(tmp_path: Path) -> Path:
    """An empty input directory for source files."""
    d = tmp_path / "source"
    d.mkdir()
    return d


@pytest.fixture()
def write_source(source_dir: Path) -> WriteSource:
    """
    Write `text` under `source_dir` as `name`, compressed according to its suffix.

    Returns the written path.
    """

    def _write(name: str, text: str) -> Path:
        p = source_dir / name
        p.parent.mkdir(parents=True, exist_ok=True)
        data = text.encode("utf-8")
        lower = name.lower()
        if lower.endswith((".gz", ".gzip")):
            data = gzip.compress(data)
        elif lower.endswith(".bz2"):
            data = bz2.compress(data)
        elif lower.endswith(".zst"):
            data = zstandard.ZstdCompressor().compress(data)
        p.write_bytes(data)
        return p

    return _write
