from __future__ import annotations

import bz2
import gzip
from pathlib import Path
from typing import IO

import zstandard

from cdm_sampler.ingest.errors import UnsupportedCodecError
from cdm_sampler.parsing.types import Codec, SourceFile


# suffix (lower case) -> codec
_CODEC_SUFFIXES: dict[str, Codec] = {
    ".gz": Codec.gz,
    ".gzip": Codec.gz,
    ".bz2": Codec.bz2,
    ".zst": Codec.zstd,
}

# recognised as compression, but there is no decoder for them here.
_UNSUPPORTED_SUFFIXES = {".xz", ".lz4", ".lzma", ".zip", ".7z", ".br", ".z", ".zstd"}

# `utf-8-sig` drops a leading byte-order mark if there is one.
_ENCODING = "utf-8-sig"


def is_compression_suffix(suffix: str) -> bool:
    """Whether `suffix` looks like a compression extension, supported or not."""
    s = suffix.lower()
    return s in _CODEC_SUFFIXES or s in _UNSUPPORTED_SUFFIXES


def detect_codec(path: Path) -> Codec:
    """
    Pick the codec from the last suffix of `path`, case-insensitive.

    Raises `UnsupportedCodecError` for a compression-looking suffix with no decoder.
    A suffix that is not compression at all means a plain file.
    """
    suffix = path.suffix.lower()
    codec = _CODEC_SUFFIXES.get(suffix)
    if codec is not None:
        return codec
    if suffix in _UNSUPPORTED_SUFFIXES:
        raise UnsupportedCodecError(path, suffix)
    return Codec.none


def open_source_text(source: SourceFile) -> IO[str]:
    """Open `source` as decompressed UTF-8 text. The caller closes the stream."""
    if source.codec is Codec.gz:
        return gzip.open(source.path, "rt", encoding=_ENCODING, newline="")
    if source.codec is Codec.bz2:
        return bz2.open(source.path, "rt", encoding=_ENCODING, newline="")
    if source.codec is Codec.zstd:
        return zstandard.open(source.path, "rt", encoding=_ENCODING, newline="")
    return source.path.open("r", encoding=_ENCODING, newline="")


def read_source_text(source: SourceFile) -> str:
    """
    Return the full decompressed text of `source`.

    `newline=""` keeps `\\r` in the text, the parser discards it.
    """
    with open_source_text(source) as f:
        return f.read()
