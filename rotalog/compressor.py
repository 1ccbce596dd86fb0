"""Backup compression with gzip/bz2/xz codecs and crash-safe output."""

import bz2
import gzip
import lzma
import os
import shutil
import time
from dataclasses import dataclass

from rotalog.errors import CompressionError

TEMP_SUFFIX = ".tmp"
CHUNK_SIZE = 64 * 1024

CODECS = {
    "gzip": ".gz",
    "bz2": ".bz2",
    "xz": ".xz",
}
CODEC_SUFFIXES = tuple(CODECS.values())


@dataclass
class CompressionResult:
    source: str
    target: str
    original_size: int
    compressed_size: int
    ratio: float
    time_ms: float
    algorithm: str
    level: int


def open_backup(path: str):
    """Open a backup for binary reading, decompressing by file suffix."""
    if path.endswith(".gz"):
        return gzip.open(path, "rb")
    if path.endswith(".bz2"):
        return bz2.open(path, "rb")
    if path.endswith(".xz"):
        return lzma.open(path, "rb")
    return open(path, "rb")


def decompress_to_bytes(path: str) -> bytes:
    with open_backup(path) as f:
        return f.read()


class Compressor:
    """Streams a file through a codec into a target path.

    Output goes to ``<target>.tmp`` first and is renamed into place only after
    the whole stream was written and fsynced, so a crash or error never leaves
    a truncated archive at ``target``.
    """

    def __init__(self, algorithm: str = "gzip", level: int = 6):
        self._algorithm = algorithm.lower()
        if self._algorithm not in CODECS:
            raise ValueError(f"Unsupported algorithm: {self._algorithm}")
        self._level = max(0, min(9, level))

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def level(self) -> int:
        return self._level

    @property
    def suffix(self) -> str:
        return CODECS[self._algorithm]

    def _wrap(self, raw, source: str):
        if self._algorithm == "gzip":
            return gzip.GzipFile(
                filename=os.path.basename(source), mode="wb",
                compresslevel=self._level, fileobj=raw,
            )
        if self._algorithm == "bz2":
            # bz2 has no level 0
            return bz2.BZ2File(raw, "wb", compresslevel=max(1, self._level))
        return lzma.LZMAFile(raw, "wb", preset=self._level)

    def compress(self, source: str, target: str) -> CompressionResult:
        tmp_path = target + TEMP_SUFFIX
        start = time.monotonic()
        try:
            with open(source, "rb") as f_in, open(tmp_path, "wb") as raw:
                with self._wrap(raw, source) as f_out:
                    shutil.copyfileobj(f_in, f_out, CHUNK_SIZE)
                raw.flush()
                os.fsync(raw.fileno())
            original_size = os.path.getsize(source)
            compressed_size = os.path.getsize(tmp_path)
            os.replace(tmp_path, target)
        except Exception as e:
            message = f"Failed to compress {source} -> {target}: {e}"
            leftover = self._discard(tmp_path)
            if leftover is not None:
                message += f" (partial archive {tmp_path} left behind: {leftover})"
            raise CompressionError(message) from e

        elapsed_ms = (time.monotonic() - start) * 1000
        ratio = original_size / compressed_size if compressed_size > 0 else 1.0
        return CompressionResult(
            source=source,
            target=target,
            original_size=original_size,
            compressed_size=compressed_size,
            ratio=ratio,
            time_ms=elapsed_ms,
            algorithm=self._algorithm,
            level=self._level,
        )

    @staticmethod
    def _discard(tmp_path: str) -> OSError | None:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            return e
        return None
