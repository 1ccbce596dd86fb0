"""Inspector logic: list, read, and search a live log file and its backups."""

import io
import logging
import lzma
import os
import zlib

from rotalog.compressor import open_backup
from rotalog.naming import make_namer

logger = logging.getLogger(__name__)


def list_log_files(base_path: str, naming: str = "timestamp") -> list[str]:
    """Return backup filenames oldest-first, followed by the live file if present."""
    namer = make_namer(naming, base_path)
    try:
        names = os.listdir(namer.directory)
    except FileNotFoundError:
        return []
    files = [b.name for b in namer.select(names)]
    live = os.path.basename(base_path)
    if live in names:
        files.append(live)
    return files


def read_file(base_path: str, filename: str) -> str:
    """Read a log file next to ``base_path``, transparently decompressing backups."""
    path = os.path.join(os.path.dirname(base_path) or ".", filename)
    if not os.path.exists(path):
        raise FileNotFoundError(f"File not found: {path}")
    with open_backup(path) as f:
        return f.read().decode("utf-8", errors="replace")


def search_files(base_path: str, text: str, naming: str = "timestamp") -> list[tuple[str, int, str]]:
    """Search for text across the live file and all backups, oldest first.

    Returns (filename, line_num, line) tuples. Unreadable archives are skipped
    with a warning.
    """
    directory = os.path.dirname(base_path) or "."
    results = []
    for filename in list_log_files(base_path, naming):
        path = os.path.join(directory, filename)
        try:
            with open_backup(path) as raw, io.TextIOWrapper(raw, encoding="utf-8", errors="replace") as f:
                for line_num, line in enumerate(f, 1):
                    if text in line:
                        results.append((filename, line_num, line.rstrip("\n")))
        except (OSError, EOFError, zlib.error, lzma.LZMAError) as e:
            logger.warning("Skipping unreadable file %s: %s", path, e)
            continue
    return results
