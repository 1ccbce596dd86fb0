"""Backup file naming schemes.

Two schemes are supported, and a writer uses exactly one for its lifetime:

* ``timestamp`` (default): ``app.log.20250115_120000_000000[.gz]``. Names are
  never reassigned; the UTC rotation time is the ordering key.
* ``index``: ``app.log.1``, ``app.log.2.gz`` ... The newest backup is always
  ``.1`` and every rotation shifts the existing ones up by one, so a larger
  index means an older backup.

Everything here is pure: the namer maps keys to paths and filenames back to
keys, and computes rename plans from a listing handed to it.
"""

import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from rotalog.compressor import CODEC_SUFFIXES

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
_TIMESTAMP_RE = re.compile(r"\d{8}_\d{6}_\d{6}")
_INDEX_RE = re.compile(r"[1-9]\d*")


@dataclass(frozen=True)
class BackupFile:
    path: str
    key: object  # datetime for the timestamp scheme, negated index for the index scheme
    compressed: bool
    suffix: str = ""
    created_at: datetime | None = None
    index: int | None = None

    @property
    def name(self) -> str:
        return os.path.basename(self.path)


@dataclass(frozen=True)
class RotationPlan:
    target: str  # uncompressed path the live file is moved to
    key: object
    renames: tuple[tuple[str, str], ...] = field(default_factory=tuple)


def to_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class BackupNamer:
    """Base class: shared filename parsing for one base path."""

    scheme = ""

    def __init__(self, base_path: str):
        self._base_path = base_path
        self._directory = os.path.dirname(base_path) or "."
        self._prefix = os.path.basename(base_path) + "."

    @property
    def base_path(self) -> str:
        return self._base_path

    @property
    def directory(self) -> str:
        return self._directory

    def backup_path(self, key, suffix: str = "") -> str:
        raise NotImplementedError

    def _parse_key(self, token: str):
        """Return (key, created_at, index) for a suffix token, or None."""
        raise NotImplementedError

    def parse(self, filename: str) -> BackupFile | None:
        """Map a filename in the base path's directory to a BackupFile.

        Returns None for the live file, foreign files and temporary files.
        """
        if not filename.startswith(self._prefix):
            return None
        token = filename[len(self._prefix):]
        suffix = ""
        for candidate in CODEC_SUFFIXES:
            if token.endswith(candidate):
                suffix = candidate
                token = token[: -len(candidate)]
                break
        parsed = self._parse_key(token)
        if parsed is None:
            return None
        key, created_at, index = parsed
        return BackupFile(
            path=os.path.join(self._directory, filename),
            key=key,
            compressed=bool(suffix),
            suffix=suffix,
            created_at=created_at,
            index=index,
        )

    def select(self, filenames) -> list[BackupFile]:
        """Parse a directory listing into backups sorted oldest-first."""
        backups = [b for b in (self.parse(name) for name in filenames) if b is not None]
        backups.sort(key=lambda b: b.key)
        return backups

    def plan(self, backups: list[BackupFile], now: datetime) -> RotationPlan:
        raise NotImplementedError


class TimestampNamer(BackupNamer):
    scheme = "timestamp"

    def backup_path(self, key: datetime, suffix: str = "") -> str:
        stamp = to_utc(key).strftime(TIMESTAMP_FORMAT)
        return f"{self._base_path}.{stamp}{suffix}"

    def _parse_key(self, token: str):
        if not _TIMESTAMP_RE.fullmatch(token):
            return None
        try:
            stamp = datetime.strptime(token, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError:
            return None
        return stamp, stamp, None

    def plan(self, backups: list[BackupFile], now: datetime) -> RotationPlan:
        stamp = to_utc(now)
        if backups and stamp <= backups[-1].key:
            # clock went backwards or two rotations in one microsecond
            stamp = backups[-1].key + timedelta(microseconds=1)
        return RotationPlan(target=self.backup_path(stamp), key=stamp)


class IndexNamer(BackupNamer):
    scheme = "index"

    def backup_path(self, key: int, suffix: str = "") -> str:
        return f"{self._base_path}.{key}{suffix}"

    def _parse_key(self, token: str):
        if not _INDEX_RE.fullmatch(token):
            return None
        index = int(token)
        return -index, None, index

    def plan(self, backups: list[BackupFile], now: datetime) -> RotationPlan:
        # backups arrive oldest (highest index) first, so no rename clobbers another
        renames = tuple(
            (b.path, self.backup_path(b.index + 1, b.suffix)) for b in backups
        )
        return RotationPlan(target=self.backup_path(1), key=-1, renames=renames)


def make_namer(scheme: str, base_path: str) -> BackupNamer:
    if scheme == "timestamp":
        return TimestampNamer(base_path)
    if scheme == "index":
        return IndexNamer(base_path)
    raise ValueError(f"Unsupported naming scheme: {scheme}")
