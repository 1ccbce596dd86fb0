"""Retention enforcement: bound the number and age of backups for one base path."""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from rotalog.compressor import TEMP_SUFFIX
from rotalog.naming import BackupFile, BackupNamer, to_utc

logger = logging.getLogger(__name__)


@dataclass
class RetentionResult:
    deleted: list[str] = field(default_factory=list)
    errors: list[tuple[str, OSError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class RetentionManager:
    """Deletes backups beyond a count limit (and optionally an age limit).

    Ordering always comes from the namer's key, never from file mtimes.
    """

    def __init__(self, namer: BackupNamer, max_age_days: int = 0, time_func=None):
        self._namer = namer
        self._max_age_days = max_age_days
        self._time_func = time_func or (lambda: datetime.now(timezone.utc))

    def list_backups(self) -> list[BackupFile]:
        """Return backups for the base path sorted oldest-first."""
        try:
            names = os.listdir(self._namer.directory)
        except FileNotFoundError:
            return []
        return self._namer.select(names)

    def enforce(self, max_backups: int) -> RetentionResult:
        """Delete expired backups, then all but the newest ``max_backups``.

        ``max_backups == 0`` leaves the count unbounded. A failed delete is
        recorded and the remaining candidates are still attempted. Nothing is
        logged; the caller reports the result.
        """
        result = RetentionResult()
        backups = self.list_backups()

        survivors = []
        cutoff = None
        if self._max_age_days > 0:
            cutoff = to_utc(self._time_func()) - timedelta(days=self._max_age_days)
        for backup in backups:
            # index-named backups carry no creation time and are only count-purged
            if cutoff is not None and backup.created_at is not None and backup.created_at < cutoff:
                self._delete(backup, result)
            else:
                survivors.append(backup)

        if max_backups > 0 and len(survivors) > max_backups:
            for backup in survivors[: len(survivors) - max_backups]:
                self._delete(backup, result)

        return result

    def remove_stale_temps(self) -> list[str]:
        """Delete leftover compression temp files from an interrupted rotation."""
        prefix = os.path.basename(self._namer.base_path) + "."
        removed = []
        try:
            names = os.listdir(self._namer.directory)
        except FileNotFoundError:
            return removed
        for name in names:
            if not (name.startswith(prefix) and name.endswith(TEMP_SUFFIX)):
                continue
            path = os.path.join(self._namer.directory, name)
            try:
                os.remove(path)
            except OSError as e:
                logger.warning("Could not remove stale temp file %s: %s", path, e)
                continue
            removed.append(path)
        if removed:
            logger.info("Removed %d stale temp file(s)", len(removed))
        return removed

    @staticmethod
    def _delete(backup: BackupFile, result: RetentionResult):
        try:
            os.remove(backup.path)
        except FileNotFoundError:
            # already gone; the goal state holds
            result.deleted.append(backup.path)
        except OSError as e:
            result.errors.append((backup.path, e))
        else:
            result.deleted.append(backup.path)
