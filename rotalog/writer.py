"""Append-only byte writer with size-based (and optional time-based) rotation."""

import logging
import os
import shutil
import threading
import time
from datetime import datetime, timezone

from rotalog.compressor import Compressor
from rotalog.config import WriterConfig
from rotalog.errors import CompressionError, RotationError
from rotalog.events import RotationEvent, WriterMetrics
from rotalog.naming import BackupFile, make_namer
from rotalog.retention import RetentionManager, RetentionResult
from rotalog.worker import RetentionWorker

logger = logging.getLogger(__name__)

STATE_OPEN = "open"
STATE_ROTATING = "rotating"
STATE_CLOSED = "closed"


class RotatingWriter:
    """Owns the live file at ``config.base_path`` and rotates it by size.

    Every write runs check-rotate-write under one lock, so the size counter
    and the rotation trigger stay exact with many writer threads. The live
    handle is unbuffered: a returned count is on the OS side already.
    """

    def __init__(self, config: WriterConfig, time_func=None, on_rotate=None, compressor=None,
                 on_retention=None):
        self._config = config
        self._time_func = time_func or (lambda: datetime.now(timezone.utc))
        self._on_rotate = on_rotate
        self._on_retention = on_retention
        self._lock = threading.Lock()
        # guards backup renames and deletions; taken after self._lock, never before
        self._backup_lock = threading.Lock()
        self._file = None
        self._size = 0
        self._state = STATE_CLOSED
        self._closed = False
        self._last_event: RotationEvent | None = None
        self._metrics = WriterMetrics()

        self._namer = make_namer(config.naming, config.base_path)
        self._retention = RetentionManager(self._namer, config.max_age_days, self._time_func)
        if compressor is None and config.compress:
            compressor = Compressor(config.compression_algorithm, config.compression_level)
        self._compressor = compressor if config.compress else None

        os.makedirs(self._namer.directory, exist_ok=True)
        self._retention.remove_stale_temps()
        self._open(append=True)
        self._last_rotation = self._time_func()

        self._worker = None
        if config.background_retention:
            self._worker = RetentionWorker(
                self._run_retention, self._backup_lock, on_result=self._report_retention,
            )
            self._worker.start()

    @property
    def config(self) -> WriterConfig:
        return self._config

    @property
    def base_path(self) -> str:
        return self._config.base_path

    @property
    def current_size(self) -> int:
        with self._lock:
            return self._size

    @property
    def state(self) -> str:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def metrics(self) -> WriterMetrics:
        return self._metrics

    @property
    def last_event(self) -> RotationEvent | None:
        return self._last_event

    def writable(self) -> bool:
        return not self._closed

    def backups(self) -> list[BackupFile]:
        """Existing backups for this base path, oldest first."""
        return self._retention.list_backups()

    def _open(self, append: bool):
        if append:
            self._file = open(self._config.base_path, "ab", buffering=0)
            self._size = os.fstat(self._file.fileno()).st_size
        else:
            self._file = open(self._config.base_path, "wb", buffering=0)
            self._size = 0
        self._state = STATE_OPEN

    def _ensure_open(self, notices: "_Notices"):
        if self._closed:
            raise ValueError("I/O operation on closed writer")
        if self._file is None:
            notices.log(logging.INFO, "Reopening %s after an earlier failure", self._config.base_path)
            self._open(append=True)

    def _rotation_reason(self, incoming: int) -> str | None:
        if self._size == 0:
            return None
        if self._size + incoming > self._config.max_size_bytes:
            return "size"
        interval = self._config.rotation_interval_seconds
        if interval:
            elapsed = (self._time_func() - self._last_rotation).total_seconds()
            if elapsed >= interval:
                return "interval"
        return None

    def write(self, data) -> int:
        """Append a byte sequence, rotating first if it would overflow the file.

        Returns the number of bytes written. OS errors propagate unchanged and
        only the bytes confirmed before the error are counted.
        """
        if isinstance(data, str):
            raise TypeError("write() argument must be a bytes-like object, not str")
        view = memoryview(data).cast("B")
        notices = _Notices()
        try:
            with self._lock:
                self._ensure_open(notices)
                reason = self._rotation_reason(len(view))
                if reason is not None:
                    self._rotate(reason, notices)

                written = 0
                try:
                    while written < len(view):
                        n = self._file.write(view[written:])
                        if not n:
                            break
                        written += n
                except OSError:
                    self._metrics.record_write_error()
                    raise
                finally:
                    self._size += written
                self._metrics.record_write(written)
                return written
        finally:
            self._publish(notices)

    def write_line(self, entry: str) -> int:
        """Write one text entry as UTF-8, adding the trailing newline if missing."""
        if not entry.endswith("\n"):
            entry += "\n"
        return self.write(entry.encode("utf-8"))

    def rotate(self) -> RotationEvent:
        """Force a rotation regardless of size."""
        notices = _Notices()
        try:
            with self._lock:
                self._ensure_open(notices)
                return self._rotate("manual", notices)
        finally:
            self._publish(notices)

    def _rotate(self, reason: str, notices: "_Notices") -> RotationEvent:
        event = RotationEvent(reason=reason, old_size=self._size, started_at=self._time_func())
        notices.events.append(event)
        start = time.monotonic()
        self._state = STATE_ROTATING
        try:
            try:
                self._file.close()
            except OSError as e:
                event.fail(f"close failed: {e}")
                raise RotationError(f"Could not close {self._config.base_path}: {e}") from e
            finally:
                self._file = None

            with self._backup_lock:
                self._move_aside(event)
                if self._worker is None:
                    result = self._run_retention()
                    event.deleted.extend(result.deleted)
                    for path, err in result.errors:
                        event.fail(f"delete {path} failed: {err}")

            try:
                self._open(append=False)
            except OSError as e:
                event.fail(f"reopen failed: {e}")
                raise
            self._last_rotation = event.started_at
            if self._worker is not None:
                self._worker.submit()
        finally:
            if self._file is None:
                self._state = STATE_CLOSED
            event.duration_ms = (time.monotonic() - start) * 1000
            self._last_event = event
            self._metrics.record_rotation(event)
        return event

    def _move_aside(self, event: RotationEvent):
        base = self._config.base_path
        plan = self._namer.plan(self._retention.list_backups(), event.started_at)
        try:
            for src, dst in plan.renames:
                os.replace(src, dst)
            shutil.move(base, plan.target)
        except OSError as e:
            event.fail(f"move {base} -> {plan.target} failed: {e}")
            return
        event.backup_path = plan.target

        if self._compressor is None:
            return
        archive = plan.target + self._compressor.suffix
        try:
            event.compression = self._compressor.compress(plan.target, archive)
        except CompressionError as e:
            event.fail(f"{e}; kept uncompressed backup {plan.target}")
            return
        try:
            os.remove(plan.target)
        except OSError as e:
            event.fail(f"compressed {plan.target} but could not remove it: {e}")
        event.backup_path = archive

    def _run_retention(self) -> RetentionResult:
        result = self._retention.enforce(self._config.max_backups)
        self._metrics.record_deleted(len(result.deleted))
        self._metrics.record_delete_errors(len(result.errors))
        return result

    def _publish(self, notices: "_Notices"):
        # runs with no writer lock held: a handler that logs into this writer
        # or an on_rotate callback that writes to it must not block
        for level, msg, args in notices.messages:
            logger.log(level, msg, *args)
        for event in notices.events:
            if event.deleted:
                logger.info("Purged %d backup(s): %s", len(event.deleted), ", ".join(event.deleted))
            if event.success:
                logger.info(
                    "Rotated %s -> %s (%d bytes, reason=%s, %.1fms)",
                    self._config.base_path, event.backup_path, event.old_size,
                    event.reason, event.duration_ms,
                )
            else:
                logger.error(
                    "Rotation of %s finished with errors: %s",
                    self._config.base_path, "; ".join(event.errors),
                )
            if self._on_rotate is not None:
                try:
                    self._on_rotate(event)
                except Exception:
                    logger.exception("on_rotate callback failed")

    def _report_retention(self, result: RetentionResult):
        """Called by the worker thread, outside the backup lock, after each run."""
        if result.deleted:
            logger.info("Purged %d backup(s): %s", len(result.deleted), ", ".join(result.deleted))
        for path, err in result.errors:
            logger.warning("Failed to delete backup %s: %s", path, err)
        if self._on_retention is not None:
            try:
                self._on_retention(result)
            except Exception:
                logger.exception("on_retention callback failed")

    def wait_for_retention(self):
        """Block until queued background retention runs are done (no-op when synchronous)."""
        if self._worker is not None:
            self._worker.wait_idle()

    def flush(self):
        with self._lock:
            if self._file is not None:
                self._file.flush()

    def close(self):
        """Close the live file and stop the retention worker. Safe to call twice."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._state = STATE_CLOSED
            file, self._file = self._file, None
        # the worker may log into a handler that writes here; never join it under the lock
        try:
            if file is not None:
                file.flush()
                file.close()
        finally:
            if self._worker is not None:
                self._worker.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        return f"RotatingWriter({self._config.base_path!r}, state={self._state}, size={self._size})"


def open_writer(base_path: str, max_size_bytes: int, max_backups: int = 5,
                compress: bool = False, **options) -> RotatingWriter:
    """Shortcut for ``RotatingWriter(WriterConfig(...))``."""
    config = WriterConfig(
        base_path=base_path,
        max_size_bytes=max_size_bytes,
        max_backups=max_backups,
        compress=compress,
        **options,
    )
    return RotatingWriter(config)


class _Notices:
    """Log lines and rotation events gathered while the writer's lock is held."""

    def __init__(self):
        self.messages: list[tuple[int, str, tuple]] = []
        self.events: list[RotationEvent] = []

    def log(self, level: int, msg: str, *args):
        self.messages.append((level, msg, args))
