"""Rotation events and thread-safe writer metrics."""

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime

from rotalog.compressor import CompressionResult


@dataclass
class RotationEvent:
    """Outcome of one rotation. Never persisted."""

    reason: str  # "size", "interval" or "manual"
    old_size: int
    started_at: datetime
    backup_path: str | None = None
    success: bool = True
    errors: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    compression: CompressionResult | None = None
    duration_ms: float = 0.0

    def fail(self, message: str):
        self.success = False
        self.errors.append(message)


class WriterMetrics:
    """Tracks write and rotation statistics for one writer."""

    def __init__(self):
        self._lock = threading.Lock()
        self._writes = 0
        self._bytes_written = 0
        self._write_errors = 0
        self._rotations = 0
        self._rotation_failures = 0
        self._backups_deleted = 0
        self._delete_errors = 0
        self._start_time = time.monotonic()

    def record_write(self, nbytes: int):
        with self._lock:
            self._writes += 1
            self._bytes_written += nbytes

    def record_write_error(self):
        with self._lock:
            self._write_errors += 1

    def record_rotation(self, event: RotationEvent):
        with self._lock:
            self._rotations += 1
            if not event.success:
                self._rotation_failures += 1

    def record_deleted(self, count: int):
        with self._lock:
            self._backups_deleted += count

    def record_delete_errors(self, count: int):
        with self._lock:
            self._delete_errors += count

    def snapshot(self) -> dict:
        with self._lock:
            elapsed = time.monotonic() - self._start_time
            return {
                "writes": self._writes,
                "bytes_written": self._bytes_written,
                "write_errors": self._write_errors,
                "rotations": self._rotations,
                "rotation_failures": self._rotation_failures,
                "backups_deleted": self._backups_deleted,
                "delete_errors": self._delete_errors,
                "elapsed_seconds": round(elapsed, 1),
            }
