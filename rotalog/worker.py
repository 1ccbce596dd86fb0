"""RetentionWorker: one consumer thread that serializes retention runs for a writer."""

import logging
import queue
from threading import Thread

logger = logging.getLogger(__name__)


class RetentionWorker(Thread):
    """Runs queued retention jobs one at a time, holding the writer's backup lock.

    Rotations take the same lock while they rename backups, so a cleanup can
    never interleave with a rotation for the same base path.
    """

    def __init__(self, job, lock, on_result=None, name: str = "rotalog-retention"):
        super().__init__(daemon=True, name=name)
        self._job = job
        self._lock = lock
        self._on_result = on_result
        self._queue: queue.Queue = queue.Queue()
        self._runs = 0

    @property
    def runs(self) -> int:
        return self._runs

    def submit(self):
        self._queue.put(True)

    def wait_idle(self):
        """Block until every submitted job has finished."""
        self._queue.join()

    def run(self):
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                with self._lock:
                    result = self._job()
                self._runs += 1
                # reported after the lock is released
                if self._on_result is not None:
                    self._on_result(result)
            except Exception:
                logger.exception("Background retention run failed")
            finally:
                self._queue.task_done()

    def stop(self, timeout: float = 10.0):
        """Let queued jobs finish, then stop the thread."""
        self._queue.put(None)
        self.join(timeout=timeout)
