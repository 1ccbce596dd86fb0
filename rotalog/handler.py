"""logging.Handler that sends formatted records to a RotatingWriter."""

import logging
import threading

from rotalog.writer import RotatingWriter


class RotatingWriterHandler(logging.Handler):
    """Write each formatted record as one UTF-8 line.

    The handler does not own the writer unless ``close_writer`` is set, so
    several handlers (or other producers) can share one writer.

    Attached to the root logger, the handler also receives the writer's own
    ``rotalog`` records, which are logged after a rotation releases the
    writer lock. Those are written too, one level deep: a record logged while
    writing such a record is dropped, so a file smaller than a rotation
    notice cannot rotate in an endless loop.
    """

    terminator = "\n"
    max_nesting = 1

    def __init__(self, writer: RotatingWriter, level=logging.NOTSET,
                 encoding: str = "utf-8", close_writer: bool = False):
        super().__init__(level)
        self._writer = writer
        self._encoding = encoding
        self._close_writer = close_writer
        self._local = threading.local()

    @property
    def writer(self) -> RotatingWriter:
        return self._writer

    def emit(self, record: logging.LogRecord):
        depth = getattr(self._local, "depth", 0)
        if depth > self.max_nesting:
            return
        self._local.depth = depth + 1
        try:
            msg = self.format(record) + self.terminator
            self._writer.write(msg.encode(self._encoding))
        except Exception:
            self.handleError(record)
        finally:
            self._local.depth = depth

    def flush(self):
        self._writer.flush()

    def close(self):
        try:
            if self._close_writer:
                self._writer.close()
        finally:
            super().close()
