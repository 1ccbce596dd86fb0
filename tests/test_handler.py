"""Tests for rotalog/handler.py — logging integration."""

import logging
import os
import subprocess
import sys
import textwrap

from rotalog.config import WriterConfig
from rotalog.handler import RotatingWriterHandler
from rotalog.writer import RotatingWriter

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _logger(name, handler):
    logger = logging.getLogger(name)
    logger.handlers[:] = [handler]
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger


class TestRotatingWriterHandler:
    def test_records_written_as_lines(self, tmp_path):
        path = str(tmp_path / "app.log")
        writer = RotatingWriter(WriterConfig(base_path=path, max_size_bytes=10_000))
        handler = RotatingWriterHandler(writer)
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        logger = _logger("rotalog.test.lines", handler)

        logger.info("service started")
        logger.warning("disk at %d%%", 91)
        handler.close()
        writer.close()

        with open(path, encoding="utf-8") as f:
            assert f.read() == "INFO service started\nWARNING disk at 91%\n"

    def test_logging_drives_rotation(self, tmp_path):
        path = str(tmp_path / "app.log")
        writer = RotatingWriter(WriterConfig(base_path=path, max_size_bytes=64, max_backups=2))
        handler = RotatingWriterHandler(writer, close_writer=True)
        logger = _logger("rotalog.test.rotation", handler)

        for i in range(20):
            logger.info("event number %03d", i)
        handler.close()

        assert writer.closed
        assert len(writer.backups()) == 2
        for name in os.listdir(tmp_path):
            assert os.path.getsize(tmp_path / name) <= 64

    def test_handler_does_not_close_shared_writer(self, tmp_path):
        writer = RotatingWriter(WriterConfig(base_path=str(tmp_path / "app.log"), max_size_bytes=100))
        RotatingWriterHandler(writer).close()
        assert not writer.closed
        writer.close()

    def test_emit_after_writer_closed_goes_to_handle_error(self, tmp_path, monkeypatch):
        writer = RotatingWriter(WriterConfig(base_path=str(tmp_path / "app.log"), max_size_bytes=100))
        writer.close()
        handler = RotatingWriterHandler(writer)
        seen = []
        monkeypatch.setattr(handler, "handleError", seen.append)

        _logger("rotalog.test.closed", handler).info("too late")

        assert len(seen) == 1
        assert seen[0].getMessage() == "too late"

    def test_nested_records_are_bounded(self, tmp_path):
        path = str(tmp_path / "app.log")

        def on_rotate(event):
            logger.info("rotated %s", event.reason)

        writer = RotatingWriter(
            WriterConfig(base_path=path, max_size_bytes=20, max_backups=0),
            on_rotate=on_rotate,
        )
        logger = _logger("rotalog.test.nested", RotatingWriterHandler(writer))

        logger.info("a" * 15)
        # rotates; the callback record is written and rotates once more, its
        # own callback record is dropped
        logger.info("b" * 15)
        writer.close()

        backups = [b.path for b in writer.backups()]
        contents = []
        for backup in backups:
            with open(backup, encoding="utf-8") as f:
                contents.append(f.read())
        assert contents == ["a" * 15 + "\n", "b" * 15 + "\n"]
        with open(path, encoding="utf-8") as f:
            assert f.read() == "rotated size\n"
        assert writer.metrics.snapshot()["rotations"] == 2


class TestRootLoggerAttachment:
    SCRIPT = textwrap.dedent("""
        import logging
        import sys

        from rotalog.config import WriterConfig
        from rotalog.handler import RotatingWriterHandler
        from rotalog.writer import RotatingWriter

        writer = RotatingWriter(WriterConfig(
            base_path=sys.argv[1], max_size_bytes=int(sys.argv[2]), max_backups=2,
        ))
        root = logging.getLogger()
        root.setLevel(logging.INFO)
        root.addHandler(RotatingWriterHandler(writer))
        for i in range(60):
            logging.getLogger("app").info("event number %03d", i)
        print(writer.metrics.snapshot()["rotations"])
    """)

    def _run(self, tmp_path, max_size_bytes):
        path = str(tmp_path / "app.log")
        try:
            proc = subprocess.run(
                [sys.executable, "-c", self.SCRIPT, path, str(max_size_bytes)],
                cwd=PROJECT_ROOT, capture_output=True, text=True, timeout=30,
            )
        except subprocess.TimeoutExpired:
            raise AssertionError("logging through a root handler hung") from None
        assert proc.returncode == 0, proc.stderr
        contents = ""
        for name in os.listdir(tmp_path):
            with open(tmp_path / name, encoding="utf-8") as f:
                contents += f.read()
        return int(proc.stdout.strip()), contents

    def test_rotations_with_root_handler_finish(self, tmp_path):
        rotations, contents = self._run(tmp_path, max_size_bytes=400)
        assert rotations >= 2
        assert "event number 059" in contents
        assert "Rotated " in contents

    def test_file_smaller_than_rotation_notice(self, tmp_path):
        rotations, contents = self._run(tmp_path, max_size_bytes=64)
        assert rotations >= 2
        assert "event number 059" in contents
