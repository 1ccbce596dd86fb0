"""Rotating log demo — generates log lines through a RotatingWriter until stopped."""

import logging
import random
import signal
import sys
import time
import uuid
from datetime import datetime, timezone

from rotalog.config import load_config
from rotalog.errors import ConfigError, RotalogError
from rotalog.writer import RotatingWriter

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [rotalog] %(levelname)s %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

_running = True


def _signal_handler(sig, _frame):
    global _running
    logger.info("Shutdown signal received (signal %d), stopping...", sig)
    _running = False


LEVELS = ["INFO", "INFO", "INFO", "INFO", "DEBUG", "WARN", "ERROR"]
SERVICES = ["auth-api", "order-svc", "payment-gw", "user-svc", "catalog-api"]
MESSAGES = {
    "INFO": [
        "Request processed successfully",
        "Health check passed",
        "Cache hit for user session",
        "Database query completed in 12ms",
    ],
    "DEBUG": [
        "Entering request handler",
        "Token validation started",
    ],
    "WARN": [
        "Slow query detected (>500ms)",
        "Connection pool nearing capacity",
    ],
    "ERROR": [
        "Failed to connect to database",
        "Timeout waiting for upstream response",
    ],
}


def generate_entry() -> str:
    now = datetime.now(timezone.utc)
    timestamp = now.strftime("%Y-%m-%d %H:%M:%S.") + f"{now.microsecond // 1000:03d}"
    level = random.choice(LEVELS)
    service = random.choice(SERVICES)
    req_id = uuid.uuid4().hex[:8]
    message = random.choice(MESSAGES[level])
    return f"{timestamp} [{level}] [{service}] [{req_id}] {message}"


def _report_rotation(event):
    if event.success:
        logger.info("Backup ready: %s (%d deleted)", event.backup_path, len(event.deleted))
    else:
        logger.warning("Rotation reported problems: %s", "; ".join(event.errors))


def main():
    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        config = load_config()
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    logger.info(
        "Config: base_path=%s, max_size=%d bytes, max_backups=%d, compress=%s (%s), naming=%s",
        config.base_path, config.max_size_bytes, config.max_backups,
        config.compress, config.compression_algorithm, config.naming,
    )

    entries_written = 0
    with RotatingWriter(config, on_rotate=_report_rotation) as writer:
        while _running:
            try:
                writer.write_line(generate_entry())
            except (OSError, RotalogError) as e:
                logger.error("Write failed: %s", e)
            else:
                entries_written += 1
            time.sleep(0.05)
        logger.info("Metrics: %s", writer.metrics.snapshot())

    logger.info("Shut down cleanly. Total entries written: %d", entries_written)


if __name__ == "__main__":
    main()
