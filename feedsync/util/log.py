"""Logging setup. Every run must be able to emit its summary line."""
import logging
import sys
from typing import Any

# Connection-pool chatter during multi-hundred-MB feed downloads
_QUIET_LOGGERS = ("urllib3", "requests")


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"feedsync.{name}")


def log_run_summary(
    logger: logging.Logger,
    run_label: str,
    status: str,
    feeds_count: int,
    processed_count: int,
    written_count: int,
    skipped_count: int,
    unclassified_count: int,
    failed_count: int,
    duration_ms: int,
    notes: str = "",
    **extra: Any,
) -> None:
    """One key=value line per run; the line monitoring greps for."""
    logger.info(
        "run_summary label=%s status=%s feeds=%s processed=%s written=%s skipped=%s "
        "unclassified=%s failed=%s duration_ms=%s notes=%s",
        run_label,
        status,
        feeds_count,
        processed_count,
        written_count,
        skipped_count,
        unclassified_count,
        failed_count,
        duration_ms,
        notes or "(none)",
        extra=extra,
    )
