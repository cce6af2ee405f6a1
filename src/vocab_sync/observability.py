"""Logging setup and phase timing for vocab-sync.

Import and export runs are short-lived CLI invocations, so everything here
is about leaving a durable trail: one rotating log file per log directory,
and a START/END pair around each import phase carrying its counters.
"""
import logging
import time
import uuid
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Union

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "vocab_sync"
LOG_FILE_NAME = "vocab_sync.log"
DEFAULT_LOG_DIR = Path.home() / ".vocab_sync" / "logs"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def _is_console_handler(handler: logging.Handler) -> bool:
    # FileHandler subclasses StreamHandler
    return isinstance(handler, logging.StreamHandler) and not isinstance(
        handler, logging.FileHandler
    )


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    console: bool = True,
) -> Path:
    """Send the ``vocab_sync`` logger hierarchy to a rotating file.

    Calling it again swaps the file handler for one in the new directory;
    at most one console handler (stderr) is ever installed, so the report
    printed on stdout stays clean.

    Args:
        log_dir: Directory for ``vocab_sync.log``. Defaults to ~/.vocab_sync/logs/
        level: Level applied to the logger and its handlers
        max_bytes: Size at which the file is rotated (10 MB)
        backup_count: Rotated files kept (5)
        console: Also log to stderr

    Returns:
        The log directory actually used.
    """
    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)

    for handler in list(package_logger.handlers):
        if isinstance(handler, RotatingFileHandler):
            package_logger.removeHandler(handler)
            handler.close()
        elif _is_console_handler(handler):
            handler.setLevel(level)

    file_handler = RotatingFileHandler(
        log_path / LOG_FILE_NAME,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    package_logger.addHandler(file_handler)

    if console and not any(_is_console_handler(h) for h in package_logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

    logger.info(f"Logging to {log_path / LOG_FILE_NAME} (level {logging.getLevelName(level)})")
    return log_path


def _format_fields(fields: Mapping[str, Any]) -> str:
    return ", ".join(f"{k}={v}" for k, v in fields.items())


@contextmanager
def timed_operation(operation: str, **context: Any) -> Iterator[Dict[str, Any]]:
    """Log START/END around one operation, tagged with a short run id.

    The yielded dict collects counters to report on the END line; the
    driver fills it with the non-zero fields of a phase's ImportResult.
    A failure is logged at ERROR with its type and re-raised.

    Example:
        with timed_operation("import_notes", dry_run=True) as op:
            op["notes_new"] = result.notes_new
    """
    run_id = uuid.uuid4().hex[:8]
    counters: Dict[str, Any] = {}
    logger.debug(f"[{run_id}] START {operation} ({_format_fields(context)})")
    started = time.perf_counter()

    try:
        yield counters
    except Exception as e:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.error(
            f"[{run_id}] END {operation} ({elapsed_ms:.2f}ms) "
            f"[ERROR: {type(e).__name__}: {e}] {_format_fields(counters)}"
        )
        raise

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        f"[{run_id}] END {operation} ({elapsed_ms:.2f}ms) [OK] {_format_fields(counters)}"
    )
