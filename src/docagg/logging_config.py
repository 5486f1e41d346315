"""
Logging Configuration for docagg.

Provides centralized setup for the ``docagg`` logger hierarchy. Library
modules log through ``logging.getLogger(__name__)``; handlers are only
attached when an entry point calls ``configure_logging``.

Log file location priority:
1. DOCAGG_LOG_DIR (explicit)
2. DOCAGG_PROJECT_ROOT/.docagg (if set)
3. CWD/.docagg (fallback)
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

ROOT_LOGGER_NAME = "docagg"
TRACE_LOG_FILENAME = "pipeline_trace.log"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _get_log_directory() -> Path:
    """Get the log directory path."""
    log_dir = os.getenv("DOCAGG_LOG_DIR")
    if not log_dir:
        project_root = os.getenv("DOCAGG_PROJECT_ROOT")
        if project_root:
            log_dir = str(Path(project_root) / ".docagg")
        else:
            log_dir = str(Path.cwd() / ".docagg")
    return Path(log_dir)


def debug_log_enabled() -> bool:
    """File logging is on unless DOCAGG_DEBUG_LOG is set to the empty string."""
    value = os.getenv("DOCAGG_DEBUG_LOG")
    return value is None or value != ""


def _create_file_handler(log_dir: Path, log_filename: str) -> Optional[logging.FileHandler]:
    """
    Create a file handler for the specified log file.

    Args:
        log_dir: Directory to write into (created if missing)
        log_filename: Name of the log file (e.g., 'pipeline_trace.log')

    Returns:
        Configured FileHandler, or None if the file cannot be opened
    """
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / log_filename, mode='a', encoding='utf-8')
    except OSError:
        return None
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


class FlushingStreamHandler(logging.StreamHandler):
    """StreamHandler that flushes after every emit.

    ::: This is-in-layer Infrastructure-Layer.
    ::: This is a handler.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """
    def emit(self, record):
        super().emit(record)
        self.flush()


def _create_stderr_handler(level: int) -> logging.StreamHandler:
    """Create a stderr handler for console output with auto-flush."""
    handler = FlushingStreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def configure_logging(
    level: Union[int, str] = logging.INFO,
    file_log: Optional[bool] = None,
    log_dir: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Attach stderr (and optionally file) handlers to the ``docagg`` logger.

    Safe to call more than once; previous handlers are replaced.

    Args:
        level: Level for the stderr handler
        file_log: Write DEBUG records to pipeline_trace.log. Defaults to
            the DOCAGG_DEBUG_LOG switch.
        log_dir: Directory for pipeline_trace.log. Defaults to
            DOCAGG_LOG_DIR, then DOCAGG_PROJECT_ROOT/.docagg, then CWD/.docagg.

    Returns:
        The configured root ``docagg`` logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            handler.close()
            logger.removeHandler(handler)

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    if file_log is None:
        file_log = debug_log_enabled()
    if file_log:
        file_handler = _create_file_handler(
            Path(log_dir) if log_dir is not None else _get_log_directory(),
            TRACE_LOG_FILENAME,
        )
        if file_handler:
            logger.addHandler(file_handler)

    logger.addHandler(_create_stderr_handler(level))
    return logger


def _stderr_handlers():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    return [
        h for h in logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]


def suppress_stderr_logging():
    """
    Suppress stderr logging while a rich table is written to the console.
    File logging continues to work normally.
    """
    for handler in _stderr_handlers():
        handler._docagg_saved_level = handler.level
        handler.setLevel(logging.CRITICAL + 1)


def restore_stderr_logging():
    """Restore stderr logging after ``suppress_stderr_logging``."""
    for handler in _stderr_handlers():
        handler.setLevel(getattr(handler, "_docagg_saved_level", logging.INFO))
