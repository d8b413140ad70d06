# core/logger_config.py
"""
Logging setup for the Linesheet Generator.

setup_logging() is called once per process: by the API lifespan and by the
command line entry point. Every record carries the trace id of the request
that produced it (see core/utils/snitch.py), so interleaved requests can be
told apart in the shared log file.

Usage:
    from core.logger_config import setup_logging
    from core.system_config import sys_config

    setup_logging(log_dir=sys_config.run_log_dir)
"""
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Union

from core.utils.snitch import get_trace_id

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(trace_id)s | %(name)s:%(lineno)d | %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers that are chatty at DEBUG (image downloads, PNG decoding)
QUIET_LOGGERS = ("urllib3", "PIL", "httpx", "httpcore")

_logging_initialized = False


class TraceIdFilter(logging.Filter):
    """Stamps each record with the current request's trace id."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = get_trace_id()
        return True


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    log_dir: Path,
    level: Union[int, str] = logging.INFO,
    log_filename: str = "linesheet_generator.log",
    max_bytes: int = 5 * 1024 * 1024,  # 5 MB
    backup_count: int = 3
) -> None:
    """
    Configures the root logger with a console handler and a rotating file handler.

    Args:
        log_dir: Directory for the log file (RUN_LOG_DIR)
        level: Console level, as a logging constant or a name such as "DEBUG"
        log_filename: Name of the log file inside log_dir
        max_bytes: Size at which the file is rotated
        backup_count: Rotated files kept

    Note:
        The file handler always records DEBUG. Calling this again is a no-op.
    """
    global _logging_initialized

    if _logging_initialized:
        logging.debug("Logging already initialized, skipping.")
        return

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_filename

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    trace_filter = TraceIdFilter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(_resolve_level(level))
    console_handler.addFilter(trace_filter)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logging.DEBUG)
    file_handler.addFilter(trace_filter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _logging_initialized = True
    logging.info(f"Logging initialized. File: {log_file}")
