import contextvars
import functools
import logging
import uuid
from typing import Optional

# Trace id of the request currently being handled
_trace_id_ctx = contextvars.ContextVar("trace_id", default="NO-TRACE")

logger = logging.getLogger("LINESHEET_WORKFLOW")


def start_trace(custom_id: Optional[str] = None, file_log: bool = False) -> str:
    """
    Call this ONCE at the start of a request (or script run).

    Args:
        custom_id: Trace id to use instead of a generated one
        file_log: Also write this trace to its own file under RUN_LOG_DIR
    """
    tid = custom_id or f"run-{str(uuid.uuid4())[:8]}"
    _trace_id_ctx.set(tid)

    if file_log:
        _attach_trace_file(tid)

    return tid


def _attach_trace_file(tid: str):
    try:
        from core.system_config import sys_config
        log_dir = sys_config.run_log_dir
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"snitch_trace_{tid}.log"

        root_logger = logging.getLogger()
        # Avoid duplicate handlers if the same trace is started twice
        for h in root_logger.handlers:
            if isinstance(h, logging.FileHandler) and str(h.baseFilename) == str(log_file.resolve()):
                logger.info(f"[{tid}] Logging to EXISTING file: {log_file}")
                return

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"))
        root_logger.addHandler(file_handler)
        logger.info(f"[{tid}] Logging to file: {log_file}")
    except OSError as e:
        logger.warning(f"[{tid}] Could not setup file logging: {e}")


def get_trace_id() -> str:
    """Retrieve the current ID anywhere in the code."""
    return _trace_id_ctx.get()


def snitch(func):
    """Decorator to log entry/exit with the ID."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        tid = get_trace_id()
        func_name = func.__qualname__
        try:
            logger.info(f"[{tid}] >> ENTER: {func_name}")
            result = func(*args, **kwargs)
            logger.info(f"[{tid}] OK EXIT:  {func_name}")
            return result
        except Exception as e:
            logger.error(f"[{tid}] !! CRASH: {func_name} | {e}")
            raise
    return wrapper
