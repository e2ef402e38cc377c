"""Logging configuration for crmsync.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Performance timing for crm round trips

Environment Variables:
    CRMSYNC_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    CRMSYNC_LOG_FILE: Path to log file (default: ~/.crmsync/crmsync.log)
    CRMSYNC_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    CRMSYNC_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from crmsync.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("flush")
    def flush(self, name, staged):
        ...
"""
import functools
import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("crmsync.perf")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("CRMSYNC_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".crmsync" / "crmsync.log"
    path_str = os.environ.get("CRMSYNC_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects CRMSYNC_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    """
    log_level = logging.DEBUG if verbose else get_log_level()
    log_file = get_log_file()
    max_size_mb = int(os.environ.get("CRMSYNC_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("CRMSYNC_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-30s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    # perf records propagate here through the crmsync hierarchy
    root_logger = logging.getLogger("crmsync")
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    root_logger.debug(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")


def _target_of(args: tuple, kwargs: dict) -> Optional[str]:
    """Primitive name from a controller call, if there is one."""
    if "name" in kwargs:
        return str(kwargs["name"])
    if len(args) > 1 and isinstance(args[1], str):
        return args[1]
    return None


def timed(operation: str) -> Callable:
    """Decorator to log execution time of a controller operation.

    The primitive name is taken from a `name` argument when present.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            target = _target_of(args, kwargs)
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000  # ms
                perf_logger.info(
                    f"{operation:12s} | {target or 'N/A':20s} | {elapsed:8.2f}ms | OK"
                )
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(
                    f"{operation:12s} | {target or 'N/A':20s} | {elapsed:8.2f}ms | FAIL: {e}"
                )
                raise

        return wrapper

    return decorator


@contextmanager
def timed_section(operation: str, target: Optional[str] = None, **extra):
    """Context manager for timing code sections.

    Usage:
        with timed_section("discover", cib="shadow1"):
            ...
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:12s} | {target or 'N/A':20s} | {elapsed:8.2f}ms | OK"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.info(msg)
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:12s} | {target or 'N/A':20s} | {elapsed:8.2f}ms | FAIL: {e}"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.warning(msg)
        raise
