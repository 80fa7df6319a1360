"""Logging configuration for rac-console.

Provides configurable logging with:
- File-based logging with rotation
- Console output for following a convergence run live
- Timing decorators for console round trips and orchestration phases

Environment Variables:
    RAC_CONSOLE_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    RAC_CONSOLE_LOG_FILE: Path to log file (default: ~/.rac-console/rac-console.log)
    RAC_CONSOLE_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    RAC_CONSOLE_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from rac_console.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("connect")
    async def connect(self):
        ...

    async with timed_section("poll_address", target="server-1"):
        ...
"""
import asyncio
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Callable, Any

# Timing logger, kept separate from the main tree for easy filtering
perf_logger = logging.getLogger("rac_console.perf")

LOG_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-28s | %(levelname)-7s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("RAC_CONSOLE_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".rac-console" / "rac-console.log"
    path_str = os.environ.get("RAC_CONSOLE_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging(level: Optional[int] = None) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects RAC_CONSOLE_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Timing logger on both handlers
    """
    log_level = level if level is not None else get_log_level()
    log_file = get_log_file()
    max_size_mb = int(os.environ.get("RAC_CONSOLE_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("RAC_CONSOLE_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger("rac_console")
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # paramiko is chatty at INFO
    logging.getLogger("paramiko").setLevel(logging.WARNING)

    root_logger.info(
        f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}"
    )


def timed(operation: str):
    """Decorator to log execution time of sync/async functions.

    The target label is taken from ``self.host`` when the decorated function
    is a method on a transport.
    """
    def _label(args) -> str:
        if args and hasattr(args[0], "host"):
            return str(args[0].host)
        return "N/A"

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            label = _label(args)
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000  # ms
                perf_logger.info(f"{operation:20s} | {label:15s} | {elapsed:8.2f}ms | OK")
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(
                    f"{operation:20s} | {label:15s} | {elapsed:8.2f}ms | FAIL: {e}"
                )
                raise

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            label = _label(args)
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.info(f"{operation:20s} | {label:15s} | {elapsed:8.2f}ms | OK")
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(
                    f"{operation:20s} | {label:15s} | {elapsed:8.2f}ms | FAIL: {e}"
                )
                raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, target: Optional[str] = None, **extra):
    """Async context manager for timing code sections.

    Usage:
        async with timed_section("apply", target="server-1", mode="dhcp"):
            ...
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:20s} | {target or 'N/A':15s} | {elapsed:8.2f}ms | OK"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.info(msg)
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:20s} | {target or 'N/A':15s} | {elapsed:8.2f}ms | FAIL: {e}"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.warning(msg)
        raise
