"""Logging configuration for ifcraft.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Performance timing of each reconciliation step

Environment Variables:
    IFCRAFT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    IFCRAFT_LOG_FILE: Path to log file (default: ~/.ifcraft/ifcraft.log)
    IFCRAFT_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    IFCRAFT_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from ifcraft.utils.logging_config import setup_logging, timed_section

    setup_logging()  # Call once at startup

    with timed_section("reload", "eth0"):
        ...
"""
import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("ifcraft.perf")
main_logger = logging.getLogger("ifcraft")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("IFCRAFT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".ifcraft" / "ifcraft.log"
    path_str = os.environ.get("IFCRAFT_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging(level: Optional[int] = None, log_file: Optional[Path] = None) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects IFCRAFT_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance file handler for timing metrics
    """
    log_level = level if level is not None else get_log_level()
    log_file = log_file or get_log_file()
    max_size_mb = int(os.environ.get("IFCRAFT_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("IFCRAFT_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-25s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
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

    perf_log_file = log_file.parent / "ifcraft-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    # Capture all, handlers filter
    main_logger.setLevel(logging.DEBUG)
    main_logger.handlers.clear()
    main_logger.addHandler(console_handler)
    main_logger.addHandler(file_handler)

    # Timing lines go to their own file only
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.handlers.clear()
    perf_logger.addHandler(perf_handler)
    perf_logger.propagate = False

    main_logger.debug(
        f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}"
    )


@contextmanager
def timed_section(operation: str, interface: Optional[str] = None, **extra):
    """Context manager for timing code sections.

    Args:
        operation: Name of the operation
        interface: Interface name
        **extra: Additional context to log

    Usage:
        with timed_section("activate", "eth0", ensure="up"):
            runner.run(...)
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
        elapsed = (time.perf_counter() - start) * 1000
        global_stats.record(operation, elapsed)
        msg = f"{operation:12s} | {interface or 'N/A':15s} | {elapsed:8.2f}ms | OK"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.info(msg)
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        global_stats.record(operation, elapsed)
        msg = f"{operation:12s} | {interface or 'N/A':15s} | {elapsed:8.2f}ms | FAIL: {e}"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.warning(msg)
        raise


class PerfStats:
    """Collect and report performance statistics.

    Usage:
        stats = PerfStats()
        stats.record("write", 1.5)
        stats.record("activate", 850.2)
        print(stats.summary())
    """

    def __init__(self):
        self._data: dict[str, list[float]] = {}

    def record(self, operation: str, duration_ms: float) -> None:
        """Record a timing measurement."""
        self._data.setdefault(operation, []).append(duration_ms)

    def summary(self) -> str:
        """Generate summary statistics."""
        lines = ["Performance Summary", "=" * 60]

        for op, times in sorted(self._data.items()):
            if not times:
                continue
            count = len(times)
            avg = sum(times) / count
            lines.append(
                f"{op:12s} | count={count:4d} | "
                f"avg={avg:8.2f}ms | min={min(times):8.2f}ms | max={max(times):8.2f}ms"
            )

        return "\n".join(lines)

    def clear(self) -> None:
        """Clear all recorded data."""
        self._data.clear()


# Global stats instance for convenience
global_stats = PerfStats()
