"""Utility modules for logging, auditing and retries."""
from .logging_config import (
    setup_logging,
    timed_section,
    perf_logger,
    PerfStats,
    global_stats,
)
from .retry import with_retry, TransientCommandError

__all__ = [
    "setup_logging",
    "timed_section",
    "perf_logger",
    "PerfStats",
    "global_stats",
    "with_retry",
    "TransientCommandError",
]
