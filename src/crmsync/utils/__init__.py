"""Utility modules for command execution, readiness and logging."""
from .command import (
    CIB_SHADOW_ENV,
    CommandError,
    CommandResult,
    CommandRunner,
    CrmShell,
    SubprocessRunner,
)
from .logging_config import setup_logging, timed, timed_section, perf_logger
from .readiness import ClusterNotReadyError, ReadinessGate

__all__ = [
    "CIB_SHADOW_ENV",
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "CrmShell",
    "SubprocessRunner",
    "setup_logging",
    "timed",
    "timed_section",
    "perf_logger",
    "ClusterNotReadyError",
    "ReadinessGate",
]
