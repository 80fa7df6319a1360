"""Convergence timing and policy settings.

Environment variables:
- RAC_CONSOLE_APPLY_ATTEMPTS: Total setniccfg attempts per target (default: 6)
- RAC_CONSOLE_APPLY_RETRY_DELAY: Seconds between setniccfg attempts (default: 30)
- RAC_CONSOLE_POLL_ATTEMPTS: getniccfg polls per target (default: 10)
- RAC_CONSOLE_POLL_INTERVAL: Seconds between polls (default: 30)
- RAC_CONSOLE_PING_ATTEMPTS: Reachability probes per target (default: 10)
- RAC_CONSOLE_PING_INTERVAL: Seconds between probes (default: 15)
- RAC_CONSOLE_HALT_ON_TIMEOUT: "1" to abort the batch on the first timeout (default: 1)
- RAC_CONSOLE_CONCURRENT: "1" to poll targets concurrently (default: 1)
"""
import os
import logging
from dataclasses import dataclass, fields
from typing import Any

logger = logging.getLogger(__name__)

# A NIC freshly reset to factory defaults often rejects its first
# setniccfg; it settles a minute or two after the first attempt.
DEFAULT_APPLY_ATTEMPTS = 6
DEFAULT_APPLY_RETRY_DELAY = 30
DEFAULT_POLL_ATTEMPTS = 10
DEFAULT_POLL_INTERVAL = 30
DEFAULT_PING_ATTEMPTS = 10
DEFAULT_PING_INTERVAL = 15


def _env_flag(name: str, default: bool) -> bool:
    return os.environ.get(name, "1" if default else "0") == "1"


@dataclass
class ConvergenceSettings:
    """Attempt budgets and intervals for a convergence run."""
    apply_attempts: int = DEFAULT_APPLY_ATTEMPTS
    apply_retry_delay: float = DEFAULT_APPLY_RETRY_DELAY
    poll_attempts: int = DEFAULT_POLL_ATTEMPTS
    poll_interval: float = DEFAULT_POLL_INTERVAL
    ping_attempts: int = DEFAULT_PING_ATTEMPTS
    ping_interval: float = DEFAULT_PING_INTERVAL
    halt_on_timeout: bool = True
    concurrent: bool = True

    def __post_init__(self):
        for name in ("apply_attempts", "poll_attempts", "ping_attempts"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")

    @classmethod
    def from_env(cls) -> "ConvergenceSettings":
        """Load settings from environment variables."""
        return cls(
            apply_attempts=int(os.environ.get(
                "RAC_CONSOLE_APPLY_ATTEMPTS", str(DEFAULT_APPLY_ATTEMPTS))),
            apply_retry_delay=float(os.environ.get(
                "RAC_CONSOLE_APPLY_RETRY_DELAY", str(DEFAULT_APPLY_RETRY_DELAY))),
            poll_attempts=int(os.environ.get(
                "RAC_CONSOLE_POLL_ATTEMPTS", str(DEFAULT_POLL_ATTEMPTS))),
            poll_interval=float(os.environ.get(
                "RAC_CONSOLE_POLL_INTERVAL", str(DEFAULT_POLL_INTERVAL))),
            ping_attempts=int(os.environ.get(
                "RAC_CONSOLE_PING_ATTEMPTS", str(DEFAULT_PING_ATTEMPTS))),
            ping_interval=float(os.environ.get(
                "RAC_CONSOLE_PING_INTERVAL", str(DEFAULT_PING_INTERVAL))),
            halt_on_timeout=_env_flag("RAC_CONSOLE_HALT_ON_TIMEOUT", True),
            concurrent=_env_flag("RAC_CONSOLE_CONCURRENT", True),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConvergenceSettings":
        """Build settings from an inventory ``convergence:`` block.

        Unknown keys are ignored with a warning.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            if key not in known:
                logger.warning(f"Ignoring unknown convergence setting: {key}")
                continue
            values[key] = value
        return cls(**values)
