"""Exception types raised by rac_console."""
from typing import Optional


class RacConsoleError(Exception):
    """Base class for all rac_console errors."""
    pass


class ConsoleConfigurationError(RacConsoleError):
    """Raised when no usable transport is available.

    This is a fatal precondition and is never retried.
    """
    pass


class UnknownRoleError(RacConsoleError):
    """Raised when a user role has no entry in the permission table."""

    def __init__(self, role: str, known_roles: list[str]):
        self.role = role
        self.known_roles = known_roles
        super().__init__(
            f"Unknown role '{role}'. Must be one of: {', '.join(known_roles)}"
        )


class ConvergenceTimeoutError(RacConsoleError):
    """Raised when a target does not converge within its attempt budget."""

    def __init__(self, message: str, target: str, outcomes: Optional[list] = None):
        self.message = message
        self.target = target
        self.outcomes = outcomes or []
        super().__init__(message)


class ConvergenceCancelled(RacConsoleError):
    """Raised when an operator aborts a convergence run."""
    pass


class InventoryError(RacConsoleError):
    """Error loading or validating the inventory file."""
    pass
