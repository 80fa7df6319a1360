"""Base transport abstraction for the management console."""
import os
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class ConsoleConfig:
    """Connection settings for a RAC/CMC console."""
    host: str
    username: str = "root"
    port: int = 22
    name: str = ""
    password: Optional[str] = None
    password_env: str = "RAC_CONSOLE_PASSWORD"
    timeout: int = 30
    # Connect attempts, including the first
    retries: int = 3
    # Exact prompt line, e.g. "$". Learned at login when unset
    prompt: Optional[str] = None
    # Seconds to wait for the login banner before the first prompt
    banner_delay: float = 1.5

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")

    @property
    def display_name(self) -> str:
        return self.name or self.host


class Transport(ABC):
    """Request/response channel to the console.

    One command is exchanged at a time. ``send`` returns the raw text the
    console printed, including the echoed command line and the trailing
    prompt, or None when nothing came back.
    """

    def __init__(self, config: ConsoleConfig):
        self.config = config
        self._connected = False
        self._connection: Any = None

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def is_connected(self) -> bool:
        return self._connected

    @abstractmethod
    async def connect(self) -> bool:
        """Establish the session."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the session."""
        pass

    @abstractmethod
    async def send(self, command: str) -> Optional[str]:
        """Send one command line and return the raw output.

        Raises:
            ConnectionError: If the session was never established
        """
        pass

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False
