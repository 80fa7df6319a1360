"""Shared fixtures: a scripted console transport and a sleep recorder."""
from typing import Optional

import pytest

from rac_console.console.base import ConsoleConfig, Transport

PROMPT = "$ "


def console_output(command: str, body: str) -> str:
    """What the shell prints: echoed command, body, then the prompt."""
    if body:
        return f"{command}\n{body}\n{PROMPT}"
    return f"{command}\n{PROMPT}"


class FakeTransport(Transport):
    """Transport returning scripted bodies per command line.

    Each command has a queue of bodies; the last one repeats once the
    others are consumed. Unscripted commands answer with an empty body.
    """

    def __init__(self, connected: bool = True):
        super().__init__(ConsoleConfig(host="172.16.0.10", name="lab-cmc"))
        self._connected = connected
        self.sent: list[str] = []
        self.responses: dict[str, list[str]] = {}
        self.connects = 0
        self.disconnects = 0

    def script(self, command: str, *bodies: str) -> "FakeTransport":
        self.responses[command] = list(bodies)
        return self

    def count(self, command: str) -> int:
        return self.sent.count(command)

    async def connect(self) -> bool:
        self.connects += 1
        self._connected = True
        return True

    async def disconnect(self) -> None:
        self.disconnects += 1
        self._connected = False

    async def send(self, command: str) -> Optional[str]:
        if not self._connected:
            raise ConnectionError("Not connected")
        self.sent.append(command)
        queue = self.responses.get(command)
        if not queue:
            return console_output(command, "")
        body = queue.pop(0) if len(queue) > 1 else queue[0]
        return console_output(command, body)


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def sleeper():
    return SleepRecorder()
