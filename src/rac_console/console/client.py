"""Console client: encode a command, send it, parse the answer."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Mapping, Optional, Sequence, Union

from .base import Transport
from .command import Command, FlagValue, Params
from .parser import ParsedResponse, parse
from ..errors import ConsoleConfigurationError

logger = logging.getLogger(__name__)


class ConsoleClient:
    """Runs racadm commands over a single transport.

    Commands are serialized through a lock, so callers running concurrent
    tasks never interleave output on the shared session.
    """

    def __init__(self, transport: Optional[Transport]):
        self._transport = transport
        self._lock = asyncio.Lock()

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            raise ConsoleConfigurationError("Console transport not initialized")
        return self._transport

    @property
    def host(self) -> str:
        return self.transport.host

    @asynccontextmanager
    async def session(self):
        """Hold the console session open for the duration of the block.

        Connects if needed and disconnects on exit only when this block was
        the one that connected, so sessions nest.
        """
        transport = self.transport
        opened = False
        if not transport.is_connected:
            await transport.connect()
            opened = True
        try:
            yield self
        finally:
            if opened:
                await transport.disconnect()

    async def execute(self, command: Command) -> ParsedResponse:
        """Send a prepared command and parse the response.

        Raises:
            ConsoleConfigurationError: No transport, or a session never opened
            ConnectionError: An open session failed mid-command
        """
        transport = self.transport
        if not transport.is_connected:
            raise ConsoleConfigurationError(
                f"Console {transport.host} not initialized: no open session"
            )
        async with self._lock:
            raw = await transport.send(command.render())
        return parse(raw)

    async def run(
        self,
        verb: str,
        flags: Optional[Mapping[str, FlagValue]] = None,
        params: Params = None,
        verbose: bool = True,
    ) -> ParsedResponse:
        """Run ``racadm <verb>`` and return the parsed output."""
        result = await self.execute(Command.build(verb, flags, params))
        if verbose:
            logger.info(f"racadm {verb} result: {result}")
        return result

    async def run_config_set(
        self,
        group: str,
        config_object: str,
        value: Union[str, int, Sequence[str]],
        flags: Optional[Mapping[str, FlagValue]] = None,
    ) -> ParsedResponse:
        """Run ``racadm config -g <group> -o <object> <value>``. Always logged."""
        result = await self.execute(Command.config_set(group, config_object, value, flags))
        logger.info(
            f"racadm config for group {group} and object {config_object} result: {result}"
        )
        return result

    async def run_get_config(
        self,
        group: Optional[str] = None,
        config_object: Optional[str] = None,
        flags: Optional[Mapping[str, FlagValue]] = None,
    ) -> ParsedResponse:
        """Run ``racadm getconfig`` filtered by group and object when given."""
        query: dict[str, FlagValue] = {}
        if group:
            query["g"] = group
        if config_object:
            query["o"] = config_object
        query.update(flags or {})
        return await self.execute(Command.build("getconfig", query))
