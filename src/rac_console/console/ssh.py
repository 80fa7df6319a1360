"""SSH transport for Dell RAC/CMC consoles.

The CMC exposes racadm through an interactive SSH shell:
- Password login as a local console user (root by default)
- ``$`` prompt on the CMC, ``racadm>>`` or ``/admin1->`` on some iDRAC firmware
- No pagination, but slow commands (ping, setniccfg) can take several seconds

The transport returns everything the shell printed for a command, including
the echoed command line and the prompt that follows it. Stripping those is
the parser's job.
"""
import asyncio
import logging
import re
import time
from typing import Optional, Pattern

import paramiko

from .base import Transport, ConsoleConfig
from ..utils.connection import with_retry
from ..utils.logging_config import timed, perf_logger

logger = logging.getLogger(__name__)

PROMPT_PATTERN = re.compile(r"(\$|#|racadm>>|->)\s*$")
ANSI_PATTERN = re.compile(r"\x1b\[[0-9;?]*[a-zA-Z]")


def clean_output(data: bytes) -> str:
    """Decode shell bytes, dropping ANSI escapes and carriage returns."""
    text = data.decode("utf-8", errors="ignore")
    text = ANSI_PATTERN.sub("", text)
    return text.replace("\r\n", "\n").replace("\r", "")


def loggable_command(command: str) -> str:
    """Command line safe for logs: anything carrying a password is cut."""
    if " -p " in command or "Password" in command:
        return command.split(" -", 1)[0] + " <redacted>"
    return command


def last_line_of(output: str) -> str:
    """Final line of shell output, trimmed. Empty when output ends in a newline."""
    return output.rsplit("\n", 1)[-1].strip()


class SSHTransport(Transport):
    """Interactive paramiko shell to a RAC/CMC.

    ``prompt_pattern`` only finds the login prompt. The prompt line seen
    there (or ``config.prompt``) is then the exact line a command's output
    must end with, since getconfig output itself starts lines with ``#``.
    """

    def __init__(self, config: ConsoleConfig, prompt_pattern: Pattern = PROMPT_PATTERN):
        super().__init__(config)
        self.prompt_pattern = prompt_pattern
        self.prompt: Optional[str] = config.prompt
        self._client: Optional[paramiko.SSHClient] = None
        self._shell: Optional[paramiko.Channel] = None

    async def connect(self) -> bool:
        """Open the SSH session, retrying up to ``config.retries`` times."""
        open_session = with_retry(
            max_attempts=self.config.retries, min_wait=2, max_wait=10
        )(self._open_session)
        return await open_session()

    @timed("connect")
    async def _open_session(self) -> bool:
        """Open the SSH session and wait for the first prompt."""
        logger.info(f"Connecting to console {self.config.display_name} at {self.host}")
        loop = asyncio.get_event_loop()

        def _connect():
            client = paramiko.SSHClient()
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
            client.connect(
                self.host,
                port=self.config.port,
                username=self.config.username,
                password=self.config.get_password(),
                timeout=self.config.timeout,
                allow_agent=False,
                look_for_keys=False,
            )
            shell = client.invoke_shell()
            shell.settimeout(self.config.timeout)
            return client, shell

        self._client, self._shell = await loop.run_in_executor(None, _connect)

        # Wait for the login banner to finish
        await asyncio.sleep(self.config.banner_delay)
        banner = await self._read_until_prompt(timeout=10)
        if self.prompt is None:
            self.remember_prompt(banner)

        self._connected = True
        logger.info(f"Connected to {self.config.display_name}")
        return True

    def remember_prompt(self, output: str) -> None:
        """Take the last line of the login output as the console prompt."""
        last_line = last_line_of(output)
        if last_line and self.prompt_pattern.search(last_line):
            self.prompt = last_line
            logger.debug(f"Prompt for {self.host}: {last_line!r}")
        else:
            logger.warning(f"Could not identify prompt on {self.host}, matching by pattern")

    def at_prompt(self, output: str) -> bool:
        """True when ``output`` ends with the console prompt."""
        if self.prompt is not None:
            return last_line_of(output) == self.prompt
        return bool(self.prompt_pattern.search(output))

    async def disconnect(self) -> None:
        """Close the SSH session."""
        if self._shell:
            try:
                self._shell.close()
            except Exception as e:
                logger.debug(f"Error closing shell on {self.host}: {e}")
            self._shell = None
        if self._client:
            try:
                self._client.close()
            except Exception as e:
                logger.debug(f"Error closing client on {self.host}: {e}")
            self._client = None
        self._connected = False
        logger.info(f"Disconnected from {self.config.display_name}")

    async def _read_available(self) -> bytes:
        """Read whatever the shell has buffered."""
        if not self._shell:
            raise ConnectionError("Not connected")

        loop = asyncio.get_event_loop()

        def _recv() -> bytes:
            if self._shell.recv_ready():
                return self._shell.recv(65535)
            return b""

        return await loop.run_in_executor(None, _recv)

    async def _read_until_prompt(self, timeout: float = 30) -> str:
        """Read until the prompt appears or the timeout expires."""
        output = b""
        start_time = asyncio.get_event_loop().time()

        while asyncio.get_event_loop().time() - start_time <= timeout:
            chunk = await self._read_available()
            if chunk:
                output += chunk
                if self.at_prompt(clean_output(output)):
                    break
            else:
                await asyncio.sleep(0.2)
        else:
            logger.warning(f"No prompt from {self.host} after {timeout}s")

        return clean_output(output)

    async def send(self, command: str) -> Optional[str]:
        """Send a command and return the raw shell output."""
        if not self._shell or not self._connected:
            raise ConnectionError("Not connected")

        start = time.perf_counter()
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._shell.send, f"{command}\n")
        output = await self._read_until_prompt(timeout=self.config.timeout)
        elapsed = (time.perf_counter() - start) * 1000
        perf_logger.debug(
            f"{'send':20s} | {self.host:15s} | {elapsed:8.2f}ms | cmd={loggable_command(command)[:50]}"
        )
        return output or None
