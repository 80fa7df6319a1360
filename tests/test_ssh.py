"""Tests for the SSH transport."""
import pytest

from rac_console.console import TRANSPORT_TYPES, create_transport
from rac_console.console.base import ConsoleConfig
from rac_console.console.parser import parse
from rac_console.console.ssh import PROMPT_PATTERN, SSHTransport, clean_output, loggable_command


class TestCleanOutput:
    """Tests for clean_output."""

    def test_strips_ansi_and_carriage_returns(self):
        raw = b"racadm getniccfg -m server-1\r\n\x1b[0mDHCP Enabled=1\r\n$ "
        assert clean_output(raw) == "racadm getniccfg -m server-1\nDHCP Enabled=1\n$ "

    def test_ignores_undecodable_bytes(self):
        assert clean_output(b"ok\xff\n") == "ok\n"


class TestPrompt:
    """Tests for prompt detection."""

    @pytest.mark.parametrize("tail", ["$ ", "# ", "racadm>>", "/admin1-> "])
    def test_known_prompts(self, tail):
        assert PROMPT_PATTERN.search(f"output\n{tail}")

    def test_no_prompt_mid_output(self):
        assert not PROMPT_PATTERN.search("Object value modified successfully\n")


class TestLoggableCommand:
    """Tests for loggable_command."""

    def test_plain_command_unchanged(self):
        assert loggable_command("racadm getniccfg -m server-1") == "racadm getniccfg -m server-1"

    def test_deploy_password_redacted(self):
        result = loggable_command("racadm deploy -u root -p 'calvin' -m server-1")
        assert "calvin" not in result
        assert result == "racadm deploy <redacted>"

    def test_user_password_redacted(self):
        command = "racadm config -g cfgUserAdmin -o cfgUserAdminPassword s3cret -i 3"
        assert "s3cret" not in loggable_command(command)


class TestSSHTransport:
    """Tests for SSHTransport that need no console."""

    def test_not_connected_initially(self):
        transport = SSHTransport(ConsoleConfig(host="172.16.0.10"))
        assert not transport.is_connected
        assert transport.host == "172.16.0.10"

    @pytest.mark.asyncio
    async def test_send_requires_connection(self):
        transport = SSHTransport(ConsoleConfig(host="172.16.0.10"))
        with pytest.raises(ConnectionError):
            await transport.send("racadm getsysinfo")

    @pytest.mark.asyncio
    async def test_disconnect_without_session(self):
        transport = SSHTransport(ConsoleConfig(host="172.16.0.10"))
        await transport.disconnect()
        assert not transport.is_connected


class TestCreateTransport:
    """Tests for the transport factory."""

    def test_default_protocol_is_ssh(self):
        transport = create_transport({"host": "172.16.0.10", "username": "root"})
        assert isinstance(transport, TRANSPORT_TYPES["ssh"])
        assert transport.config.username == "root"

    def test_unknown_protocol(self):
        with pytest.raises(ValueError, match="telnet"):
            create_transport({"host": "172.16.0.10", "protocol": "telnet"})


class FakeShell:
    """Stands in for a paramiko channel, releasing output in fixed chunks."""

    def __init__(self, *chunks: bytes):
        self.chunks = list(chunks)
        self.sent: list[str] = []

    def recv_ready(self) -> bool:
        return bool(self.chunks)

    def recv(self, size: int) -> bytes:
        return self.chunks.pop(0)

    def send(self, data: str) -> int:
        self.sent.append(data)
        return len(data)

    def close(self) -> None:
        pass


def shell_transport(*chunks: bytes, prompt="$") -> SSHTransport:
    transport = SSHTransport(ConsoleConfig(host="172.16.0.10", timeout=5))
    transport.prompt = prompt
    transport._shell = FakeShell(*chunks)
    transport._connected = True
    return transport


class TestSend:
    """Tests for send() reading until the console prompt."""

    @pytest.mark.asyncio
    async def test_hash_comment_split_across_reads(self):
        transport = shell_transport(
            b"racadm getconfig -g cfgUserAdmin -i 2\r\n# ",
            b"cfgUserAdminIndex=2\r\ncfgUserAdminUserName=operator\r\n$ ",
        )

        raw = await transport.send("racadm getconfig -g cfgUserAdmin -i 2")

        assert transport._shell.sent == ["racadm getconfig -g cfgUserAdmin -i 2\n"]
        assert "cfgUserAdminUserName=operator" in raw
        assert raw.endswith("$ ")
        assert parse(raw).get("cfgUserAdminUserName") == "operator"

    @pytest.mark.asyncio
    async def test_output_after_split_is_not_left_for_next_command(self):
        transport = shell_transport(
            b"racadm getconfig -g cfgUserAdmin -i 2\r\n# ",
            b"cfgUserAdminIndex=2\r\n$ ",
            b"racadm getsysinfo\r\nCMC Version = 6.20\r\n$ ",
        )

        await transport.send("racadm getconfig -g cfgUserAdmin -i 2")
        raw = await transport.send("racadm getsysinfo")

        assert raw.startswith("racadm getsysinfo\n")

    @pytest.mark.asyncio
    async def test_configured_prompt_used(self):
        config = ConsoleConfig(host="172.16.0.10", prompt="racadm>>")
        transport = SSHTransport(config)
        assert transport.prompt == "racadm>>"
        assert transport.at_prompt("getsysinfo\nCMC Version = 6.20\nracadm>>")
        assert not transport.at_prompt("getconfig\n# ")


class TestRememberPrompt:
    """Tests for learning the prompt from the login banner."""

    def test_last_banner_line_becomes_prompt(self):
        transport = SSHTransport(ConsoleConfig(host="172.16.0.10"))
        transport.remember_prompt("Welcome to the CMC firmware\nType help for help\n$ ")
        assert transport.prompt == "$"

    def test_unrecognized_banner_keeps_pattern_matching(self):
        transport = SSHTransport(ConsoleConfig(host="172.16.0.10"))
        transport.remember_prompt("Welcome\n")
        assert transport.prompt is None
        assert transport.at_prompt("output\n$ ")


class TestConnectRetries:
    """connect() honours ConsoleConfig.retries."""

    @pytest.mark.asyncio
    async def test_single_attempt(self):
        transport = SSHTransport(ConsoleConfig(host="172.16.0.10", retries=1))
        calls = 0

        async def refuse():
            nonlocal calls
            calls += 1
            raise ConnectionRefusedError("refused")

        transport._open_session = refuse
        with pytest.raises(ConnectionRefusedError):
            await transport.connect()
        assert calls == 1

    @pytest.mark.asyncio
    async def test_retries_then_connects(self):
        transport = SSHTransport(ConsoleConfig(host="172.16.0.10", retries=2))
        calls = 0

        async def flaky():
            nonlocal calls
            calls += 1
            if calls < 2:
                raise ConnectionResetError("reset")
            return True

        transport._open_session = flaky
        assert await transport.connect() is True
        assert calls == 2
