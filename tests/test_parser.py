"""Tests for the racadm output parser."""
from rac_console.console.parser import Empty, Fields, Lines, Scalar, parse


def raw(*body: str, command: str = "racadm getniccfg -m server-1", prompt: str = "$ ") -> str:
    return "\n".join([command, *body, prompt])


class TestParseShapes:
    """Shape classification."""

    def test_none_is_empty(self):
        assert parse(None) == Empty()

    def test_empty_string_is_empty(self):
        assert parse("") == Empty()

    def test_echo_and_prompt_only_is_empty(self):
        assert parse(raw()) == Empty()

    def test_single_line_is_scalar(self):
        result = parse(raw("Object value modified successfully"))
        assert result == Scalar("Object value modified successfully")

    def test_multiple_lines_without_equals(self):
        result = parse(raw("line one", "line two", "line three"))
        assert isinstance(result, Lines)
        assert list(result) == ["line one", "line two", "line three"]

    def test_equals_on_later_line_stays_lines(self):
        """Only the first content line decides the Fields shape."""
        result = parse(raw("PING 10.0.0.5 (10.0.0.5): 56 data bytes",
                           "64 bytes from 10.0.0.5: seq=0 ttl=64"))
        assert isinstance(result, Lines)
        assert len(result) == 2

    def test_key_value_dump_is_fields(self):
        result = parse(raw("DHCP Enabled = 1", "IP Address = 10.0.0.5", "Gateway= 10.0.0.1"))
        assert isinstance(result, Fields)
        assert result.fields == {
            "DHCP Enabled": "1",
            "IP Address": "10.0.0.5",
            "Gateway": "10.0.0.1",
        }

    def test_single_key_value_line_is_fields(self):
        result = parse(raw("cfgUserAdminEnable=1"))
        assert result == Fields({"cfgUserAdminEnable": "1"})


class TestParseFields:
    """Key/value details."""

    def test_leading_hash_stripped_from_key(self):
        result = parse(raw("# cfgUserAdminIndex=2", "cfgUserAdminUserName=operator"))
        assert result["cfgUserAdminIndex"] == "2"
        assert result["cfgUserAdminUserName"] == "operator"

    def test_only_first_equals_splits(self):
        result = parse(raw("cfgDNSDomainName=a=b", "other=c"))
        assert result["cfgDNSDomainName"] == "a=b"

    def test_line_without_equals_has_empty_value(self):
        result = parse(raw("key=value", "orphan line"))
        assert result["orphan line"] == ""

    def test_duplicate_key_last_value_wins(self):
        result = parse(raw("a=1", "b=2", "a=3"))
        assert result.fields == {"a": "3", "b": "2"}
        assert list(result.fields) == ["a", "b"]

    def test_get_on_non_fields_returns_default(self):
        assert parse(raw("just text")).get("IP Address") is None
        assert Empty().get("IP Address", "n/a") == "n/a"

    def test_round_trip(self):
        """Fields rendered back to key=value lines parse to the same map."""
        original = parse(raw("IP Address=10.0.0.5", "Subnet Mask=255.255.255.0", "DHCP Enabled=1"))
        again = parse(raw(*original.text.split("\n")))
        assert again.fields == original.fields


class TestParseFraming:
    """Echo, prompt and line ending handling."""

    def test_carriage_returns_removed(self):
        result = parse("racadm getsysinfo\r\nhello\r\n$ ")
        assert result == Scalar("hello")

    def test_trailing_newline_does_not_shift_prompt(self):
        result = parse("racadm getsysinfo\nhello\n$ \n")
        assert result == Scalar("hello")

    def test_text_forms(self):
        assert Empty().text == ""
        assert Scalar("x").text == "x"
        assert Lines(("a", "b")).text == "a\nb"
        assert Fields({"a": "1", "b": "2"}).text == "a=1\nb=2"

    def test_truthiness(self):
        assert not Empty()
        assert Scalar("x")
