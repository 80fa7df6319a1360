"""Parser for raw racadm console output.

The console has no stable output schema. Some commands print ``key=value``
dumps, some a single status line, others a free-form report. The shape is
classified from the content, not from the command that produced it:

    Empty   - nothing between the command echo and the prompt
    Scalar  - exactly one line
    Lines   - several lines without ``=`` on the first one
    Fields  - ``key=value`` pairs (first content line contains ``=``)
"""
from dataclasses import dataclass, field
from typing import Optional


class ParsedResponse:
    """Base for the four response shapes."""

    @property
    def text(self) -> str:
        """Flat text form, used for substring checks such as ``ERROR``."""
        return ""

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Field lookup. Only ``Fields`` responses carry keys."""
        return default

    def __bool__(self) -> bool:
        return bool(self.text)


@dataclass(frozen=True)
class Empty(ParsedResponse):

    def __str__(self) -> str:
        return ""


@dataclass(frozen=True)
class Scalar(ParsedResponse):
    value: str

    @property
    def text(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Lines(ParsedResponse):
    lines: tuple[str, ...]

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def __iter__(self):
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    def __str__(self) -> str:
        return str(list(self.lines))


@dataclass(frozen=True)
class Fields(ParsedResponse):
    fields: dict[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return "\n".join(f"{k}={v}" for k, v in self.fields.items())

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.fields.get(key, default)

    def __getitem__(self, key: str) -> str:
        return self.fields[key]

    def __contains__(self, key: object) -> bool:
        return key in self.fields

    def __str__(self) -> str:
        return str(self.fields)


def _split_field(line: str) -> tuple[str, str]:
    """Split ``key=value`` on the first ``=`` only."""
    key, sep, value = line.partition("=")
    key = key.strip()
    # Some dumps prefix the first key with '#'
    if key.startswith("#"):
        key = key[1:].strip()
    return key, value.strip() if sep else ""


def parse(output: Optional[str]) -> ParsedResponse:
    """Classify raw console output into a ParsedResponse.

    The first line (echo of the sent command) and the last line (the prompt
    printed after the command finished) are discarded.
    """
    if output is None:
        return Empty()

    lines = [line.rstrip("\r") for line in output.split("\n")]
    # Trailing newlines produce empty strings that are not real lines
    while lines and lines[-1] == "":
        lines.pop()

    content = lines[1:-1]
    if not content:
        return Empty()

    if "=" in content[0]:
        fields: dict[str, str] = {}
        for line in content:
            key, value = _split_field(line)
            fields[key] = value
        return Fields(fields)

    if len(content) == 1:
        return Scalar(content[0])

    return Lines(tuple(content))
