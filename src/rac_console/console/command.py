"""Command encoder for the racadm command-line dialect.

Renders a verb, positional parameters and single-character flags into the
exact line sent to the console:

    racadm <verb>[ <param> <param> ...][ -<flag> <value> ...]

Values are not quoted or escaped. Callers that need quoting (passwords)
embed it themselves, matching the console's own tokenization.
"""
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence, Union

COMMAND_PREFIX = "racadm"

FlagValue = Optional[Union[str, int]]
Params = Union[str, Sequence[str], None]


@dataclass(frozen=True)
class Command:
    """An immutable racadm command.

    Flags keep insertion order; a flag whose value is None is rendered bare
    (``-d``).
    """
    verb: str
    flags: tuple[tuple[str, FlagValue], ...] = field(default_factory=tuple)
    params: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def build(
        cls,
        verb: str,
        flags: Optional[Mapping[str, FlagValue]] = None,
        params: Params = None,
    ) -> "Command":
        if params is None:
            param_tuple: tuple[str, ...] = ()
        elif isinstance(params, str):
            param_tuple = (params,) if params else ()
        else:
            param_tuple = tuple(str(p) for p in params)
        return cls(
            verb=verb,
            flags=tuple((flags or {}).items()),
            params=param_tuple,
        )

    @classmethod
    def config_set(
        cls,
        group: str,
        config_object: str,
        value: Union[str, int, Sequence[str]],
        flags: Optional[Mapping[str, FlagValue]] = None,
    ) -> "Command":
        """``racadm config -g <group> -o <object> <value>`` plus flags."""
        if isinstance(value, (list, tuple)):
            value = " ".join(str(v) for v in value)
        return cls.build(
            f"config -g {group} -o {config_object}", flags, [str(value)]
        )

    def render(self) -> str:
        cmd = f"{COMMAND_PREFIX} {self.verb}"
        if self.params:
            cmd += " " + " ".join(self.params)
        for flag, value in self.flags:
            if value is None:
                cmd += f" -{flag}"
            else:
                cmd += f" -{flag} {value}"
        return cmd

    def __str__(self) -> str:
        return self.render()


def encode(
    verb: str,
    flags: Optional[Mapping[str, FlagValue]] = None,
    params: Params = None,
) -> str:
    """Render a command line.

    >>> encode("setniccfg", {"m": "server-1"}, [])
    'racadm setniccfg -m server-1'
    """
    return Command.build(verb, flags, params).render()
