"""racadm console access: command encoding, transports and output parsing."""
from .base import Transport, ConsoleConfig
from .client import ConsoleClient
from .command import Command, encode
from .parser import ParsedResponse, Empty, Scalar, Lines, Fields, parse
from .ssh import SSHTransport

__all__ = [
    "Transport",
    "ConsoleConfig",
    "ConsoleClient",
    "Command",
    "encode",
    "ParsedResponse",
    "Empty",
    "Scalar",
    "Lines",
    "Fields",
    "parse",
    "SSHTransport",
]

# Transport registry
TRANSPORT_TYPES = {
    "ssh": SSHTransport,
}


def create_transport(config: dict) -> Transport:
    """Factory function to create a transport from an inventory entry."""
    settings = dict(config)
    protocol = str(settings.pop("protocol", "ssh")).lower()
    if protocol not in TRANSPORT_TYPES:
        raise ValueError(f"Unknown console protocol: {protocol}")

    transport_class = TRANSPORT_TYPES[protocol]
    return transport_class(ConsoleConfig(**settings))
