"""Connection settings and protocol constants."""

from dataclasses import dataclass, field
from typing import Final

# Control port defaults
DEFAULT_ADDRESS: Final = "127.0.0.1"
DEFAULT_CONTROL_PORT: Final = 9051
DEFAULT_TIMEOUT: Final = 10.0  # Seconds

# Line terminator used by the control protocol
LINE_ENDING: Final = "\r\n"

# Environment variables read by the CLI
ENV_ADDRESS: Final = "TOR_CONTROL_ADDRESS"
ENV_PORT: Final = "TOR_CONTROL_PORT"
ENV_PASSWORD: Final = "TOR_CONTROL_PASSWORD"  # noqa: S105
ENV_TIMEOUT: Final = "TOR_CONTROL_TIMEOUT"


@dataclass(frozen=True)
class ControlSettings:
    """Where and how to reach a Tor control port.

    Attributes:
        address: Host the control port listens on
        port: Control port number
        password: Secret for ``AUTHENTICATE``; empty when the daemon needs none
        timeout: Socket timeout in seconds
    """

    address: str = DEFAULT_ADDRESS
    port: int = DEFAULT_CONTROL_PORT
    password: str = field(default="", repr=False)
    timeout: float = DEFAULT_TIMEOUT
