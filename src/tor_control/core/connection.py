"""Line-based control port connection.

This module implements the small transport primitive the command framework
needs from a Tor control port:
- TCP connection establishment with a timeout
- ``AUTHENTICATE`` with a password (or none)
- Raw line writes and reads
- Reply assembly for mid (``250-``), data (``250+``) and end (``250 ``) lines

Replies look like this on the wire::

    250-version=0.4.8.9
    250+config-text=
    SocksPort 9050
    .
    250 OK

Example:
    with ControlConnection("127.0.0.1", 9051) as connection:
        if connection.connect() and connection.authenticate("secret"):
            reply = connection.send_command("GETINFO version")
"""

import contextlib
import socket
from dataclasses import dataclass
from typing import BinaryIO

from loguru import logger

from tor_control.core.config import DEFAULT_TIMEOUT, LINE_ENDING
from tor_control.core.exceptions import ProtocolError

# Reply line separators
MID_REPLY = "-"
DATA_REPLY = "+"
END_REPLY = " "
DATA_TERMINATOR = "."

ENCODING = "utf-8"
MAX_LINE = 64 * 1024  # Bytes, terminator included


@dataclass(frozen=True)
class ControlReply:
    """A complete control port reply.

    Attributes:
        status: Status code of the final reply line
        lines: Body of every reply line with status and separator removed
    """

    status: int
    lines: tuple[str, ...]

    @property
    def ok(self) -> bool:
        """Whether the reply carries a 2xx status."""
        return 200 <= self.status < 300  # noqa: PLR2004


def quote(value: str) -> str:
    """Return ``value`` as a control protocol quoted string."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _split_reply_line(raw: str) -> tuple[int, str, str]:
    if len(raw) < 4 or not raw[:3].isdigit() or raw[3] not in (MID_REPLY, DATA_REPLY, END_REPLY):  # noqa: PLR2004
        msg = f"Malformed reply line: {raw!r}"
        raise ProtocolError(msg)
    return int(raw[:3]), raw[3], raw[4:]


class ControlConnection:
    """A single connection to a Tor control port."""

    def __init__(self, address: str, port: int, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.address = address
        self.port = port
        self.timeout = timeout
        self._sock: socket.socket | None = None
        self._reader: BinaryIO | None = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self) -> bool:
        """Open the TCP connection.

        Returns:
            bool: True when the transport is established
        """
        try:
            self._sock = socket.create_connection((self.address, self.port), timeout=self.timeout)
        except OSError as e:
            logger.debug(f"Control port {self.address}:{self.port} unreachable: {e}")
            return False
        self._reader = self._sock.makefile("rb")
        logger.debug(f"Connected to control port {self.address}:{self.port}")
        return True

    def authenticate(self, secret: str = "") -> bool:
        """Authenticate with ``secret``; an empty secret sends a bare ``AUTHENTICATE``.

        Returns:
            bool: True when the daemon accepted the secret
        """
        line = f"AUTHENTICATE {quote(secret)}" if secret else "AUTHENTICATE"
        reply = self.send_command(line)
        if not reply.ok:
            logger.debug(f"Authentication rejected with status {reply.status}")
        return reply.ok

    def write_line(self, line: str) -> None:
        """Send one command line, appending the line terminator."""
        if "\r" in line or "\n" in line:
            msg = "Command lines must not contain line breaks"
            raise ProtocolError(msg)
        if self._sock is None:
            msg = "Connection is not open"
            raise ProtocolError(msg)
        self._sock.sendall(f"{line}{LINE_ENDING}".encode(ENCODING))

    def read_line(self) -> str:
        """Read one line without its terminator."""
        if self._reader is None:
            msg = "Connection is not open"
            raise ProtocolError(msg)
        raw = self._reader.readline(MAX_LINE)
        if not raw:
            msg = "Control port closed the connection"
            raise ProtocolError(msg)
        if not raw.endswith(b"\n"):
            msg = f"Reply line exceeds {MAX_LINE} bytes or is unterminated"
            raise ProtocolError(msg)
        try:
            return raw.decode(ENCODING).rstrip("\r\n")
        except UnicodeDecodeError as e:
            msg = f"Undecodable reply line: {raw!r}"
            raise ProtocolError(msg) from e

    def read_reply(self) -> ControlReply:
        """Read lines up to and including the final reply line."""
        lines: list[str] = []
        while True:
            status, separator, body = _split_reply_line(self.read_line())
            if separator == DATA_REPLY:
                body += "\n".join(self._read_data_block())
            lines.append(body)
            if separator == END_REPLY:
                return ControlReply(status=status, lines=tuple(lines))

    def _read_data_block(self) -> list[str]:
        data: list[str] = []
        while (line := self.read_line()) != DATA_TERMINATOR:
            # Leading dots are doubled on the wire
            data.append(line[1:] if line.startswith("..") else line)
        return data

    def send_command(self, line: str) -> ControlReply:
        """Write ``line`` and read its reply."""
        self.write_line(line)
        return self.read_reply()

    def close(self) -> None:
        """Say QUIT if still connected and release the socket."""
        if self._sock is None:
            return
        with contextlib.suppress(OSError):
            self.write_line("QUIT")
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        self._sock.close()
        self._sock = None
        logger.debug(f"Closed control connection to {self.address}:{self.port}")

    def __enter__(self) -> "ControlConnection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
