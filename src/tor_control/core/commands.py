"""Concrete control port commands.

Each command writes one request line and parses the reply into a
``CommandResponse``:
- ``SignalCommand``: ``SIGNAL NEWNYM`` and friends
- ``GetInfoCommand``: ``GETINFO`` keys into ``ResponsePairs``
- ``GetConfCommand``: ``GETCONF`` options into ``ResponsePairs``
- ``SetConfCommand``: ``SETCONF`` option values

The zero-argument forms registered at the bottom of this module are what
``dispatch_and_return`` and ``tor-control run`` resolve by name.
"""

from collections.abc import Mapping
from typing import Final

from tor_control.core.command import (
    CommandResponse,
    PairsResponse,
    ResponsePairs,
    register_command,
)
from tor_control.core.connection import ControlConnection, ControlReply, quote
from tor_control.core.exceptions import ProtocolError

# Signals understood by the daemon
SIGNALS: Final = frozenset(
    {
        "RELOAD",
        "SHUTDOWN",
        "DUMP",
        "DEBUG",
        "HALT",
        "CLEARDNSCACHE",
        "NEWNYM",
        "HEARTBEAT",
        "DORMANT",
        "ACTIVE",
    }
)

# Final line of a successful multi-line reply
OK_LINE: Final = "OK"


def _validate_keyword(keyword: str) -> str:
    if not keyword or any(ch.isspace() for ch in keyword) or '"' in keyword:
        msg = f"Invalid keyword: {keyword!r}"
        raise ValueError(msg)
    return keyword


def _parse_pairs(reply: ControlReply, keys: tuple[str, ...]) -> PairsResponse:
    """Turn a GETINFO/GETCONF reply into a pairs response."""
    if not reply.ok:
        return PairsResponse(success=False)

    *body, last = reply.lines
    if last != OK_LINE:
        body.append(last)
    pairs = ResponsePairs.parse(body)

    missing = [key for key in keys if key not in pairs]
    if missing:
        msg = f"Reply is missing requested keys: {', '.join(missing)}"
        raise ProtocolError(msg)
    return PairsResponse(success=True, pairs=pairs)


class SignalCommand:
    """Send a signal to the daemon."""

    def __init__(self, signal: str) -> None:
        signal = signal.upper()
        if signal not in SIGNALS:
            msg = f"Unknown signal: {signal}"
            raise ValueError(msg)
        self.signal = signal

    def exchange(self, connection: ControlConnection) -> CommandResponse:
        reply = connection.send_command(f"SIGNAL {self.signal}")
        return CommandResponse(success=reply.ok)


class GetInfoCommand:
    """Query daemon information such as ``version`` or ``status/bootstrap-phase``."""

    def __init__(self, *keys: str) -> None:
        if not keys:
            msg = "GETINFO needs at least one key"
            raise ValueError(msg)
        self.keys = tuple(_validate_keyword(key) for key in keys)

    def exchange(self, connection: ControlConnection) -> PairsResponse:
        reply = connection.send_command(f"GETINFO {' '.join(self.keys)}")
        return _parse_pairs(reply, self.keys)


class GetConfCommand:
    """Query configuration options; options at their default come back empty.

    Options that can be set several times (``SocksPort``, ``HiddenServiceDir``)
    keep only their last value in the returned pairs.
    """

    def __init__(self, *keys: str) -> None:
        if not keys:
            msg = "GETCONF needs at least one option"
            raise ValueError(msg)
        self.keys = tuple(_validate_keyword(key) for key in keys)

    def exchange(self, connection: ControlConnection) -> PairsResponse:
        reply = connection.send_command(f"GETCONF {' '.join(self.keys)}")
        # Option names come back in their canonical case
        return _parse_pairs(reply, ())


class SetConfCommand:
    """Change configuration options for the running daemon."""

    def __init__(self, settings: Mapping[str, str | None]) -> None:
        if not settings:
            msg = "SETCONF needs at least one option"
            raise ValueError(msg)
        self.settings = {_validate_keyword(key): value for key, value in settings.items()}

    def _request(self) -> str:
        parts = [key if value is None else f"{key}={quote(value)}" for key, value in self.settings.items()]
        return f"SETCONF {' '.join(parts)}"

    def exchange(self, connection: ControlConnection) -> CommandResponse:
        reply = connection.send_command(self._request())
        return CommandResponse(success=reply.ok)


@register_command("newnym")
def newnym() -> SignalCommand:
    """Switch to clean circuits for new streams."""
    return SignalCommand("NEWNYM")


@register_command("clear-dns-cache")
def clear_dns_cache() -> SignalCommand:
    return SignalCommand("CLEARDNSCACHE")


@register_command("reload")
def reload() -> SignalCommand:
    return SignalCommand("RELOAD")


@register_command("dump")
def dump() -> SignalCommand:
    return SignalCommand("DUMP")


@register_command("heartbeat")
def heartbeat() -> SignalCommand:
    return SignalCommand("HEARTBEAT")


@register_command("version")
def version() -> GetInfoCommand:
    return GetInfoCommand("version")


@register_command("status")
def status() -> GetInfoCommand:
    """Bootstrap progress and circuit readiness."""
    return GetInfoCommand("status/bootstrap-phase", "status/circuit-established")
