"""Custom exceptions for the control client.

This module defines the exceptions raised while talking to a Tor control port
and while reading through the buffered stream adapter:
- Transport failures (the control port could not be reached)
- Authentication failures (the secret was rejected)
- Protocol failures (malformed or unexpected replies)
- Dispatch failures (umbrella wrapping any of the above)

Callers of ``dispatch`` only ever see ``DispatchError``; the original failure is
kept as its cause.

Example:
    try:
        response = dispatch(GetInfoCommand("version"), "127.0.0.1", 9051, "secret")
    except DispatchError as e:
        console.print(f"[red]Command failed: {e.cause}")
"""

import io


class TorControlError(Exception):
    """Base exception for control client errors."""


class ControlConnectionError(TorControlError, ConnectionError):
    """Raised when the control port transport cannot be established."""


class AuthenticationError(TorControlError):
    """Raised when the control port rejects the supplied secret."""


class ProtocolError(TorControlError):
    """Raised on a malformed or unexpected control port reply."""


class UnknownCommandError(TorControlError, KeyError):
    """Raised when no command is registered under the requested name."""


class NotSupportedError(TorControlError, io.UnsupportedOperation):
    """Raised by stream operations outside the read-only, forward-only surface."""


class DispatchError(TorControlError):
    """Raised when a command could not be dispatched.

    The original failure is always attached as ``__cause__``.
    """

    @property
    def cause(self) -> BaseException | None:
        """Return the error that made the dispatch fail."""
        return self.__cause__
