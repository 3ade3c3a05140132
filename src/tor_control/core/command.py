"""Command dispatch over a Tor control connection.

This module owns the lifecycle every control command goes through:
- Opening one connection for the duration of the call
- Establishing the transport
- Authenticating with the supplied secret
- Handing the authenticated connection to the command's exchange step
- Closing the connection on every exit path

Concrete commands only implement the exchange step (see
``tor_control.core.commands``). Failures at any stage surface as a single
``DispatchError`` with the original error attached as its cause.

Example:
    response = dispatch(GetInfoCommand("version"), "127.0.0.1", 9051, "secret")
    print(response.pairs["version"])

    # Best-effort form, all failures become False
    dispatch_and_return("newnym", "127.0.0.1", 9051, "secret")
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, TypeVar

from loguru import logger

from tor_control.core.config import DEFAULT_TIMEOUT
from tor_control.core.connection import ControlConnection
from tor_control.core.exceptions import (
    AuthenticationError,
    ControlConnectionError,
    DispatchError,
    UnknownCommandError,
)

ResponseT = TypeVar("ResponseT", bound="CommandResponse", covariant=True)


class ResponsePairs(dict[str, str]):
    """Key/value pairs parsed from a reply body, in reply order."""

    @classmethod
    def parse(cls, lines: Iterable[str]) -> "ResponsePairs":
        """Build pairs from ``key=value``, ``key value`` or bare ``key`` lines.

        A bare key maps to an empty string; a repeated key keeps its last value.
        """
        pairs = cls()
        for line in lines:
            if "=" in line:
                key, _, value = line.partition("=")
            else:
                key, _, value = line.partition(" ")
            if key in pairs:
                logger.debug(f"Dropping earlier value of repeated key {key!r}: {pairs[key]!r}")
            pairs[key] = value
        return pairs


@dataclass(frozen=True)
class CommandResponse:
    """Outcome of a dispatched command."""

    success: bool


@dataclass(frozen=True)
class PairsResponse(CommandResponse):
    """Outcome of a command whose reply carries key/value pairs."""

    pairs: ResponsePairs = field(default_factory=ResponsePairs)


class CommandExchange(Protocol[ResponseT]):
    """The protocol-specific part of a command."""

    def exchange(self, connection: ControlConnection) -> ResponseT:
        """Write the request over an authenticated connection and parse the reply."""
        ...


class ConnectionFactory(Protocol):
    def __call__(self, address: str, port: int, *, timeout: float) -> ControlConnection: ...


CommandFactory = Callable[[], CommandExchange[CommandResponse]]


class DispatchState(Enum):
    """Stages a single dispatch call moves through."""

    CREATED = "created"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    EXCHANGING = "exchanging"
    COMPLETED = "completed"


# Zero-argument command factories keyed by command name
_registry: dict[str, CommandFactory] = {}


def register_command(name: str) -> Callable[[CommandFactory], CommandFactory]:
    """Register a zero-argument command factory under ``name``.

    Args:
        name: Name used by ``dispatch_and_return`` and the CLI

    Returns:
        Callable: Decorator returning the factory unchanged
    """

    def decorator(factory: CommandFactory) -> CommandFactory:
        if name in _registry:
            msg = f"Command {name!r} is already registered"
            raise ValueError(msg)
        _registry[name] = factory
        return factory

    return decorator


def resolve_command(name: str) -> CommandExchange[CommandResponse]:
    """Build a new instance of the command registered under ``name``.

    Raises:
        UnknownCommandError: If nothing is registered under ``name``
    """
    try:
        factory = _registry[name]
    except KeyError:
        raise UnknownCommandError(name) from None
    return factory()


def registered_commands() -> list[str]:
    """Return the registered command names, sorted."""
    return sorted(_registry)


def dispatch(
    command: CommandExchange[ResponseT],
    address: str,
    control_port: int,
    password: str = "",
    *,
    connection_factory: ConnectionFactory = ControlConnection,
    timeout: float = DEFAULT_TIMEOUT,
) -> ResponseT:
    """Dispatch ``command`` to a control port and return its parsed response.

    Args:
        command: Command whose exchange step runs once authenticated
        address: Host the control port listens on
        control_port: Control port number
        password: Authentication secret, may be empty
        connection_factory: Builds the connection used for this call
        timeout: Socket timeout in seconds

    Returns:
        The response produced by the command's exchange step

    Raises:
        DispatchError: On any failure, with the original error as its cause
    """
    state = DispatchState.CREATED
    name = type(command).__name__
    try:
        with connection_factory(address, control_port, timeout=timeout) as connection:
            state = DispatchState.CONNECTING
            msg = f"Failed to connect to the control port at {address}:{control_port}"
            try:
                connected = connection.connect()
            except OSError as e:
                raise ControlConnectionError(msg) from e
            if not connected:
                raise ControlConnectionError(msg)
            state = DispatchState.CONNECTED

            state = DispatchState.AUTHENTICATING
            if not connection.authenticate(password):
                msg = f"The control port at {address}:{control_port} rejected authentication"
                raise AuthenticationError(msg)
            state = DispatchState.AUTHENTICATED

            state = DispatchState.EXCHANGING
            response = command.exchange(connection)
    except Exception as e:
        logger.debug(f"{name} failed while {state.value}: {e!r}")
        msg = f"{name} could not be dispatched to {address}:{control_port}"
        raise DispatchError(msg) from e

    state = DispatchState.COMPLETED
    logger.debug(f"{name} {state.value} with success={response.success}")
    return response


def dispatch_and_return(
    command: str | CommandFactory,
    address: str,
    control_port: int,
    password: str = "",
    **kwargs,
) -> bool:
    """Build and dispatch a command, reducing the outcome to a boolean.

    This is a best-effort shortcut: every failure, including building the
    command, yields False and is only logged. Use ``dispatch`` when the reason
    for a failure matters.

    Args:
        command: Registered command name or zero-argument factory
        address: Host the control port listens on
        control_port: Control port number
        password: Authentication secret, may be empty
        **kwargs: Passed through to ``dispatch``

    Returns:
        bool: True if a response was obtained and reports success
    """
    try:
        instance = resolve_command(command) if isinstance(command, str) else command()
        return dispatch(instance, address, control_port, password, **kwargs).success
    except Exception as e:
        logger.debug(f"Best-effort dispatch of {command!r} failed: {e!r}")
        return False
