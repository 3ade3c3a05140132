from __future__ import annotations

import pytest
from conftest import FakeConnection

from tor_control.core.command import (
    CommandResponse,
    PairsResponse,
    ResponsePairs,
    dispatch,
    dispatch_and_return,
    register_command,
    registered_commands,
    resolve_command,
)
from tor_control.core.commands import SignalCommand
from tor_control.core.connection import ControlReply
from tor_control.core.exceptions import (
    AuthenticationError,
    ControlConnectionError,
    DispatchError,
    ProtocolError,
    UnknownCommandError,
)


class RecordingCommand:
    def __init__(self, response: CommandResponse | None = None, error: Exception | None = None):
        self.response = response or CommandResponse(success=True)
        self.error = error
        self.exchanged_with = None

    def exchange(self, connection):
        self.exchanged_with = connection
        if self.error is not None:
            raise self.error
        return self.response


def test_dispatch_runs_connect_authenticate_exchange_in_order(fake_connection: FakeConnection):
    command = RecordingCommand(PairsResponse(success=True, pairs=ResponsePairs(version="0.4.8.9")))

    response = dispatch(command, "127.0.0.1", 9051, "secret", connection_factory=fake_connection, timeout=3.0)

    assert response.pairs == {"version": "0.4.8.9"}
    assert fake_connection.calls == ["connect", "authenticate"]
    assert fake_connection.secret == "secret"
    assert fake_connection.opened_with == ("127.0.0.1", 9051, 3.0)
    assert command.exchanged_with is fake_connection
    assert fake_connection.close_count == 1


def test_connect_failure_wraps_connection_error_and_skips_authentication():
    connection = FakeConnection(connect_ok=False)
    command = RecordingCommand()

    with pytest.raises(DispatchError) as excinfo:
        dispatch(command, "127.0.0.1", 9051, "secret", connection_factory=connection)

    assert isinstance(excinfo.value.cause, ControlConnectionError)
    assert isinstance(excinfo.value.cause, ConnectionError)
    assert connection.calls == ["connect"]
    assert command.exchanged_with is None
    assert connection.close_count == 1


def test_connect_raising_oserror_is_a_connection_error():
    class RaisingConnection(FakeConnection):
        def connect(self) -> bool:
            self.calls.append("connect")
            raise ConnectionRefusedError("refused")

    connection = RaisingConnection()

    with pytest.raises(DispatchError) as excinfo:
        dispatch(RecordingCommand(), "127.0.0.1", 9051, connection_factory=connection)

    assert isinstance(excinfo.value.cause, ControlConnectionError)
    assert isinstance(excinfo.value.cause.__cause__, ConnectionRefusedError)
    assert connection.calls == ["connect"]
    assert connection.close_count == 1


def test_authentication_failure_wraps_authentication_error_and_skips_exchange():
    connection = FakeConnection(auth_ok=False)
    command = RecordingCommand()

    with pytest.raises(DispatchError) as excinfo:
        dispatch(command, "127.0.0.1", 9051, "wrong", connection_factory=connection)

    assert isinstance(excinfo.value.__cause__, AuthenticationError)
    assert command.exchanged_with is None
    assert connection.close_count == 1


def test_exchange_failure_is_wrapped_and_connection_released_once(fake_connection: FakeConnection):
    error = ProtocolError("garbage")
    command = RecordingCommand(error=error)

    with pytest.raises(DispatchError) as excinfo:
        dispatch(command, "127.0.0.1", 9051, connection_factory=fake_connection)

    assert excinfo.value.cause is error
    assert fake_connection.close_count == 1


def test_low_level_errors_do_not_leak(fake_connection: FakeConnection):
    command = RecordingCommand(error=OSError("connection reset"))

    with pytest.raises(DispatchError) as excinfo:
        dispatch(command, "127.0.0.1", 9051, connection_factory=fake_connection)

    assert isinstance(excinfo.value.cause, OSError)


def test_unsuccessful_response_is_returned_not_raised(fake_connection: FakeConnection):
    command = RecordingCommand(CommandResponse(success=False))

    response = dispatch(command, "127.0.0.1", 9051, connection_factory=fake_connection)

    assert response.success is False


def test_dispatch_and_return_true_only_on_success(fake_connection: FakeConnection):
    assert dispatch_and_return(RecordingCommand, "127.0.0.1", 9051, connection_factory=fake_connection) is True
    assert (
        dispatch_and_return(
            lambda: RecordingCommand(CommandResponse(success=False)),
            "127.0.0.1",
            9051,
            connection_factory=FakeConnection(),
        )
        is False
    )


@pytest.mark.parametrize(
    "connection",
    [
        FakeConnection(connect_ok=False),
        FakeConnection(auth_ok=False),
    ],
    ids=["connect", "authenticate"],
)
def test_dispatch_and_return_false_on_lifecycle_failures(connection: FakeConnection):
    assert dispatch_and_return(RecordingCommand, "127.0.0.1", 9051, connection_factory=connection) is False


def test_dispatch_and_return_false_on_exchange_failure(fake_connection: FakeConnection):
    def factory():
        return RecordingCommand(error=ProtocolError("bad reply"))

    assert dispatch_and_return(factory, "127.0.0.1", 9051, connection_factory=fake_connection) is False
    assert fake_connection.close_count == 1


def test_dispatch_and_return_false_when_command_cannot_be_built(fake_connection: FakeConnection):
    def broken_factory():
        raise RuntimeError("no")

    assert dispatch_and_return(broken_factory, "127.0.0.1", 9051, connection_factory=fake_connection) is False
    assert dispatch_and_return("no-such-command", "127.0.0.1", 9051, connection_factory=fake_connection) is False
    assert fake_connection.calls == []


def test_dispatch_and_return_resolves_registered_names():
    connection = FakeConnection(replies=[ControlReply(status=250, lines=("OK",))])

    assert dispatch_and_return("newnym", "127.0.0.1", 9051, "pw", connection_factory=connection) is True
    assert connection.sent == ["SIGNAL NEWNYM"]


def test_registry_builds_fresh_instances():
    first = resolve_command("newnym")
    second = resolve_command("newnym")

    assert isinstance(first, SignalCommand)
    assert first is not second
    assert "newnym" in registered_commands()


def test_registry_rejects_unknown_and_duplicate_names():
    with pytest.raises(UnknownCommandError):
        resolve_command("missing")

    with pytest.raises(ValueError, match="already registered"):
        register_command("newnym")(lambda: SignalCommand("NEWNYM"))


def test_response_pairs_parse_both_separators():
    pairs = ResponsePairs.parse(["version=0.4.8.9", "SocksPort 9050", "ControlPort", "a=b=c"])

    assert list(pairs.items()) == [
        ("version", "0.4.8.9"),
        ("SocksPort", "9050"),
        ("ControlPort", ""),
        ("a", "b=c"),
    ]


def test_responses_are_immutable():
    response = CommandResponse(success=True)

    with pytest.raises(AttributeError):
        response.success = False
