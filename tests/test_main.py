import datetime
from unittest.mock import MagicMock, patch

import pytest

from control_client import main as cli
from control_client.core import CommandOutcome, CommandResult
from control_client.exceptions import TransportError

from conftest import GUID

BASE_ARGS = ["--server", "https://control.example.com", "--username", "admin"]


@pytest.fixture
def client():
    client = MagicMock()
    client.__enter__.return_value = client
    client.__exit__.return_value = False
    with patch.object(cli.SessionLogClient, "from_config", return_value=client) as from_config, \
            patch.dict("os.environ", {cli.PASSWORD_ENV_VAR: "pw"}), \
            patch.object(cli, "setup_logger"):
        client.from_config = from_config
        yield client


def _dispatch_returning(result):
    dispatcher = MagicMock()
    dispatcher.run.return_value = result
    return patch.object(cli.CommandDispatcher, "from_config", return_value=dispatcher)


def test_run_prints_output(client, capsys):
    result = CommandResult(outcome=CommandOutcome.COMPLETED, guid=GUID, output=["DESKTOP-01"])
    with _dispatch_returning(result) as from_config:
        code = cli.main(BASE_ARGS + ["run", GUID, "hostname", "--timeout-ms", "5000", "--powershell"])

    assert code == cli.EXIT_OK
    assert capsys.readouterr().out == "DESKTOP-01\n"
    from_config.return_value.run.assert_called_once_with(GUID, "hostname", timeout_ms=5000, use_powershell=True)
    credential = client.from_config.call_args[0][1]
    assert credential.username == "admin"
    assert credential.password == "pw"


def test_run_uses_configured_default_timeout(client):
    result = CommandResult(outcome=CommandOutcome.COMPLETED, guid=GUID)
    with _dispatch_returning(result) as from_config:
        cli.main(BASE_ARGS + ["run", GUID, "hostname"])

    assert from_config.return_value.run.call_args[1]["timeout_ms"] == 10000


@pytest.mark.parametrize("outcome, expected", [
    (CommandOutcome.NOT_FOUND, cli.EXIT_NOT_FOUND),
    (CommandOutcome.TIMED_OUT, cli.EXIT_TIMED_OUT),
])
def test_run_outcome_exit_codes(client, outcome, expected):
    with _dispatch_returning(CommandResult(outcome=outcome, guid=GUID)):
        assert cli.main(BASE_ARGS + ["run", GUID, "hostname"]) == expected


def test_transport_error_exits_with_error(client, capsys):
    with patch.object(cli.CommandDispatcher, "from_config") as from_config:
        from_config.return_value.run.side_effect = TransportError("Server error", status_code=500)
        code = cli.main(BASE_ARGS + ["run", GUID, "hostname"])

    assert code == cli.EXIT_ERROR
    assert "HTTP 500" in capsys.readouterr().err


def test_last_contact_prints_timestamp(client, capsys):
    client.fetch_session.return_value = MagicMock()
    with patch.object(cli, "get_last_contact", return_value=datetime.datetime(2024, 5, 1, 8, 30, 15)):
        code = cli.main(BASE_ARGS + ["last-contact", GUID])

    assert code == cli.EXIT_OK
    assert capsys.readouterr().out == "2024-05-01 08:30:15\n"


def test_last_contact_never(client, capsys):
    client.fetch_session.return_value = MagicMock()
    with patch.object(cli, "get_last_contact", return_value=None):
        cli.main(BASE_ARGS + ["last-contact", GUID])

    assert capsys.readouterr().out == "never\n"


def test_last_contact_unknown_machine(client):
    client.fetch_session.return_value = None
    assert cli.main(BASE_ARGS + ["last-contact", GUID]) == cli.EXIT_NOT_FOUND


def test_missing_server_url_is_an_error(capsys):
    assert cli.main(["--username", "admin", "run", GUID, "hostname"]) == cli.EXIT_ERROR
    assert "server_url" in capsys.readouterr().err


def test_zero_timeout_is_rejected_not_defaulted(client, capsys):
    code = cli.main(BASE_ARGS + ["run", GUID, "hostname", "--timeout-ms", "0"])

    assert code == cli.EXIT_ERROR
    assert "timeout_ms" in capsys.readouterr().err
    client.fetch_session.assert_not_called()
    client.submit_event.assert_not_called()
