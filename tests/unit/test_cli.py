"""Tests for the ledger admin CLI."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from src.ledger.cli import cli
from src.ledger.errors import TransportError
from src.ledger.signer import AuthSigner
from tests.conftest import make_credentials, make_ledger

_CREDS = ["--app-id", "OtomaX.Addon", "--app-key", "app-key", "--dev-key", "dev-key"]


def _invoke_with_ledger(ledger: AsyncMock, args: list[str]):
    ledger.aclose = AsyncMock()
    with patch("src.ledger.cli.LedgerClient", return_value=ledger) as client_cls:
        result = CliRunner().invoke(cli, [*_CREDS, *args])
    return result, client_cls


def test_sign_outputs_compact_body_and_token() -> None:
    result = CliRunner().invoke(cli, [*_CREDS, "sign", '{"phone": "08123456789"}'])

    assert result.exit_code == 0
    output = json.loads(result.output)
    assert output["body"] == '{"phone":"08123456789"}'
    expected = AuthSigner(make_credentials()).sign(b'{"phone":"08123456789"}')
    assert output["token"] == expected


def test_sign_rejects_invalid_json() -> None:
    result = CliRunner().invoke(cli, [*_CREDS, "sign", "{not json"])
    assert result.exit_code != 0
    assert "not valid JSON" in result.output


def test_test_command_normalizes_phone() -> None:
    ledger = make_ledger()
    result, _ = _invoke_with_ledger(ledger, ["test", "+6281234567890"])

    assert result.exit_code == 0
    ledger.test_connectivity.assert_awaited_once_with("081234567890")
    assert json.loads(result.output)["result"] == "pong"
    ledger.aclose.assert_awaited_once()


def test_set_callback() -> None:
    ledger = make_ledger()
    result, _ = _invoke_with_ledger(ledger, ["set-callback", "https://bridge.test/relay/callback"])

    assert result.exit_code == 0
    ledger.set_callback_url.assert_awaited_once_with("https://bridge.test/relay/callback")


def test_set_callback_rejects_bad_scheme() -> None:
    ledger = make_ledger()
    result, _ = _invoke_with_ledger(ledger, ["set-callback", "ftp://x.com"])

    assert result.exit_code != 0
    ledger.set_callback_url.assert_not_called()


def test_get_callback() -> None:
    result, _ = _invoke_with_ledger(make_ledger(), ["get-callback"])
    assert result.exit_code == 0
    assert json.loads(result.output)["url"] == "https://bridge.test/relay/callback"


def test_reseller_and_balance() -> None:
    ledger = make_ledger()
    result, _ = _invoke_with_ledger(ledger, ["reseller", "R001"])
    assert json.loads(result.output)["name"] == "Toko Maju"

    result, _ = _invoke_with_ledger(ledger, ["balance", "R001"])
    assert json.loads(result.output)["balance"] == 150000


def test_credentials_from_options() -> None:
    _, client_cls = _invoke_with_ledger(make_ledger(), ["--base-url", "http://other:5000/", "get-callback"])
    creds = client_cls.call_args[0][0]
    assert creds.base_url == "http://other:5000/"
    assert creds.application_key == "app-key"


def test_ledger_error_exits_nonzero() -> None:
    ledger = make_ledger()
    ledger.get_callback_url.side_effect = TransportError("Ledger GetOutboxCallback unreachable")
    result, _ = _invoke_with_ledger(ledger, ["get-callback"])

    assert result.exit_code == 1
    assert "LEDGER_UNAVAILABLE" in result.output
