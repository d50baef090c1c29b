"""Tests for environment-driven configuration."""

from __future__ import annotations

import pytest

from src.ledger.models import DEFAULT_APP_ID, DEFAULT_BASE_URL, Credentials
from src.relay.models import RelayFlags

_RELAY_VARS = [
    "RELAY_ENABLED",
    "RELAY_FORWARD_INCOMING",
    "RELAY_FORWARD_OUTGOING",
    "RELAY_FORWARD_GROUPS",
    "RELAY_FORWARD_MEDIA",
    "RELAY_AUTO_REPLY_ENABLED",
    "RELAY_DEFAULT_RESELLER",
    "RELAY_DEFAULT_TERMINAL_CODE",
    "RELAY_SELF_IDENTIFIER",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in [*_RELAY_VARS, "LEDGER_BASE_URL", "LEDGER_APP_ID", "LEDGER_APP_KEY", "LEDGER_DEV_KEY"]:
        monkeypatch.delenv(name, raising=False)


def test_flag_defaults() -> None:
    flags = RelayFlags.from_env()
    assert flags == RelayFlags()
    assert not flags.relay_enabled
    assert flags.forward_incoming
    assert not flags.forward_groups
    assert flags.auto_reply_enabled
    assert flags.default_terminal_code == 2


@pytest.mark.parametrize(("raw", "expected"), [
    ("true", True), ("1", True), ("YES", True), ("on", True),
    ("false", False), ("0", False), ("no", False),
])
def test_bool_parsing(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("RELAY_ENABLED", raw)
    assert RelayFlags.from_env().relay_enabled is expected


def test_blank_value_uses_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RELAY_AUTO_REPLY_ENABLED", "  ")
    assert RelayFlags.from_env().auto_reply_enabled is True


def test_blank_terminal_code_uses_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RELAY_DEFAULT_TERMINAL_CODE", "")
    assert RelayFlags.from_env().default_terminal_code == 2
    monkeypatch.setenv("RELAY_DEFAULT_TERMINAL_CODE", " 7 ")
    assert RelayFlags.from_env().default_terminal_code == 7


def test_flag_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RELAY_ENABLED", "true")
    monkeypatch.setenv("RELAY_FORWARD_GROUPS", "true")
    monkeypatch.setenv("RELAY_DEFAULT_RESELLER", " R001 ")
    monkeypatch.setenv("RELAY_DEFAULT_TERMINAL_CODE", "5")
    monkeypatch.setenv("RELAY_SELF_IDENTIFIER", "6280000000000")

    flags = RelayFlags.from_env()

    assert flags.relay_enabled
    assert flags.forward_groups
    assert flags.default_reseller_code == "R001"
    assert flags.default_terminal_code == 5
    assert flags.self_identifier == "6280000000000"


def test_flags_as_dict_omits_self_identifier() -> None:
    as_dict = RelayFlags(self_identifier="628").as_dict()
    assert "self_identifier" not in as_dict
    assert as_dict["default_terminal_code"] == 2


def test_credentials_defaults() -> None:
    creds = Credentials.from_env()
    assert creds.application_id == DEFAULT_APP_ID
    assert creds.base_url == DEFAULT_BASE_URL


def test_credentials_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LEDGER_BASE_URL", "http://ledger:5000/")
    monkeypatch.setenv("LEDGER_APP_KEY", "k")
    monkeypatch.setenv("LEDGER_DEV_KEY", "d")
    creds = Credentials.from_env()
    assert creds.base_url == "http://ledger:5000/"
    assert creds.application_key == "k"
    assert creds.developer_key == "d"
