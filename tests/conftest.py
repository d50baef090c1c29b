"""Shared test fixtures for the chat-ledger relay."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.audit.logger import AuditLogger
from src.ledger.client import LedgerGateway
from src.ledger.models import (
    CallbackUrlAck,
    CallbackUrlInfo,
    ConnectivityResult,
    Credentials,
    RelayResult,
    ResellerBalance,
    ResellerInfo,
)
from src.models import AuditEvent, AuditEventType, RiskLevel
from src.relay.models import ChatEvent, RelayFlags
from src.relay.sender import ChatSender

SENDER_JID = "6281234567890@s.whatsapp.net"
SENDER_BARE = "6281234567890"
GROUP_JID = "120363000000000000@g.us"


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def ledger() -> AsyncMock:
    return make_ledger()


@pytest.fixture
def sender() -> AsyncMock:
    return make_sender()


# --- Factory functions for test data ---


def make_credentials(**kwargs: Any) -> Credentials:
    defaults: dict[str, Any] = {
        "application_id": "OtomaX.Addon",
        "application_key": "app-key",
        "developer_key": "dev-key",
        "base_url": "http://ledger.test:5000/",
    }
    defaults.update(kwargs)
    return Credentials(**defaults)


def make_flags(**kwargs: Any) -> RelayFlags:
    """Factory for RelayFlags with the relay switched on."""
    defaults: dict[str, Any] = {
        "relay_enabled": True,
        "forward_incoming": True,
        "forward_groups": False,
        "auto_reply_enabled": True,
        "default_reseller_code": "",
        "default_terminal_code": 2,
    }
    defaults.update(kwargs)
    return RelayFlags(**defaults)


def make_chat_event(**kwargs: Any) -> ChatEvent:
    defaults: dict[str, Any] = {
        "sender_identifier": SENDER_JID,
        "chat_identifier": SENDER_JID,
        "text": "SALDO",
        "is_group": False,
        "is_from_self": False,
    }
    defaults.update(kwargs)
    return ChatEvent(**defaults)


def make_relay_result(**kwargs: Any) -> RelayResult:
    """Factory for an InsertInbox answer (wire-shaped)."""
    result: dict[str, Any] = {
        "kode_inbox": 1001,
        "status": 20,
        "statusDesc": "Diterima",
    }
    result.update(kwargs)
    return RelayResult.model_validate({"ok": True, "result": result})


def make_audit_event(**kwargs: Any) -> AuditEvent:
    defaults: dict[str, Any] = {
        "event_type": AuditEventType.AUTH_FAILURE,
        "action": "test_action",
        "result": "failure",
        "risk_level": RiskLevel.HIGH,
    }
    defaults.update(kwargs)
    return AuditEvent(**defaults)


def make_ledger(**kwargs: Any) -> AsyncMock:
    """AsyncMock ledger whose operations return benign answers by default."""
    ledger = AsyncMock(spec=LedgerGateway)
    ledger.insert_message.return_value = kwargs.get("insert_result", make_relay_result())
    ledger.set_callback_url.return_value = CallbackUrlAck(status="success", message="ok")
    ledger.get_callback_url.return_value = CallbackUrlInfo.model_validate(
        {"status": "success", "message": "ok", "data": {"url": "https://bridge.test/relay/callback"}},
    )
    ledger.get_reseller_info.return_value = ResellerInfo.model_validate({
        "status": "success",
        "message": "ok",
        "data": {"kode": "R001", "nama": "Toko Maju", "saldo": 150000, "status": "aktif", "is_active": True},
    })
    ledger.get_reseller_balance.return_value = ResellerBalance.model_validate(
        {"status": "success", "message": "ok", "data": {"kode": "R001", "saldo": 150000}},
    )
    ledger.test_connectivity.return_value = ConnectivityResult.model_validate(
        {"status": "success", "message": "ok", "data": {"result": "pong"}},
    )
    ledger.validate_reseller.return_value = True
    return ledger


def make_sender(message_id: str = "MSG-1") -> AsyncMock:
    sender = AsyncMock(spec=ChatSender)
    sender.send.return_value = message_id
    return sender
