"""Shared Pydantic data models for the chat-ledger relay."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

# --- Enums ---


class AuditEventType(str, Enum):
    RELAY = "relay"
    CALLBACK = "callback"
    CALLBACK_REGISTRATION = "callback_registration"
    AUTH_SUCCESS = "auth_success"
    AUTH_FAILURE = "auth_failure"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    source_ip: str | None = None
    user_id: str | None = None
    action: str
    result: str
    risk_level: RiskLevel
    details: dict[str, object] | None = None
