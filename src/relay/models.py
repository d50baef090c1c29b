"""Data models for the chat-to-ledger relay."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

from src.ledger.models import RelayMessage, RelayResult


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw.strip())


@dataclass(frozen=True)
class ChatEvent:
    """Inbound chat message as delivered by the chat transport."""

    sender_identifier: str
    chat_identifier: str
    text: str = ""
    is_group: bool = False
    is_from_self: bool = False


@dataclass(frozen=True)
class RelayFlags:
    """Read-only feature flag snapshot, injected at construction.

    forward_outgoing and forward_media govern the chat gateway's own webhook
    forwarding; the relay only reports them.
    """

    relay_enabled: bool = False
    forward_incoming: bool = True
    forward_outgoing: bool = True
    forward_groups: bool = False
    forward_media: bool = True
    auto_reply_enabled: bool = True
    default_reseller_code: str = ""
    default_terminal_code: int = 2
    self_identifier: str = ""

    @classmethod
    def from_env(cls) -> RelayFlags:
        """Build the snapshot from ``RELAY_*`` environment variables."""
        return cls(
            relay_enabled=_env_bool("RELAY_ENABLED", False),
            forward_incoming=_env_bool("RELAY_FORWARD_INCOMING", True),
            forward_outgoing=_env_bool("RELAY_FORWARD_OUTGOING", True),
            forward_groups=_env_bool("RELAY_FORWARD_GROUPS", False),
            forward_media=_env_bool("RELAY_FORWARD_MEDIA", True),
            auto_reply_enabled=_env_bool("RELAY_AUTO_REPLY_ENABLED", True),
            default_reseller_code=os.environ.get("RELAY_DEFAULT_RESELLER", "").strip(),
            default_terminal_code=_env_int("RELAY_DEFAULT_TERMINAL_CODE", 2),
            self_identifier=os.environ.get("RELAY_SELF_IDENTIFIER", "").strip(),
        )

    def as_dict(self) -> dict[str, object]:
        return {
            "relay_enabled": self.relay_enabled,
            "forward_incoming": self.forward_incoming,
            "forward_outgoing": self.forward_outgoing,
            "forward_groups": self.forward_groups,
            "forward_media": self.forward_media,
            "auto_reply_enabled": self.auto_reply_enabled,
            "default_reseller_code": self.default_reseller_code,
            "default_terminal_code": self.default_terminal_code,
        }


class RelayOutcome(str, Enum):
    """Terminal states of one relay task."""

    SKIPPED = "skipped"
    FAILED = "failed"
    REPLIED = "replied"
    NOT_REQUIRED = "not_required"
    REPLY_FAILED = "reply_failed"


class SkipReason(str, Enum):
    RELAY_DISABLED = "relay_disabled"
    FROM_SELF = "from_self"
    GROUP_MESSAGE = "group_message"
    NO_TEXT = "no_text"


@dataclass
class RelayReport:
    """What happened to one inbound event."""

    outcome: RelayOutcome
    skip_reason: SkipReason | None = None
    message: RelayMessage | None = None
    result: RelayResult | None = None
    reply_text: str | None = None
    error: Exception | None = None

    @property
    def relayed(self) -> bool:
        return self.result is not None


@dataclass
class CallbackReport:
    """What happened to one ledger callback."""

    transaction_code: int
    status_code: int
    forwarded_to: str | None = None
    message_id: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return self.message_id is not None
