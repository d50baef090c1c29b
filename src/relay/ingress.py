"""Chat gateway webhook ingress.

The gateway posts every received message to ``/relay/events``, signed with
``X-Hub-Signature-256: sha256=<hex hmac of body>``. This module verifies the
signature and turns the gateway payload into a ChatEvent.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Any

from src.relay.address import is_group_address
from src.relay.models import ChatEvent
from src.relay.validator import ValidationError

SIGNATURE_HEADER = "x-hub-signature-256"


def verify_signature(secret: str, headers: dict[str, str], body: bytes) -> bool:
    """Constant-time check of the gateway's HMAC-SHA256 body signature."""
    signature = headers.get(SIGNATURE_HEADER, "")
    if not signature.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(signature[7:], expected)


def extract_chat_event(payload: Any) -> ChatEvent:
    """Build a ChatEvent from a gateway message webhook.

    ``from`` reads ``"<sender>"`` for direct chats and
    ``"<sender> in <group>"`` for group chats.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    source = str(payload.get("from") or "")
    sender, _, group = source.partition(" in ")
    sender = sender.strip() or str(payload.get("sender_id") or "")
    chat = group.strip() or str(payload.get("chat_id") or sender)
    if not sender:
        raise ValidationError("Event sender is required")

    message = payload.get("message")
    text = ""
    if isinstance(message, dict):
        text = str(message.get("text") or "")

    return ChatEvent(
        sender_identifier=sender,
        chat_identifier=chat,
        text=text,
        is_group=bool(group) or is_group_address(chat) or bool(payload.get("is_group")),
        is_from_self=bool(payload.get("is_from_me", False)),
    )

