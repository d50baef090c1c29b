"""Request validation and sanitization for every inbound request shape.

Sanitization (trim, upper-case the sender-type tag, phone normalization)
always runs before validation. Violations raise ValidationError with a
human-readable reason; nothing here is retried.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from src.ledger.models import SENDER_TYPE_CHAT, CallbackPayload, RelayMessage
from src.relay.address import bare_address

MAX_TEXT_LENGTH = 4096
MAX_URL_LENGTH = 2048
MAX_CALLBACK_MESSAGE_LENGTH = 1024

_RESELLER_CODE_RE = re.compile(r"[A-Za-z0-9_-]+")
_PHONE_RE = re.compile(r"08[0-9]{8,11}")


class ValidationError(Exception):
    """Raised when an inbound request fails structural or semantic checks."""

    code = "VALIDATION_ERROR"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


# --- Sanitizers ---


def normalize_phone(phone: str) -> str:
    """``+6281234567890`` / ``6281234567890`` / ``62...@s.whatsapp.net`` -> ``081234567890``."""
    phone = bare_address(phone)
    if phone.startswith("+"):
        phone = phone[1:]
    if phone.startswith("62"):
        phone = "0" + phone[2:]
    return phone


# --- Field validators ---


def validate_message_text(text: str) -> str:
    if not text.strip():
        raise ValidationError("Message content is required")
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError(
            f"Message content is too long (max {MAX_TEXT_LENGTH} characters)",
        )
    return text


def validate_reseller_code(code: str) -> str:
    code = code.strip()
    if not code:
        raise ValidationError("Reseller code is required")
    if not _RESELLER_CODE_RE.fullmatch(code):
        raise ValidationError("Invalid reseller code format")
    return code


def validate_phone(phone: str) -> str:
    """Normalize then check the mobile number pattern; returns the normalized form."""
    if not phone.strip():
        raise ValidationError("Phone number is required")
    normalized = normalize_phone(phone)
    if not _PHONE_RE.fullmatch(normalized):
        raise ValidationError("Invalid phone number format")
    return normalized


def validate_sender_type(sender_type: str) -> str:
    sender_type = sender_type.strip().upper()
    if not sender_type:
        raise ValidationError("Sender type is required")
    if sender_type != SENDER_TYPE_CHAT:
        raise ValidationError(f"Sender type must be '{SENDER_TYPE_CHAT}'")
    return sender_type


def validate_terminal_code(value: object) -> int:
    if isinstance(value, bool):
        raise ValidationError("Terminal code must be an integer")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise ValidationError("Terminal code must be an integer")
    if value <= 0:
        raise ValidationError("Terminal code must be positive")
    return value


def validate_callback_url(url: str) -> str:
    url = url.strip()
    if not url:
        raise ValidationError("Callback URL is required")
    if not url.startswith(("http://", "https://")):
        raise ValidationError("Callback URL must start with http:// or https://")
    if len(url) > MAX_URL_LENGTH:
        raise ValidationError(
            f"Callback URL is too long (max {MAX_URL_LENGTH} characters)",
        )
    return url


# --- Request shapes ---


def _require_object(body: Any) -> dict[str, Any]:
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _string_field(body: dict[str, Any], *names: str) -> str:
    """First present value among ``names`` (Python name, then wire alias)."""
    for name in names:
        value = body.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValidationError(f"Field '{name}' must be a string")
        return value
    return ""


def _describe(exc: PydanticValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "body"
    return f"{location}: {first['msg']}"


def parse_relay_message(
    body: Any,
    *,
    default_reseller_code: str = "",
    default_terminal_code: int = 0,
) -> RelayMessage:
    """Validate a ``POST /relay/insert`` body into a RelayMessage.

    Accepts Python field names or the ledger's wire names. Missing reseller
    and terminal codes fall back to the configured defaults.
    """
    data = _require_object(body)
    text = _string_field(data, "text", "pesan").strip()
    reseller_code = (
        _string_field(data, "reseller_code", "kode_reseller").strip()
        or default_reseller_code
    )
    sender = _string_field(data, "sender_identifier", "pengirim")
    sender_type = _string_field(data, "sender_type", "tipe_pengirim") or SENDER_TYPE_CHAT
    terminal = data.get("terminal_code", data.get("kode_terminal")) or default_terminal_code

    validate_message_text(text)
    if reseller_code:
        reseller_code = validate_reseller_code(reseller_code)
    if not sender.strip():
        raise ValidationError("Sender phone number is required")
    sender = validate_phone(sender)

    return RelayMessage(
        text=text,
        reseller_code=reseller_code,
        sender_identifier=sender,
        sender_type=validate_sender_type(sender_type),
        terminal_code=validate_terminal_code(terminal),
    )


def parse_callback_url(body: Any) -> str:
    return validate_callback_url(_string_field(_require_object(body), "url"))


def parse_test_phone(body: Any) -> str:
    return validate_phone(_string_field(_require_object(body), "phone"))


def parse_callback_payload(body: Any) -> CallbackPayload:
    """Sanitize and validate a ledger callback body."""
    data = _require_object(body)
    try:
        payload = CallbackPayload.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid callback payload: {_describe(e)}") from e
    return sanitize_callback_payload(payload)


def sanitize_callback_payload(payload: CallbackPayload) -> CallbackPayload:
    message = payload.message.strip()
    response_text = (payload.response_text or "").strip() or None
    sender = (payload.original_sender_identifier or "").strip() or None

    if payload.transaction_code <= 0:
        raise ValidationError("Invalid transaction code")
    if payload.status_code < 0:
        raise ValidationError("Invalid status code")
    if len(message) > MAX_CALLBACK_MESSAGE_LENGTH:
        raise ValidationError(
            f"Message is too long (max {MAX_CALLBACK_MESSAGE_LENGTH} characters)",
        )
    if response_text is not None and len(response_text) > MAX_TEXT_LENGTH:
        raise ValidationError(
            f"Response message is too long (max {MAX_TEXT_LENGTH} characters)",
        )
    if sender is not None:
        normalized = normalize_phone(sender)
        if not _PHONE_RE.fullmatch(normalized):
            raise ValidationError("Invalid sender phone number format")
        sender = normalized

    return payload.model_copy(update={
        "message": message,
        "response_text": response_text,
        "original_sender_identifier": sender,
    })
