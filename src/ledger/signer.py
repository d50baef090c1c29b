"""Per-request token signing for the ledger HTTP protocol.

The token binds the application identity and the exact request body bytes:

    metadata  = urlsafe(b64(json({"id": application_id})))
    first     = b64(HMAC-SHA256(developer_key, application_key))
    second    = urlsafe(b64(HMAC-SHA256(first, request_body)))
    token     = metadata + "." + second

``urlsafe`` strips ``=`` padding and maps ``/`` to ``_`` and ``+`` to ``-``.
A token is valid for one body only and is never cached.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from typing import TYPE_CHECKING

from src.ledger.errors import EncodingError

if TYPE_CHECKING:
    from src.ledger.models import Credentials

logger = logging.getLogger(__name__)


def urlsafe_b64(raw: bytes) -> str:
    """Standard Base64, then strip padding and swap ``/`` and ``+``."""
    encoded = base64.b64encode(raw).decode("ascii")
    return encoded.replace("=", "").replace("/", "_").replace("+", "-")


def dump_body(payload: object) -> bytes:
    """Serialize a request payload to the compact JSON bytes that get signed."""
    try:
        return json.dumps(
            payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False,
        ).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Failed to serialize request body: {e}") from e


class AuthSigner:
    """Derives the ledger ``token`` query parameter for a request body."""

    def __init__(self, credentials: Credentials) -> None:
        self._credentials = credentials

    def _metadata(self) -> str:
        try:
            raw = json.dumps(
                {"id": self._credentials.application_id}, separators=(",", ":"),
            ).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise EncodingError(f"Failed to serialize token metadata: {e}") from e
        return urlsafe_b64(raw)

    def _first_signature(self) -> str:
        digest = hmac.new(
            self._credentials.developer_key.encode("utf-8"),
            self._credentials.application_key.encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode("ascii")

    def sign(self, request_body: bytes) -> str:
        """Return the token for exactly these body bytes."""
        first = self._first_signature()
        second = hmac.new(
            first.encode("ascii"), request_body, hashlib.sha256,
        ).digest()
        token = f"{self._metadata()}.{urlsafe_b64(second)}"
        logger.debug("Generated ledger token for body length %d", len(request_body))
        return token
