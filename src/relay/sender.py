"""Outbound chat delivery.

The relay and callback handler only see the ChatSender protocol. The
production implementation talks to the chat gateway's REST API; tests use an
in-memory recording fake.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import httpx

from src.relay.address import chat_address

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 30.0


class ChatSendError(Exception):
    """Raised when an outbound chat message could not be delivered."""


@runtime_checkable
class ChatSender(Protocol):
    async def send(self, destination: str, text: str) -> str:
        """Deliver ``text`` to ``destination`` and return the message id."""
        ...


class GatewayChatSender:
    """Sends text messages through the chat gateway's ``/send/message`` route.

    No retry: a failed send is reported once to the caller.
    """

    def __init__(
        self,
        gateway_url: str,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._gateway_url = gateway_url
        self._http = http_client or httpx.AsyncClient(timeout=_TIMEOUT_SECONDS, verify=True)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def send(self, destination: str, text: str) -> str:
        url = f"{self._gateway_url.rstrip('/')}/send/message"
        payload = {"phone": chat_address(destination), "message": text}

        try:
            resp = await self._http.post(url, json=payload, timeout=_TIMEOUT_SECONDS)
        except httpx.HTTPError as e:
            raise ChatSendError(f"Chat gateway unreachable: {e}") from e

        if resp.status_code >= 400:
            raise ChatSendError(f"Chat gateway rejected message: {resp.status_code}")

        try:
            results = resp.json().get("results") or {}
        except (ValueError, AttributeError):
            results = {}
        message_id = str(results.get("message_id", "")) if isinstance(results, dict) else ""
        logger.debug("Chat message delivered to %s id=%s", destination, message_id)
        return message_id
