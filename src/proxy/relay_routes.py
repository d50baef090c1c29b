"""Relay API endpoints.

Provides endpoints for:
- Forwarding a message to the ledger inbox
- Managing the ledger's callback URL
- Reseller info and balance lookups
- Connectivity test and health probe
- Ledger callback ingress
- Chat gateway event ingress

Every response uses the envelope ``{status_code, code, message, results}``.
Ledger and validation errors are converted by the app's exception handlers.
"""

from __future__ import annotations

import hmac
import json
import logging
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from src.ledger.errors import LedgerError
from src.relay.ingress import extract_chat_event, verify_signature
from src.relay.validator import (
    ValidationError,
    parse_callback_payload,
    parse_callback_url,
    parse_relay_message,
    parse_test_phone,
    validate_reseller_code,
)

if TYPE_CHECKING:
    from src.ledger.client import LedgerGateway
    from src.relay.callback import CallbackHandler
    from src.relay.dispatcher import RelayDispatcher
    from src.relay.models import RelayFlags

logger = logging.getLogger(__name__)

HEALTH_PROBE_PHONE = "08123456789"
CALLBACK_TOKEN_PARAM = "token"


def envelope(
    results: Any,
    message: str,
    code: str = "SUCCESS",
    status_code: int = 200,
) -> JSONResponse:
    return JSONResponse(
        {"status_code": status_code, "code": code, "message": message, "results": results},
        status_code=status_code,
    )


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError("Request body must be valid JSON") from e


def create_relay_router(
    ledger: LedgerGateway,
    flags: RelayFlags,
    callback_handler: CallbackHandler,
    dispatcher: RelayDispatcher | None = None,
    webhook_secret: str | None = None,
    callback_secret: str | None = None,
) -> APIRouter:
    """Create the relay API router."""
    router = APIRouter(prefix="/relay")

    @router.post("/insert")
    async def insert_message(request: Request) -> JSONResponse:
        message = parse_relay_message(
            await _read_json(request),
            default_reseller_code=flags.default_reseller_code,
            default_terminal_code=flags.default_terminal_code,
        )
        result = await ledger.insert_message(message)
        return envelope(result.model_dump(), "Message sent to ledger successfully")

    @router.post("/callback-url")
    async def set_callback_url(request: Request) -> JSONResponse:
        url = parse_callback_url(await _read_json(request))
        ack = await ledger.set_callback_url(url)
        return envelope(ack.model_dump(), "Callback URL set successfully")

    @router.get("/callback-url")
    async def get_callback_url() -> JSONResponse:
        info = await ledger.get_callback_url()
        return envelope(info.model_dump(), "Callback URL retrieved successfully")

    @router.get("/reseller/{code}")
    async def get_reseller_info(code: str) -> JSONResponse:
        info = await ledger.get_reseller_info(validate_reseller_code(code))
        return envelope(info.model_dump(), "Reseller information retrieved successfully")

    @router.get("/reseller/{code}/balance")
    async def get_reseller_balance(code: str) -> JSONResponse:
        balance = await ledger.get_reseller_balance(validate_reseller_code(code))
        return envelope(balance.model_dump(), "Reseller balance retrieved successfully")

    @router.post("/test")
    async def test_connectivity(request: Request) -> JSONResponse:
        phone = parse_test_phone(await _read_json(request))
        result = await ledger.test_connectivity(phone)
        return envelope(result.model_dump(), "Connection test completed")

    @router.get("/health")
    async def health() -> JSONResponse:
        """Probe the ledger with a dummy connectivity test; always HTTP 200."""
        try:
            result = await ledger.test_connectivity(HEALTH_PROBE_PHONE)
        except LedgerError as e:
            logger.warning("Ledger health probe failed: %s", e)
            return envelope(
                {"error": str(e), "flags": flags.as_dict()},
                "Ledger integration is not healthy",
                code="ERROR",
            )
        return envelope(
            {"ledger": result.model_dump(), "flags": flags.as_dict()},
            "Ledger integration is healthy",
            code="HEALTHY",
        )

    @router.post("/callback")
    async def handle_callback(request: Request) -> JSONResponse:
        """Ledger outbox callback; checks the registered query token when configured."""
        if callback_secret and not hmac.compare_digest(
            request.query_params.get(CALLBACK_TOKEN_PARAM, "").encode(),
            callback_secret.encode(),
        ):
            logger.warning("Rejected ledger callback with invalid token")
            return envelope(
                None, "Invalid callback token", code="INVALID_CALLBACK_TOKEN", status_code=401,
            )
        payload = parse_callback_payload(await _read_json(request))
        report = await callback_handler.handle(payload)
        return envelope(
            {
                "transaction_code": report.transaction_code,
                "status_code": report.status_code,
                "forwarded": report.delivered,
                "errors": report.errors,
            },
            "Callback processed successfully",
        )

    if dispatcher is not None:

        @router.post("/events")
        async def receive_event(request: Request) -> JSONResponse:
            """Chat gateway message webhook; relays in the background."""
            raw = await request.body()
            if webhook_secret and not verify_signature(
                webhook_secret, dict(request.headers), raw,
            ):
                return envelope(
                    None, "Invalid webhook signature", code="INVALID_SIGNATURE", status_code=401,
                )
            try:
                payload = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise ValidationError("Request body must be valid JSON") from e

            event = extract_chat_event(payload)
            dispatcher.submit(event)
            return envelope({"accepted": True}, "Event accepted for relay", status_code=202)

    return router
