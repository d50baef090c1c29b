"""FastAPI application for the chat-ledger relay bridge."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.audit.logger import AuditLogger
from src.ledger.client import LedgerClient, LedgerGateway
from src.ledger.errors import ExternalAPIError, LedgerError
from src.ledger.models import Credentials
from src.models import AuditEvent, AuditEventType, RiskLevel
from src.proxy.auth_middleware import PUBLIC_PATHS, AuthMiddleware
from src.proxy.relay_routes import CALLBACK_TOKEN_PARAM, create_relay_router, envelope
from src.relay.callback import CallbackHandler
from src.relay.dispatcher import RelayDispatcher
from src.relay.models import RelayFlags
from src.relay.relay import MessageRelay
from src.relay.sender import ChatSender, GatewayChatSender
from src.relay.validator import ValidationError, validate_callback_url

logger = logging.getLogger(__name__)


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    audit_log = os.environ.get("AUDIT_LOG_PATH")
    audit_logger = AuditLogger.from_env(audit_log) if audit_log else None
    return create_app(
        ledger=LedgerClient(Credentials.from_env()),
        sender=GatewayChatSender(os.environ.get("CHAT_GATEWAY_URL", "http://localhost:3000")),
        flags=RelayFlags.from_env(),
        audit_logger=audit_logger,
        api_token=os.environ.get("RELAY_API_TOKEN") or None,
        webhook_secret=os.environ.get("CHAT_WEBHOOK_SECRET") or None,
        callback_url=os.environ.get("RELAY_CALLBACK_URL") or None,
        callback_secret=os.environ.get("RELAY_CALLBACK_SECRET") or None,
    )


def with_callback_token(callback_url: str, secret: str | None) -> str:
    """Append the shared callback secret as a query token, if one is configured."""
    if not secret:
        return callback_url
    return str(httpx.URL(callback_url).copy_merge_params({CALLBACK_TOKEN_PARAM: secret}))


async def register_callback_url(
    ledger: LedgerGateway,
    flags: RelayFlags,
    callback_url: str | None,
    audit_logger: AuditLogger | None = None,
    callback_secret: str | None = None,
) -> bool:
    """Tell the ledger where to push callbacks. Failure is logged, not raised.

    The secret is sent inside the registered URL and never logged.
    """
    if not flags.relay_enabled or not callback_url:
        logger.debug("Relay disabled or no callback URL configured, skipping callback setup")
        return False
    try:
        url = validate_callback_url(callback_url)
        await ledger.set_callback_url(with_callback_token(url, callback_secret))
    except (LedgerError, ValidationError, httpx.InvalidURL) as e:
        logger.error("Failed to register ledger callback URL %s: %s", callback_url, e)
        registered = False
    else:
        logger.info("Registered ledger callback URL: %s", callback_url)
        registered = True
    if audit_logger:
        audit_logger.log(AuditEvent(
            event_type=AuditEventType.CALLBACK_REGISTRATION,
            action="set_callback_url",
            result="success" if registered else "failure",
            risk_level=RiskLevel.INFO if registered else RiskLevel.MEDIUM,
            details={"url": callback_url},
        ))
    return registered


def create_app(
    ledger: LedgerGateway,
    sender: ChatSender,
    flags: RelayFlags,
    audit_logger: AuditLogger | None = None,
    api_token: str | None = None,
    webhook_secret: str | None = None,
    callback_url: str | None = None,
    callback_secret: str | None = None,
) -> FastAPI:
    """Wire the relay, callback handler and dispatcher into a FastAPI app."""
    relay = MessageRelay(ledger, sender, flags, audit_logger=audit_logger)
    dispatcher = RelayDispatcher(relay)
    callback_handler = CallbackHandler(sender, audit_logger=audit_logger)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await register_callback_url(
            ledger, flags, callback_url, audit_logger, callback_secret=callback_secret,
        )
        yield
        await dispatcher.drain()
        for resource in (ledger, sender):
            aclose = getattr(resource, "aclose", None)
            if aclose is not None:
                await aclose()

    app = FastAPI(docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.relay = relay
    app.state.dispatcher = dispatcher

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.exception_handler(ValidationError)
    async def handle_validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        return envelope(None, exc.reason, code=exc.code, status_code=400)

    @app.exception_handler(LedgerError)
    async def handle_ledger_error(_: Request, exc: LedgerError) -> JSONResponse:
        logger.warning("Ledger call failed: %s", exc)
        status_code = 500 if exc.code == "ENCODING_ERROR" else 502
        results = (
            {"upstream_status": exc.status_code}
            if isinstance(exc, ExternalAPIError) else None
        )
        return envelope(results, str(exc), code=exc.code, status_code=status_code)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unexpected error on %s %s", request.method, request.url.path)
        return envelope(None, "Internal error", code="INTERNAL_ERROR", status_code=500)

    app.include_router(create_relay_router(
        ledger,
        flags,
        callback_handler,
        dispatcher=dispatcher,
        webhook_secret=webhook_secret,
        callback_secret=callback_secret,
    ))

    if api_token:
        public_paths = set(PUBLIC_PATHS)
        if webhook_secret:
            public_paths.add("/relay/events")
        if callback_secret:
            public_paths.add("/relay/callback")
        app.add_middleware(
            AuthMiddleware,
            token=api_token,
            audit_logger=audit_logger,
            public_paths=frozenset(public_paths),
        )
    else:
        if not webhook_secret:
            logger.warning("Neither RELAY_API_TOKEN nor CHAT_WEBHOOK_SECRET set; /relay/events is unauthenticated")
        if not callback_secret:
            logger.warning("Neither RELAY_API_TOKEN nor RELAY_CALLBACK_SECRET set; /relay/callback is unauthenticated")

    return app
