"""ASGI middleware guarding the relay management routes with a Bearer token."""

from __future__ import annotations

import hmac

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from src.audit.logger import AuditLogger
from src.models import AuditEvent, AuditEventType, RiskLevel

# Exact paths that never need a token; ingress routes join only with their own secret
PUBLIC_PATHS = frozenset({"/health"})


def _envelope(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        {"status_code": status_code, "code": code, "message": message, "results": None},
        status_code=status_code,
    )


class AuthMiddleware:
    """Rejects management calls without a valid Bearer token (constant-time compare)."""

    def __init__(
        self,
        app: ASGIApp,
        token: str,
        audit_logger: AuditLogger | None = None,
        public_paths: frozenset[str] = PUBLIC_PATHS,
    ) -> None:
        self.app = app
        self._token = token.encode()
        self.audit_logger = audit_logger
        self._public_paths = public_paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        if request.url.path in self._public_paths:
            await self.app(scope, receive, send)
            return

        auth_header = request.headers.get("authorization", "")
        if not auth_header.startswith("Bearer "):
            self._log(request, "failure", "missing_token")
            await _envelope(401, "UNAUTHORIZED", "Authentication required")(scope, receive, send)
            return

        if not hmac.compare_digest(auth_header[7:].encode(), self._token):
            self._log(request, "failure", "invalid_token")
            await _envelope(403, "FORBIDDEN", "Access denied")(scope, receive, send)
            return

        self._log(request, "success")
        await self.app(scope, receive, send)

    def _log(self, request: Request, result: str, reason: str | None = None) -> None:
        if not self.audit_logger:
            return
        failed = result != "success"
        self.audit_logger.log(AuditEvent(
            event_type=AuditEventType.AUTH_FAILURE if failed else AuditEventType.AUTH_SUCCESS,
            source_ip=request.client.host if request.client else None,
            action=f"{request.method} {request.url.path}",
            result=result,
            risk_level=RiskLevel.HIGH if failed else RiskLevel.INFO,
            details={"reason": reason} if reason else None,
        ))
