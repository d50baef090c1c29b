"""Ledger callback handling: forward the ledger's response text to the chat user."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.models import AuditEvent, AuditEventType, RiskLevel
from src.relay.models import CallbackReport
from src.relay.sender import ChatSendError
from src.relay.validator import sanitize_callback_payload

if TYPE_CHECKING:
    from src.audit.logger import AuditLogger
    from src.ledger.models import CallbackPayload
    from src.relay.sender import ChatSender

logger = logging.getLogger(__name__)


class CallbackHandler:
    """Processes each received callback exactly once; sends are never replayed."""

    def __init__(
        self,
        sender: ChatSender,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._sender = sender
        self._audit = audit_logger

    async def handle(self, payload: CallbackPayload) -> CallbackReport:
        """Validate, then forward ``response_text`` to the original sender.

        Raises ValidationError for a bad payload. A failed chat send is
        logged and reported, never raised.
        """
        payload = sanitize_callback_payload(payload)
        logger.info(
            "Processing ledger callback: kode=%d status=%d message=%s",
            payload.transaction_code, payload.status_code, payload.message,
        )
        report = CallbackReport(
            transaction_code=payload.transaction_code,
            status_code=payload.status_code,
        )

        if payload.response_text and payload.original_sender_identifier:
            destination = payload.original_sender_identifier
            report.forwarded_to = destination
            try:
                report.message_id = await self._sender.send(
                    destination, payload.response_text,
                )
            except ChatSendError as e:
                logger.warning("Failed to forward ledger callback to %s: %s", destination, e)
                report.errors.append(str(e))
            else:
                logger.info("Forwarded ledger callback to %s", destination)

        if self._audit:
            self._audit.log(AuditEvent(
                event_type=AuditEventType.CALLBACK,
                user_id=report.forwarded_to,
                action="callback",
                result="error" if report.errors else "success",
                risk_level=RiskLevel.MEDIUM if report.errors else RiskLevel.INFO,
                details={
                    "transaction_code": report.transaction_code,
                    "status_code": report.status_code,
                    "forwarded": report.delivered,
                },
            ))
        return report
