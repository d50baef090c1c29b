"""Inbound relay: chat event -> ledger InsertInbox -> optional auto-reply.

Per-event state machine:

    RECEIVED -> SKIPPED
             -> ELIGIBLE -> FAILED                     (ledger call failed)
                         -> RELAYED -> REPLIED
                                    -> NOT_REQUIRED
                                    -> REPLY_FAILED

Nothing is persisted; the machine lives for one call to ``relay``. Skips are
deliberate and logged at DEBUG; failures are logged at WARNING.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.ledger.errors import LedgerError
from src.ledger.models import SENDER_TYPE_CHAT, RelayMessage, RelayResult
from src.models import AuditEvent, AuditEventType, RiskLevel
from src.relay.address import bare_address, is_group_address
from src.relay.models import (
    ChatEvent,
    RelayFlags,
    RelayOutcome,
    RelayReport,
    SkipReason,
)
from src.relay.sender import ChatSendError

if TYPE_CHECKING:
    from src.audit.logger import AuditLogger
    from src.ledger.client import LedgerGateway
    from src.relay.sender import ChatSender

logger = logging.getLogger(__name__)

STATUS_ACCEPTED_WITH_NOTE = 21
STATUS_NOT_RESELLER = 41
STATUS_BAD_FORMAT = 42


class MessageRelay:
    """Forwards eligible chat events to the ledger and applies the reply policy."""

    def __init__(
        self,
        ledger: LedgerGateway,
        sender: ChatSender,
        flags: RelayFlags,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._ledger = ledger
        self._sender = sender
        self._flags = flags
        self._audit = audit_logger

    @property
    def flags(self) -> RelayFlags:
        return self._flags

    def filter(self, event: ChatEvent) -> SkipReason | None:
        """Return why the event is skipped, or None if it is eligible.

        Predicates run in a fixed order; the first failing one wins.
        """
        flags = self._flags
        if not (flags.relay_enabled and flags.forward_incoming):
            return SkipReason.RELAY_DISABLED
        if event.is_from_self or (
            flags.self_identifier
            and bare_address(event.sender_identifier) == bare_address(flags.self_identifier)
        ):
            return SkipReason.FROM_SELF
        if not flags.forward_groups and (
            event.is_group or is_group_address(event.chat_identifier)
        ):
            return SkipReason.GROUP_MESSAGE
        if not event.text.strip():
            return SkipReason.NO_TEXT
        return None

    def build(self, event: ChatEvent) -> RelayMessage:
        return RelayMessage(
            text=event.text,
            reseller_code=self._flags.default_reseller_code,
            sender_identifier=bare_address(event.sender_identifier),
            sender_type=SENDER_TYPE_CHAT,
            terminal_code=self._flags.default_terminal_code,
        )

    @staticmethod
    def interpret(result: RelayResult) -> str | None:
        """Map the ledger status code to reply text, or None when no reply is due.

        21 prefers the ledger's response text and falls back to the status
        description; 41 and 42 always use the status description. An empty
        explanation never produces a blank message.
        """
        if result.status_code == STATUS_ACCEPTED_WITH_NOTE:
            reply = (result.response_text or "").strip() or result.status_description.strip()
        elif result.status_code in (STATUS_NOT_RESELLER, STATUS_BAD_FORMAT):
            reply = result.status_description.strip()
        else:
            return None

        if not reply:
            logger.warning(
                "Status %d requires auto reply but ledger sent no text (empty_reply)",
                result.status_code,
            )
            return None
        return reply

    async def relay(self, event: ChatEvent) -> RelayReport:
        """Run filter -> build -> send -> interpret -> reply for one event."""
        skip = self.filter(event)
        if skip is not None:
            logger.debug("Relay skip:%s sender=%s", skip.value, event.sender_identifier)
            return self._finish(RelayReport(outcome=RelayOutcome.SKIPPED, skip_reason=skip))

        message = self.build(event)
        try:
            result = await self._ledger.insert_message(message)
        except LedgerError as e:
            logger.warning(
                "Relay to ledger failed for %s: %s", message.sender_identifier, e,
            )
            return self._finish(RelayReport(
                outcome=RelayOutcome.FAILED, message=message, error=e,
            ))

        logger.info(
            "Relayed message from %s: inbox=%d status=%d",
            message.sender_identifier, result.inbox_code, result.status_code,
        )

        reply = self.interpret(result)
        if reply is None:
            return self._finish(RelayReport(
                outcome=RelayOutcome.NOT_REQUIRED, message=message, result=result,
            ))
        if not self._flags.auto_reply_enabled:
            logger.info(
                "Status %d requires auto reply but auto-reply is disabled: %s",
                result.status_code, result.status_description,
            )
            return self._finish(RelayReport(
                outcome=RelayOutcome.NOT_REQUIRED, message=message, result=result,
            ))

        try:
            await self._sender.send(message.sender_identifier, reply)
        except ChatSendError as e:
            logger.warning(
                "Auto reply to %s failed: %s", message.sender_identifier, e,
            )
            return self._finish(RelayReport(
                outcome=RelayOutcome.REPLY_FAILED,
                message=message,
                result=result,
                reply_text=reply,
                error=e,
            ))

        logger.info("Auto reply sent to %s: %s", message.sender_identifier, reply)
        return self._finish(RelayReport(
            outcome=RelayOutcome.REPLIED, message=message, result=result, reply_text=reply,
        ))

    def _finish(self, report: RelayReport) -> RelayReport:
        if self._audit:
            details: dict[str, object] = {"outcome": report.outcome.value}
            if report.skip_reason is not None:
                details["skip_reason"] = report.skip_reason.value
            if report.message is not None:
                details["sender"] = report.message.sender_identifier
            if report.result is not None:
                details["status_code"] = report.result.status_code
                details["inbox_code"] = report.result.inbox_code
            if report.error is not None:
                details["error"] = str(report.error)
            failed = report.outcome in (RelayOutcome.FAILED, RelayOutcome.REPLY_FAILED)
            self._audit.log(AuditEvent(
                event_type=AuditEventType.RELAY,
                user_id=report.message.sender_identifier if report.message else None,
                action="relay",
                result=report.outcome.value,
                risk_level=RiskLevel.MEDIUM if failed else RiskLevel.INFO,
                details=details,
            ))
        return report
