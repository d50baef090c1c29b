"""Task boundary between chat-event dispatch and the relay.

``submit`` hands the event to its own asyncio task and returns at once, so
forwarding to the ledger never delays delivery of the event to anyone else.
Each task owns its error handling; nothing propagates back to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.relay.models import ChatEvent, RelayReport
    from src.relay.relay import MessageRelay

logger = logging.getLogger(__name__)


class RelayDispatcher:
    """Fire-and-forget scheduling of one relay task per inbound event."""

    def __init__(self, relay: MessageRelay) -> None:
        self._relay = relay
        self._tasks: set[asyncio.Task[RelayReport | None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, event: ChatEvent) -> asyncio.Task[RelayReport | None]:
        task = asyncio.create_task(self._run(replace(event)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, event: ChatEvent) -> RelayReport | None:
        try:
            return await self._relay.relay(event)
        except Exception:
            logger.exception("Unexpected error relaying event from %s", event.sender_identifier)
            return None

    async def drain(self) -> None:
        """Wait for all in-flight relay tasks (used at shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
