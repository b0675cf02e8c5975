from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional

from compliance_scanner.app.events.models import ScanEvent, ScanEventType

logger = logging.getLogger(__name__)

TERMINAL_EVENTS = frozenset(
    {ScanEventType.SCAN_COMPLETED, ScanEventType.SCAN_FAILED}
)


class ScanEventStream:
    """
    Bounded in-memory progress stream for exactly one scan.

    Properties:
    - single-consumer, events yielded in emission order
    - events carrying another scan_id are ignored
    - at most ``max_pending`` unread progress events are held; further
      progress events are dropped and counted in ``dropped``
    - SCAN_COMPLETED and SCAN_FAILED are always delivered and end the stream

    emit never waits on the consumer, so a slow reader cannot stall a scan.
    """

    def __init__(self, scan_id: str, *, max_pending: int = 256) -> None:
        if max_pending < 1:
            raise ValueError("max_pending must be at least 1")

        self.scan_id = scan_id
        self.dropped = 0
        self._max_pending = max_pending
        # Bound is enforced in emit; terminal event and sentinel always fit.
        self._queue: asyncio.Queue[Optional[ScanEvent]] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit(self, event: ScanEvent) -> None:
        if self._closed or event.scan_id != self.scan_id:
            return

        terminal = event.event_type in TERMINAL_EVENTS
        if not terminal and self._queue.qsize() >= self._max_pending:
            self.dropped += 1
            if self.dropped == 1:
                logger.warning(
                    "Event stream for scan %s is full (%d pending); "
                    "dropping progress events",
                    self.scan_id,
                    self._max_pending,
                )
            return

        self._queue.put_nowait(event)
        if terminal:
            await self.close()

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def stream(self) -> AsyncIterator[ScanEvent]:
        """
        Async generator yielding accepted events until the stream closes.
        """
        while True:
            event = await self._queue.get()
            if event is None:
                break
            yield event
