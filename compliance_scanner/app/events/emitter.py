from __future__ import annotations

import logging
from typing import Protocol

from compliance_scanner.app.events.models import ScanEvent

logger = logging.getLogger(__name__)


class ScanEventEmitter(Protocol):
    """
    Interface for broadcasting scan observations.

    Implementations must be non-blocking and fail-safe: an emission
    failure must not change the outcome of the scan.
    """

    async def emit(self, event: ScanEvent) -> None:
        ...


class NullEventEmitter:
    """
    A safe no-op emitter for callers that do not stream progress.
    """

    async def emit(self, event: ScanEvent) -> None:
        return


class SafeEventEmitter:
    """
    Shields the scan from a caller-supplied emitter.

    Exceptions raised by the wrapped emitter are logged and counted in
    ``failures``; cancellation still propagates.
    """

    def __init__(self, inner: ScanEventEmitter) -> None:
        self._inner = inner
        self.failures = 0

    async def emit(self, event: ScanEvent) -> None:
        try:
            await self._inner.emit(event)
        except Exception:
            self.failures += 1
            logger.warning(
                "Dropped %s event for scan %s: emitter raised",
                event.event_type.value,
                event.scan_id,
                exc_info=True,
            )


def shielded(emitter: ScanEventEmitter | None) -> ScanEventEmitter:
    """
    Return ``emitter`` wrapped in SafeEventEmitter, or a NullEventEmitter.
    """
    if emitter is None:
        return NullEventEmitter()
    if isinstance(emitter, (SafeEventEmitter, NullEventEmitter)):
        return emitter
    return SafeEventEmitter(emitter)
