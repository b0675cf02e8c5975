from .models import ScanEvent, ScanEventType
from .emitter import (
    NullEventEmitter,
    SafeEventEmitter,
    ScanEventEmitter,
    shielded,
)
from .memory_emitter import ScanEventStream

__all__ = [
    "ScanEvent",
    "ScanEventType",
    "ScanEventEmitter",
    "NullEventEmitter",
    "SafeEventEmitter",
    "ScanEventStream",
    "shielded",
]
