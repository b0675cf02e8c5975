from __future__ import annotations

from typing import Any, Dict, Optional
from enum import Enum
from datetime import datetime, timezone
from uuid import uuid4, UUID

from pydantic import BaseModel, Field, ConfigDict


# ----------------------------------------------------------------------
# Event Types (Finite and Versioned)
# ----------------------------------------------------------------------
class ScanEventType(str, Enum):
    """
    Progression events emitted during the scan lifecycle.

    NOTE:
    This enum is finite and versioned.
    New entries must preserve observational semantics.
    """

    # ------------------------------------------------------------------
    # Global Scan Lifecycle
    # ------------------------------------------------------------------
    SCAN_STARTED = "scan_started"
    SCAN_COMPLETED = "scan_completed"
    SCAN_FAILED = "scan_failed"

    # ------------------------------------------------------------------
    # Deterministic Layers (L1-L4)
    # ------------------------------------------------------------------
    LAYER_STARTED = "layer_started"
    LAYER_COMPLETED = "layer_completed"
    CHECK_FAILED = "check_failed"

    # ------------------------------------------------------------------
    # Escalation (L5, Observational, Non-Authoritative)
    # ------------------------------------------------------------------
    ESCALATION_STARTED = "escalation_started"
    ORACLE_CALL_STARTED = "oracle_call_started"
    ORACLE_CALL_COMPLETED = "oracle_call_completed"
    ESCALATION_COMPLETED = "escalation_completed"


# ----------------------------------------------------------------------
# Event Model
# ----------------------------------------------------------------------
class ScanEvent(BaseModel):
    """
    An immutable observation of a phase transition within a scan.

    Events are:
    - strictly observational
    - transport-agnostic
    - not authoritative
    """

    event_id: UUID = Field(default_factory=uuid4)
    scan_id: str = Field(..., description="The global scan identifier")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_type: ScanEventType

    # Optional contextual metadata (layer, check_id, counts, etc.)
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
