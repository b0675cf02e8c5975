"""
Confidence schemas.

Confidence is a single 0-100 axis expressing how likely it is that the
checked obligation is met: 100 is a certain pass, 0 a certain fail.
The level is a monotonic bucketing of that number, so ordering findings
by confidence never reorders their levels.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ConfidenceLevel(str, Enum):
    """
    Discrete confidence bucket.

    Declaration order follows the confidence axis from high to low
    and MUST remain stable.
    """

    PASS = "PASS"
    LIKELY_PASS = "LIKELY_PASS"
    UNCERTAIN = "UNCERTAIN"
    LIKELY_FAIL = "LIKELY_FAIL"
    FAIL = "FAIL"


class ConfidenceResult(BaseModel):
    """
    Confidence attached to exactly one non-skip CheckVerdict.
    """

    confidence: int = Field(..., ge=0, le=100)
    level: ConfidenceLevel
    obligation_id: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class ConfidenceSummary(BaseModel):
    """
    Per-level counts over the final findings of a scan.
    """

    pass_count: int = 0
    likely_pass: int = 0
    uncertain: int = 0
    likely_fail: int = 0
    fail: int = 0
    total: int = 0

    model_config = ConfigDict(frozen=True, extra="forbid")
