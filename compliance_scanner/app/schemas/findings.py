"""
Check verdict and finding schemas.

A CheckVerdict is the raw outcome of one rule evaluated against the
project file set. A Finding is the externally visible unit assembled
from a verdict and its (optional) confidence.

Findings are:
- immutable (frozen models, updated only via model_copy)
- severity-graded
- confidence-scored when the producing layer emits a confidence
- stably identified (finding_id never changes after assembly)

Only the escalation step may replace a Finding, and only its
type, severity, confidence and confidence_level.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from compliance_scanner.app.schemas.confidence import (
    ConfidenceLevel,
    ConfidenceResult,
)


# ---------------------------------------------------------------------------
# Enumerations (FROZEN CONTRACTS)
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    """
    Severity of a finding.

    Ordering is intentional and MUST remain stable.
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class VerdictType(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"


# ---------------------------------------------------------------------------
# Check verdicts (tagged union)
# ---------------------------------------------------------------------------


class PassVerdict(BaseModel):
    type: Literal["pass"] = "pass"
    check_id: str
    message: str
    obligation_id: Optional[str] = None
    file: Optional[str] = None
    line: Optional[int] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class FailVerdict(BaseModel):
    type: Literal["fail"] = "fail"
    check_id: str
    message: str
    severity: Severity
    obligation_id: Optional[str] = None
    article_reference: Optional[str] = None
    fix: Optional[str] = None
    file: Optional[str] = None
    line: Optional[int] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class SkipVerdict(BaseModel):
    type: Literal["skip"] = "skip"
    check_id: str
    reason: str

    model_config = ConfigDict(frozen=True, extra="forbid")


CheckVerdict = Annotated[
    Union[PassVerdict, FailVerdict, SkipVerdict],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Canonical Finding (PUBLIC, FROZEN)
# ---------------------------------------------------------------------------


class Finding(BaseModel):
    """
    Canonical scan finding.

    Skip findings carry the skip reason as their message, severity
    INFO and no confidence.
    """

    finding_id: str = Field(
        ...,
        description=(
            "Stable identifier derived from check_id, location and message. "
            "Escalation results are matched on this identifier."
        ),
    )

    check_id: str = Field(
        ...,
        description="Identifier of the rule that produced the verdict",
    )

    type: VerdictType = Field(
        ...,
        description="Outcome of the rule against the project",
    )

    message: str = Field(
        ...,
        description="Human-readable outcome description (or skip reason)",
    )

    severity: Severity = Field(
        ...,
        description="Severity of the finding; INFO for passes and skips",
    )

    file: Optional[str] = Field(
        None,
        description="Project-relative path the finding points at, if any",
    )

    line: Optional[int] = Field(
        None,
        description="1-based line number within file, if any",
    )

    obligation_id: Optional[str] = Field(
        None,
        description="Regulatory obligation identifier (e.g. 'eu-ai-act-OBL-015')",
    )

    article_reference: Optional[str] = Field(
        None,
        description="Article reference (e.g. 'Art. 50(1)')",
    )

    fix: Optional[str] = Field(
        None,
        description="Advisory remediation suggestion",
    )

    priority: Optional[int] = Field(
        None,
        description="Remediation priority; higher is more urgent",
    )

    confidence: Optional[int] = Field(
        None,
        ge=0,
        le=100,
        description="Likelihood (0-100) that the obligation is met",
    )

    confidence_level: Optional[ConfidenceLevel] = Field(
        None,
        description="Discrete bucket of confidence",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


# ---------------------------------------------------------------------------
# Layer output (verdict + confidence pairing)
# ---------------------------------------------------------------------------


class AssessedVerdict(BaseModel):
    """
    A verdict together with the confidence its layer assigned to it.

    Every non-skip verdict carries exactly one ConfidenceResult;
    skip verdicts never carry one.
    """

    verdict: CheckVerdict
    confidence: Optional[ConfidenceResult] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def confidence_matches_verdict(self) -> "AssessedVerdict":
        is_skip = self.verdict.type == "skip"
        if is_skip and self.confidence is not None:
            raise ValueError("Skip verdicts must not carry a confidence.")
        if not is_skip and self.confidence is None:
            raise ValueError(
                f"Verdict '{self.verdict.check_id}' is missing its confidence."
            )
        return self
