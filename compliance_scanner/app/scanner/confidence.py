"""
Confidence model.

Converts layer-specific signals into a ConfidenceResult on a single
0-100 axis (100 = obligation certainly met, 0 = certainly not met).

IMPORTANT:
- Mapping is a pure function of the signal and the ConfidencePolicy.
- Level bucketing is monotonic in confidence and has no overlap.
- All constants live in ConfidencePolicy so they can be tuned without
  touching layer code.
"""

from __future__ import annotations

from typing import Dict, Iterable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from compliance_scanner.app.scanner.layers.layer2_docs import L2Result, L2Status
from compliance_scanner.app.scanner.layers.layer3_config import L3Result, L3Status
from compliance_scanner.app.scanner.layers.layer4_patterns import L4Result, L4Status
from compliance_scanner.app.schemas.confidence import (
    ConfidenceLevel,
    ConfidenceResult,
    ConfidenceSummary,
)
from compliance_scanner.app.schemas.findings import CheckVerdict, Finding


# ----------------------------------------------------------------------
# Policy
# ----------------------------------------------------------------------


class LevelThresholds(BaseModel):
    """
    Lower bounds (inclusive) of each level; below likely_fail is FAIL.
    """

    pass_min: int = Field(95, ge=0, le=100)
    likely_pass_min: int = Field(70, ge=0, le=100)
    uncertain_min: int = Field(40, ge=0, le=100)
    likely_fail_min: int = Field(5, ge=0, le=100)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def strictly_descending(self) -> "LevelThresholds":
        bounds = [
            self.pass_min,
            self.likely_pass_min,
            self.uncertain_min,
            self.likely_fail_min,
        ]
        if any(a <= b for a, b in zip(bounds, bounds[1:])):
            raise ValueError(f"Level thresholds must strictly descend: {bounds}")
        return self


class ConfidencePolicy(BaseModel):
    levels: LevelThresholds = Field(default_factory=LevelThresholds)

    l1_pass: int = Field(95, ge=0, le=100)
    l1_fail: int = Field(2, ge=0, le=100)

    l2: Dict[L2Status, int] = Field(
        default_factory=lambda: {
            L2Status.VALID: 95,
            L2Status.PARTIAL: 55,
            L2Status.EMPTY: 5,
        }
    )

    l3: Dict[L3Status, int] = Field(
        default_factory=lambda: {
            L3Status.OK: 80,
            L3Status.WARNING: 45,
            L3Status.FAIL: 20,
            L3Status.PROHIBITED: 1,
        }
    )

    l4_positive_found: int = Field(80, ge=0, le=100)
    l4_negative_found: int = Field(15, ge=0, le=100)
    l4_positive_not_found: int = Field(35, ge=0, le=100)
    l4_negative_not_found: int = Field(75, ge=0, le=100)

    l4_broad_discount: float = Field(
        0.6,
        ge=0.0,
        le=1.0,
        description=(
            "Factor pulling an uncorroborated broad pattern match toward 50 "
            "(1.0 = no discount)"
        ),
    )

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def tables_complete(self) -> "ConfidencePolicy":
        for name, table, keys in (
            ("l2", self.l2, L2Status),
            ("l3", self.l3, L3Status),
        ):
            missing = [k.value for k in keys if k not in table]
            if missing:
                raise ValueError(f"Confidence table '{name}' is missing {missing}")
            if any(not 0 <= v <= 100 for v in table.values()):
                raise ValueError(f"Confidence table '{name}' has values outside 0-100")
        return self


# ----------------------------------------------------------------------
# Model
# ----------------------------------------------------------------------


class ConfidenceModel:
    def __init__(self, policy: ConfidencePolicy | None = None) -> None:
        self._policy = policy or ConfidencePolicy()

    @property
    def policy(self) -> ConfidencePolicy:
        return self._policy

    def level_for(self, confidence: int) -> ConfidenceLevel:
        levels = self._policy.levels
        if confidence >= levels.pass_min:
            return ConfidenceLevel.PASS
        if confidence >= levels.likely_pass_min:
            return ConfidenceLevel.LIKELY_PASS
        if confidence >= levels.uncertain_min:
            return ConfidenceLevel.UNCERTAIN
        if confidence >= levels.likely_fail_min:
            return ConfidenceLevel.LIKELY_FAIL
        return ConfidenceLevel.FAIL

    def _result(self, confidence: int, obligation_id: str | None) -> ConfidenceResult:
        confidence = max(0, min(100, confidence))
        return ConfidenceResult(
            confidence=confidence,
            level=self.level_for(confidence),
            obligation_id=obligation_id,
        )

    # ------------------------------------------------------------------
    # Per-layer mappings
    # ------------------------------------------------------------------

    def from_l1(self, verdict: CheckVerdict) -> ConfidenceResult:
        """Boolean presence check: certain either way."""
        if verdict.type == "skip":
            raise ValueError("Skip verdicts carry no confidence.")
        value = self._policy.l1_pass if verdict.type == "pass" else self._policy.l1_fail
        return self._result(value, verdict.obligation_id)

    def from_l2(self, result: L2Result) -> ConfidenceResult:
        return self._result(self._policy.l2[result.status], result.obligation_id)

    def from_l3(self, result: L3Result) -> ConfidenceResult:
        return self._result(self._policy.l3[result.status], result.obligation_id)

    def from_l4(self, result: L4Result) -> ConfidenceResult:
        p = self._policy
        found = result.status == L4Status.FOUND

        if result.pattern_type == "positive":
            value = p.l4_positive_found if found else p.l4_positive_not_found
        else:
            value = p.l4_negative_found if found else p.l4_negative_not_found

        if found and result.specificity == "broad" and not result.corroborated:
            value = round(50 + (value - 50) * p.l4_broad_discount)

        return self._result(value, result.obligation_id)


# ----------------------------------------------------------------------
# Summaries
# ----------------------------------------------------------------------


def summarize_confidence(findings: Iterable[Finding]) -> ConfidenceSummary:
    counts = {level: 0 for level in ConfidenceLevel}
    total = 0
    for finding in findings:
        if finding.confidence_level is None:
            continue
        counts[finding.confidence_level] += 1
        total += 1

    return ConfidenceSummary(
        pass_count=counts[ConfidenceLevel.PASS],
        likely_pass=counts[ConfidenceLevel.LIKELY_PASS],
        uncertain=counts[ConfidenceLevel.UNCERTAIN],
        likely_fail=counts[ConfidenceLevel.LIKELY_FAIL],
        fail=counts[ConfidenceLevel.FAIL],
        total=total,
    )
