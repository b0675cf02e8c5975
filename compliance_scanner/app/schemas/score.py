"""
Score schemas.

A ScoreBreakdown is computed once per scan, is immutable and is never
partially updated.

Invariants:
- total_score is bounded to [0, 100]
- zone is a pure function of total_score, except that
  critical_cap_applied forces the zone to RED
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from compliance_scanner.app.schemas.confidence import ConfidenceSummary


class ScoreZone(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


class CategoryScore(BaseModel):
    category: str
    weight: float = Field(..., ge=0.0)
    score: float = Field(..., ge=0.0, le=100.0)
    obligation_count: int = Field(..., ge=0)
    passed_count: int = Field(..., ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class ScoreBreakdown(BaseModel):
    total_score: float = Field(..., ge=0.0, le=100.0)
    zone: ScoreZone
    category_scores: List[CategoryScore] = Field(default_factory=list)
    critical_cap_applied: bool = False
    total_checks: int = Field(0, ge=0)
    passed_checks: int = Field(0, ge=0)
    failed_checks: int = Field(0, ge=0)
    skipped_checks: int = Field(0, ge=0)
    confidence_summary: Optional[ConfidenceSummary] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def critical_cap_forces_red(self) -> "ScoreBreakdown":
        if self.critical_cap_applied and self.zone != ScoreZone.RED:
            raise ValueError(
                "critical_cap_applied requires zone 'red', "
                f"got '{self.zone.value}'"
            )
        return self


class ScoreDiff(BaseModel):
    """
    Difference between two score breakdowns of the same project.
    """

    before: float
    after: float
    delta: float
    improved_categories: List[str] = Field(default_factory=list)
    degraded_categories: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid")
