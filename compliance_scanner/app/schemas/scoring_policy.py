"""
Scoring policy schema.

A scoring policy groups obligations (and, where a rule carries no
obligation, check identifiers) into weighted categories, and names the
obligations whose failure triggers the critical cap.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Zone boundary the critical cap must stay below.
GREEN_THRESHOLD = 80.0


class WeightedCategory(BaseModel):
    category: str = Field(..., min_length=1)
    weight: float = Field(..., ge=0.0)

    obligations: List[str] = Field(
        default_factory=list,
        description="Obligation ids (e.g. 'eu-ai-act-OBL-015') in this category",
    )

    check_ids: List[str] = Field(
        default_factory=list,
        description="Check ids mapped to this category when a verdict has no obligation",
    )

    model_config = ConfigDict(frozen=True, extra="forbid")


class ScoringPolicy(BaseModel):
    regulation_id: str = Field(..., min_length=1)

    categories: List[WeightedCategory] = Field(..., min_length=1)

    critical_obligation_ids: List[str] = Field(
        default_factory=list,
        description=(
            "Obligation or check ids whose failure applies the critical cap, "
            "in addition to any fail with severity 'critical'"
        ),
    )

    critical_cap: float = Field(
        40.0,
        ge=0.0,
        lt=GREEN_THRESHOLD,
        description="Score ceiling applied when a critical failure is present",
    )

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("categories")
    @classmethod
    def validate_categories(
        cls, v: List[WeightedCategory]
    ) -> List[WeightedCategory]:
        names = [c.category for c in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate scoring categories: {duplicates}")

        if not any(c.weight > 0 for c in v):
            raise ValueError("At least one category must have a positive weight.")
        return v
