"""
Scoring policy sources.

The built-in policy covers the EU AI Act obligations and check ids the
bundled layers emit. A policy file replaces it entirely.

A policy that cannot be read or validated raises
PolicyMisconfigurationError; callers fall back to the unweighted scorer
instead of failing the scan.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from compliance_scanner.app.schemas.scoring_policy import (
    ScoringPolicy,
    WeightedCategory,
)

logger = logging.getLogger(__name__)


class PolicyMisconfigurationError(Exception):
    """
    Raised when a scoring policy is missing or invalid.
    """


DEFAULT_SCORING_POLICY = ScoringPolicy(
    regulation_id="eu-ai-act",
    categories=[
        WeightedCategory(
            category="transparency",
            weight=20,
            obligations=["eu-ai-act-OBL-015", "eu-ai-act-OBL-016"],
            check_ids=["ai-disclosure", "content-marking"],
        ),
        WeightedCategory(
            category="technical_safeguards",
            weight=20,
            obligations=["eu-ai-act-OBL-006"],
            check_ids=["interaction-logging", "l3-ai-sdk-detected", "l3-ci-compliance"],
        ),
        WeightedCategory(
            category="organizational",
            weight=10,
            obligations=["eu-ai-act-OBL-001", "eu-ai-act-OBL-012"],
            check_ids=["ai-literacy"],
        ),
        WeightedCategory(
            category="documentation",
            weight=15,
            obligations=[
                "eu-ai-act-OBL-005",
                "eu-ai-act-OBL-019",
                "eu-ai-act-OBL-021",
                "eu-ai-act-OBL-022",
            ],
            check_ids=["gpai-transparency", "compliance-metadata", "documentation"],
        ),
        WeightedCategory(
            category="prohibited_practices",
            weight=15,
            obligations=["eu-ai-act-OBL-002"],
        ),
        WeightedCategory(
            category="data_governance",
            weight=10,
            obligations=["eu-ai-act-OBL-009", "eu-ai-act-OBL-013"],
        ),
        WeightedCategory(
            category="oversight",
            weight=10,
            obligations=["eu-ai-act-OBL-010", "eu-ai-act-OBL-011"],
        ),
    ],
    critical_obligation_ids=["eu-ai-act-OBL-002"],
    critical_cap=40.0,
)


def load_scoring_policy(path: str | Path) -> ScoringPolicy:
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PolicyMisconfigurationError(
            f"Scoring policy could not be read from {path}: {exc}"
        ) from exc

    try:
        policy = ScoringPolicy.model_validate_json(raw)
    except ValidationError as exc:
        raise PolicyMisconfigurationError(
            f"Scoring policy at {path} is invalid: {exc}"
        ) from exc

    logger.info(
        "Loaded scoring policy '%s' with %d categories from %s",
        policy.regulation_id,
        len(policy.categories),
        path,
    )
    return policy
