"""
Scoring engine.

Reduces verdicts to one bounded score and risk zone.

IMPORTANT:
- Pure functions over immutable inputs; no I/O.
- Skips never count toward any denominator.
- Zero applicable checks yields 100 (nothing to fail).
- The critical cap forces zone RED regardless of the numeric score.
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence

from compliance_scanner.app.schemas.confidence import ConfidenceSummary
from compliance_scanner.app.schemas.findings import (
    CheckVerdict,
    Finding,
    Severity,
    VerdictType,
)
from compliance_scanner.app.schemas.score import (
    CategoryScore,
    ScoreBreakdown,
    ScoreDiff,
    ScoreZone,
)
from compliance_scanner.app.schemas.scoring_policy import (
    ScoringPolicy,
    WeightedCategory,
)


GREEN_MIN = 80.0
YELLOW_MIN = 50.0


def get_zone(score: float) -> ScoreZone:
    if score >= GREEN_MIN:
        return ScoreZone.GREEN
    if score >= YELLOW_MIN:
        return ScoreZone.YELLOW
    return ScoreZone.RED


def _round2(value: float) -> float:
    return round(value, 2)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# ----------------------------------------------------------------------
# Weighted scoring
# ----------------------------------------------------------------------


class _CategoryIndex:
    """
    Resolves a verdict to its category: obligation id first, then check id.
    """

    def __init__(self, categories: Sequence[WeightedCategory]) -> None:
        self._by_obligation: Dict[str, str] = {}
        self._by_check: Dict[str, str] = {}
        for category in categories:
            for obligation_id in category.obligations:
                self._by_obligation.setdefault(obligation_id, category.category)
            for check_id in category.check_ids:
                self._by_check.setdefault(check_id, category.category)

    def lookup(self, verdict: CheckVerdict) -> Optional[str]:
        obligation_id = getattr(verdict, "obligation_id", None)
        if obligation_id is not None and obligation_id in self._by_obligation:
            return self._by_obligation[obligation_id]
        return self._by_check.get(verdict.check_id)


def is_critical_failure(verdict: CheckVerdict, policy: ScoringPolicy) -> bool:
    if verdict.type != "fail":
        return False
    if verdict.severity == Severity.CRITICAL:
        return True
    critical_ids = set(policy.critical_obligation_ids)
    if verdict.obligation_id is not None and verdict.obligation_id in critical_ids:
        return True
    return verdict.check_id in critical_ids


def calculate_score(
    verdicts: Sequence[CheckVerdict],
    policy: ScoringPolicy,
    *,
    confidence_summary: Optional[ConfidenceSummary] = None,
) -> ScoreBreakdown:
    passed_checks = sum(1 for v in verdicts if v.type == "pass")
    failed_checks = sum(1 for v in verdicts if v.type == "fail")
    skipped_checks = sum(1 for v in verdicts if v.type == "skip")

    index = _CategoryIndex(policy.categories)
    grouped: Dict[str, List[CheckVerdict]] = {}
    for verdict in verdicts:
        if verdict.type == "skip":
            continue
        category = index.lookup(verdict)
        if category is not None:
            grouped.setdefault(category, []).append(verdict)

    category_scores: List[CategoryScore] = []
    weighted_sum = 0.0
    active_weight = 0.0

    # Policy order, so the breakdown is independent of verdict order.
    for category in policy.categories:
        members = grouped.get(category.category)
        if not members:
            continue

        passed = sum(1 for v in members if v.type == "pass")
        score = passed / len(members) * 100

        category_scores.append(
            CategoryScore(
                category=category.category,
                weight=category.weight,
                score=_round2(score),
                obligation_count=len(members),
                passed_count=passed,
            )
        )
        weighted_sum += score * category.weight
        active_weight += category.weight

    raw_score = weighted_sum / active_weight if active_weight > 0 else 100.0

    critical_cap_applied = any(is_critical_failure(v, policy) for v in verdicts)
    if critical_cap_applied:
        raw_score = min(raw_score, policy.critical_cap)

    total_score = _round2(raw_score)

    return ScoreBreakdown(
        total_score=total_score,
        zone=ScoreZone.RED if critical_cap_applied else get_zone(total_score),
        category_scores=category_scores,
        critical_cap_applied=critical_cap_applied,
        total_checks=len(verdicts),
        passed_checks=passed_checks,
        failed_checks=failed_checks,
        skipped_checks=skipped_checks,
        confidence_summary=confidence_summary,
    )


# ----------------------------------------------------------------------
# Unweighted fallback
# ----------------------------------------------------------------------


def fallback_score(
    findings: Sequence[Finding],
    *,
    critical_cap: bool = False,
    cap_ceiling: float = 40.0,
    confidence_summary: Optional[ConfidenceSummary] = None,
) -> ScoreBreakdown:
    """
    passed / (passed + failed) over all findings, as an integer 0-100.

    Used when no valid scoring policy is available. The critical cap is
    opt-in here.
    """
    passed = sum(1 for f in findings if f.type == VerdictType.PASS)
    failed = sum(1 for f in findings if f.type == VerdictType.FAIL)
    skipped = sum(1 for f in findings if f.type == VerdictType.SKIP)

    applicable = passed + failed
    score: float = 100 if applicable == 0 else _round_half_up(passed / applicable * 100)

    critical_cap_applied = critical_cap and any(
        f.type == VerdictType.FAIL and f.severity == Severity.CRITICAL
        for f in findings
    )
    if critical_cap_applied:
        score = min(score, cap_ceiling)

    return ScoreBreakdown(
        total_score=score,
        zone=ScoreZone.RED if critical_cap_applied else get_zone(score),
        category_scores=[],
        critical_cap_applied=critical_cap_applied,
        total_checks=len(findings),
        passed_checks=passed,
        failed_checks=failed,
        skipped_checks=skipped,
        confidence_summary=confidence_summary,
    )


# ----------------------------------------------------------------------
# Diff
# ----------------------------------------------------------------------


def calculate_score_diff(before: ScoreBreakdown, after: ScoreBreakdown) -> ScoreDiff:
    before_map = {c.category: c.score for c in before.category_scores}
    after_map = {c.category: c.score for c in after.category_scores}

    improved: List[str] = []
    degraded: List[str] = []

    # dict.fromkeys keeps first-seen order across both breakdowns
    for category in dict.fromkeys([*before_map, *after_map]):
        b = before_map.get(category, 0.0)
        a = after_map.get(category, 0.0)
        if a > b:
            improved.append(category)
        elif a < b:
            degraded.append(category)

    return ScoreDiff(
        before=before.total_score,
        after=after.total_score,
        delta=_round2(after.total_score - before.total_score),
        improved_categories=improved,
        degraded_categories=degraded,
    )
