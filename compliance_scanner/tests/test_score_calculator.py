import pytest

from compliance_scanner.app.schemas.findings import (
    FailVerdict,
    PassVerdict,
    Severity,
    SkipVerdict,
    VerdictType,
)
from compliance_scanner.app.schemas.score import ScoreZone
from compliance_scanner.app.schemas.scoring_policy import (
    ScoringPolicy,
    WeightedCategory,
)
from compliance_scanner.app.scoring.policy import DEFAULT_SCORING_POLICY
from compliance_scanner.app.scoring.score_calculator import (
    calculate_score,
    calculate_score_diff,
    fallback_score,
    get_zone,
)
from compliance_scanner.tests.helpers import make_finding


POLICY = ScoringPolicy(
    regulation_id="test",
    categories=[
        WeightedCategory(category="a", weight=30, obligations=["OBL-A"]),
        WeightedCategory(category="b", weight=10, check_ids=["check-b"]),
        WeightedCategory(category="unused", weight=60, obligations=["OBL-Z"]),
    ],
    critical_obligation_ids=["OBL-CRIT"],
)


def _pass(check_id="x", obligation_id=None):
    return PassVerdict(check_id=check_id, message="ok", obligation_id=obligation_id)


def _fail(check_id="x", obligation_id=None, severity=Severity.HIGH):
    return FailVerdict(
        check_id=check_id,
        message="nope",
        severity=severity,
        obligation_id=obligation_id,
    )


@pytest.mark.parametrize(
    "score, zone",
    [
        (100, ScoreZone.GREEN),
        (80, ScoreZone.GREEN),
        (79.99, ScoreZone.YELLOW),
        (50, ScoreZone.YELLOW),
        (49.99, ScoreZone.RED),
        (0, ScoreZone.RED),
    ],
)
def test_zone_boundaries(score, zone):
    assert get_zone(score) == zone


# ----------------------------------------------------------------------
# Weighted scoring
# ----------------------------------------------------------------------


def test_weighted_score_over_active_categories():
    verdicts = [
        _pass(obligation_id="OBL-A"),
        _fail(obligation_id="OBL-A"),
        _pass(check_id="check-b"),
        _pass(check_id="unmapped"),
        SkipVerdict(check_id="check-b", reason="n/a"),
    ]

    breakdown = calculate_score(verdicts, POLICY)

    # (50 * 30 + 100 * 10) / 40
    assert breakdown.total_score == 62.5
    assert breakdown.zone == ScoreZone.YELLOW
    assert [c.category for c in breakdown.category_scores] == ["a", "b"]
    assert breakdown.category_scores[0].obligation_count == 2
    assert breakdown.category_scores[0].passed_count == 1
    assert (
        breakdown.total_checks,
        breakdown.passed_checks,
        breakdown.failed_checks,
        breakdown.skipped_checks,
    ) == (5, 3, 1, 1)
    assert breakdown.critical_cap_applied is False


def test_obligation_takes_precedence_over_check_id():
    breakdown = calculate_score([_fail(check_id="check-b", obligation_id="OBL-A")], POLICY)
    assert [c.category for c in breakdown.category_scores] == ["a"]


def test_no_applicable_verdicts_scores_100():
    breakdown = calculate_score(
        [SkipVerdict(check_id="check-b", reason="n/a"), _fail(check_id="unmapped")],
        POLICY,
    )
    assert breakdown.total_score == 100.0
    assert breakdown.zone == ScoreZone.GREEN
    assert breakdown.category_scores == []


def test_score_is_independent_of_verdict_order():
    verdicts = [
        _pass(obligation_id="OBL-A"),
        _fail(check_id="check-b"),
        _fail(obligation_id="OBL-A"),
    ]
    assert calculate_score(verdicts, POLICY) == calculate_score(
        list(reversed(verdicts)), POLICY
    )


@pytest.mark.parametrize(
    "critical",
    [
        _fail(obligation_id="OBL-A", severity=Severity.CRITICAL),
        _fail(obligation_id="OBL-CRIT", severity=Severity.LOW),
        _fail(check_id="OBL-CRIT", severity=Severity.LOW),
    ],
)
def test_critical_failure_caps_and_forces_red(critical):
    verdicts = [_pass(check_id="check-b") for _ in range(20)] + [critical]

    breakdown = calculate_score(verdicts, POLICY)

    assert breakdown.critical_cap_applied is True
    assert breakdown.total_score <= POLICY.critical_cap
    assert breakdown.zone == ScoreZone.RED


def test_critical_pass_does_not_cap():
    breakdown = calculate_score([_pass(obligation_id="OBL-CRIT")], POLICY)
    assert breakdown.critical_cap_applied is False
    assert breakdown.total_score == 100.0


def test_default_policy_prohibited_practice_caps():
    verdicts = [
        _pass(check_id="ai-disclosure"),
        _fail(
            check_id="l3-banned-package",
            obligation_id="eu-ai-act-OBL-002",
            severity=Severity.HIGH,
        ),
    ]

    breakdown = calculate_score(verdicts, DEFAULT_SCORING_POLICY)

    assert breakdown.critical_cap_applied is True
    assert breakdown.total_score <= 40.0
    assert breakdown.zone == ScoreZone.RED


# ----------------------------------------------------------------------
# Unweighted fallback
# ----------------------------------------------------------------------


def _findings(passed, failed):
    return [
        make_finding(f"p{i}", type=VerdictType.PASS, severity=Severity.INFO)
        for i in range(passed)
    ] + [make_finding(f"f{i}") for i in range(failed)]


@pytest.mark.parametrize(
    "passed, failed, score, zone",
    [
        (4, 1, 80, ScoreZone.GREEN),
        (79, 21, 79, ScoreZone.YELLOW),
        (1, 1, 50, ScoreZone.YELLOW),
        (49, 51, 49, ScoreZone.RED),
        (2, 1, 67, ScoreZone.YELLOW),
    ],
)
def test_fallback_score(passed, failed, score, zone):
    breakdown = fallback_score(_findings(passed, failed))
    assert breakdown.total_score == score
    assert breakdown.zone == zone


def test_fallback_rounds_half_up():
    # 7 / 8 = 87.5
    assert fallback_score(_findings(7, 1)).total_score == 88


def test_fallback_all_skipped_scores_100():
    findings = [
        make_finding("s", type=VerdictType.SKIP, severity=Severity.INFO, confidence=None)
    ]
    breakdown = fallback_score(findings)
    assert breakdown.total_score == 100
    assert breakdown.zone == ScoreZone.GREEN
    assert breakdown.skipped_checks == 1


def test_fallback_critical_cap_is_opt_in():
    findings = _findings(19, 0) + [make_finding("crit", severity=Severity.CRITICAL)]

    uncapped = fallback_score(findings)
    assert uncapped.total_score == 95
    assert uncapped.critical_cap_applied is False

    capped = fallback_score(findings, critical_cap=True)
    assert capped.total_score == 40
    assert capped.critical_cap_applied is True
    assert capped.zone == ScoreZone.RED


# ----------------------------------------------------------------------
# Diff
# ----------------------------------------------------------------------


def test_score_diff():
    before = calculate_score(
        [_fail(obligation_id="OBL-A"), _pass(check_id="check-b")], POLICY
    )
    after = calculate_score(
        [_pass(obligation_id="OBL-A"), _fail(check_id="check-b")], POLICY
    )

    diff = calculate_score_diff(before, after)

    assert diff.before == before.total_score == 25.0
    assert diff.after == after.total_score == 75.0
    assert diff.delta == 50.0
    assert diff.improved_categories == ["a"]
    assert diff.degraded_categories == ["b"]
