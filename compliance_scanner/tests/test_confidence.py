import pytest
from pydantic import ValidationError

from compliance_scanner.app.scanner.confidence import (
    ConfidenceModel,
    ConfidencePolicy,
    LevelThresholds,
    summarize_confidence,
)
from compliance_scanner.app.scanner.layers.layer2_docs import L2Result, L2Status
from compliance_scanner.app.scanner.layers.layer3_config import (
    L3FindingType,
    L3Result,
    L3Status,
)
from compliance_scanner.app.scanner.layers.layer4_patterns import L4Result, L4Status
from compliance_scanner.app.scanner.rules.pattern_rules import PatternCategory
from compliance_scanner.app.schemas.confidence import ConfidenceLevel
from compliance_scanner.app.schemas.findings import (
    FailVerdict,
    PassVerdict,
    Severity,
    SkipVerdict,
)
from compliance_scanner.tests.helpers import make_finding


LEVEL_ORDER = [
    ConfidenceLevel.FAIL,
    ConfidenceLevel.LIKELY_FAIL,
    ConfidenceLevel.UNCERTAIN,
    ConfidenceLevel.LIKELY_PASS,
    ConfidenceLevel.PASS,
]


@pytest.mark.parametrize(
    "confidence, expected",
    [
        (100, ConfidenceLevel.PASS),
        (95, ConfidenceLevel.PASS),
        (94, ConfidenceLevel.LIKELY_PASS),
        (70, ConfidenceLevel.LIKELY_PASS),
        (69, ConfidenceLevel.UNCERTAIN),
        (40, ConfidenceLevel.UNCERTAIN),
        (39, ConfidenceLevel.LIKELY_FAIL),
        (5, ConfidenceLevel.LIKELY_FAIL),
        (4, ConfidenceLevel.FAIL),
        (0, ConfidenceLevel.FAIL),
    ],
)
def test_level_boundaries(confidence, expected):
    assert ConfidenceModel().level_for(confidence) == expected


def test_level_bucketing_is_monotonic():
    model = ConfidenceModel()
    ranks = [LEVEL_ORDER.index(model.level_for(c)) for c in range(101)]
    assert ranks == sorted(ranks)


def test_l1_pass_and_fail_are_near_certain():
    model = ConfidenceModel()

    passed = model.from_l1(PassVerdict(check_id="x", message="ok"))
    failed = model.from_l1(
        FailVerdict(
            check_id="x",
            message="bad",
            severity=Severity.HIGH,
            obligation_id="eu-ai-act-OBL-015",
        )
    )

    assert passed.confidence >= 90
    assert failed.confidence <= 10
    assert failed.obligation_id == "eu-ai-act-OBL-015"


def test_l1_rejects_skip():
    with pytest.raises(ValueError):
        ConfidenceModel().from_l1(SkipVerdict(check_id="x", reason="n/a"))


def test_l2_partial_is_uncertain_and_extremes_are_not():
    model = ConfidenceModel()

    def result(status):
        return L2Result(
            obligation_id="eu-ai-act-OBL-013",
            article="Art. 27",
            document="fria",
            status=status,
        )

    assert model.from_l2(result(L2Status.PARTIAL)).level == ConfidenceLevel.UNCERTAIN
    assert model.from_l2(result(L2Status.VALID)).level == ConfidenceLevel.PASS
    assert model.from_l2(result(L2Status.EMPTY)).level == ConfidenceLevel.LIKELY_FAIL


def test_l3_prohibited_is_a_confident_fail():
    result = L3Result(
        type=L3FindingType.BANNED_PACKAGE,
        status=L3Status.PROHIBITED,
        message="banned",
    )
    assert ConfidenceModel().from_l3(result).level == ConfidenceLevel.FAIL


def _l4(pattern_type, status, specificity, corroborated=False):
    return L4Result(
        obligation_id="eu-ai-act-OBL-015",
        article="Art. 50(1)",
        category=PatternCategory.BARE_LLM,
        pattern_type=pattern_type,
        status=status,
        matched_pattern="label",
        recommendation="fix",
        specificity=specificity,
        corroborated=corroborated,
    )


def test_l4_broad_match_is_less_confident_than_narrow():
    model = ConfidenceModel()

    narrow = model.from_l4(_l4("negative", L4Status.FOUND, "narrow"))
    broad = model.from_l4(_l4("negative", L4Status.FOUND, "broad"))

    # Negative match: narrow is a confident fail, broad is pulled toward 50.
    assert narrow.confidence == 15
    assert broad.confidence == 29
    assert abs(broad.confidence - 50) < abs(narrow.confidence - 50)


def test_l4_corroborated_broad_match_keeps_full_confidence():
    model = ConfidenceModel()
    result = model.from_l4(_l4("negative", L4Status.FOUND, "broad", corroborated=True))
    assert result.confidence == 15


def test_l4_missing_positive_is_not_discounted():
    model = ConfidenceModel()
    result = model.from_l4(_l4("positive", L4Status.NOT_FOUND, "broad"))
    assert result.confidence == 35
    assert result.level == ConfidenceLevel.LIKELY_FAIL


def test_policy_overrides_are_applied():
    policy = ConfidencePolicy(l1_fail=50)
    model = ConfidenceModel(policy)
    result = model.from_l1(
        FailVerdict(check_id="x", message="bad", severity=Severity.LOW)
    )
    assert result.confidence == 50
    assert result.level == ConfidenceLevel.UNCERTAIN


def test_thresholds_must_descend():
    with pytest.raises(ValidationError):
        LevelThresholds(pass_min=60, likely_pass_min=70)


def test_policy_tables_must_be_complete():
    with pytest.raises(ValidationError):
        ConfidencePolicy(l2={L2Status.VALID: 95})


def test_summarize_confidence_ignores_findings_without_confidence():
    findings = [
        make_finding("a", confidence=95),
        make_finding("b", confidence=55),
        make_finding("c", confidence=55),
        make_finding("d", confidence=2),
        make_finding("e", confidence=None),
    ]

    summary = summarize_confidence(findings)

    assert summary.pass_count == 1
    assert summary.uncertain == 2
    assert summary.fail == 1
    assert summary.likely_pass == 0
    assert summary.likely_fail == 0
    assert summary.total == 4
