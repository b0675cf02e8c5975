import logging
from typing import List

import pytest

from compliance_scanner.app.checks.base import BaseCheck
from compliance_scanner.app.config import ScannerConfig
from compliance_scanner.app.coordinator.coordinator import ScanCoordinator
from compliance_scanner.app.events import ScanEventStream, ScanEventType
from compliance_scanner.app.scanner.confidence import (
    ConfidenceModel,
    ConfidencePolicy,
)
from compliance_scanner.app.schemas.findings import (
    CheckVerdict,
    Severity,
    VerdictType,
)
from compliance_scanner.app.schemas.score import ScoreZone
from compliance_scanner.app.scoring.policy import DEFAULT_SCORING_POLICY
from compliance_scanner.tests.helpers import make_context
from compliance_scanner.tests.mock_oracle import MockJudgmentOracle

pytestmark = pytest.mark.anyio


class DisclosureCheck(BaseCheck):
    check_id = "ai-disclosure"
    obligation_id = "eu-ai-act-OBL-015"
    article = "Art. 50(1)"

    def run(self, context) -> List[CheckVerdict]:
        return [
            self.failed(
                "No AI disclosure component found",
                severity=Severity.HIGH,
                fix="Add a visible AI disclosure",
            )
        ]


class LiteracyCheck(BaseCheck):
    check_id = "ai-literacy"
    obligation_id = "eu-ai-act-OBL-001"
    article = "Art. 4"

    def run(self, context) -> List[CheckVerdict]:
        return [self.passed("AI literacy policy found")]


class ExplodingCheck(BaseCheck):
    check_id = "exploding"

    def run(self, context) -> List[CheckVerdict]:
        raise RuntimeError("boom")


# L1 fails land in the uncertain band so they are escalated.
UNCERTAIN_FAILS = ConfidenceModel(ConfidencePolicy(l1_fail=55))

EMPTY_PROJECT = make_context({})


def _coordinator(oracle=None, **kwargs) -> ScanCoordinator:
    kwargs.setdefault("checks", [DisclosureCheck(), LiteracyCheck()])
    kwargs.setdefault("confidence_model", UNCERTAIN_FAILS)
    kwargs.setdefault("scoring_policy", None)
    return ScanCoordinator(oracle=oracle, **kwargs)


async def test_escalation_resolves_uncertain_finding():
    coordinator = _coordinator(MockJudgmentOracle())

    result = await coordinator.run_scan(context=EMPTY_PROJECT, scan_id="scan-1")

    assert [f.type for f in result.findings] == [VerdictType.PASS, VerdictType.PASS]
    disclosure = result.findings[0]
    assert disclosure.check_id == "ai-disclosure"
    assert disclosure.confidence == 85
    assert disclosure.severity == Severity.INFO
    assert disclosure.priority == 0

    assert len(result.escalation_results) == 1
    assert result.escalation_cost == pytest.approx(0.00027)
    assert result.score.total_score == 100
    assert result.score.zone == ScoreZone.GREEN


async def test_oracle_failure_keeps_layer_verdict():
    coordinator = _coordinator(MockJudgmentOracle(mode="error"))

    result = await coordinator.run_scan(context=EMPTY_PROJECT, scan_id="scan-2")

    disclosure = result.findings[0]
    assert disclosure.type == VerdictType.FAIL
    assert disclosure.severity == Severity.HIGH
    assert disclosure.confidence == 55
    assert disclosure.priority == 500

    [escalation] = result.escalation_results
    assert escalation.verdict == "uncertain"
    assert result.score.total_score == 50
    assert result.score.zone == ScoreZone.YELLOW


async def test_scan_without_oracle_skips_escalation():
    result = await _coordinator().run_scan(context=EMPTY_PROJECT, scan_id="scan-3")

    assert result.escalation_results == []
    assert result.escalation_cost == 0.0
    assert result.findings[0].type == VerdictType.FAIL


async def test_weighted_scoring_uses_final_findings():
    coordinator = _coordinator(
        MockJudgmentOracle(
            judgment={"verdict": "fail", "confidence": 90, "reasoning": "absent"}
        ),
        scoring_policy=DEFAULT_SCORING_POLICY,
    )

    result = await coordinator.run_scan(context=EMPTY_PROJECT, scan_id="scan-4")

    assert result.findings[0].confidence == 10
    categories = {c.category: c.score for c in result.score.category_scores}
    assert categories == {"transparency": 0.0, "organizational": 100.0}
    # (0 * 20 + 100 * 10) / 30
    assert result.score.total_score == 33.33
    assert result.score.zone == ScoreZone.RED
    assert result.score.confidence_summary.likely_fail == 1


async def test_rescan_is_reproducible():
    coordinator = _coordinator(MockJudgmentOracle())

    first = await coordinator.run_scan(context=EMPTY_PROJECT, scan_id="a")
    second = await coordinator.run_scan(context=EMPTY_PROJECT, scan_id="b")

    assert first.findings == second.findings
    assert first.score == second.score
    assert first.escalation_results == second.escalation_results


async def test_score_diff_against_previous_scan():
    previous = (
        await _coordinator().run_scan(context=EMPTY_PROJECT, scan_id="before")
    ).score

    result = await _coordinator(MockJudgmentOracle()).run_scan(
        context=EMPTY_PROJECT, scan_id="after", previous_score=previous
    )

    assert result.score_diff is not None
    assert result.score_diff.before == 50
    assert result.score_diff.after == 100
    assert result.score_diff.delta == 50


async def test_event_sequence():
    emitter = ScanEventStream("scan-5")
    coordinator = _coordinator(
        MockJudgmentOracle(),
        checks=[ExplodingCheck(), DisclosureCheck()],
    )

    await coordinator.run_scan(
        context=EMPTY_PROJECT, scan_id="scan-5", emitter=emitter
    )
    events = [e async for e in emitter.stream()]

    layer_events = [
        ScanEventType.LAYER_STARTED,
        ScanEventType.LAYER_COMPLETED,
    ]
    assert [e.event_type for e in events] == [
        ScanEventType.SCAN_STARTED,
        ScanEventType.LAYER_STARTED,
        ScanEventType.CHECK_FAILED,
        ScanEventType.LAYER_COMPLETED,
        *(layer_events * 3),
        ScanEventType.ESCALATION_STARTED,
        ScanEventType.ORACLE_CALL_STARTED,
        ScanEventType.ORACLE_CALL_COMPLETED,
        ScanEventType.ESCALATION_COMPLETED,
        ScanEventType.SCAN_COMPLETED,
    ]
    assert {e.scan_id for e in events} == {"scan-5"}
    assert events[2].details == {"layer": "L1", "check_id": "exploding"}
    assert events[-5].details["candidates"] == 1
    assert events[-1].details["zone"] == "green"


async def test_unexpected_error_emits_scan_failed():
    class BrokenAssembler:
        def assemble(self, outputs):
            raise RuntimeError("assembler exploded")

    emitter = ScanEventStream("scan-6")
    coordinator = _coordinator()
    coordinator._assembler = BrokenAssembler()

    with pytest.raises(RuntimeError, match="assembler exploded"):
        await coordinator.run_scan(
            context=EMPTY_PROJECT, scan_id="scan-6", emitter=emitter
        )

    events = [e async for e in emitter.stream()]
    assert events[-1].event_type == ScanEventType.SCAN_FAILED
    assert events[-1].details["exception_type"] == "RuntimeError"


async def test_raising_emitter_does_not_affect_the_scan(caplog):
    class DisconnectedClient:
        async def emit(self, event):
            raise ConnectionResetError("client went away")

    quiet = await _coordinator(MockJudgmentOracle()).run_scan(
        context=EMPTY_PROJECT, scan_id="scan-6b"
    )
    with caplog.at_level(logging.WARNING):
        noisy = await _coordinator(MockJudgmentOracle()).run_scan(
            context=EMPTY_PROJECT, scan_id="scan-6b", emitter=DisconnectedClient()
        )

    assert noisy.findings == quiet.findings
    assert noisy.score == quiet.score
    assert "Dropped scan_started event for scan scan-6b" in caplog.text
    assert "Dropped oracle_call_started event" in caplog.text


async def test_escalation_cap_is_applied_once_per_scan(caplog):
    class MarkingCheck(BaseCheck):
        check_id = "content-marking"
        obligation_id = "eu-ai-act-OBL-016"

        def run(self, context) -> List[CheckVerdict]:
            return [
                self.failed(
                    "No machine-readable marking found", severity=Severity.MEDIUM
                )
            ]

    oracle = MockJudgmentOracle()
    coordinator = _coordinator(
        oracle,
        config=ScannerConfig(ESCALATION_MAX_FINDINGS=1),
        checks=[DisclosureCheck(), MarkingCheck()],
    )
    emitter = ScanEventStream("scan-cap")

    with caplog.at_level(logging.INFO):
        result = await coordinator.run_scan(
            context=EMPTY_PROJECT, scan_id="scan-cap", emitter=emitter
        )

    events = [e async for e in emitter.stream()]
    started = [e for e in events if e.event_type == ScanEventType.ESCALATION_STARTED]

    assert caplog.text.count("exceed the escalation cap of 1") == 1
    assert started[0].details == {"candidates": 1}
    assert len(oracle.prompts) == 1
    assert len(result.escalation_results) == 1


async def test_invalid_policy_falls_back_to_unweighted_scoring(tmp_path, caplog):
    policy = tmp_path / "policy.json"
    policy.write_text('{"regulation_id": "x", "categories": []}', encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        coordinator = ScanCoordinator.from_config(
            ScannerConfig(SCORING_POLICY_PATH=policy)
        )

    assert "Falling back to unweighted scoring" in caplog.text

    result = await coordinator.run_scan(context=EMPTY_PROJECT, scan_id="scan-7")
    assert result.score.category_scores == []


async def test_missing_policy_file_falls_back_to_unweighted_scoring(
    tmp_path, caplog
):
    config = ScannerConfig(SCORING_POLICY_PATH=tmp_path / "nowhere.json")

    with caplog.at_level(logging.WARNING):
        coordinator = ScanCoordinator.from_config(config)

    assert "Falling back to unweighted scoring" in caplog.text

    result = await coordinator.run_scan(context=EMPTY_PROJECT, scan_id="scan-7b")
    assert result.score.category_scores == []


async def test_scan_project_reads_the_file_system(tmp_path):
    (tmp_path / "requirements.txt").write_text("deepface==0.0.79\n", encoding="utf-8")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "ignored.js").write_text("x", encoding="utf-8")

    coordinator = ScanCoordinator.from_config(ScannerConfig())
    result = await coordinator.scan_project(tmp_path, scan_id="scan-8")

    assert result.files_scanned == 1
    assert result.project_path == str(tmp_path.resolve())
    assert any(f.check_id == "l3-banned-deepface" for f in result.findings)
    assert result.score.critical_cap_applied is True
    assert result.score.total_score <= 40
    assert result.score.zone == ScoreZone.RED


async def test_scan_project_rejects_missing_directory(tmp_path):
    coordinator = ScanCoordinator.from_config(ScannerConfig())

    with pytest.raises(NotADirectoryError):
        await coordinator.scan_project(tmp_path / "missing", scan_id="scan-9")
