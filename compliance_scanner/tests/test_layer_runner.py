from typing import List

from compliance_scanner.app.checks import default_check_units
from compliance_scanner.app.checks.base import BaseCheck
from compliance_scanner.app.scanner.runner import (
    L2_ANALYZER_ID,
    L3_ANALYZER_ID,
    LayerRunner,
)
from compliance_scanner.app.schemas.findings import CheckVerdict
from compliance_scanner.tests.helpers import make_context


class ExplodingCheck(BaseCheck):
    check_id = "exploding"

    def run(self, context) -> List[CheckVerdict]:
        raise RuntimeError("regex backtracked into the void")


class TwoVerdictCheck(BaseCheck):
    check_id = "two"

    def run(self, context) -> List[CheckVerdict]:
        return [self.passed("first"), self.skipped("second")]


CONTEXT = make_context(
    {
        "src/chat.tsx": "<Chatbot />",
        "requirements.txt": "openai==1.0\n",
        "FRIA.md": "# FRIA\n## Risk Assessment\n",
    }
)


def _all_layers(runner: LayerRunner, context):
    l1 = runner.run_l1(context)
    l2 = runner.run_l2(context)
    l3, l3_results = runner.run_l3(context)
    return [l1, l2, l3, runner.run_l4(context, l3_results)]


def test_failing_check_becomes_skip_and_scan_continues():
    runner = LayerRunner(checks=[ExplodingCheck(), TwoVerdictCheck()])

    output = runner.run_l1(CONTEXT)

    assert output.failures == ["exploding"]
    first = output.assessed[0]
    assert first.verdict.type == "skip"
    assert first.verdict.reason == "Check failed: regex backtracked into the void"
    assert first.confidence is None

    assert [a.verdict.check_id for a in output.assessed] == [
        "exploding",
        "two",
        "two",
    ]


def test_every_non_skip_verdict_carries_confidence():
    runner = LayerRunner(checks=default_check_units())

    for output in _all_layers(runner, CONTEXT):
        for assessed in output.assessed:
            if assessed.verdict.type == "skip":
                assert assessed.confidence is None
            else:
                assert assessed.confidence is not None
                assert 0 <= assessed.confidence.confidence <= 100


def test_parallel_l1_preserves_registry_order():
    sequential = LayerRunner(checks=default_check_units(), max_workers=1)
    parallel = LayerRunner(checks=default_check_units(), max_workers=4)

    assert parallel.run_l1(CONTEXT) == sequential.run_l1(CONTEXT)


def test_layers_are_deterministic():
    runner = LayerRunner(checks=default_check_units())
    assert _all_layers(runner, CONTEXT) == _all_layers(runner, CONTEXT)


def test_l4_receives_l3_results():
    runner = LayerRunner(checks=[])
    _, l3_results = runner.run_l3(CONTEXT)
    l4 = runner.run_l4(CONTEXT, l3_results)

    # AI SDK evidence from L3 makes L4 report missing mechanisms.
    assert any(a.verdict.type == "fail" for a in l4.assessed)
    assert runner.run_l4(CONTEXT, []).assessed == []


def test_failing_analyzer_becomes_skip(monkeypatch):
    def broken(context):
        raise ValueError("bad manifest")

    monkeypatch.setattr(
        "compliance_scanner.app.scanner.runner.run_layer3", broken
    )
    runner = LayerRunner(checks=[])

    output, results = runner.run_l3(CONTEXT)

    assert results == []
    assert output.failures == [L3_ANALYZER_ID]
    assert output.assessed[0].verdict.check_id == L3_ANALYZER_ID
    assert output.assessed[0].verdict.reason == "Check failed: bad manifest"


def test_l2_projects_graded_status():
    runner = LayerRunner(checks=[])
    output = runner.run_l2(CONTEXT)

    (assessed,) = output.assessed
    assert assessed.verdict.check_id == "l2-fria"
    assert assessed.verdict.type == "fail"
    assert assessed.confidence.confidence == 55
    assert output.failures == []
    assert L2_ANALYZER_ID not in [a.verdict.check_id for a in output.assessed]
