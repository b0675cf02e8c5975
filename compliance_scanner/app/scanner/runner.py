"""
Layer runner (L1-L4).

Executes the deterministic detection layers against an immutable
ScanContext and pairs every verdict with its ConfidenceResult.

IMPORTANT:
- Layers MUST NOT perform network I/O and MUST be deterministic for a
  fixed file set.
- A Check Unit or layer analyzer raising an exception is a rule bug.
  It is NOT retried; it is converted into a Skip verdict carrying the
  failure reason so the scan continues.
- L4 receives L3's structured results, never its projected verdicts.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from compliance_scanner.app.checks.base import CheckUnit
from compliance_scanner.app.scanner.confidence import ConfidenceModel
from compliance_scanner.app.scanner.layers.layer2_docs import l2_verdict, run_layer2
from compliance_scanner.app.scanner.layers.layer3_config import (
    L3Result,
    l3_verdict,
    run_layer3,
)
from compliance_scanner.app.scanner.layers.layer4_patterns import (
    l4_verdict,
    run_layer4,
)
from compliance_scanner.app.scanner.rules.document_validators import (
    DEFAULT_VALIDATORS,
    DocumentValidator,
)
from compliance_scanner.app.schemas.findings import (
    AssessedVerdict,
    CheckVerdict,
    SkipVerdict,
)
from compliance_scanner.app.schemas.scan import ScanContext

logger = logging.getLogger(__name__)


L2_ANALYZER_ID = "l2-documents"
L3_ANALYZER_ID = "l3-config"
L4_ANALYZER_ID = "l4-patterns"


class LayerOutput(BaseModel):
    """
    Verdicts of one layer, in emission order, with their confidence.
    """

    layer: str
    assessed: List[AssessedVerdict] = Field(default_factory=list)
    failures: List[str] = Field(
        default_factory=list,
        description="Check or analyzer ids that raised and were skipped",
    )

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def verdicts(self) -> List[CheckVerdict]:
        return [a.verdict for a in self.assessed]


def failure_skip(check_id: str, exc: BaseException) -> SkipVerdict:
    return SkipVerdict(check_id=check_id, reason=f"Check failed: {exc}")


class LayerRunner:
    def __init__(
        self,
        *,
        checks: Sequence[CheckUnit],
        confidence_model: Optional[ConfidenceModel] = None,
        validators: Sequence[DocumentValidator] = DEFAULT_VALIDATORS,
        max_workers: int = 1,
    ) -> None:
        self._checks = list(checks)
        self._confidence = confidence_model or ConfidenceModel()
        self._validators = tuple(validators)
        self._max_workers = max_workers

    # ------------------------------------------------------------------
    # L1: Check Units
    # ------------------------------------------------------------------

    def _run_unit(
        self, unit: CheckUnit, context: ScanContext
    ) -> Tuple[List[CheckVerdict], bool]:
        try:
            return list(unit.run(context)), False
        except Exception as exc:
            logger.warning(
                "Check unit '%s' failed and was skipped: %s",
                unit.check_id,
                exc,
                exc_info=True,
            )
            return [failure_skip(unit.check_id, exc)], True

    def run_l1(self, context: ScanContext) -> LayerOutput:
        if self._max_workers > 1 and len(self._checks) > 1:
            # map() yields in submission order, so registry order is kept.
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                outcomes = list(
                    pool.map(lambda unit: self._run_unit(unit, context), self._checks)
                )
        else:
            outcomes = [self._run_unit(unit, context) for unit in self._checks]

        assessed: List[AssessedVerdict] = []
        failures: List[str] = []
        for unit, (verdicts, failed) in zip(self._checks, outcomes):
            if failed:
                failures.append(unit.check_id)
            for verdict in verdicts:
                assessed.append(
                    AssessedVerdict(
                        verdict=verdict,
                        confidence=(
                            None
                            if verdict.type == "skip"
                            else self._confidence.from_l1(verdict)
                        ),
                    )
                )

        return LayerOutput(layer="L1", assessed=assessed, failures=failures)

    # ------------------------------------------------------------------
    # L2-L4: analyzers with structured results
    # ------------------------------------------------------------------

    @staticmethod
    def _guarded(
        layer: str,
        analyzer_id: str,
        analyze: Callable[[], List[AssessedVerdict]],
    ) -> LayerOutput:
        try:
            return LayerOutput(layer=layer, assessed=analyze())
        except Exception as exc:
            logger.warning(
                "%s analyzer failed and was skipped: %s", layer, exc, exc_info=True
            )
            return LayerOutput(
                layer=layer,
                assessed=[AssessedVerdict(verdict=failure_skip(analyzer_id, exc))],
                failures=[analyzer_id],
            )

    def run_l2(self, context: ScanContext) -> LayerOutput:
        def analyze() -> List[AssessedVerdict]:
            return [
                AssessedVerdict(
                    verdict=l2_verdict(r),
                    confidence=self._confidence.from_l2(r),
                )
                for r in run_layer2(context, self._validators)
            ]

        return self._guarded("L2", L2_ANALYZER_ID, analyze)

    def run_l3(self, context: ScanContext) -> Tuple[LayerOutput, List[L3Result]]:
        """
        Returns the projected layer output and L3's structured results.

        When the analyzer fails, the structured results are empty and
        L4 proceeds as if no dependency evidence was found.
        """
        results: List[L3Result] = []

        def analyze() -> List[AssessedVerdict]:
            results.extend(run_layer3(context))
            return [
                AssessedVerdict(
                    verdict=l3_verdict(r),
                    confidence=self._confidence.from_l3(r),
                )
                for r in results
            ]

        output = self._guarded("L3", L3_ANALYZER_ID, analyze)
        if output.failures:
            results = []
        return output, results

    def run_l4(
        self, context: ScanContext, l3_results: Sequence[L3Result]
    ) -> LayerOutput:
        def analyze() -> List[AssessedVerdict]:
            return [
                AssessedVerdict(
                    verdict=l4_verdict(r),
                    confidence=self._confidence.from_l4(r),
                )
                for r in run_layer4(context, l3_results)
            ]

        return self._guarded("L4", L4_ANALYZER_ID, analyze)
