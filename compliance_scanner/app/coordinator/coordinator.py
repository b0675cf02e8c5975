"""
Central scan coordinator.

IMPORTANT:
The coordinator is a DUMB AUTHORITY.

It MUST NOT:
- inspect file contents
- interpret findings
- apply heuristics

Its sole responsibilities are:
- enforcing execution order
- containing subsystem failures (rule, oracle, policy)
- aggregating results
- constructing the final ScanResult

Nothing in the pipeline is fatal to a scan: rule failures become skips,
oracle failures become "uncertain" escalation results, and a misconfigured
scoring policy falls back to unweighted scoring. Only programming errors
escape run_scan, after SCAN_FAILED has been emitted.
"""

from __future__ import annotations

import logging
import time
from functools import partial
from pathlib import Path
from typing import List, Optional, Sequence

from anyio import to_thread

from compliance_scanner.app.checks import default_check_units
from compliance_scanner.app.checks.base import CheckUnit
from compliance_scanner.app.config import ScannerConfig
from compliance_scanner.app.escalation.escalator import EscalationOracle
from compliance_scanner.app.escalation.oracle import JudgmentOracle, build_oracle
from compliance_scanner.app.escalation.pricing import PricingFunction, calculate_cost
from compliance_scanner.app.scanner.assembler import (
    FindingAssembler,
    assign_priorities,
    to_verdicts,
)
from compliance_scanner.app.scanner.confidence import (
    ConfidenceModel,
    summarize_confidence,
)
from compliance_scanner.app.scanner.file_collector import collect_files
from compliance_scanner.app.scanner.rules.document_validators import (
    DEFAULT_VALIDATORS,
    DocumentValidator,
)
from compliance_scanner.app.scanner.runner import LayerOutput, LayerRunner
from compliance_scanner.app.schemas.escalation import EscalationResult
from compliance_scanner.app.schemas.findings import Finding
from compliance_scanner.app.schemas.scan import ScanContext, ScanResult
from compliance_scanner.app.schemas.score import ScoreBreakdown
from compliance_scanner.app.schemas.scoring_policy import ScoringPolicy
from compliance_scanner.app.scoring.policy import (
    DEFAULT_SCORING_POLICY,
    PolicyMisconfigurationError,
    load_scoring_policy,
)
from compliance_scanner.app.scoring.score_calculator import (
    calculate_score,
    calculate_score_diff,
    fallback_score,
)

# Events (observational only)
from compliance_scanner.app.events import (
    ScanEvent,
    ScanEventEmitter,
    ScanEventType,
    shielded,
)

logger = logging.getLogger(__name__)


class ScanCoordinator:
    """
    Central scan coordinator.

    Execution order:
        1. L1 Check Units
        2. L2 document structure
        3. L3 configuration and dependencies
        4. L4 source patterns (consumes L3 results)
        5. Finding assembly
        6. L5 escalation of uncertain findings (optional)
        7. Prioritisation and scoring
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        *,
        checks: Optional[Sequence[CheckUnit]] = None,
        confidence_model: Optional[ConfidenceModel] = None,
        scoring_policy: Optional[ScoringPolicy] = DEFAULT_SCORING_POLICY,
        oracle: Optional[JudgmentOracle] = None,
        pricing: PricingFunction = calculate_cost,
        validators: Sequence[DocumentValidator] = DEFAULT_VALIDATORS,
    ) -> None:
        """
        Direct constructor.

        Intended for tests and explicit wiring. No oracle is constructed
        implicitly; pass one to enable escalation.

        scoring_policy=None selects the unweighted fallback scorer.
        """
        self._config = config or ScannerConfig()
        self._confidence = confidence_model or ConfidenceModel()
        self._scoring_policy = scoring_policy

        self._runner = LayerRunner(
            checks=checks if checks is not None else default_check_units(),
            confidence_model=self._confidence,
            validators=validators,
            max_workers=self._config.LAYER_MAX_WORKERS,
        )
        self._assembler = FindingAssembler()

        if oracle is None:
            self._escalation = None
        else:
            self._escalation = EscalationOracle(
                oracle,
                pricing=pricing,
                confidence_model=self._confidence,
                uncertain_min=self._config.UNCERTAIN_MIN,
                uncertain_max=self._config.UNCERTAIN_MAX,
                max_findings=self._config.ESCALATION_MAX_FINDINGS,
                max_concurrency=self._config.ESCALATION_MAX_CONCURRENCY,
                timeout_seconds=self._config.ESCALATION_TIMEOUT_SECONDS,
                max_snippet_lines=self._config.MAX_SNIPPET_LINES,
                max_snippets=self._config.MAX_SNIPPETS,
            )

    # ------------------------------------------------------------------
    # Integration constructor (composition root)
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: ScannerConfig) -> "ScanCoordinator":
        """
        Construct a fully wired ScanCoordinator from runtime configuration.

        An unreadable or invalid policy file is logged and the scan uses
        the unweighted fallback scorer.
        """
        scoring_policy: Optional[ScoringPolicy] = DEFAULT_SCORING_POLICY
        if config.SCORING_POLICY_PATH is not None:
            try:
                scoring_policy = load_scoring_policy(config.SCORING_POLICY_PATH)
            except PolicyMisconfigurationError as exc:
                logger.warning(
                    "Falling back to unweighted scoring: %s", exc
                )
                scoring_policy = None

        return cls(
            config=config,
            checks=default_check_units(),
            scoring_policy=scoring_policy,
            oracle=build_oracle(config),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def scan_project(
        self,
        project_path: str | Path,
        *,
        scan_id: str,
        emitter: Optional[ScanEventEmitter] = None,
        previous_score: Optional[ScoreBreakdown] = None,
    ) -> ScanResult:
        """
        Collect the project's files, then run the full scan.
        """
        context = await to_thread.run_sync(
            partial(
                collect_files,
                project_path,
                max_files=self._config.MAX_FILES,
                max_file_size=self._config.MAX_FILE_SIZE_BYTES,
            )
        )
        return await self.run_scan(
            context=context,
            scan_id=scan_id,
            emitter=emitter,
            previous_score=previous_score,
        )

    async def run_scan(
        self,
        *,
        context: ScanContext,
        scan_id: str,
        emitter: Optional[ScanEventEmitter] = None,
        previous_score: Optional[ScoreBreakdown] = None,
    ) -> ScanResult:
        """
        Execute the full scan pipeline over an immutable file set.

        The emitter is strictly observational:
        - failures must not affect execution
        - events must not influence control flow
        """
        emitter = shielded(emitter)
        started = time.monotonic()

        await emitter.emit(
            ScanEvent(
                scan_id=scan_id,
                event_type=ScanEventType.SCAN_STARTED,
                details={
                    "project_path": context.project_path,
                    "files": len(context.files),
                },
            )
        )
        logger.info(
            "Scan %s started: %d files in %s",
            scan_id,
            len(context.files),
            context.project_path,
        )

        try:
            # ----------------------------------------------------------
            # 1-4. Deterministic layers (L4 consumes L3 results)
            # ----------------------------------------------------------
            outputs: List[LayerOutput] = []

            await self._layer_started(emitter, scan_id, "L1")
            outputs.append(self._runner.run_l1(context))
            await self._layer_completed(emitter, scan_id, outputs[-1])

            await self._layer_started(emitter, scan_id, "L2")
            outputs.append(self._runner.run_l2(context))
            await self._layer_completed(emitter, scan_id, outputs[-1])

            await self._layer_started(emitter, scan_id, "L3")
            l3_output, l3_results = self._runner.run_l3(context)
            outputs.append(l3_output)
            await self._layer_completed(emitter, scan_id, l3_output)

            await self._layer_started(emitter, scan_id, "L4")
            outputs.append(self._runner.run_l4(context, l3_results))
            await self._layer_completed(emitter, scan_id, outputs[-1])

            # ----------------------------------------------------------
            # 5. Assembly
            # ----------------------------------------------------------
            findings = self._assembler.assemble(outputs)

            # ----------------------------------------------------------
            # 6. Escalation (ADVISORY, optional)
            # ----------------------------------------------------------
            escalation_results: List[EscalationResult] = []
            escalation_cost = 0.0

            if self._escalation is not None:
                candidates = self._escalation.select_candidates(findings)
                await emitter.emit(
                    ScanEvent(
                        scan_id=scan_id,
                        event_type=ScanEventType.ESCALATION_STARTED,
                        details={"candidates": len(candidates)},
                    )
                )

                escalation_results = await self._escalation.escalate_candidates(
                    candidates,
                    context.file_contents(),
                    scan_id=scan_id,
                    emitter=emitter,
                )
                findings = self._escalation.apply_results(
                    findings, escalation_results
                )
                escalation_cost = self._escalation.total_cost(escalation_results)

                await emitter.emit(
                    ScanEvent(
                        scan_id=scan_id,
                        event_type=ScanEventType.ESCALATION_COMPLETED,
                        details={
                            "escalated": len(escalation_results),
                            "resolved": sum(
                                1 for r in escalation_results
                                if r.verdict != "uncertain"
                            ),
                            "cost": escalation_cost,
                        },
                    )
                )

            # ----------------------------------------------------------
            # 7. Prioritisation and scoring (final findings only)
            # ----------------------------------------------------------
            findings = assign_priorities(findings)
            score = self._score(findings)

            result = self._finalize_result(
                scan_id=scan_id,
                context=context,
                findings=findings,
                score=score,
                escalation_results=escalation_results,
                escalation_cost=escalation_cost,
                previous_score=previous_score,
                duration_ms=int((time.monotonic() - started) * 1000),
            )

            await emitter.emit(
                ScanEvent(
                    scan_id=scan_id,
                    event_type=ScanEventType.SCAN_COMPLETED,
                    details={
                        "total_score": score.total_score,
                        "zone": score.zone.value,
                        "critical_cap_applied": score.critical_cap_applied,
                        "findings_count": len(findings),
                    },
                )
            )
            logger.info(
                "Scan %s completed: score %.2f (%s), %d findings",
                scan_id,
                score.total_score,
                score.zone.value,
                len(findings),
            )

            return result

        except Exception as exc:
            await emitter.emit(
                ScanEvent(
                    scan_id=scan_id,
                    event_type=ScanEventType.SCAN_FAILED,
                    details={
                        "error": str(exc),
                        "exception_type": type(exc).__name__,
                    },
                )
            )
            raise

    # ------------------------------------------------------------------
    # Structural helpers
    # ------------------------------------------------------------------

    def _score(self, findings: List[Finding]) -> ScoreBreakdown:
        summary = summarize_confidence(findings)

        if self._scoring_policy is None:
            return fallback_score(
                findings,
                critical_cap=self._config.FALLBACK_CRITICAL_CAP,
                confidence_summary=summary,
            )

        return calculate_score(
            to_verdicts(findings),
            self._scoring_policy,
            confidence_summary=summary,
        )

    @staticmethod
    async def _layer_started(
        emitter: ScanEventEmitter, scan_id: str, layer: str
    ) -> None:
        await emitter.emit(
            ScanEvent(
                scan_id=scan_id,
                event_type=ScanEventType.LAYER_STARTED,
                details={"layer": layer},
            )
        )

    @staticmethod
    async def _layer_completed(
        emitter: ScanEventEmitter, scan_id: str, output: LayerOutput
    ) -> None:
        for check_id in output.failures:
            await emitter.emit(
                ScanEvent(
                    scan_id=scan_id,
                    event_type=ScanEventType.CHECK_FAILED,
                    details={"layer": output.layer, "check_id": check_id},
                )
            )

        await emitter.emit(
            ScanEvent(
                scan_id=scan_id,
                event_type=ScanEventType.LAYER_COMPLETED,
                details={
                    "layer": output.layer,
                    "verdicts": len(output.assessed),
                    "failures": len(output.failures),
                },
            )
        )
        logger.info(
            "%s produced %d verdicts (%d failed checks)",
            output.layer,
            len(output.assessed),
            len(output.failures),
        )

    @staticmethod
    def _finalize_result(
        *,
        scan_id: str,
        context: ScanContext,
        findings: List[Finding],
        score: ScoreBreakdown,
        escalation_results: List[EscalationResult],
        escalation_cost: float,
        previous_score: Optional[ScoreBreakdown],
        duration_ms: int,
    ) -> ScanResult:
        """
        Construct the final immutable ScanResult.
        """
        return ScanResult(
            scan_id=scan_id,
            project_path=context.project_path,
            findings=findings,
            score=score,
            escalation_results=escalation_results,
            escalation_cost=escalation_cost,
            score_diff=(
                calculate_score_diff(previous_score, score)
                if previous_score is not None
                else None
            ),
            files_scanned=len(context.files),
            duration_ms=duration_ms,
        )
