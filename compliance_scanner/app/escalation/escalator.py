"""
Escalation oracle (L5).

Re-judges findings whose confidence lies in the uncertain band with a
higher-cost JudgmentOracle.

State machine per finding:
    CERTAIN -> (confidence in band) -> ESCALATED
            -> RESOLVED_PASS | RESOLVED_FAIL | UNRESOLVED

IMPORTANT:
- Only band membership triggers escalation. Low confidence is a
  confident fail, not uncertainty; findings without a confidence
  (skips) are never escalated.
- Oracle failures (timeout, transport error, unparseable or invalid
  response) are contained per finding and become verdict "uncertain".
  One failing call MUST NOT affect sibling calls.
- An "uncertain" result MUST NOT change its finding.
- Result order follows input finding order regardless of completion
  order.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence

import anyio

from compliance_scanner.app.escalation.oracle import JudgmentOracle
from compliance_scanner.app.escalation.pricing import PricingFunction, calculate_cost
from compliance_scanner.app.escalation.prompts import (
    build_prompt,
    extract_snippets,
    select_prompt_type,
)
from compliance_scanner.app.events import (
    ScanEvent,
    ScanEventEmitter,
    ScanEventType,
    shielded,
)
from compliance_scanner.app.scanner.confidence import ConfidenceModel
from compliance_scanner.app.schemas.escalation import (
    EscalationResult,
    OracleJudgment,
    PromptType,
)
from compliance_scanner.app.schemas.findings import Finding, Severity, VerdictType

logger = logging.getLogger(__name__)


_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def parse_judgment(text: str) -> OracleJudgment:
    """
    Extract and validate the JSON judgment, which may be wrapped in prose.

    Raises ValueError (pydantic.ValidationError included) on failure.
    """
    match = _JSON_OBJECT_RE.search(text)
    if match is None:
        raise ValueError("no JSON object in oracle response")
    return OracleJudgment.model_validate_json(match.group(0))


class EscalationOracle:
    def __init__(
        self,
        oracle: JudgmentOracle,
        *,
        pricing: PricingFunction = calculate_cost,
        confidence_model: Optional[ConfidenceModel] = None,
        uncertain_min: int = 40,
        uncertain_max: int = 70,
        max_findings: int = 20,
        max_concurrency: int = 4,
        timeout_seconds: float = 60.0,
        max_snippet_lines: int = 500,
        max_snippets: int = 5,
    ) -> None:
        if uncertain_max < uncertain_min:
            raise ValueError("uncertain_max must not be below uncertain_min")

        self._oracle = oracle
        self._pricing = pricing
        self._confidence = confidence_model or ConfidenceModel()
        self._uncertain_min = uncertain_min
        self._uncertain_max = uncertain_max
        self._max_findings = max_findings
        self._max_concurrency = max_concurrency
        self._timeout_seconds = timeout_seconds
        self._max_snippet_lines = max_snippet_lines
        self._max_snippets = max_snippets

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def is_uncertain(self, finding: Finding) -> bool:
        if finding.confidence is None:
            return False
        return self._uncertain_min <= finding.confidence <= self._uncertain_max

    def select_candidates(self, findings: Sequence[Finding]) -> List[Finding]:
        candidates = [f for f in findings if self.is_uncertain(f)]
        if len(candidates) > self._max_findings:
            logger.info(
                "%d uncertain findings exceed the escalation cap of %d; "
                "the remainder keep their layer verdicts",
                len(candidates),
                self._max_findings,
            )
            candidates = candidates[: self._max_findings]
        return candidates

    # ------------------------------------------------------------------
    # Analysis (fan-out / fan-in)
    # ------------------------------------------------------------------

    async def analyze_findings(
        self,
        findings: Sequence[Finding],
        file_contents: Mapping[str, str],
        *,
        scan_id: Optional[str] = None,
        emitter: Optional[ScanEventEmitter] = None,
    ) -> List[EscalationResult]:
        return await self.escalate_candidates(
            self.select_candidates(findings),
            file_contents,
            scan_id=scan_id,
            emitter=emitter,
        )

    async def escalate_candidates(
        self,
        candidates: Sequence[Finding],
        file_contents: Mapping[str, str],
        *,
        scan_id: Optional[str] = None,
        emitter: Optional[ScanEventEmitter] = None,
    ) -> List[EscalationResult]:
        """
        Escalate already-selected findings. Results follow candidate order.
        """
        emitter = shielded(emitter)
        if not candidates:
            return []

        slots: List[Optional[EscalationResult]] = [None] * len(candidates)
        limiter = anyio.CapacityLimiter(self._max_concurrency)

        async def run_one(index: int, finding: Finding) -> None:
            async with limiter:
                slots[index] = await self._escalate(
                    finding, file_contents, scan_id=scan_id, emitter=emitter
                )

        async with anyio.create_task_group() as tg:
            for index, finding in enumerate(candidates):
                tg.start_soon(run_one, index, finding)

        return [r for r in slots if r is not None]

    async def _escalate(
        self,
        finding: Finding,
        file_contents: Mapping[str, str],
        *,
        scan_id: Optional[str],
        emitter: ScanEventEmitter,
    ) -> EscalationResult:
        prompt_type = select_prompt_type(finding)
        snippets = extract_snippets(
            finding,
            file_contents,
            max_lines=self._max_snippet_lines,
            max_snippets=self._max_snippets,
        )
        prompt = build_prompt(prompt_type, finding, snippets)

        if scan_id is not None:
            await emitter.emit(
                ScanEvent(
                    scan_id=scan_id,
                    event_type=ScanEventType.ORACLE_CALL_STARTED,
                    details={
                        "finding_id": finding.finding_id,
                        "prompt_type": prompt_type.value,
                        "snippets": len(snippets),
                    },
                )
            )

        result = await self._judge(finding, prompt, prompt_type)

        if scan_id is not None:
            await emitter.emit(
                ScanEvent(
                    scan_id=scan_id,
                    event_type=ScanEventType.ORACLE_CALL_COMPLETED,
                    details={
                        "finding_id": finding.finding_id,
                        "verdict": result.verdict,
                        "cost": result.cost,
                    },
                )
            )

        logger.debug(
            "Escalated %s: %s (%d -> %d)",
            finding.finding_id,
            result.verdict,
            result.original_confidence,
            result.new_confidence,
        )
        return result

    async def _judge(
        self, finding: Finding, prompt: str, prompt_type: PromptType
    ) -> EscalationResult:
        original = finding.confidence if finding.confidence is not None else 50

        def unresolved(reasoning: str, cost: float = 0.0) -> EscalationResult:
            return EscalationResult(
                finding_id=finding.finding_id,
                original_confidence=original,
                new_confidence=original,
                verdict="uncertain",
                reasoning=reasoning,
                prompt_type=prompt_type,
                cost=cost,
            )

        try:
            with anyio.fail_after(self._timeout_seconds):
                response = await self._oracle.judge(prompt)
        except TimeoutError:
            logger.warning(
                "Oracle call for %s timed out after %ss",
                finding.finding_id,
                self._timeout_seconds,
            )
            return unresolved(
                f"Oracle call failed: timed out after {self._timeout_seconds}s"
            )
        except Exception as exc:
            logger.warning("Oracle call for %s failed: %s", finding.finding_id, exc)
            return unresolved(f"Oracle call failed: {exc}")

        try:
            cost = self._pricing(
                self._oracle.model_id, response.input_tokens, response.output_tokens
            )
        except Exception as exc:
            logger.warning(
                "Cost accounting for %s failed: %s", finding.finding_id, exc
            )
            return unresolved(f"Oracle cost accounting failed: {exc}")

        try:
            judgment = parse_judgment(response.text)
        except ValueError as exc:
            logger.warning(
                "Oracle response for %s could not be parsed: %s",
                finding.finding_id,
                exc,
            )
            return unresolved(f"Oracle response parsing failed: {exc}", cost)

        if judgment.verdict == "pass":
            new_confidence = judgment.confidence
        elif judgment.verdict == "fail":
            new_confidence = 100 - judgment.confidence
        else:
            new_confidence = original

        try:
            return EscalationResult(
                finding_id=finding.finding_id,
                original_confidence=original,
                new_confidence=new_confidence,
                verdict=judgment.verdict,
                reasoning=judgment.reasoning,
                evidence=judgment.evidence,
                prompt_type=prompt_type,
                cost=cost,
            )
        except ValueError as exc:
            logger.warning(
                "Oracle judgment for %s was rejected: %s", finding.finding_id, exc
            )
            return unresolved(f"Oracle judgment rejected: {exc}")

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------

    def apply_results(
        self,
        findings: Sequence[Finding],
        results: Sequence[EscalationResult],
    ) -> List[Finding]:
        """
        Return findings with resolved escalations applied.

        Findings with an "uncertain" result, or no result, are returned
        unchanged.
        """
        by_id: Dict[str, EscalationResult] = {r.finding_id: r for r in results}

        applied: List[Finding] = []
        for f in findings:
            result = by_id.get(f.finding_id)
            if result is None or result.verdict == "uncertain":
                applied.append(f)
                continue

            update = {
                "type": VerdictType(result.verdict),
                "confidence": result.new_confidence,
                "confidence_level": self._confidence.level_for(result.new_confidence),
            }
            if result.verdict == "pass":
                update["severity"] = Severity.INFO
            applied.append(f.model_copy(update=update))

        return applied

    def total_cost(self, results: Sequence[EscalationResult]) -> float:
        return sum(r.cost for r in results)
