"""
Finding assembler.

Merges layer outputs into the canonical, ordered Finding list.

Stable finding identity is derived ONLY from immutable facts:
- check identifier
- file and line (when present)
- message
- occurrence index among otherwise identical verdicts

Findings are emitted in layer order (L1, L2, L3, L4) and, within a
layer, in verdict emission order.
"""

from __future__ import annotations

import hashlib
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from compliance_scanner.app.scanner.runner import LayerOutput
from compliance_scanner.app.schemas.findings import (
    AssessedVerdict,
    CheckVerdict,
    FailVerdict,
    Finding,
    PassVerdict,
    Severity,
    SkipVerdict,
    VerdictType,
)


SEVERITY_WEIGHTS: Dict[Severity, int] = {
    Severity.CRITICAL: 10,
    Severity.HIGH: 5,
    Severity.MEDIUM: 3,
    Severity.LOW: 1,
    Severity.INFO: 0,
}


def _stable_finding_suffix(material: str) -> str:
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:12]


def stable_finding_id(
    *,
    check_id: str,
    file: Optional[str],
    line: Optional[int],
    message: str,
    occurrence: int = 0,
) -> str:
    material = "|".join(
        [
            check_id,
            file or "",
            "" if line is None else str(line),
            message,
            str(occurrence),
        ]
    )
    return f"{check_id}:{_stable_finding_suffix(material)}"


def _identity(verdict: CheckVerdict) -> Tuple[str, Optional[str], Optional[int], str]:
    if isinstance(verdict, SkipVerdict):
        return verdict.check_id, None, None, verdict.reason
    return verdict.check_id, verdict.file, verdict.line, verdict.message


class FindingAssembler:
    def to_finding(self, assessed: AssessedVerdict, *, occurrence: int = 0) -> Finding:
        verdict = assessed.verdict
        check_id, file, line, message = _identity(verdict)

        finding_id = stable_finding_id(
            check_id=check_id,
            file=file,
            line=line,
            message=message,
            occurrence=occurrence,
        )

        confidence = assessed.confidence
        base = {
            "finding_id": finding_id,
            "check_id": check_id,
            "message": message,
            "file": file,
            "line": line,
            "confidence": confidence.confidence if confidence else None,
            "confidence_level": confidence.level if confidence else None,
        }

        if isinstance(verdict, FailVerdict):
            return Finding(
                **base,
                type=VerdictType.FAIL,
                severity=verdict.severity,
                obligation_id=verdict.obligation_id,
                article_reference=verdict.article_reference,
                fix=verdict.fix,
            )

        if isinstance(verdict, PassVerdict):
            return Finding(
                **base,
                type=VerdictType.PASS,
                severity=Severity.INFO,
                obligation_id=verdict.obligation_id,
            )

        return Finding(**base, type=VerdictType.SKIP, severity=Severity.INFO)

    def assemble(self, outputs: Sequence[LayerOutput]) -> List[Finding]:
        findings: List[Finding] = []
        seen: Dict[Tuple[str, Optional[str], Optional[int], str], int] = {}

        for output in outputs:
            for assessed in output.assessed:
                key = _identity(assessed.verdict)
                occurrence = seen.get(key, 0)
                seen[key] = occurrence + 1
                findings.append(self.to_finding(assessed, occurrence=occurrence))

        return findings


# ----------------------------------------------------------------------
# Priorities
# ----------------------------------------------------------------------


def priority_of(finding: Finding) -> int:
    return SEVERITY_WEIGHTS[finding.severity] * 100


def assign_priorities(findings: Iterable[Finding]) -> List[Finding]:
    """
    Attach a priority to every finding, preserving order.
    """
    return [f.model_copy(update={"priority": priority_of(f)}) for f in findings]


def prioritize_findings(findings: Iterable[Finding]) -> List[Finding]:
    """
    Assign priorities and sort most urgent first.

    The sort is stable: equal priorities keep their original order.
    """
    return sorted(
        assign_priorities(findings),
        key=lambda f: f.priority or 0,
        reverse=True,
    )


# ----------------------------------------------------------------------
# Verdict re-derivation (for scoring final findings)
# ----------------------------------------------------------------------


def to_verdicts(findings: Iterable[Finding]) -> List[CheckVerdict]:
    verdicts: List[CheckVerdict] = []
    for f in findings:
        if f.type == VerdictType.SKIP:
            verdicts.append(SkipVerdict(check_id=f.check_id, reason=f.message))
        elif f.type == VerdictType.PASS:
            verdicts.append(
                PassVerdict(
                    check_id=f.check_id,
                    message=f.message,
                    obligation_id=f.obligation_id,
                    file=f.file,
                    line=f.line,
                )
            )
        else:
            verdicts.append(
                FailVerdict(
                    check_id=f.check_id,
                    message=f.message,
                    severity=f.severity,
                    obligation_id=f.obligation_id,
                    article_reference=f.article_reference,
                    fix=f.fix,
                    file=f.file,
                    line=f.line,
                )
            )
    return verdicts
