"""
Source pattern analysis (L4).

Runs PATTERN_RULES over scannable source files. Uses L3's structured
output in two ways:
- missing positive mechanisms are only reported when an AI SDK was
  detected by L3 or a bare LLM call was found here
- a bare LLM call in a project whose manifests declare an AI SDK is
  corroborated and keeps its full confidence even for broad patterns
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from compliance_scanner.app.scanner.layers.layer3_config import (
    L3Result,
    detected_ai_sdks,
)
from compliance_scanner.app.scanner.rules.pattern_rules import (
    IGNORED_DIRS,
    PATTERN_RULES,
    POSITIVE_CATEGORIES,
    SCANNABLE_EXTENSIONS,
    PatternCategory,
    PatternRule,
    PatternType,
    Specificity,
)
from compliance_scanner.app.schemas.findings import (
    CheckVerdict,
    FailVerdict,
    PassVerdict,
    Severity,
)
from compliance_scanner.app.schemas.scan import FileInfo, ScanContext


class L4Status(str, Enum):
    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"


class L4Result(BaseModel):
    obligation_id: str
    article: str
    category: PatternCategory
    pattern_type: PatternType
    status: L4Status
    file: Optional[str] = None
    line: Optional[int] = None
    matched_pattern: str
    recommendation: str
    specificity: Specificity = "narrow"
    corroborated: bool = False

    model_config = ConfigDict(frozen=True, extra="forbid")


def is_scannable(file: FileInfo) -> bool:
    if file.extension not in SCANNABLE_EXTENSIONS:
        return False
    return not any(part in IGNORED_DIRS for part in file.relative_path.split("/"))


def line_number(content: str, index: int) -> int:
    return content.count("\n", 0, index) + 1


def _found(rule: PatternRule, file: FileInfo, index: int, corroborated: bool) -> L4Result:
    return L4Result(
        obligation_id=rule.obligation_id,
        article=rule.article,
        category=rule.category,
        pattern_type=rule.pattern_type,
        status=L4Status.FOUND,
        file=file.relative_path,
        line=line_number(file.content, index),
        matched_pattern=rule.label,
        recommendation=rule.recommendation,
        specificity=rule.specificity,
        corroborated=corroborated,
    )


def run_layer4(
    context: ScanContext,
    l3_results: Sequence[L3Result],
    rules: Sequence[PatternRule] = PATTERN_RULES,
) -> List[L4Result]:
    has_ai_sdk = bool(detected_ai_sdks(l3_results))
    sources = [f for f in context.files if is_scannable(f)]
    if not sources:
        return []

    negatives: List[L4Result] = []
    positives: Dict[PatternCategory, L4Result] = {}

    for file in sources:
        for rule in rules:
            match = rule.regex.search(file.content)
            if match is None:
                continue

            if rule.pattern_type == "negative":
                corroborated = (
                    rule.category == PatternCategory.BARE_LLM and has_ai_sdk
                )
                negatives.append(_found(rule, file, match.start(), corroborated))
            elif rule.category not in positives:
                positives[rule.category] = _found(rule, file, match.start(), False)

    results: List[L4Result] = list(negatives)
    results.extend(positives.values())

    bare_llm_found = any(r.category == PatternCategory.BARE_LLM for r in negatives)
    if has_ai_sdk or bare_llm_found:
        for category in POSITIVE_CATEGORIES:
            if category in positives:
                continue
            rule = next((r for r in rules if r.category == category), None)
            if rule is None:
                continue
            results.append(
                L4Result(
                    obligation_id=rule.obligation_id,
                    article=rule.article,
                    category=category,
                    pattern_type="positive",
                    status=L4Status.NOT_FOUND,
                    matched_pattern=rule.label,
                    recommendation=rule.recommendation,
                    specificity=rule.specificity,
                )
            )

    return results


# ----------------------------------------------------------------------
# Projection
# ----------------------------------------------------------------------


def l4_verdict(result: L4Result) -> CheckVerdict:
    check_id = f"l4-{result.category.value}"
    location = f" in {result.file}:{result.line}" if result.file is not None else ""
    found = result.status == L4Status.FOUND

    if result.pattern_type == "negative" and found:
        return FailVerdict(
            check_id=check_id,
            message=(
                f"WARNING: {result.matched_pattern}{location} "
                f"({result.obligation_id}, {result.article})"
            ),
            severity=Severity.MEDIUM,
            obligation_id=result.obligation_id,
            article_reference=result.article,
            fix=result.recommendation,
            file=result.file,
            line=result.line,
        )

    if result.pattern_type == "positive" and found:
        return PassVerdict(
            check_id=check_id,
            message=f"{result.matched_pattern} found{location} ({result.article})",
            obligation_id=result.obligation_id,
            file=result.file,
            line=result.line,
        )

    if result.pattern_type == "positive":
        return FailVerdict(
            check_id=check_id,
            message=(
                f"WARNING: No {result.category.value} pattern found "
                f"({result.obligation_id}, {result.article})"
            ),
            severity=Severity.LOW,
            obligation_id=result.obligation_id,
            article_reference=result.article,
            fix=result.recommendation,
        )

    return PassVerdict(
        check_id=check_id,
        message=f"No {result.category.value} issues detected",
        obligation_id=result.obligation_id,
    )
