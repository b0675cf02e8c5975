"""
Escalation prompt construction.

Prompt assembly is deterministic: the same finding and file set always
produce the same prompt text, so oracle responses can be cached or
replayed for reproducible scans.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Tuple

from compliance_scanner.app.schemas.escalation import CodeSnippet, PromptType
from compliance_scanner.app.schemas.findings import Finding


# ----------------------------------------------------------------------
# Prompt type selection
# ----------------------------------------------------------------------

# Scanned in order; the first group with a keyword hit wins.
PROMPT_KEYWORDS: Tuple[Tuple[PromptType, Tuple[str, ...]], ...] = (
    (
        PromptType.DATA_HANDLING_CHECK,
        ("data", "privacy", "retention", "biometric", "consent"),
    ),
    (
        PromptType.CODE_PATTERN_CHECK,
        ("disclosure", "logging", "transparency", "interaction", "content-marking"),
    ),
    (
        PromptType.DOCUMENTATION_CHECK,
        ("documentation", "literacy", "policy", "report", "conformity"),
    ),
    (
        PromptType.ARCHITECTURE_CHECK,
        (
            "monitoring",
            "oversight",
            "audit",
            "kill-switch",
            "config",
            "environment",
            "deployment",
        ),
    ),
)


def select_prompt_type(finding: Finding) -> PromptType:
    text = f"{finding.check_id} {finding.message}".lower()
    for prompt_type, keywords in PROMPT_KEYWORDS:
        if any(kw in text for kw in keywords):
            return prompt_type
    return PromptType.CODE_PATTERN_CHECK


# ----------------------------------------------------------------------
# Snippet extraction
# ----------------------------------------------------------------------

_WORD_SPLIT_RE = re.compile(r"\s+")


def snippet_keywords(finding: Finding) -> List[str]:
    words = finding.check_id.lower().split("-")
    words += [w for w in _WORD_SPLIT_RE.split(finding.message.lower()) if len(w) > 4]
    # dict.fromkeys keeps first-seen order
    return [w for w in dict.fromkeys(words) if w]


def extract_snippets(
    finding: Finding,
    file_contents: Mapping[str, str],
    *,
    max_lines: int = 500,
    max_snippets: int = 5,
) -> List[CodeSnippet]:
    """
    Select the file regions most relevant to a finding.

    Every keyword found in a file adds 0.2 relevance (capped at 1.0).
    The finding's own file is always the most relevant one and is
    quoted around its line. Snippets are ranked by relevance, ties
    broken by path, and share a single line budget of max_lines.
    """
    keywords = snippet_keywords(finding)

    ranked: List[Tuple[float, str]] = []
    for path, content in file_contents.items():
        if path == finding.file:
            ranked.append((1.0, path))
            continue
        lowered = content.lower()
        hits = sum(1 for kw in keywords if kw in lowered)
        if hits:
            ranked.append((min(1.0, round(0.2 * hits, 2)), path))

    ranked.sort(key=lambda item: (-item[0], item[1]))

    snippets: List[CodeSnippet] = []
    budget = max_lines
    for relevance, path in ranked[:max_snippets]:
        if budget <= 0:
            break

        lines = file_contents[path].split("\n")
        length = min(len(lines), budget)

        start = 0
        if path == finding.file and finding.line is not None:
            start = max(0, min(finding.line - 1 - length // 2, len(lines) - length))

        snippets.append(
            CodeSnippet(
                file=path,
                start_line=start + 1,
                end_line=start + length,
                content="\n".join(lines[start:start + length]),
                relevance=relevance,
            )
        )
        budget -= length

    return snippets


# ----------------------------------------------------------------------
# Prompt assembly
# ----------------------------------------------------------------------

PROMPT_FOCUS: Dict[PromptType, str] = {
    PromptType.CODE_PATTERN_CHECK: (
        "Focus on: implementation patterns, components, middleware, function calls."
    ),
    PromptType.DOCUMENTATION_CHECK: (
        "Focus on: document structure, required sections, completeness."
    ),
    PromptType.ARCHITECTURE_CHECK: (
        "Focus on: system design, monitoring, configuration, human oversight."
    ),
    PromptType.DATA_HANDLING_CHECK: (
        "Focus on: data flow, storage, consent, retention policies."
    ),
}

SYSTEM_PROMPT = (
    "You are a compliance auditor analyzing an AI project for EU AI Act "
    "compliance. You answer with a single JSON object and nothing else."
)


def format_snippets(snippets: List[CodeSnippet]) -> str:
    return "\n\n".join(
        f"--- {s.file}:{s.start_line}-{s.end_line} ---\n{s.content}"
        for s in snippets
    )


def build_prompt(
    prompt_type: PromptType,
    finding: Finding,
    snippets: List[CodeSnippet],
) -> str:
    location = f"{finding.file}:{finding.line}" if finding.file else "N/A"
    confidence = "N/A" if finding.confidence is None else f"{finding.confidence}%"

    return (
        f"Finding: {finding.check_id} - {finding.message}\n"
        f"Severity: {finding.severity.value}\n"
        f"Article: {finding.article_reference or 'N/A'}\n"
        f"Location: {location}\n"
        f"Current confidence: {confidence}\n"
        "\n"
        "Analyze the following code snippets and determine if this "
        "compliance requirement is met.\n"
        "\n"
        f"{format_snippets(snippets) or '(no relevant files found)'}\n"
        "\n"
        "Respond in JSON format:\n"
        "{\n"
        '  "verdict": "pass" | "fail" | "uncertain",\n'
        '  "confidence": 0-100,\n'
        '  "reasoning": "brief explanation",\n'
        '  "evidence": ["file:line - description"]\n'
        "}\n"
        "confidence is your certainty in the verdict.\n"
        "\n"
        f"{PROMPT_FOCUS[prompt_type]}"
    )
