from __future__ import annotations

import re

from compliance_scanner.app.checks.base import BaseCheck, matches_any
from compliance_scanner.app.schemas.findings import Severity

LOGGING_PATTERNS = [
    re.compile(r"\bwinston\b"),
    re.compile(r"\bpino\b"),
    re.compile(r"\bbunyan\b"),
    re.compile(r"\blog4js\b"),
    re.compile(r"\bstructlog\b"),
    re.compile(r"\bstructured[- ]?log", re.IGNORECASE),
    re.compile(r"\bjsonl\b", re.IGNORECASE),
    re.compile(r"\baudit[- ]?log", re.IGNORECASE),
    re.compile(r"\binteraction[- ]?log", re.IGNORECASE),
]

LOG_FIELD_PATTERNS = [
    re.compile(r"\btimestamp\b"),
    re.compile(r"\bsession[_-]?id\b", re.IGNORECASE),
    re.compile(r"\binput\b.*\boutput\b", re.IGNORECASE),
    re.compile(r"\brequest[_-]?id\b", re.IGNORECASE),
    re.compile(r"\bmodel[_-]?response\b", re.IGNORECASE),
    re.compile(r"\blog[_-]?retention\b", re.IGNORECASE),
]

AI_API_PATTERNS = [
    re.compile(r"\bopenai\b", re.IGNORECASE),
    re.compile(r"\banthropic\b", re.IGNORECASE),
    re.compile(r"\bchat\.completions\b"),
    re.compile(r"\bgenerateText\b"),
    re.compile(r"\bstreamText\b"),
    re.compile(r"\bllm\b", re.IGNORECASE),
    re.compile(r"\.generate\("),
    re.compile(r"\.complete\("),
    re.compile(r"/api/chat\b"),
]


class InteractionLoggingCheck(BaseCheck):
    """AI interactions must be recorded with enough fields to be traceable."""

    check_id = "interaction-logging"
    obligation_id = "eu-ai-act-OBL-006"
    article = "Art. 12"

    def run(self, context):
        contents = [f.content for f in context.files]

        logging_found = any(matches_any(LOGGING_PATTERNS, c) for c in contents)
        fields_found = any(matches_any(LOG_FIELD_PATTERNS, c) for c in contents)
        ai_api_found = any(matches_any(AI_API_PATTERNS, c) for c in contents)

        if logging_found and fields_found:
            return [
                self.passed(
                    f"Structured logging with relevant fields found ({self.article})"
                )
            ]

        if ai_api_found and not logging_found:
            return [
                self.failed(
                    "AI API calls detected without structured interaction logging "
                    f"({self.article})",
                    severity=Severity.CRITICAL,
                    fix=(
                        "Add structured logging around AI interactions with "
                        "timestamp, session_id, input, and output fields"
                    ),
                )
            ]

        if ai_api_found:
            return [
                self.failed(
                    "Logging found but missing structured fields for AI interactions "
                    f"({self.article})",
                    severity=Severity.HIGH,
                    fix=(
                        "Ensure logs include timestamp, session_id, input, and "
                        "output fields for AI interactions"
                    ),
                )
            ]

        return [self.skipped("No AI API calls detected")]
