from __future__ import annotations

import re

from compliance_scanner.app.checks.base import (
    BaseCheck,
    docs_markdown,
    first_file_named,
    matches_any,
)
from compliance_scanner.app.schemas.findings import Severity

POLICY_FILE_PATTERNS = [
    re.compile(r"^AI[-_]?LITERACY\.md$", re.IGNORECASE),
    re.compile(r"^AI[-_]?LITERACY[-_]?POLICY\.md$", re.IGNORECASE),
    re.compile(r"^ai[-_]?training[-_]?policy\.", re.IGNORECASE),
    re.compile(r"^AI[-_]?COMPETENCY", re.IGNORECASE),
]

LITERACY_CONTENT_PATTERNS = [
    re.compile(r"\bai literacy\b", re.IGNORECASE),
    re.compile(r"\bai training\b.*\bpolicy\b", re.IGNORECASE),
    re.compile(r"\bai competency\b", re.IGNORECASE),
    re.compile(r"\bai awareness\b", re.IGNORECASE),
    re.compile(r"\bstaff training\b.*\bai\b", re.IGNORECASE),
    re.compile(r"\bai education\b", re.IGNORECASE),
]

TRAINING_RECORDS = re.compile(r"training[-_]?records", re.IGNORECASE)


class AiLiteracyCheck(BaseCheck):
    check_id = "ai-literacy"
    obligation_id = "eu-ai-act-OBL-001"
    article = "Art. 4"

    def run(self, context):
        policy = first_file_named(context.files, POLICY_FILE_PATTERNS)
        if policy is not None:
            return [
                self.passed(
                    f"AI literacy policy file found: {policy.relative_path} ({self.article})"
                )
            ]

        if any(TRAINING_RECORDS.search(f.relative_path) for f in context.files):
            return [
                self.passed(f"AI training records directory found ({self.article})")
            ]

        for doc in docs_markdown(context.files):
            if matches_any(LITERACY_CONTENT_PATTERNS, doc.content):
                return [
                    self.passed(
                        f"AI literacy content found in docs: {doc.relative_path} "
                        f"({self.article})"
                    )
                ]

        return [
            self.failed(
                f"No AI literacy policy or training documentation found ({self.article})",
                severity=Severity.MEDIUM,
                fix=(
                    "Create an AI-LITERACY.md policy document covering staff "
                    "AI competency requirements"
                ),
            )
        ]
