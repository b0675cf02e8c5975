from __future__ import annotations

import re

from compliance_scanner.app.checks.base import (
    BaseCheck,
    docs_markdown,
    first_file_named,
    matches_any,
)
from compliance_scanner.app.checks.compliance_metadata import COMPLIANCE_CONFIG_DIR
from compliance_scanner.app.schemas.findings import Severity

COMPLIANCE_DOC_PATTERNS = [
    re.compile(r"^COMPLIANCE\.md$", re.IGNORECASE),
    re.compile(r"^COMPLIANCE[-_]?DOCUMENTATION", re.IGNORECASE),
    re.compile(r"^AI[-_]?COMPLIANCE", re.IGNORECASE),
    re.compile(r"^EU[-_]?AI[-_]?ACT", re.IGNORECASE),
]

COMPLIANCE_CONTENT_PATTERNS = [
    re.compile(r"\bcompliance\b.*\bdocumentation\b", re.IGNORECASE),
    re.compile(r"\beu ai act\b", re.IGNORECASE),
    re.compile(r"\brisk assessment\b", re.IGNORECASE),
    re.compile(r"\bcompliance report\b", re.IGNORECASE),
    re.compile(r"\bregulatory compliance\b", re.IGNORECASE),
    re.compile(r"\bai act\b.*\bcompliance\b", re.IGNORECASE),
]


class DocumentationCheck(BaseCheck):
    check_id = "documentation"
    obligation_id = "eu-ai-act-OBL-019"

    def run(self, context):
        doc = first_file_named(context.files, COMPLIANCE_DOC_PATTERNS)
        if doc is not None:
            return [self.passed(f"Compliance documentation found: {doc.relative_path}")]

        if any(
            f.relative_path.startswith(COMPLIANCE_CONFIG_DIR) for f in context.files
        ):
            return [
                self.passed(
                    f"{COMPLIANCE_CONFIG_DIR} directory found with compliance configuration"
                )
            ]

        for f in docs_markdown(context.files):
            if matches_any(COMPLIANCE_CONTENT_PATTERNS, f.content):
                return [self.passed(f"Compliance content found in docs: {f.relative_path}")]

        return [
            self.failed(
                "No compliance documentation found",
                severity=Severity.MEDIUM,
                fix=(
                    f"Create a COMPLIANCE.md or {COMPLIANCE_CONFIG_DIR} directory "
                    "documenting your AI Act compliance measures"
                ),
            )
        ]
