from __future__ import annotations

import re

from compliance_scanner.app.checks.base import BaseCheck, matches_any
from compliance_scanner.app.schemas.findings import Severity

WELL_KNOWN_PATH = ".well-known/ai-compliance.json"
COMPLIANCE_CONFIG_DIR = ".complior/"

COMPLIANCE_META_PATTERNS = [
    re.compile(r"\bai[-_]?compliance\b", re.IGNORECASE),
    re.compile(r"\bcomplior\b", re.IGNORECASE),
    re.compile(r"\beu[-_]?ai[-_]?act\b", re.IGNORECASE),
    re.compile(r"\bcompliance[-_]?metadata\b", re.IGNORECASE),
]


class ComplianceMetadataCheck(BaseCheck):
    check_id = "compliance-metadata"
    obligation_id = "eu-ai-act-OBL-005"

    def run(self, context):
        if any(f.relative_path == WELL_KNOWN_PATH for f in context.files):
            return [self.passed(f"Compliance metadata found at {WELL_KNOWN_PATH}")]

        if any(
            f.relative_path.startswith(COMPLIANCE_CONFIG_DIR) for f in context.files
        ):
            return [self.passed(f"{COMPLIANCE_CONFIG_DIR} configuration directory found")]

        for f in context.files:
            if f.extension == ".html" and matches_any(
                COMPLIANCE_META_PATTERNS, f.content
            ):
                return [
                    self.passed(f"Compliance metadata found in HTML: {f.relative_path}")
                ]

        return [
            self.failed(
                "No compliance metadata found",
                severity=Severity.LOW,
                fix=(
                    f"Add a {WELL_KNOWN_PATH} or {COMPLIANCE_CONFIG_DIR} directory "
                    "with compliance configuration"
                ),
            )
        ]
