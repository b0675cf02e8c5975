from __future__ import annotations

import re

from compliance_scanner.app.checks.base import (
    BaseCheck,
    first_file_named,
    matches_any,
)
from compliance_scanner.app.schemas.findings import Severity

GPAI_DOC_PATTERNS = [
    re.compile(r"^MODEL[-_]?CARD\.md$", re.IGNORECASE),
    re.compile(r"^model[-_]?card\.", re.IGNORECASE),
    re.compile(r"^GPAI[-_]?DOCUMENTATION", re.IGNORECASE),
    re.compile(r"^TRAINING[-_]?DATA[-_]?DOCUMENTATION", re.IGNORECASE),
    re.compile(r"^MODEL[-_]?DOCUMENTATION", re.IGNORECASE),
]

GPAI_CONTENT_PATTERNS = [
    re.compile(r"\bmodel card\b", re.IGNORECASE),
    re.compile(r"\btraining data\b.*\bdocumentation\b", re.IGNORECASE),
    re.compile(r"\bgpai\b", re.IGNORECASE),
    re.compile(r"\bgeneral[-_ ]?purpose ai\b", re.IGNORECASE),
    re.compile(r"\bfoundation model\b", re.IGNORECASE),
    re.compile(r"\bmodel transparency\b", re.IGNORECASE),
]

GPAI_USAGE_PATTERNS = [
    re.compile(r"\bfine[-_]?tun", re.IGNORECASE),
    re.compile(r"\bmodel training\b", re.IGNORECASE),
    re.compile(r"\btraining pipeline\b", re.IGNORECASE),
    re.compile(r"\bmodel weights\b", re.IGNORECASE),
    re.compile(r"\bpre[-_]?train", re.IGNORECASE),
    re.compile(r"\btransformers\b"),
    re.compile(r"\btorch\b"),
    re.compile(r"\btensorflow\b", re.IGNORECASE),
]


class GpaiTransparencyCheck(BaseCheck):
    """Projects that train or fine-tune models must document them."""

    check_id = "gpai-transparency"
    obligation_id = "eu-ai-act-OBL-022"
    article = "Art. 51-53"

    def run(self, context):
        doc = first_file_named(context.files, GPAI_DOC_PATTERNS)
        if doc is not None:
            return [
                self.passed(
                    f"GPAI documentation found: {doc.relative_path} ({self.article})"
                )
            ]

        for f in context.files:
            if f.extension == ".md" and matches_any(GPAI_CONTENT_PATTERNS, f.content):
                return [
                    self.passed(
                        f"GPAI transparency content found in: {f.relative_path} "
                        f"({self.article})"
                    )
                ]

        if any(matches_any(GPAI_USAGE_PATTERNS, f.content) for f in context.files):
            return [
                self.failed(
                    "GPAI/model training code detected without transparency "
                    f"documentation ({self.article})",
                    severity=Severity.HIGH,
                    fix=(
                        "Create a MODEL_CARD.md with model capabilities, limitations, "
                        "training data, and intended use"
                    ),
                )
            ]

        return [self.skipped("No GPAI/model training usage detected")]
