from __future__ import annotations

import re

from compliance_scanner.app.checks.base import BaseCheck, matches_any
from compliance_scanner.app.schemas.findings import Severity

MARKING_PATTERNS = [
    re.compile(r"\bc2pa\b", re.IGNORECASE),
    re.compile(r"\bcontent-credentials\b", re.IGNORECASE),
    re.compile(r"\bcontentcredentials\b", re.IGNORECASE),
    re.compile(r"\bwatermark", re.IGNORECASE),
    re.compile(r"\bai-generated\b", re.IGNORECASE),
    re.compile(r"X-AI-Generated", re.IGNORECASE),
    re.compile(r"\bsynthetic[- ]?media\b", re.IGNORECASE),
    re.compile(r"\bdigital[- ]?provenance\b", re.IGNORECASE),
]

CONTENT_GENERATION_PATTERNS = [
    re.compile(r"\bgenerateImage\b"),
    re.compile(r"\bgenerateVideo\b"),
    re.compile(r"\bgenerateAudio\b"),
    re.compile(r"\btext-to-image\b", re.IGNORECASE),
    re.compile(r"\btext-to-speech\b", re.IGNORECASE),
    re.compile(r"\btext-to-video\b", re.IGNORECASE),
    re.compile(r"\bimage[- ]?generation\b", re.IGNORECASE),
    re.compile(r"\bcontent[- ]?generation\b", re.IGNORECASE),
    re.compile(r"\bDALL[-.]?E\b", re.IGNORECASE),
    re.compile(r"\bstable[- ]?diffusion\b", re.IGNORECASE),
    re.compile(r"\bmidjourney\b", re.IGNORECASE),
]


class ContentMarkingCheck(BaseCheck):
    """Synthetic content must be marked in a machine-readable way."""

    check_id = "content-marking"
    obligation_id = "eu-ai-act-OBL-016"
    article = "Art. 50(2)"

    def run(self, context):
        if any(matches_any(MARKING_PATTERNS, f.content) for f in context.files):
            return [
                self.passed(
                    f"Content marking/provenance mechanisms found ({self.article})"
                )
            ]

        if any(
            matches_any(CONTENT_GENERATION_PATTERNS, f.content)
            for f in context.files
        ):
            return [
                self.failed(
                    "AI content generation detected without marking/watermarking "
                    f"({self.article})",
                    severity=Severity.HIGH,
                    fix=(
                        "Implement C2PA content credentials or watermarking "
                        "for AI-generated content"
                    ),
                )
            ]

        return [self.skipped("No AI content generation detected")]
