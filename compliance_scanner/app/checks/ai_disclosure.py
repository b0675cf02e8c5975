from __future__ import annotations

import re

from compliance_scanner.app.checks.base import BaseCheck, matches_any
from compliance_scanner.app.schemas.findings import Severity

DISCLOSURE_PATTERNS = [
    re.compile(r"\bAI[- ]?powered\b", re.IGNORECASE),
    re.compile(r"\bartificial intelligence\b", re.IGNORECASE),
    re.compile(r"\bautomated system\b", re.IGNORECASE),
    re.compile(r"\bAI[- ]?generated\b", re.IGNORECASE),
    re.compile(r"\bpowered by AI\b", re.IGNORECASE),
    re.compile(r"\bAI disclosure\b", re.IGNORECASE),
    re.compile(r"\btransparency notice\b", re.IGNORECASE),
]

CHAT_INDICATORS = [
    re.compile(r"\bchatbot\b", re.IGNORECASE),
    re.compile(r"\bchat[- ]?widget\b", re.IGNORECASE),
    re.compile(r"\bconversational[- ]?ai\b", re.IGNORECASE),
    re.compile(r"\bvirtual[- ]?assistant\b", re.IGNORECASE),
    re.compile(r"\bai[- ]?assistant\b", re.IGNORECASE),
    re.compile(r"\bchat[- ]?endpoint\b", re.IGNORECASE),
    re.compile(r"/api/chat\b", re.IGNORECASE),
    re.compile(r"\bmessage.*bot\b", re.IGNORECASE),
]

UI_EXTENSIONS = {".tsx", ".jsx", ".html", ".ts", ".js"}


class AiDisclosureCheck(BaseCheck):
    """Users must be told they are interacting with an AI system."""

    check_id = "ai-disclosure"
    obligation_id = "eu-ai-act-OBL-015"
    article = "Art. 50(1)"

    def run(self, context):
        ui_files = [f for f in context.files if f.extension in UI_EXTENSIONS]

        if any(matches_any(DISCLOSURE_PATTERNS, f.content) for f in ui_files):
            return [
                self.passed(f"AI disclosure patterns found in UI code ({self.article})")
            ]

        if any(matches_any(CHAT_INDICATORS, f.content) for f in ui_files):
            return [
                self.failed(
                    f"Chat/bot code detected without AI disclosure notice ({self.article})",
                    severity=Severity.HIGH,
                    fix="Add a visible disclosure that users are interacting with an AI system",
                )
            ]

        return [self.skipped("No chat/bot or AI interaction code detected")]
