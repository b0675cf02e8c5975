"""
Check Unit interface (L1).

A Check Unit is a stateless rule evaluated against the immutable project
file set. It MUST NOT perform I/O and MUST NOT keep state between runs.

An exception raised by a unit is treated as a rule bug: the layer runner
converts it into a Skip verdict, so one broken rule cannot abort a scan.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Protocol, Sequence

from compliance_scanner.app.schemas.findings import (
    CheckVerdict,
    FailVerdict,
    PassVerdict,
    Severity,
    SkipVerdict,
)
from compliance_scanner.app.schemas.scan import FileInfo, ScanContext


class CheckUnit(Protocol):
    check_id: str

    def run(self, context: ScanContext) -> List[CheckVerdict]:
        ...


class BaseCheck:
    check_id = ""
    obligation_id: Optional[str] = None
    article: Optional[str] = None

    def run(self, context: ScanContext) -> List[CheckVerdict]:
        raise NotImplementedError

    def passed(self, message: str) -> PassVerdict:
        return PassVerdict(
            check_id=self.check_id,
            message=message,
            obligation_id=self.obligation_id,
        )

    def failed(
        self,
        message: str,
        *,
        severity: Severity,
        fix: Optional[str] = None,
    ) -> FailVerdict:
        return FailVerdict(
            check_id=self.check_id,
            message=message,
            severity=severity,
            obligation_id=self.obligation_id,
            article_reference=self.article,
            fix=fix,
        )

    def skipped(self, reason: str) -> SkipVerdict:
        return SkipVerdict(check_id=self.check_id, reason=reason)


# ----------------------------------------------------------------------
# Shared matching helpers
# ----------------------------------------------------------------------


def matches_any(patterns: Sequence[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def first_file_named(
    files: Iterable[FileInfo], patterns: Sequence[re.Pattern]
) -> Optional[FileInfo]:
    for f in files:
        if matches_any(patterns, f.filename):
            return f
    return None


def docs_markdown(files: Iterable[FileInfo]) -> List[FileInfo]:
    return [
        f for f in files
        if f.relative_path.startswith("docs/") and f.extension == ".md"
    ]
