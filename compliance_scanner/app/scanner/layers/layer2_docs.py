"""
Document-structure analysis (L2).

For every validator whose document exists in the file set, compares the
document's Markdown headings against the validator's required sections
and reports a graded status. Documents that do not exist are not
reported here; their absence is an L1 concern.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from compliance_scanner.app.scanner.rules.document_validators import (
    DEFAULT_VALIDATORS,
    DocumentValidator,
)
from compliance_scanner.app.schemas.findings import (
    CheckVerdict,
    FailVerdict,
    PassVerdict,
    Severity,
)
from compliance_scanner.app.schemas.scan import FileInfo, ScanContext


class L2Status(str, Enum):
    VALID = "VALID"
    PARTIAL = "PARTIAL"
    EMPTY = "EMPTY"


class L2Result(BaseModel):
    obligation_id: str
    article: str
    document: str
    status: L2Status
    found_sections: Tuple[str, ...] = ()
    missing_sections: Tuple[str, ...] = ()
    total_required: int = 0
    matched_required: int = 0
    file: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


# ----------------------------------------------------------------------
# Heading parsing
# ----------------------------------------------------------------------

HEADING_RE = re.compile(r"^#{1,4}\s+(.+)$", re.MULTILINE)
_SEPARATORS_RE = re.compile(r"[\s_-]+")


def parse_markdown_headings(content: str) -> List[str]:
    return [m.group(1).strip() for m in HEADING_RE.finditer(content)]


def _normalize(text: str) -> str:
    return _SEPARATORS_RE.sub(" ", text.lower()).strip()


def heading_matches(heading: str, section_title: str) -> bool:
    return _normalize(section_title) in _normalize(heading)


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------


def validate_document(
    validator: DocumentValidator,
    content: str,
    *,
    file: Optional[str] = None,
) -> L2Result:
    headings = parse_markdown_headings(content)
    required = [s.title for s in validator.required_sections if s.required]

    if not content.strip() or not headings:
        return L2Result(
            obligation_id=validator.obligation_id,
            article=validator.article,
            document=validator.document,
            status=L2Status.EMPTY,
            missing_sections=tuple(required),
            total_required=len(required),
            file=file,
        )

    found = [t for t in required if any(heading_matches(h, t) for h in headings)]
    missing = [t for t in required if t not in found]

    if not missing:
        status = L2Status.VALID
    elif not found:
        status = L2Status.EMPTY
    else:
        status = L2Status.PARTIAL

    return L2Result(
        obligation_id=validator.obligation_id,
        article=validator.article,
        document=validator.document,
        status=status,
        found_sections=tuple(found),
        missing_sections=tuple(missing),
        total_required=len(required),
        matched_required=len(found),
        file=file,
    )


def _find_document(
    validator: DocumentValidator, files: Iterable[FileInfo]
) -> Optional[FileInfo]:
    patterns = {p.lower() for p in validator.file_patterns}
    for f in files:
        if f.filename.lower() in patterns:
            return f
    return None


def run_layer2(
    context: ScanContext,
    validators: Sequence[DocumentValidator] = DEFAULT_VALIDATORS,
) -> List[L2Result]:
    results: List[L2Result] = []
    for validator in validators:
        document = _find_document(validator, context.files)
        if document is None:
            continue
        results.append(
            validate_document(
                validator, document.content, file=document.relative_path
            )
        )
    return results


# ----------------------------------------------------------------------
# Projection
# ----------------------------------------------------------------------


def l2_verdict(result: L2Result) -> CheckVerdict:
    check_id = f"l2-{result.document}"

    if result.status == L2Status.VALID:
        return PassVerdict(
            check_id=check_id,
            message=(
                f"{result.article}: {result.document} - all "
                f"{result.total_required} required sections present"
            ),
            obligation_id=result.obligation_id,
            file=result.file,
        )

    missing = ", ".join(result.missing_sections)

    if result.status == L2Status.PARTIAL:
        return FailVerdict(
            check_id=check_id,
            message=(
                f"{result.article}: {result.document} - missing sections: {missing} "
                f"({result.matched_required}/{result.total_required})"
            ),
            severity=Severity.MEDIUM,
            obligation_id=result.obligation_id,
            article_reference=result.article,
            fix=f"Add missing sections to {result.document}: {missing}",
            file=result.file,
        )

    return FailVerdict(
        check_id=check_id,
        message=(
            f"{result.article}: {result.document} - document is empty or has no "
            f"required headings (0/{result.total_required} required sections)"
        ),
        severity=Severity.HIGH,
        obligation_id=result.obligation_id,
        article_reference=result.article,
        fix=f"Populate {result.document} with required sections: {missing}",
        file=result.file,
    )
