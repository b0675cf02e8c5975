from __future__ import annotations

from typing import Dict, Optional

from compliance_scanner.app.scanner.assembler import stable_finding_id
from compliance_scanner.app.schemas.confidence import ConfidenceLevel
from compliance_scanner.app.schemas.findings import Finding, Severity, VerdictType
from compliance_scanner.app.schemas.scan import FileInfo, ScanContext
from compliance_scanner.app.scanner.confidence import ConfidenceModel


def make_file(relative_path: str, content: str = "") -> FileInfo:
    name = relative_path.rsplit("/", 1)[-1]
    extension = "." + name.rsplit(".", 1)[-1].lower() if "." in name.lstrip(".") else ""
    return FileInfo(
        path=f"/project/{relative_path}",
        relative_path=relative_path,
        extension=extension,
        content=content,
    )


def make_context(files: Dict[str, str]) -> ScanContext:
    return ScanContext(
        project_path="/project",
        files=tuple(make_file(path, content) for path, content in files.items()),
    )


def make_finding(
    check_id: str = "test-check",
    *,
    type: VerdictType = VerdictType.FAIL,
    severity: Severity = Severity.HIGH,
    confidence: Optional[int] = 55,
    message: str = "Test finding",
    file: Optional[str] = None,
    line: Optional[int] = None,
    obligation_id: Optional[str] = None,
) -> Finding:
    level: Optional[ConfidenceLevel] = None
    if confidence is not None:
        level = ConfidenceModel().level_for(confidence)
    return Finding(
        finding_id=stable_finding_id(
            check_id=check_id, file=file, line=line, message=message
        ),
        check_id=check_id,
        type=type,
        message=message,
        severity=severity,
        file=file,
        line=line,
        obligation_id=obligation_id,
        confidence=confidence,
        confidence_level=level,
    )
