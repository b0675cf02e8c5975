"""
Scan input and output schemas.

ScanContext is the immutable file set every layer reads. ScanResult is
the final, immutable outcome of one scan.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from compliance_scanner.app.schemas.escalation import EscalationResult
from compliance_scanner.app.schemas.findings import Finding
from compliance_scanner.app.schemas.score import ScoreBreakdown, ScoreDiff


class FileInfo(BaseModel):
    path: str = Field(..., description="Absolute path on disk")
    relative_path: str = Field(..., description="POSIX path relative to the project root")
    extension: str = Field(..., description="Lower-case extension including the dot")
    content: str

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def filename(self) -> str:
        return self.relative_path.rsplit("/", 1)[-1]


class ScanContext(BaseModel):
    project_path: str
    files: Tuple[FileInfo, ...] = ()

    model_config = ConfigDict(frozen=True, extra="forbid")

    def file_contents(self) -> dict[str, str]:
        """Relative path -> content, in file-set order."""
        return {f.relative_path: f.content for f in self.files}


class ScanResult(BaseModel):
    """
    Final scan outcome.

    scanned_at and duration_ms are the only fields that differ between
    two scans of an unchanged file set with a deterministic oracle.
    """

    scan_id: str
    project_path: str
    findings: List[Finding] = Field(default_factory=list)
    score: ScoreBreakdown
    escalation_results: List[EscalationResult] = Field(default_factory=list)
    escalation_cost: float = 0.0
    score_diff: Optional[ScoreDiff] = None
    files_scanned: int = 0
    scanned_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    duration_ms: int = 0

    model_config = ConfigDict(frozen=True, extra="forbid")
