"""
Document validators for document-structure analysis (L2).

Each validator names a compliance document, the file names it may be
stored under, and the headings it must contain.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ValidatorSection(BaseModel):
    title: str
    required: bool = True

    model_config = ConfigDict(frozen=True, extra="forbid")


class DocumentValidator(BaseModel):
    document: str = Field(..., min_length=1)
    obligation: str = Field(..., description="Short obligation id, e.g. 'OBL-001'")
    article: str
    file_patterns: Tuple[str, ...] = Field(..., min_length=1)
    required_sections: Tuple[ValidatorSection, ...] = ()

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def obligation_id(self) -> str:
        return f"eu-ai-act-{self.obligation}"


def _sections(*titles: str, optional: Tuple[str, ...] = ()) -> Tuple[ValidatorSection, ...]:
    return tuple(ValidatorSection(title=t) for t in titles) + tuple(
        ValidatorSection(title=t, required=False) for t in optional
    )


DEFAULT_VALIDATORS: Tuple[DocumentValidator, ...] = (
    DocumentValidator(
        document="ai-literacy",
        obligation="OBL-001",
        article="Art. 4",
        file_patterns=("AI-LITERACY.md", "AI-LITERACY-POLICY.md"),
        required_sections=_sections(
            "Training Program",
            "Training Levels",
            "Assessment Methods",
            optional=("Record Keeping",),
        ),
    ),
    DocumentValidator(
        document="art5-screening",
        obligation="OBL-002",
        article="Art. 5",
        file_patterns=("ART5-SCREENING.md",),
        required_sections=_sections(
            "Prohibited Practices", "Screening Results", "Mitigations"
        ),
    ),
    DocumentValidator(
        document="fria",
        obligation="OBL-013",
        article="Art. 27",
        file_patterns=("FRIA.md",),
        required_sections=_sections(
            "Risk Assessment", "Impact Analysis", "Mitigation Measures"
        ),
    ),
    DocumentValidator(
        document="worker-notification",
        obligation="OBL-012",
        article="Art. 26(7)",
        file_patterns=("WORKER-NOTIFICATION.md",),
        required_sections=_sections(
            "Notification Scope", "Affected Workers", "Timeline"
        ),
    ),
    DocumentValidator(
        document="tech-documentation",
        obligation="OBL-005",
        article="Art. 11",
        file_patterns=("TECH-DOCUMENTATION.md", "TECHNICAL-DOCUMENTATION.md"),
        required_sections=_sections(
            "System Description", "Architecture", "Data Sources"
        ),
    ),
    DocumentValidator(
        document="incident-report",
        obligation="OBL-021",
        article="Art. 73",
        file_patterns=("INCIDENT-REPORT.md",),
        required_sections=_sections(
            "Incident Description", "Root Cause", "Corrective Actions"
        ),
    ),
    DocumentValidator(
        document="declaration-conformity",
        obligation="OBL-019",
        article="Art. 47",
        file_patterns=("DECLARATION-OF-CONFORMITY.md",),
        required_sections=_sections(
            "Conformity Statement", "Standards Applied", "Evidence"
        ),
    ),
    DocumentValidator(
        document="monitoring-policy",
        obligation="OBL-011",
        article="Art. 26",
        file_patterns=("MONITORING-POLICY.md",),
        required_sections=_sections(
            "Monitoring Scope", "Frequency", "Escalation Procedures"
        ),
    ),
)


_VALIDATOR_LIST = TypeAdapter(List[DocumentValidator])


def load_validators(path: Path) -> Tuple[DocumentValidator, ...]:
    """
    Load validators from a JSON array of validator objects.

    Raises pydantic.ValidationError on malformed content.
    """
    return tuple(_VALIDATOR_LIST.validate_json(path.read_bytes()))
