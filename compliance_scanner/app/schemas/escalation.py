"""
Escalation (L5) schemas.

EscalationResult objects are NON-AUTHORITATIVE until applied. A result
with verdict "uncertain" signals oracle failure or genuine indecision
and MUST NOT change the finding it refers to.
"""

from enum import Enum
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


class PromptType(str, Enum):
    CODE_PATTERN_CHECK = "code_pattern_check"
    DOCUMENTATION_CHECK = "documentation_check"
    ARCHITECTURE_CHECK = "architecture_check"
    DATA_HANDLING_CHECK = "data_handling_check"


EscalationVerdict = Literal["pass", "fail", "uncertain"]


class CodeSnippet(BaseModel):
    """
    A region of a project file quoted into an oracle prompt.
    """

    file: str
    start_line: int = Field(..., ge=1)
    end_line: int = Field(..., ge=1)
    content: str
    relevance: float = Field(..., ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class OracleResponse(BaseModel):
    """
    Raw oracle reply plus token usage, as returned by a JudgmentOracle.
    """

    text: str
    input_tokens: int = Field(0, ge=0)
    output_tokens: int = Field(0, ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class OracleJudgment(BaseModel):
    """
    Structured judgment the oracle is instructed to answer with.

    Validation failures on this model are treated as oracle failures.
    """

    verdict: EscalationVerdict
    confidence: int = Field(..., ge=0, le=100)
    reasoning: str
    evidence: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore")


class EscalationResult(BaseModel):
    """
    Outcome of escalating exactly one finding.
    """

    finding_id: str
    original_confidence: int = Field(..., ge=0, le=100)
    new_confidence: int = Field(..., ge=0, le=100)
    verdict: EscalationVerdict
    reasoning: str
    evidence: List[str] = Field(default_factory=list)
    prompt_type: PromptType
    cost: float = Field(0.0, ge=0.0)

    model_config = ConfigDict(frozen=True, extra="forbid")
