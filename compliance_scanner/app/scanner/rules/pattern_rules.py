"""
Source-code pattern rules for pattern analysis (L4).

Negative rules flag code that should not appear unguarded (direct
provider SDK calls). Positive rules detect compliance mechanisms whose
absence is itself a signal.

Specificity:
- "narrow" patterns name a concrete API or identifier
- "broad" patterns are heuristic keyword matches and yield lower
  confidence when they fire
"""

from __future__ import annotations

import re
from enum import Enum
from typing import FrozenSet, Literal, Tuple

from pydantic import BaseModel, ConfigDict


class PatternCategory(str, Enum):
    BARE_LLM = "bare-llm"
    DISCLOSURE = "disclosure"
    HUMAN_OVERSIGHT = "human-oversight"
    KILL_SWITCH = "kill-switch"
    CONTENT_MARKING = "content-marking"
    LOGGING = "logging"


PatternType = Literal["positive", "negative"]
Specificity = Literal["narrow", "broad"]


class PatternRule(BaseModel):
    category: PatternCategory
    pattern_type: PatternType
    regex: re.Pattern
    label: str
    obligation_id: str
    article: str
    recommendation: str
    specificity: Specificity = "narrow"

    model_config = ConfigDict(frozen=True, extra="forbid")


_BARE_LLM_FIX = "Route LLM calls through a wrapper that adds AI disclosure and logging"

PATTERN_RULES: Tuple[PatternRule, ...] = (
    # --- Bare LLM calls (negative: presence is bad) ---
    PatternRule(
        category=PatternCategory.BARE_LLM,
        pattern_type="negative",
        regex=re.compile(r"openai\.chat\.completions\.create\("),
        label="OpenAI bare API call",
        obligation_id="eu-ai-act-OBL-015",
        article="Art. 50(1)",
        recommendation=_BARE_LLM_FIX,
    ),
    PatternRule(
        category=PatternCategory.BARE_LLM,
        pattern_type="negative",
        regex=re.compile(r"anthropic\.messages\.create\("),
        label="Anthropic bare API call",
        obligation_id="eu-ai-act-OBL-015",
        article="Art. 50(1)",
        recommendation=_BARE_LLM_FIX,
    ),
    PatternRule(
        category=PatternCategory.BARE_LLM,
        pattern_type="negative",
        regex=re.compile(r"google\.generativeai", re.IGNORECASE),
        label="Google Generative AI usage",
        obligation_id="eu-ai-act-OBL-015",
        article="Art. 50(1)",
        recommendation=_BARE_LLM_FIX,
        specificity="broad",
    ),
    PatternRule(
        category=PatternCategory.BARE_LLM,
        pattern_type="negative",
        regex=re.compile(r"cohere\.chat\("),
        label="Cohere bare API call",
        obligation_id="eu-ai-act-OBL-015",
        article="Art. 50(1)",
        recommendation=_BARE_LLM_FIX,
    ),
    PatternRule(
        category=PatternCategory.BARE_LLM,
        pattern_type="negative",
        regex=re.compile(r"mistral\.chat\.complete\("),
        label="Mistral bare API call",
        obligation_id="eu-ai-act-OBL-015",
        article="Art. 50(1)",
        recommendation=_BARE_LLM_FIX,
    ),
    # --- Compliance mechanisms (positive: presence is good) ---
    PatternRule(
        category=PatternCategory.DISCLOSURE,
        pattern_type="positive",
        regex=re.compile(r"AIDisclosure|ai-disclosure|ai_disclosure", re.IGNORECASE),
        label="AI disclosure component/attribute",
        obligation_id="eu-ai-act-OBL-015",
        article="Art. 50(1)",
        recommendation="Add AI disclosure notice to user-facing interfaces",
    ),
    PatternRule(
        category=PatternCategory.HUMAN_OVERSIGHT,
        pattern_type="positive",
        regex=re.compile(
            r"humanReview|human_review|manual_approval|human[_-]?oversight"
            r"|require[_-]?approval",
            re.IGNORECASE,
        ),
        label="Human oversight mechanism",
        obligation_id="eu-ai-act-OBL-010",
        article="Art. 14",
        recommendation="Implement human oversight for AI decisions (Art. 14)",
    ),
    PatternRule(
        category=PatternCategory.KILL_SWITCH,
        pattern_type="positive",
        regex=re.compile(
            r"AI_ENABLED|DISABLE_AI|ai\.enabled|killSwitch|kill[_-]?switch"
            r"|feature[_-]?flag.*ai",
            re.IGNORECASE,
        ),
        label="AI kill switch / feature flag",
        obligation_id="eu-ai-act-OBL-010",
        article="Art. 14",
        recommendation="Add an AI kill switch or feature flag to disable AI functionality",
        specificity="broad",
    ),
    PatternRule(
        category=PatternCategory.CONTENT_MARKING,
        pattern_type="positive",
        regex=re.compile(
            r"ai-generated|generated-by-ai|AIGenerated|ai_generated|c2pa"
            r"|content[_-]?credentials",
            re.IGNORECASE,
        ),
        label="AI content marking / watermarking",
        obligation_id="eu-ai-act-OBL-016",
        article="Art. 50(2)",
        recommendation="Mark AI-generated content with appropriate labels or C2PA metadata",
        specificity="broad",
    ),
    PatternRule(
        category=PatternCategory.LOGGING,
        pattern_type="positive",
        regex=re.compile(
            r"logAiCall|aiLogger|compliance\.log|auditLog|audit[_-]?log|ai[_-]?audit",
            re.IGNORECASE,
        ),
        label="AI interaction logging",
        obligation_id="eu-ai-act-OBL-006",
        article="Art. 12",
        recommendation="Add structured logging for AI interactions (Art. 12)",
        specificity="broad",
    ),
)


POSITIVE_CATEGORIES: Tuple[PatternCategory, ...] = (
    PatternCategory.DISCLOSURE,
    PatternCategory.HUMAN_OVERSIGHT,
    PatternCategory.KILL_SWITCH,
    PatternCategory.CONTENT_MARKING,
    PatternCategory.LOGGING,
)

SCANNABLE_EXTENSIONS: FrozenSet[str] = frozenset(
    {".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".vue", ".html"}
)

IGNORED_DIRS: FrozenSet[str] = frozenset(
    {
        "node_modules",
        "dist",
        ".git",
        "vendor",
        "build",
        "__pycache__",
        ".next",
        "coverage",
        ".cache",
        ".output",
    }
)
