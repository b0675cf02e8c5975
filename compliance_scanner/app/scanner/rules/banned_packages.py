"""
Dependency reference data for configuration analysis (L3).

- BANNED_PACKAGES: packages whose presence indicates a prohibited
  practice (EU AI Act Art. 5)
- AI_SDK_PACKAGES: package name -> human-readable AI SDK name
- BIAS_TESTING_PACKAGES: fairness / bias testing libraries
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict


Ecosystem = Literal["npm", "pip", "cargo", "go", "any"]

_PROHIBITED_PENALTY = "€35M or 7% turnover"


class BannedPackage(BaseModel):
    name: str
    ecosystem: Ecosystem
    reason: str
    obligation_id: str
    article: str
    penalty: str = _PROHIBITED_PENALTY

    model_config = ConfigDict(frozen=True, extra="forbid")


BANNED_PACKAGES: Tuple[BannedPackage, ...] = (
    BannedPackage(
        name="deepface",
        ecosystem="pip",
        reason="Emotion recognition",
        obligation_id="eu-ai-act-OBL-002",
        article="Art. 5(1)(f)",
    ),
    BannedPackage(
        name="fer",
        ecosystem="pip",
        reason="Facial Emotion Recognition",
        obligation_id="eu-ai-act-OBL-002",
        article="Art. 5(1)(f)",
    ),
    BannedPackage(
        name="emotion-recognition",
        ecosystem="npm",
        reason="Emotion recognition",
        obligation_id="eu-ai-act-OBL-002",
        article="Art. 5(1)(f)",
    ),
    BannedPackage(
        name="face-api.js",
        ecosystem="npm",
        reason="Biometric identification",
        obligation_id="eu-ai-act-OBL-002",
        article="Art. 5(1)(a)",
    ),
    BannedPackage(
        name="social-credit-score",
        ecosystem="any",
        reason="Social scoring",
        obligation_id="eu-ai-act-OBL-002",
        article="Art. 5(1)(c)",
    ),
    BannedPackage(
        name="subliminal-ai",
        ecosystem="any",
        reason="Subliminal manipulation",
        obligation_id="eu-ai-act-OBL-002",
        article="Art. 5(1)(a)",
    ),
)


AI_SDK_PACKAGES: Dict[str, str] = {
    # npm
    "openai": "OpenAI",
    "@anthropic-ai/sdk": "Anthropic",
    "anthropic": "Anthropic",
    "@google/generative-ai": "Google AI",
    "@google-cloud/aiplatform": "Google Vertex AI",
    "cohere-ai": "Cohere",
    "@mistralai/mistralai": "Mistral",
    "ai": "Vercel AI SDK",
    "@ai-sdk/openai": "Vercel AI SDK (OpenAI)",
    "@ai-sdk/anthropic": "Vercel AI SDK (Anthropic)",
    "langchain": "LangChain",
    "llamaindex": "LlamaIndex",
    "replicate": "Replicate",
    "huggingface": "Hugging Face",
    "@huggingface/inference": "Hugging Face Inference",
    # pip
    "google-generativeai": "Google AI",
    "cohere": "Cohere",
    "mistralai": "Mistral",
    "llama-index": "LlamaIndex",
    "transformers": "Hugging Face Transformers",
    "torch": "PyTorch",
    "tensorflow": "TensorFlow",
    # cargo
    "async-openai": "OpenAI (Rust)",
    "llm": "LLM (Rust)",
    # go
    "github.com/sashabaranov/go-openai": "OpenAI (Go)",
    "github.com/anthropics/anthropic-sdk-go": "Anthropic (Go)",
}


BIAS_TESTING_PACKAGES: FrozenSet[str] = frozenset(
    {
        "fairlearn",
        "aif360",
        "aequitas",
        "responsibleai",
        "@responsible-ai/fairness",
    }
)


def find_banned_package(name: str) -> Optional[BannedPackage]:
    lowered = name.lower()
    for banned in BANNED_PACKAGES:
        if banned.name.lower() == lowered:
            return banned
    return None


def ai_sdk_name(name: str) -> Optional[str]:
    return AI_SDK_PACKAGES.get(name)
