"""
Oracle call pricing (USD per 1M tokens).

Pricing is used ONLY for cost accounting on EscalationResult and never
influences which findings are escalated.
"""

from typing import Callable, Dict

from pydantic import BaseModel, ConfigDict, Field


class ModelPricing(BaseModel):
    input: float = Field(..., ge=0.0)
    output: float = Field(..., ge=0.0)

    model_config = ConfigDict(frozen=True, extra="forbid")


PRICING: Dict[str, ModelPricing] = {
    # Anthropic
    "claude-opus-4": ModelPricing(input=15.0, output=75.0),
    "claude-sonnet-4": ModelPricing(input=3.0, output=15.0),
    "claude-haiku-4": ModelPricing(input=0.80, output=4.0),
    # OpenAI
    "gpt-4o": ModelPricing(input=2.50, output=10.0),
    "gpt-4o-mini": ModelPricing(input=0.15, output=0.60),
    "o1": ModelPricing(input=15.0, output=60.0),
    # Google
    "gemini-2.0-flash": ModelPricing(input=0.10, output=0.40),
    "gemini-2.0-pro": ModelPricing(input=1.25, output=5.0),
    # Mistral
    "mistral-large": ModelPricing(input=2.0, output=6.0),
    "mistral-small": ModelPricing(input=0.20, output=0.60),
}


PricingFunction = Callable[[str, int, int], float]


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Unknown models cost 0."""
    pricing = PRICING.get(model)
    if pricing is None:
        return 0.0
    return (input_tokens * pricing.input + output_tokens * pricing.output) / 1_000_000
