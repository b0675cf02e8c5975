"""
Judgment oracle transports.

A JudgmentOracle accepts a prompt and returns the raw response text plus
token usage. It is NON-AUTHORITATIVE: parsing, validation and failure
normalization belong to the EscalationOracle, so transports are free to
raise on any error.

Transient transport errors (connection, rate limit, timeout) are retried
with exponential backoff. Everything else propagates on the first
attempt.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from azure.identity import (
    DefaultAzureCredential,
    get_bearer_token_provider,
)
from openai import (
    APIConnectionError,
    APITimeoutError,
    AsyncAzureOpenAI,
    AsyncOpenAI,
    RateLimitError,
)
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from compliance_scanner.app.config import ScannerConfig
from compliance_scanner.app.escalation.prompts import SYSTEM_PROMPT
from compliance_scanner.app.schemas.escalation import OracleResponse

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Oracle Interface
# ----------------------------------------------------------------------


class JudgmentOracle(Protocol):
    model_id: str

    async def judge(self, prompt: str) -> OracleResponse:
        ...


# ----------------------------------------------------------------------
# Chat Completions transport (shared by OpenAI and Azure OpenAI)
# ----------------------------------------------------------------------


class _ChatCompletionsOracle:
    RETRYABLE_ERRORS = (APIConnectionError, APITimeoutError, RateLimitError)
    RETRY_WAIT = wait_exponential(min=1, max=10)

    def __init__(
        self,
        *,
        client: Any,
        model: str,
        max_retries: int = 2,
        system_text: str = SYSTEM_PROMPT,
    ) -> None:
        self.model_id = model
        self._client = client
        self._max_retries = max_retries
        self._system_text = system_text

    async def _complete(self, prompt: str) -> Any:
        return await self._client.chat.completions.create(
            model=self.model_id,
            messages=[
                {"role": "system", "content": self._system_text},
                {"role": "user", "content": prompt},
            ],
            temperature=0,
            response_format={"type": "json_object"},
        )

    async def judge(self, prompt: str) -> OracleResponse:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=self.RETRY_WAIT,
            retry=retry_if_exception_type(self.RETRYABLE_ERRORS),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "Retrying oracle call to %s (attempt %d)",
                        self.model_id,
                        attempt.retry_state.attempt_number,
                    )
                response = await self._complete(prompt)

        text = response.choices[0].message.content or ""

        usage = getattr(response, "usage", None)
        input_tokens = getattr(usage, "prompt_tokens", None) or 0
        output_tokens = getattr(usage, "completion_tokens", None) or 0

        return OracleResponse(
            text=text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )


class OpenAIJudgmentOracle(_ChatCompletionsOracle):
    """
    OpenAI API implementation of JudgmentOracle (API key auth).

    The key is read by the SDK from OPENAI_API_KEY unless given.
    """

    def __init__(
        self,
        *,
        model: str,
        api_key: Optional[str] = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
    ) -> None:
        client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            max_retries=0,
        )
        super().__init__(client=client, model=model, max_retries=max_retries)


class AzureOpenAIJudgmentOracle(_ChatCompletionsOracle):
    """
    Azure OpenAI implementation of JudgmentOracle (Entra ID).

    model is the Azure deployment name.
    """

    def __init__(
        self,
        *,
        endpoint: str,
        deployment: str,
        api_version: str,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
    ) -> None:
        credential = DefaultAzureCredential()
        token_provider = get_bearer_token_provider(
            credential,
            "https://cognitiveservices.azure.com/.default",
        )

        client = AsyncAzureOpenAI(
            azure_endpoint=endpoint,
            azure_ad_token_provider=token_provider,
            api_version=api_version,
            timeout=timeout_seconds,
            max_retries=0,
        )
        super().__init__(client=client, model=deployment, max_retries=max_retries)


# ----------------------------------------------------------------------
# Construction
# ----------------------------------------------------------------------


def build_oracle(config: ScannerConfig) -> Optional[JudgmentOracle]:
    """
    Construct the configured oracle, or None when escalation is disabled.
    """
    if not config.ENABLE_ESCALATION:
        return None

    if config.ESCALATION_PROVIDER == "azure_openai":
        return AzureOpenAIJudgmentOracle(
            endpoint=config.AZURE_OPENAI_ENDPOINT,
            deployment=config.ESCALATION_MODEL,
            api_version=config.AZURE_OPENAI_API_VERSION,
            timeout_seconds=config.ESCALATION_TIMEOUT_SECONDS,
            max_retries=config.ESCALATION_MAX_RETRIES,
        )

    if config.ESCALATION_PROVIDER == "openai":
        return OpenAIJudgmentOracle(
            model=config.ESCALATION_MODEL,
            timeout_seconds=config.ESCALATION_TIMEOUT_SECONDS,
            max_retries=config.ESCALATION_MAX_RETRIES,
        )

    return None
