"""
Runtime configuration for the compliance scanner.

This module centralizes environment-driven configuration, feature flags,
resource limits and external service settings. It defines whether the
escalation oracle is enabled, how it is reached, and how the scoring
policy is sourced.

Configuration is read-only at runtime. Deterministic layers (L1-L4)
must produce identical output for a fixed file set under any
configuration that only differs in escalation settings.
"""

from __future__ import annotations

import os
from pathlib import Path
from pydantic import BaseModel, Field, field_validator, ValidationInfo


class ScannerConfig(BaseModel):
    """
    Runtime configuration for the compliance scanner.
    """

    # ------------------------------------------------------------------
    # Escalation (L5) gates
    # ------------------------------------------------------------------

    ENABLE_ESCALATION: bool = Field(
        False,
        description="Re-judge uncertain findings with the escalation oracle",
    )

    ESCALATION_PROVIDER: str = Field(
        "disabled",
        description="Escalation oracle provider identifier",
    )

    ESCALATION_MODEL: str = Field(
        "",
        description=(
            "Model (or Azure deployment) used by the oracle. "
            "Also used to price oracle calls."
        ),
    )

    # ------------------------------------------------------------------
    # Escalation limits
    # ------------------------------------------------------------------

    ESCALATION_MAX_FINDINGS: int = Field(
        20,
        ge=0,
        description="Maximum number of findings escalated per scan",
    )

    ESCALATION_MAX_CONCURRENCY: int = Field(
        4,
        ge=1,
        description="Maximum number of concurrent oracle calls",
    )

    ESCALATION_TIMEOUT_SECONDS: float = Field(
        60.0,
        gt=0,
        description="Deadline for a single oracle call, retries included",
    )

    ESCALATION_MAX_RETRIES: int = Field(
        2,
        ge=0,
        description="Retries on transient oracle transport errors",
    )

    UNCERTAIN_MIN: int = Field(
        40,
        ge=0,
        le=100,
        description="Lower bound (inclusive) of the uncertain confidence band",
    )

    UNCERTAIN_MAX: int = Field(
        70,
        ge=0,
        le=100,
        description="Upper bound (inclusive) of the uncertain confidence band",
    )

    MAX_SNIPPET_LINES: int = Field(
        500,
        ge=1,
        description="Line budget for code quoted into one oracle prompt",
    )

    MAX_SNIPPETS: int = Field(
        5,
        ge=1,
        description="Maximum number of snippets quoted into one oracle prompt",
    )

    # ------------------------------------------------------------------
    # Deterministic layers and file collection
    # ------------------------------------------------------------------

    LAYER_MAX_WORKERS: int = Field(
        1,
        ge=1,
        description="Worker threads used to evaluate L1 check units",
    )

    MAX_FILES: int = Field(
        500,
        ge=1,
        description="Maximum number of files collected per scan",
    )

    MAX_FILE_SIZE_BYTES: int = Field(
        1_048_576,
        ge=1,
        description="Files larger than this are not collected",
    )

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    SCORING_POLICY_PATH: Path | None = Field(
        None,
        description=(
            "JSON scoring policy. When unset the built-in EU AI Act policy "
            "is used. An invalid policy falls back to unweighted scoring."
        ),
    )

    FALLBACK_CRITICAL_CAP: bool = Field(
        False,
        description="Apply the critical cap in the unweighted fallback scorer",
    )

    # ------------------------------------------------------------------
    # External services
    # ------------------------------------------------------------------

    AZURE_OPENAI_ENDPOINT: str = Field(
        "",
        description="Azure OpenAI endpoint URL",
    )

    AZURE_OPENAI_API_VERSION: str = Field(
        "",
        description="Azure OpenAI API version",
    )

    # ------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ------------------------------------------------------------------

    @field_validator("ESCALATION_PROVIDER")
    @classmethod
    def validate_escalation_provider(
        cls, v: str, info: ValidationInfo
    ) -> str:
        allowed = {"disabled", "openai", "azure_openai"}
        if v not in allowed:
            raise ValueError(
                f"Unsupported ESCALATION_PROVIDER '{v}'. "
                f"Allowed values: {sorted(allowed)}"
            )
        if info.data.get("ENABLE_ESCALATION") and v == "disabled":
            raise ValueError(
                "ENABLE_ESCALATION is true but ESCALATION_PROVIDER is 'disabled'."
            )
        return v

    @field_validator("ESCALATION_MODEL")
    @classmethod
    def model_required_if_escalation_enabled(
        cls, v: str, info: ValidationInfo
    ) -> str:
        if info.data.get("ENABLE_ESCALATION") and not v:
            raise ValueError(
                "ENABLE_ESCALATION is true but ESCALATION_MODEL is not set."
            )
        return v

    @field_validator("UNCERTAIN_MAX")
    @classmethod
    def uncertain_band_ordered(
        cls, v: int, info: ValidationInfo
    ) -> int:
        lower = info.data.get("UNCERTAIN_MIN")
        if lower is not None and v < lower:
            raise ValueError(
                f"UNCERTAIN_MAX ({v}) must not be below UNCERTAIN_MIN ({lower})."
            )
        return v

    @field_validator("AZURE_OPENAI_API_VERSION")
    @classmethod
    def azure_settings_required(
        cls, v: str, info: ValidationInfo
    ) -> str:
        if info.data.get("ESCALATION_PROVIDER") == "azure_openai":
            if not info.data.get("AZURE_OPENAI_ENDPOINT") or not v:
                raise ValueError(
                    "ESCALATION_PROVIDER is 'azure_openai' but "
                    "AZURE_OPENAI_ENDPOINT or AZURE_OPENAI_API_VERSION "
                    "is not configured."
                )
        return v

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "ScannerConfig":
        """
        Load configuration from environment variables.

        All values are parsed once at startup and must remain immutable.
        """

        def env_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.lower() in {"1", "true", "yes", "on"}

        policy_path_env = os.getenv("COMPLIANCE_SCANNER_SCORING_POLICY_PATH")

        return cls(
            ENABLE_ESCALATION=env_bool(
                "COMPLIANCE_SCANNER_ENABLE_ESCALATION", False
            ),
            ESCALATION_PROVIDER=os.getenv(
                "COMPLIANCE_SCANNER_ESCALATION_PROVIDER", "disabled"
            ),
            ESCALATION_MODEL=os.getenv(
                "COMPLIANCE_SCANNER_ESCALATION_MODEL", ""
            ),
            ESCALATION_MAX_FINDINGS=int(
                os.getenv("COMPLIANCE_SCANNER_ESCALATION_MAX_FINDINGS", "20")
            ),
            ESCALATION_MAX_CONCURRENCY=int(
                os.getenv("COMPLIANCE_SCANNER_ESCALATION_MAX_CONCURRENCY", "4")
            ),
            ESCALATION_TIMEOUT_SECONDS=float(
                os.getenv("COMPLIANCE_SCANNER_ESCALATION_TIMEOUT_SECONDS", "60")
            ),
            ESCALATION_MAX_RETRIES=int(
                os.getenv("COMPLIANCE_SCANNER_ESCALATION_MAX_RETRIES", "2")
            ),
            UNCERTAIN_MIN=int(
                os.getenv("COMPLIANCE_SCANNER_UNCERTAIN_MIN", "40")
            ),
            UNCERTAIN_MAX=int(
                os.getenv("COMPLIANCE_SCANNER_UNCERTAIN_MAX", "70")
            ),
            MAX_SNIPPET_LINES=int(
                os.getenv("COMPLIANCE_SCANNER_MAX_SNIPPET_LINES", "500")
            ),
            MAX_SNIPPETS=int(
                os.getenv("COMPLIANCE_SCANNER_MAX_SNIPPETS", "5")
            ),
            LAYER_MAX_WORKERS=int(
                os.getenv("COMPLIANCE_SCANNER_LAYER_MAX_WORKERS", "1")
            ),
            MAX_FILES=int(
                os.getenv("COMPLIANCE_SCANNER_MAX_FILES", "500")
            ),
            MAX_FILE_SIZE_BYTES=int(
                os.getenv("COMPLIANCE_SCANNER_MAX_FILE_SIZE_BYTES", "1048576")
            ),
            SCORING_POLICY_PATH=(
                Path(policy_path_env)
                if policy_path_env
                else None
            ),
            FALLBACK_CRITICAL_CAP=env_bool(
                "COMPLIANCE_SCANNER_FALLBACK_CRITICAL_CAP", False
            ),
            AZURE_OPENAI_ENDPOINT=os.getenv(
                "AZURE_OPENAI_ENDPOINT", ""
            ),
            AZURE_OPENAI_API_VERSION=os.getenv(
                "AZURE_OPENAI_API_VERSION", ""
            ),
        )

    model_config = {
        "frozen": True,
        "validate_default": True,
    }
