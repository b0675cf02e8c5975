"""
Configuration and dependency analysis (L3).

Resolves the project's declared dependencies and deployment
configuration into structured results. L4 consumes these results
directly (AI SDK detection gates and corroborates pattern findings),
so L3Result is part of the layer contract, not an internal detail.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from compliance_scanner.app.scanner.layers.layer3_parsers import (
    MANIFEST_PARSERS,
    ParsedDependency,
)
from compliance_scanner.app.scanner.rules.banned_packages import (
    BIAS_TESTING_PACKAGES,
    ai_sdk_name,
    find_banned_package,
)
from compliance_scanner.app.schemas.findings import (
    CheckVerdict,
    FailVerdict,
    PassVerdict,
    Severity,
)
from compliance_scanner.app.schemas.scan import FileInfo, ScanContext

logger = logging.getLogger(__name__)


class L3Status(str, Enum):
    OK = "OK"
    WARNING = "WARNING"
    FAIL = "FAIL"
    PROHIBITED = "PROHIBITED"


class L3FindingType(str, Enum):
    AI_SDK_DETECTED = "ai-sdk-detected"
    BANNED_PACKAGE = "banned-package"
    MISSING_BIAS_TESTING = "missing-bias-testing"
    LOG_RETENTION = "log-retention"
    ENV_CONFIG = "env-config"
    CI_COMPLIANCE = "ci-compliance"


class L3Result(BaseModel):
    type: L3FindingType
    status: L3Status
    message: str
    obligation_id: Optional[str] = None
    article: Optional[str] = None
    package_name: Optional[str] = None
    ecosystem: Optional[str] = None
    file: Optional[str] = None
    penalty: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


def detected_ai_sdks(results: Iterable[L3Result]) -> List[str]:
    return [
        r.package_name or ""
        for r in results
        if r.type == L3FindingType.AI_SDK_DETECTED
    ]


# ----------------------------------------------------------------------
# Configuration checks
# ----------------------------------------------------------------------

_LOG_OBLIGATION = "eu-ai-act-OBL-006"
_LOG_ARTICLE = "Art. 12"

_COMPOSE_FILES = {"docker-compose.yml", "docker-compose.yaml"}
_ENV_FILES = {".env", ".env.example", ".env.local"}

_LOGGING_KEY_RE = re.compile(r"logging:", re.IGNORECASE)
_RETENTION_RE = re.compile(r"max-size|max-file|retention|rotate", re.IGNORECASE)
_AI_API_KEY_RE = re.compile(
    r"(?:OPENAI|ANTHROPIC|GOOGLE_AI|COHERE|MISTRAL|HUGGINGFACE)_API_KEY",
    re.IGNORECASE,
)
_LOG_LEVEL_RE = re.compile(r"LOG_LEVEL|LOGGING", re.IGNORECASE)
_MONITORING_RE = re.compile(
    r"SENTRY_DSN|DATADOG|NEW_RELIC|MONITORING|OBSERVABILITY", re.IGNORECASE
)
_CI_COMPLIANCE_RE = re.compile(
    r"complior|compliance|audit|security[-_]scan|ai[-_]act", re.IGNORECASE
)


def check_compose_log_retention(file: FileInfo) -> L3Result:
    name = file.relative_path

    if not _LOGGING_KEY_RE.search(file.content):
        status = L3Status.WARNING
        message = (
            f"{name}: No logging configuration found. "
            "Art. 12 requires log retention >= 180 days."
        )
    elif _RETENTION_RE.search(file.content):
        status = L3Status.OK
        message = f"{name}: Log retention configuration found."
    else:
        status = L3Status.WARNING
        message = (
            f"{name}: Logging configured but no retention policy found. "
            "Ensure >= 180 days retention (Art. 12)."
        )

    return L3Result(
        type=L3FindingType.LOG_RETENTION,
        status=status,
        message=message,
        obligation_id=_LOG_OBLIGATION,
        article=_LOG_ARTICLE,
        file=name,
    )


def check_env_file(file: FileInfo) -> List[L3Result]:
    name = file.relative_path
    results: List[L3Result] = []

    if _AI_API_KEY_RE.search(file.content):
        results.append(
            L3Result(
                type=L3FindingType.ENV_CONFIG,
                status=L3Status.OK,
                message=f"{name}: AI API key variable detected (provider integration confirmed).",
                file=name,
            )
        )

    if not _LOG_LEVEL_RE.search(file.content):
        results.append(
            L3Result(
                type=L3FindingType.ENV_CONFIG,
                status=L3Status.WARNING,
                message=(
                    f"{name}: No LOG_LEVEL variable found. "
                    "Structured logging recommended (Art. 12)."
                ),
                obligation_id=_LOG_OBLIGATION,
                article=_LOG_ARTICLE,
                file=name,
            )
        )

    if not _MONITORING_RE.search(file.content):
        results.append(
            L3Result(
                type=L3FindingType.ENV_CONFIG,
                status=L3Status.WARNING,
                message=(
                    f"{name}: No error monitoring/observability variable found. "
                    "Monitoring recommended (Art. 26)."
                ),
                obligation_id="eu-ai-act-OBL-011",
                article="Art. 26",
                file=name,
            )
        )

    return results


def check_ci_workflow(file: FileInfo) -> L3Result:
    name = file.relative_path
    if _CI_COMPLIANCE_RE.search(file.content):
        return L3Result(
            type=L3FindingType.CI_COMPLIANCE,
            status=L3Status.OK,
            message=f"{name}: Compliance step detected in CI/CD pipeline.",
            file=name,
        )
    return L3Result(
        type=L3FindingType.CI_COMPLIANCE,
        status=L3Status.WARNING,
        message=(
            f"{name}: No compliance step detected in CI/CD pipeline. "
            "Consider adding a compliance scan."
        ),
        file=name,
    )


def _is_ci_workflow(file: FileInfo) -> bool:
    return ".github/workflows/" in file.relative_path and file.extension in {
        ".yml",
        ".yaml",
    }


# ----------------------------------------------------------------------
# L3 runner
# ----------------------------------------------------------------------


def collect_dependencies(context: ScanContext) -> List[ParsedDependency]:
    deps: List[ParsedDependency] = []
    for f in context.files:
        if "node_modules" in f.relative_path.split("/"):
            continue
        parser = MANIFEST_PARSERS.get(f.filename)
        if parser is not None:
            deps.extend(
                dep.model_copy(update={"file": f.relative_path})
                for dep in parser(f.content)
            )
    return deps


def run_layer3(context: ScanContext) -> List[L3Result]:
    results: List[L3Result] = []
    deps = collect_dependencies(context)

    for dep in deps:
        banned = find_banned_package(dep.name)
        if banned is not None:
            results.append(
                L3Result(
                    type=L3FindingType.BANNED_PACKAGE,
                    status=L3Status.PROHIBITED,
                    message=(
                        f'PROHIBITED: "{dep.name}" ({banned.reason}), '
                        f"{banned.article}. Penalty: {banned.penalty}"
                    ),
                    obligation_id=banned.obligation_id,
                    article=banned.article,
                    package_name=dep.name,
                    ecosystem=dep.ecosystem,
                    penalty=banned.penalty,
                    file=dep.file,
                )
            )

    sdk_found = False
    for dep in deps:
        sdk = ai_sdk_name(dep.name)
        if sdk is not None:
            sdk_found = True
            results.append(
                L3Result(
                    type=L3FindingType.AI_SDK_DETECTED,
                    status=L3Status.OK,
                    message=(
                        f"AI SDK detected: {sdk} ({dep.name}@{dep.version}) "
                        f"in {dep.ecosystem}"
                    ),
                    package_name=dep.name,
                    ecosystem=dep.ecosystem,
                    file=dep.file,
                )
            )

    if sdk_found and not any(d.name in BIAS_TESTING_PACKAGES for d in deps):
        results.append(
            L3Result(
                type=L3FindingType.MISSING_BIAS_TESTING,
                status=L3Status.WARNING,
                message=(
                    "AI SDKs detected but no bias testing library found. "
                    "Consider adding fairlearn, aif360, or aequitas."
                ),
                obligation_id="eu-ai-act-OBL-009",
                article="Art. 10",
            )
        )

    for f in context.files:
        if f.filename in _COMPOSE_FILES:
            results.append(check_compose_log_retention(f))

    for f in context.files:
        if f.filename in _ENV_FILES:
            results.extend(check_env_file(f))

    for f in context.files:
        if _is_ci_workflow(f):
            results.append(check_ci_workflow(f))

    logger.debug(
        "L3 resolved %d dependencies into %d results", len(deps), len(results)
    )
    return results


# ----------------------------------------------------------------------
# Projection
# ----------------------------------------------------------------------


def l3_verdict(result: L3Result) -> CheckVerdict:
    if result.status == L3Status.PROHIBITED:
        return FailVerdict(
            check_id=f"l3-banned-{result.package_name or 'unknown'}",
            message=result.message,
            severity=Severity.CRITICAL,
            obligation_id=result.obligation_id,
            article_reference=result.article,
            fix=(
                f'Remove prohibited package "{result.package_name}" '
                f"to comply with {result.article}"
            ),
            file=result.file,
        )

    check_id = f"l3-{result.type.value}"

    if result.status in (L3Status.FAIL, L3Status.WARNING):
        return FailVerdict(
            check_id=check_id,
            message=result.message,
            severity=(
                Severity.HIGH if result.status == L3Status.FAIL else Severity.LOW
            ),
            obligation_id=result.obligation_id,
            article_reference=result.article,
            file=result.file,
        )

    return PassVerdict(
        check_id=check_id,
        message=result.message,
        obligation_id=result.obligation_id,
        file=result.file,
    )
