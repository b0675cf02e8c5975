"""
Dependency manifest parsers used by configuration analysis (L3).

Parsers are lenient: malformed manifests yield no dependencies rather
than an error.
"""

from __future__ import annotations

import json
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ParsedDependency(BaseModel):
    name: str
    version: str
    ecosystem: str
    file: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


_NPM_SECTIONS = ("dependencies", "devDependencies", "peerDependencies")

_REQUIREMENT_RE = re.compile(r"^([a-zA-Z0-9_.-]+)\s*(?:[>=<~!]+\s*(.+))?$")
_CARGO_SECTION_RE = re.compile(r"\[dependencies\]([\s\S]*?)(?:\[|$)")
_CARGO_DEP_RE = re.compile(r'^([a-zA-Z0-9_-]+)\s*=\s*"?([^"}\s]+)"?')
_GO_REQUIRE_RE = re.compile(r"require\s*\(([\s\S]*?)\)")
_GO_DEP_RE = re.compile(r"^([\w./\-@]+)\s+(v[\d.]+)")


def parse_package_json(content: str) -> List[ParsedDependency]:
    try:
        manifest = json.loads(content)
    except json.JSONDecodeError:
        return []

    if not isinstance(manifest, dict):
        return []

    deps: List[ParsedDependency] = []
    for field in _NPM_SECTIONS:
        section = manifest.get(field)
        if isinstance(section, dict):
            for name, version in section.items():
                deps.append(
                    ParsedDependency(name=name, version=str(version), ecosystem="npm")
                )
    return deps


def parse_requirements_txt(content: str) -> List[ParsedDependency]:
    deps: List[ParsedDependency] = []
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or line.startswith("-"):
            continue
        match = _REQUIREMENT_RE.match(line)
        if match is None:
            continue
        deps.append(
            ParsedDependency(
                name=match.group(1),
                version=match.group(2) or "*",
                ecosystem="pip",
            )
        )
    return deps


def parse_cargo_toml(content: str) -> List[ParsedDependency]:
    section = _CARGO_SECTION_RE.search(content)
    if section is None:
        return []

    deps: List[ParsedDependency] = []
    for line in section.group(1).splitlines():
        match = _CARGO_DEP_RE.match(line)
        if match is not None:
            deps.append(
                ParsedDependency(
                    name=match.group(1), version=match.group(2), ecosystem="cargo"
                )
            )
    return deps


def parse_go_mod(content: str) -> List[ParsedDependency]:
    block = _GO_REQUIRE_RE.search(content)
    lines = block.group(1).splitlines() if block is not None else content.splitlines()

    deps: List[ParsedDependency] = []
    for line in lines:
        match = _GO_DEP_RE.match(line.strip().removeprefix("require ").strip())
        if match is not None:
            deps.append(
                ParsedDependency(
                    name=match.group(1), version=match.group(2), ecosystem="go"
                )
            )
    return deps


MANIFEST_PARSERS = {
    "package.json": parse_package_json,
    "requirements.txt": parse_requirements_txt,
    "Cargo.toml": parse_cargo_toml,
    "go.mod": parse_go_mod,
}
