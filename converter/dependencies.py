"""Dependency manifest generation for converted projects."""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from converter.registry import NodeRegistry

logger = structlog.get_logger(__name__)

# Every generated project loads its .env file
BASE_DEPENDENCIES: Tuple[str, ...] = ("python-dotenv",)

DEFAULT_VERSION = ">=0.1.0"

SAFE_VERSIONS: Dict[str, str] = {
    "apscheduler": ">=3.10.0",
    "croniter": ">=2.0.0",
    "fastapi": ">=0.110.0",
    "httpx": ">=0.27.0",
    "jinja2": ">=3.1.0",
    "psycopg": ">=3.1.0",
    "pydantic": ">=2.0.0",
    "pymongo": ">=4.6.0",
    "pymysql": ">=1.1.0",
    "python-dotenv": ">=1.0.0",
    "python-telegram-bot": ">=21.0.0",
    "pyyaml": ">=6.0.0",
    "redis": ">=5.0.0",
    "requests": ">=2.31.0",
    "slack-sdk": ">=3.27.0",
    "uvicorn": ">=0.29.0",
}

# Dynamic code execution and process spawning never ship in a generated project
DENIED_PACKAGES = frozenset({
    "asteval",
    "child-process",
    "delegator-py",
    "pexpect",
    "plumbum",
    "pysandbox",
    "restrictedpython",
    "sarge",
    "sh",
    "simpleeval",
    "subprocess32",
    "vm2",
})
DENIED_TOKENS = frozenset({"eval", "exec", "spawn"})

_REQUIREMENT = re.compile(r"^\s*(?P<name>[A-Za-z0-9][A-Za-z0-9._-]*)\s*(?P<extras>\[[^\]]*\])?\s*(?P<spec>.*?)\s*$")
_EXPLICIT = re.compile(r"^(?P<op>==|>=|~=)\s*(?P<version>\d+(?:\.\d+){0,2})$")


def canonical_name(name: str) -> str:
    """Normalize a distribution name (PEP 503)."""
    return re.sub(r"[-_.]+", "-", name).lower()


def is_denied(name: str) -> bool:
    canonical = canonical_name(name)
    if canonical in DENIED_PACKAGES:
        return True
    return any(token in DENIED_TOKENS for token in canonical.split("-"))


def parse_requirement(requirement: str) -> Tuple[str, Optional[str]]:
    """Split ``"httpx>=0.27"`` into ``("httpx", ">=0.27")``; the specifier may be None."""
    match = _REQUIREMENT.match(requirement)
    if not match:
        raise ValueError(f"Invalid requirement: {requirement!r}")
    name = canonical_name(match.group("name")) + (match.group("extras") or "")
    spec = match.group("spec").replace(" ", "") or None
    return name, spec


def _version_key(spec: str) -> Optional[Tuple[int, ...]]:
    match = _EXPLICIT.match(spec)
    if not match:
        return None
    parts = [int(part) for part in match.group("version").split(".")]
    return tuple(parts + [0] * (3 - len(parts)))


@dataclass
class DependencyManifest:
    """Deduplicated, filtered package manifest for one conversion."""
    packages: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    denied: List[str] = field(default_factory=list)

    def to_requirements(self) -> List[str]:
        return [f"{name}{version}" for name, version in self.packages.items()]


class DependencyResolver:
    """Unions the dependencies of a set of node types under the security policy."""

    def __init__(self, registry: NodeRegistry, default_version: str = DEFAULT_VERSION):
        self.registry = registry
        self.default_version = default_version

    def resolve(self, type_ids: Iterable[str]) -> DependencyManifest:
        manifest = DependencyManifest()
        requested: Dict[str, List[str]] = {}

        for requirement in BASE_DEPENDENCIES:
            self._request(requirement, requested)

        seen = set()
        for type_id in type_ids:
            if type_id in seen:
                continue
            seen.add(type_id)
            descriptor = self.registry.lookup(type_id)
            if descriptor is None:
                continue
            for requirement in descriptor.dependencies:
                self._request(requirement, requested)

        for name in sorted(requested):
            base_name = name.split("[", 1)[0]
            if is_denied(base_name):
                manifest.denied.append(name)
                manifest.warnings.append(f"Skipping blocked dependency: {name}")
                logger.warning("dependency_blocked", package=name)
                continue
            manifest.packages[name] = self._pick_version(base_name, requested[name], manifest.warnings)

        return manifest

    def _request(self, requirement: str, requested: Dict[str, List[str]]) -> None:
        name, spec = parse_requirement(requirement)
        specs = requested.setdefault(name, [])
        if spec:
            specs.append(spec)

    def _pick_version(self, name: str, specs: List[str], warnings: List[str]) -> str:
        safe = SAFE_VERSIONS.get(name)
        if safe is None:
            warnings.append(f"Unknown dependency {name}, pinned to {self.default_version}")
            logger.warning("dependency_unknown", package=name, version=self.default_version)
            return self.default_version

        candidates = [safe] + specs
        keyed = [(_version_key(spec), spec) for spec in candidates]
        if all(key is not None for key, _ in keyed):
            # Newest request wins; the safe version is the floor
            return max(keyed, key=lambda item: item[0])[1]

        if len(set(specs)) > 1:
            warnings.append(f"Conflicting versions requested for {name}: {', '.join(specs)}; using {safe}")
        elif specs:
            warnings.append(f"Unsupported version specifier for {name}: {specs[0]}; using {safe}")
        return safe


def resolve_dependencies(type_ids: Iterable[str], registry: NodeRegistry) -> DependencyManifest:
    """Convenience function for a one-off resolution."""
    return DependencyResolver(registry).resolve(type_ids)
