"""Version resolution for the Casper crates pinned in generated manifests.

Every variant implements the same ``resolve(dependency) -> VersionPin``
capability so callers never deal with network concerns:

* ``RegistryVersionSource`` asks the crates.io sparse index for the newest
  release that is semver-compatible with the version bundled in this tool.
* ``BundledVersionSource`` returns the compiled-in known-good version.
* ``WildcardVersionSource`` pins ``*``; used when a ``[patch.crates-io]``
  section redirects the crates elsewhere.
* ``FallbackVersionSource`` tries a primary source and degrades to a
  fallback with a warning when the primary cannot answer.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import NamedTuple, Protocol

from pydantic import BaseModel, ConfigDict, Field

from cargo_casper.errors import RegistryUnavailable, VersionResolutionError
from cargo_casper.registry_client import RegistryClient
from cargo_casper.utils import print_warning

# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


class Dependency(BaseModel):
    """A crate the generated project depends on, with its bundled version."""

    model_config = ConfigDict(frozen=True)

    name: str
    bundled_version: str


class PinSource(str, Enum):
    REGISTRY = "registry"
    BUNDLED = "bundled"
    WILDCARD = "wildcard"


class VersionPin(BaseModel):
    """The version constraint written into a generated manifest."""

    model_config = ConfigDict(frozen=True)

    dependency_name: str
    resolved_version: str
    source: PinSource = Field(default=PinSource.BUNDLED)


CASPER_CONTRACT = Dependency(name="casper-contract", bundled_version="3.0.0")
CASPER_TYPES = Dependency(name="casper-types", bundled_version="3.0.0")
CASPER_ENGINE_TEST_SUPPORT = Dependency(
    name="casper-engine-test-support", bundled_version="5.0.0"
)
CASPER_EXECUTION_ENGINE = Dependency(name="casper-execution-engine", bundled_version="5.0.0")

CASPER_DEPENDENCIES: tuple[Dependency, ...] = (
    CASPER_CONTRACT,
    CASPER_TYPES,
    CASPER_ENGINE_TEST_SUPPORT,
    CASPER_EXECUTION_ENGINE,
)

BUNDLED_VERSIONS: dict[str, str] = {dep.name: dep.bundled_version for dep in CASPER_DEPENDENCIES}


# ---------------------------------------------------------------------------
# Semantic versions
# ---------------------------------------------------------------------------

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)


class SemVer(NamedTuple):
    major: int
    minor: int
    patch: int
    pre: str = ""

    @classmethod
    def parse(cls, text: str) -> "SemVer":
        match = _SEMVER_RE.match(text.strip())
        if match is None:
            raise ValueError(f"not a semantic version: {text!r}")
        return cls(
            int(match["major"]),
            int(match["minor"]),
            int(match["patch"]),
            match["pre"] or "",
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.pre)

    def is_compatible_with(self, base: "SemVer") -> bool:
        """Cargo caret compatibility: ``self`` satisfies ``^base``."""
        if self.is_prerelease or self[:3] < base[:3]:
            return False
        if base.major > 0:
            return self.major == base.major
        if base.minor > 0:
            return self.major == 0 and self.minor == base.minor
        return self[:3] == base[:3]

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        return f"{core}-{self.pre}" if self.pre else core


def latest_compatible(versions: list[str], base: str) -> str | None:
    """Return the highest version in *versions* compatible with ``^base``.

    Unparseable entries are ignored.
    """
    floor = SemVer.parse(base)
    candidates: list[SemVer] = []
    for text in versions:
        try:
            version = SemVer.parse(text)
        except ValueError:
            continue
        if version.is_compatible_with(floor):
            candidates.append(version)
    if not candidates:
        return None
    return str(max(candidates))


# ---------------------------------------------------------------------------
# Version sources
# ---------------------------------------------------------------------------


class VersionSource(Protocol):
    async def resolve(self, dependency: Dependency) -> VersionPin: ...


class BundledVersionSource:
    """Versions compiled into this release of the tool."""

    def __init__(self, versions: dict[str, str] | None = None) -> None:
        self.versions = dict(BUNDLED_VERSIONS if versions is None else versions)

    async def resolve(self, dependency: Dependency) -> VersionPin:
        version = self.versions.get(dependency.name)
        if version is None:
            raise VersionResolutionError(
                f"no bundled version of `{dependency.name}` in this release",
                data={"dependency": dependency.name},
            )
        return VersionPin(
            dependency_name=dependency.name,
            resolved_version=version,
            source=PinSource.BUNDLED,
        )


class WildcardVersionSource:
    """Pin every dependency to ``*``."""

    async def resolve(self, dependency: Dependency) -> VersionPin:
        return VersionPin(
            dependency_name=dependency.name,
            resolved_version="*",
            source=PinSource.WILDCARD,
        )


class RegistryVersionSource:
    """Newest registry release on the bundled version's compatibility line."""

    def __init__(self, client: RegistryClient) -> None:
        self.client = client

    async def resolve(self, dependency: Dependency) -> VersionPin:
        response = await self.client.fetch_versions(dependency.name)
        if not response.success:
            raise RegistryUnavailable(response.error or "registry query failed")

        published = [entry.vers for entry in response.entries if not entry.yanked]
        version = latest_compatible(published, dependency.bundled_version)
        if version is None:
            raise RegistryUnavailable(
                f"no published version of `{dependency.name}` is compatible "
                f"with ^{dependency.bundled_version}"
            )
        return VersionPin(
            dependency_name=dependency.name,
            resolved_version=version,
            source=PinSource.REGISTRY,
        )


class FallbackVersionSource:
    """Try ``primary``; fall back to ``fallback`` when the registry can't answer."""

    def __init__(self, primary: VersionSource, fallback: VersionSource) -> None:
        self.primary = primary
        self.fallback = fallback

    async def resolve(self, dependency: Dependency) -> VersionPin:
        try:
            return await self.primary.resolve(dependency)
        except RegistryUnavailable as exc:
            pin = await self.fallback.resolve(dependency)
            print_warning(
                f"{exc} -- using bundled {dependency.name} {pin.resolved_version}"
            )
            return pin


async def resolve_all(
    source: VersionSource,
    dependencies: tuple[Dependency, ...] = CASPER_DEPENDENCIES,
) -> dict[str, VersionPin]:
    """Resolve each dependency exactly once.

    Raises:
        VersionResolutionError: if any dependency has no usable version.
    """
    pins: dict[str, VersionPin] = {}
    for dependency in dependencies:
        try:
            pins[dependency.name] = await source.resolve(dependency)
        except RegistryUnavailable as exc:
            raise VersionResolutionError(
                str(exc), data={"dependency": dependency.name}
            ) from exc
    return pins
