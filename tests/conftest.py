"""Shared pytest fixtures for the cargo-casper test suite.

Provides reusable fixtures for:
- Temporary output directories
- Realistic crates.io sparse-index payloads
- Mocked httpx clients for the registry
- Version pins and a ready-made generator
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from cargo_casper.config import Config, RegistryConfig
from cargo_casper.scaffolder.generator import ProjectGenerator, ProjectSpec
from cargo_casper.scaffolder.resolver import BUNDLED_VERSIONS, PinSource, VersionPin

EXPECTED_FILES: frozenset[str] = frozenset(
    {
        "contract/.cargo/config.toml",
        "contract/Cargo.toml",
        "contract/src/main.rs",
        "Makefile",
        "rust-toolchain",
        "tests/Cargo.toml",
        "tests/src/integration_tests.rs",
        ".travis.yml",
    }
)


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Parent directory for generated projects (auto-cleanup)."""
    directory = tmp_path / "output"
    directory.mkdir()
    return directory


def _list_tree(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def read_tree():
    """Return a helper mapping every file under a root to its bytes."""
    return _list_tree


@pytest.fixture
def expected_files() -> frozenset[str]:
    """The eight paths every generated project contains."""
    return EXPECTED_FILES


# ---------------------------------------------------------------------------
# Registry payloads
# ---------------------------------------------------------------------------


def make_index_text(crate: str, versions: list[str], yanked: set[str] | None = None) -> str:
    """Build a sparse-index file body: one JSON record per version."""
    yanked = yanked or set()
    lines = [
        json.dumps(
            {
                "name": crate,
                "vers": version,
                "deps": [],
                "cksum": "0" * 64,
                "features": {},
                "yanked": version in yanked,
            }
        )
        for version in versions
    ]
    return "\n".join(lines) + "\n"


REGISTRY_VERSIONS: dict[str, list[str]] = {
    "casper-contract": ["1.4.4", "2.0.0", "3.0.0", "3.0.1", "3.1.0-rc.1", "4.0.0"],
    "casper-types": ["2.0.0", "3.0.0", "3.0.2", "4.0.1"],
    "casper-engine-test-support": ["4.0.0", "5.0.0", "5.0.3", "7.0.0"],
    "casper-execution-engine": ["4.0.0", "5.0.0", "5.0.1", "7.0.0"],
}


@pytest.fixture
def index_payloads() -> dict[str, str]:
    """Sparse-index bodies for the four Casper crates."""
    return {crate: make_index_text(crate, versions) for crate, versions in REGISTRY_VERSIONS.items()}


def _response_for(text: str, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if status_code >= 400:
        request = httpx.Request("GET", "https://index.crates.io/")
        real = httpx.Response(status_code, request=request)
        response.raise_for_status = MagicMock(
            side_effect=httpx.HTTPStatusError("error", request=request, response=real)
        )
    else:
        response.raise_for_status = MagicMock()
    return response


@pytest.fixture
def mock_registry(index_payloads: dict[str, str]):
    """Patch ``httpx.AsyncClient`` to serve ``index_payloads`` by crate name.

    Yields the mocked client so tests can inspect ``get`` calls.
    """

    async def _get(url: str, *args, **kwargs):
        crate = url.rsplit("/", 1)[-1]
        if crate in index_payloads:
            return _response_for(index_payloads[crate])
        return _response_for("", status_code=404)

    mock_client = AsyncMock()
    mock_client.get = AsyncMock(side_effect=_get)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)

    with patch("httpx.AsyncClient", return_value=mock_client):
        yield mock_client


@pytest.fixture
def offline_registry():
    """Patch ``httpx.AsyncClient`` so every request fails to connect."""
    mock_client = AsyncMock()
    mock_client.get = AsyncMock(side_effect=httpx.ConnectError("Network is unreachable"))
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)

    with patch("httpx.AsyncClient", return_value=mock_client):
        yield mock_client


# ---------------------------------------------------------------------------
# Pins, config and generator
# ---------------------------------------------------------------------------


@pytest.fixture
def bundled_pins() -> dict[str, VersionPin]:
    """Pins equal to the versions compiled into this release."""
    return {
        name: VersionPin(dependency_name=name, resolved_version=version, source=PinSource.BUNDLED)
        for name, version in BUNDLED_VERSIONS.items()
    }


@pytest.fixture
def offline_config(output_dir: Path) -> Config:
    """A config that never touches the network."""
    return Config(output_dir=output_dir, registry=RegistryConfig(offline=True))


@pytest.fixture
def project_spec(output_dir: Path) -> ProjectSpec:
    return ProjectSpec.from_name("my_project", output_dir)


@pytest.fixture
def generator(project_spec: ProjectSpec) -> ProjectGenerator:
    return ProjectGenerator(project_spec, toolchain="nightly-2022-08-03")


@pytest.fixture
def index_text():
    """Return the helper that builds sparse-index bodies."""
    return make_index_text
