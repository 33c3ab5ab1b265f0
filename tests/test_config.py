"""Unit tests for Config and related Pydantic models (cargo_casper.config).

Tests cover:
- RegistryConfig defaults and validation
- SourceOverrides exclusivity rules and patch section rendering
- Config defaults and from_env
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from cargo_casper import __version__
from cargo_casper.config import (
    DEFAULT_INDEX_URL,
    DEFAULT_TOOLCHAIN,
    Config,
    RegistryConfig,
    SourceOverrides,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# RegistryConfig
# ---------------------------------------------------------------------------


class TestRegistryConfig:
    def test_defaults(self):
        registry = RegistryConfig()
        assert registry.index_url == DEFAULT_INDEX_URL
        assert registry.timeout == 10.0
        assert registry.offline is False
        assert registry.user_agent == f"cargo-casper/{__version__}"

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            RegistryConfig(timeout=0)


# ---------------------------------------------------------------------------
# SourceOverrides
# ---------------------------------------------------------------------------


class TestSourceOverrides:
    def test_workspace_path_alone(self):
        overrides = SourceOverrides(workspace_path=Path("/src/casper-node"))
        assert overrides.git_url is None

    def test_git_pair(self):
        overrides = SourceOverrides(git_url="https://github.com/casper-network/casper-node", git_branch="dev")
        assert overrides.git_branch == "dev"

    def test_git_url_requires_branch(self):
        with pytest.raises(ValidationError):
            SourceOverrides(git_url="https://example.com/casper-node")

    def test_git_branch_requires_url(self):
        with pytest.raises(ValidationError):
            SourceOverrides(git_branch="dev")

    def test_workspace_conflicts_with_git(self):
        with pytest.raises(ValidationError):
            SourceOverrides(
                workspace_path=Path("/src/casper-node"),
                git_url="https://example.com/casper-node",
                git_branch="dev",
            )

    def test_empty_is_invalid(self):
        with pytest.raises(ValidationError):
            SourceOverrides()

    def test_patch_section_workspace(self):
        section = SourceOverrides(workspace_path=Path("/src/casper-node/")).patch_section()
        lines = section.splitlines()
        assert lines[0] == "[patch.crates-io]"
        assert 'casper-contract = { path = "/src/casper-node/smart_contracts/contract" }' in lines
        assert 'casper-types = { path = "/src/casper-node/types" }' in lines
        assert (
            'casper-engine-test-support = { path = "/src/casper-node/execution_engine_testing/test_support" }'
            in lines
        )
        assert 'casper-execution-engine = { path = "/src/casper-node/execution_engine" }' in lines
        assert section.endswith("\n")

    def test_patch_section_git(self):
        section = SourceOverrides(
            git_url="https://github.com/casper-network/casper-node", git_branch="release-1.5"
        ).patch_section()
        assert section.count('git = "https://github.com/casper-network/casper-node"') == 4
        assert section.count('branch = "release-1.5"') == 4


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


class TestConfig:
    def test_defaults(self):
        config = Config()
        assert config.output_dir == Path(".")
        assert config.toolchain == DEFAULT_TOOLCHAIN
        assert config.overrides is None
        assert config.registry.offline is False

    def test_empty_toolchain_rejected(self):
        with pytest.raises(ValidationError):
            Config(toolchain="")

    def test_from_env_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = Config.from_env()
        assert config.output_dir == Path(".")
        assert config.registry.index_url == DEFAULT_INDEX_URL

    def test_from_env_values(self):
        env = {
            "CARGO_CASPER_OUTPUT_DIR": "/tmp/contracts",
            "CARGO_CASPER_TOOLCHAIN": "nightly-2023-01-01",
            "CARGO_CASPER_INDEX_URL": "http://localhost:8080/index",
            "CARGO_CASPER_REGISTRY_TIMEOUT": "2.5",
            "CARGO_CASPER_OFFLINE": "yes",
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()
        assert config.output_dir == Path("/tmp/contracts")
        assert config.toolchain == "nightly-2023-01-01"
        assert config.registry.index_url == "http://localhost:8080/index"
        assert config.registry.timeout == 2.5
        assert config.registry.offline is True

    @pytest.mark.parametrize("value", ["0", "false", "no", "off"])
    def test_from_env_offline_falsy(self, value: str):
        with patch.dict(os.environ, {"CARGO_CASPER_OFFLINE": value}, clear=True):
            config = Config.from_env()
        assert config.registry.offline is False

    def test_from_env_bad_timeout(self):
        with patch.dict(os.environ, {"CARGO_CASPER_REGISTRY_TIMEOUT": "soon"}, clear=True):
            with pytest.raises(ValueError):
                Config.from_env()
