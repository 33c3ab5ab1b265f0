"""cargo-casper configuration.

Typed configuration for a scaffolding run.  All settings use Pydantic v2
models so they are validated at construction time and can be built from the
environment without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

from cargo_casper import __version__

DEFAULT_INDEX_URL = "https://index.crates.io"
DEFAULT_TOOLCHAIN = "nightly-2022-08-03"

_TRUTHY = {"1", "true", "yes", "on"}


class RegistryConfig(BaseModel):
    """Settings for the crates.io sparse index queries."""

    index_url: str = Field(default=DEFAULT_INDEX_URL)
    timeout: float = Field(default=10.0, gt=0, description="Per-request timeout in seconds")
    offline: bool = Field(
        default=False, description="Skip the registry and use the bundled versions"
    )
    user_agent: str = Field(default=f"cargo-casper/{__version__}")


class SourceOverrides(BaseModel):
    """Redirect the Casper crates to a local checkout or a git branch.

    Exactly one form is valid: ``workspace_path`` on its own, or ``git_url``
    together with ``git_branch``.
    """

    workspace_path: Path | None = None
    git_url: str | None = None
    git_branch: str | None = None

    @model_validator(mode="after")
    def _check_exclusive(self) -> "SourceOverrides":
        has_git = self.git_url is not None or self.git_branch is not None
        if self.workspace_path is not None and has_git:
            raise ValueError("workspace_path conflicts with git_url/git_branch")
        if has_git and (self.git_url is None or self.git_branch is None):
            raise ValueError("git_url and git_branch must be given together")
        if self.workspace_path is None and not has_git:
            raise ValueError("either workspace_path or git_url/git_branch is required")
        return self

    def patch_section(self) -> str:
        """Return the ``[patch.crates-io]`` table for the generated manifests."""
        crates = {
            "casper-contract": "smart_contracts/contract",
            "casper-engine-test-support": "execution_engine_testing/test_support",
            "casper-execution-engine": "execution_engine",
            "casper-types": "types",
        }
        lines = ["[patch.crates-io]"]
        for crate, subdir in crates.items():
            if self.workspace_path is not None:
                location = self.workspace_path.as_posix().rstrip("/")
                lines.append(f'{crate} = {{ path = "{location}/{subdir}" }}')
            else:
                lines.append(
                    f'{crate} = {{ git = "{self.git_url}", branch = "{self.git_branch}" }}'
                )
        return "\n".join(lines) + "\n"


class Config(BaseModel):
    """Global cargo-casper configuration.

    Created once by the CLI entry point (or by tests) and passed to
    ``ScaffoldPipeline``.
    """

    output_dir: Path = Field(default=Path("."))
    toolchain: str = Field(default=DEFAULT_TOOLCHAIN, min_length=1)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    overrides: SourceOverrides | None = None

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            CARGO_CASPER_OUTPUT_DIR, CARGO_CASPER_TOOLCHAIN,
            CARGO_CASPER_INDEX_URL, CARGO_CASPER_REGISTRY_TIMEOUT,
            CARGO_CASPER_OFFLINE.
        """
        registry_kwargs: dict[str, Any] = {}
        if os.environ.get("CARGO_CASPER_INDEX_URL"):
            registry_kwargs["index_url"] = os.environ["CARGO_CASPER_INDEX_URL"]
        if os.environ.get("CARGO_CASPER_REGISTRY_TIMEOUT"):
            registry_kwargs["timeout"] = float(os.environ["CARGO_CASPER_REGISTRY_TIMEOUT"])
        if os.environ.get("CARGO_CASPER_OFFLINE"):
            registry_kwargs["offline"] = (
                os.environ["CARGO_CASPER_OFFLINE"].strip().lower() in _TRUTHY
            )

        return cls(
            output_dir=Path(os.environ.get("CARGO_CASPER_OUTPUT_DIR", ".")),
            toolchain=os.environ.get("CARGO_CASPER_TOOLCHAIN", DEFAULT_TOOLCHAIN),
            registry=RegistryConfig(**registry_kwargs),
        )
