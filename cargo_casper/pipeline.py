"""cargo-casper scaffolding orchestrator.

Drives one ``new`` run through a strictly sequential state machine:

Start              -- validate the project name, check the target is free.
ResolvingVersions  -- pin the Casper crates (registry, then bundled fallback).
Rendering          -- render the whole template catalog into memory.
Materializing      -- write the rendered files to disk.
Done | Failed      -- terminal; Failed carries a message and exit code.

Usage::

    cargo-casper new my_project
    cargo-casper new my_project --directory ~/contracts --offline
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
import traceback
from enum import Enum
from pathlib import Path
from typing import Sequence

from pydantic import BaseModel, Field, ValidationError

from cargo_casper import __version__
from cargo_casper.config import Config, SourceOverrides
from cargo_casper.errors import FAILURE_EXIT_CODE, ScaffoldError
from cargo_casper.registry_client import RegistryClient
from cargo_casper.scaffolder.generator import ProjectGenerator, ProjectSpec
from cargo_casper.scaffolder.materializer import ensure_target_available, materialize
from cargo_casper.scaffolder.resolver import (
    BundledVersionSource,
    FallbackVersionSource,
    RegistryVersionSource,
    VersionPin,
    VersionSource,
    WildcardVersionSource,
    resolve_all,
)
from cargo_casper.utils import (
    console,
    format_duration,
    print_error,
    print_state_header,
    print_success,
    print_summary_table,
)

SUBCOMMAND_NAME = "new"


class State(str, Enum):
    START = "start"
    RESOLVING_VERSIONS = "resolving_versions"
    RENDERING = "rendering"
    MATERIALIZING = "materializing"
    DONE = "done"
    FAILED = "failed"


STATE_TITLES: dict[State, str] = {
    State.RESOLVING_VERSIONS: "Resolving versions",
    State.RENDERING: "Rendering templates",
    State.MATERIALIZING: "Writing project",
}

_NEXT_STATE: dict[State, State] = {
    State.START: State.RESOLVING_VERSIONS,
    State.RESOLVING_VERSIONS: State.RENDERING,
    State.RENDERING: State.MATERIALIZING,
    State.MATERIALIZING: State.DONE,
}


class ScaffoldResult(BaseModel):
    """Outcome of one scaffolding run."""

    state: State = State.START
    project_path: Path | None = None
    pins: dict[str, VersionPin] = Field(default_factory=dict)
    error: str | None = None
    error_code: str | None = None
    exit_code: int = 0
    history: list[State] = Field(default_factory=lambda: [State.START])

    @property
    def success(self) -> bool:
        return self.state is State.DONE


class ScaffoldPipeline:
    """Runs ``cargo-casper new`` for one project.

    Attributes:
        config: Run configuration (toolchain, registry, overrides).
        version_source: How dependency versions are resolved.  Defaults to
            the registry with a bundled fallback, the bundled table alone
            when offline, or ``*`` when source overrides are set.
    """

    def __init__(self, config: Config, version_source: VersionSource | None = None) -> None:
        self.config = config
        self.version_source = version_source or self._default_version_source()

    def _default_version_source(self) -> VersionSource:
        if self.config.overrides is not None:
            return WildcardVersionSource()
        if self.config.registry.offline:
            return BundledVersionSource()
        client = RegistryClient(
            index_url=self.config.registry.index_url,
            timeout=self.config.registry.timeout,
            user_agent=self.config.registry.user_agent,
        )
        return FallbackVersionSource(RegistryVersionSource(client), BundledVersionSource())

    @staticmethod
    def _advance(result: ScaffoldResult, state: State) -> None:
        if state is not State.FAILED and _NEXT_STATE.get(result.state) is not state:
            raise RuntimeError(f"illegal transition {result.state.value} -> {state.value}")
        result.state = state
        result.history.append(state)
        if state in STATE_TITLES:
            print_state_header(state.value, STATE_TITLES[state])

    async def run(self, name: str, parent_dir: str | Path | None = None) -> ScaffoldResult:
        """Scaffold project *name* inside *parent_dir* (default: ``config.output_dir``).

        Never raises for scaffolding failures; inspect ``result.success``.
        """
        started = time.monotonic()
        result = ScaffoldResult()
        parent = Path(parent_dir) if parent_dir is not None else self.config.output_dir

        try:
            spec = ProjectSpec.from_name(name, parent)
            ensure_target_available(spec.target_directory)

            self._advance(result, State.RESOLVING_VERSIONS)
            result.pins = await resolve_all(self.version_source)

            self._advance(result, State.RENDERING)
            generator = ProjectGenerator(
                spec,
                toolchain=self.config.toolchain,
                overrides=self.config.overrides,
            )
            files = generator.render(result.pins)

            self._advance(result, State.MATERIALIZING)
            result.project_path = await materialize(files, spec.target_directory)

            self._advance(result, State.DONE)

        except ScaffoldError as exc:
            self._fail(result, str(exc), exc.code, exc.exit_code)

        except Exception as exc:
            self._fail(result, f"internal error: {exc}", "internal_error", FAILURE_EXIT_CODE)
            console.print(f"[dim]{traceback.format_exc()}[/dim]", highlight=False)

        self._print_summary(result, time.monotonic() - started)
        return result

    def _fail(self, result: ScaffoldResult, message: str, code: str, exit_code: int) -> None:
        result.error = message
        result.error_code = code
        result.exit_code = exit_code
        self._advance(result, State.FAILED)
        print_error(message)

    @staticmethod
    def _print_summary(result: ScaffoldResult, elapsed: float) -> None:
        if not result.success:
            return
        print_summary_table(
            {
                name: f"{pin.resolved_version} ({pin.source.value})"
                for name, pin in result.pins.items()
            },
            title="Pinned Casper crates",
        )
        print_success(
            f"Created project at {result.project_path} in {format_duration(elapsed)}"
        )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cargo-casper",
        description="Command line tool for creating a Casper Wasm contract and its tests",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    new_parser = subparsers.add_parser(
        SUBCOMMAND_NAME,
        help="create a new Casper contract and test suite",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=(
            "Create a new Casper contract and test suite.\n\n"
            "This produces a Rust project containing two crates: the contract and a test\n"
            "suite for it. There is also a generated Makefile to simplify compiling the\n"
            "contract and tests."
        ),
        epilog=(
            "Next steps:\n"
            "  cd <NAME>\n"
            "  make prepare\n"
            "  make test\n"
        ),
    )
    new_parser.add_argument("name", help="Name of the new folder for contract and tests")
    new_parser.add_argument(
        "-d",
        "--directory",
        type=Path,
        default=None,
        help="Parent directory where the project is created (default: current directory)",
    )
    new_parser.add_argument(
        "--offline",
        action="store_true",
        help="Do not query crates.io; pin the versions bundled with this release",
    )
    new_parser.add_argument(
        "--toolchain",
        default=None,
        help="Rust toolchain written to rust-toolchain",
    )
    # Hidden: point the Casper crates at a local or git checkout of casper-node.
    new_parser.add_argument("--workspace-path", type=Path, help=argparse.SUPPRESS)
    new_parser.add_argument("--git-url", help=argparse.SUPPRESS)
    new_parser.add_argument("--git-branch", help=argparse.SUPPRESS)
    return parser


def _config_from_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> Config:
    try:
        config = Config.from_env()
    except ValueError as exc:
        parser.error(f"invalid CARGO_CASPER_* environment setting: {exc}")
    if args.directory is not None:
        config.output_dir = args.directory
    if args.toolchain:
        config.toolchain = args.toolchain
    if args.offline:
        config.registry.offline = True

    if args.workspace_path is not None or args.git_url is not None or args.git_branch is not None:
        try:
            config.overrides = SourceOverrides(
                workspace_path=args.workspace_path,
                git_url=args.git_url,
                git_branch=args.git_branch,
            )
        except ValidationError as exc:
            parser.error(exc.errors()[0]["msg"].removeprefix("Value error, "))
    return config


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for ``cargo-casper``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command != SUBCOMMAND_NAME:
        parser.error(f"{args.command} is not a valid subcommand")

    config = _config_from_args(parser, args)
    pipeline = ScaffoldPipeline(config)
    result = asyncio.run(pipeline.run(args.name))
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
