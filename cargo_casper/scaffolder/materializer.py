"""Writes a rendered file set to disk.

The target must be absent or an empty directory; the check happens before
anything is written.  On an I/O failure mid-write the materializer removes
what it created, on a best-effort basis, before raising.
"""

from __future__ import annotations

import asyncio
import shutil
import stat
from pathlib import Path
from typing import Iterable

from cargo_casper.errors import MaterializationError, TargetExistsError
from cargo_casper.scaffolder.templates import RenderedFile


def ensure_target_available(target: Path) -> None:
    """Raise ``TargetExistsError`` unless *target* is absent or an empty directory."""
    if not target.exists() and not target.is_symlink():
        return
    if target.is_dir() and not target.is_symlink():
        try:
            occupied = any(target.iterdir())
        except OSError as exc:
            raise MaterializationError(
                f"failed to inspect `{target}`: {exc}", data={"path": str(target)}
            ) from exc
        if not occupied:
            return
    raise TargetExistsError(
        f"destination `{target}` already exists", data={"path": str(target)}
    )


def _make_executable(path: Path) -> None:
    """Set the executable bit on a file."""
    current = path.stat().st_mode
    path.chmod(current | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def _first_missing(target: Path) -> Path | None:
    """Return the outermost directory in *target*'s chain that does not exist yet."""
    missing: Path | None = None
    for path in (target, *target.parents):
        if path.exists() or path.is_symlink():
            break
        missing = path
    return missing


def _cleanup(target: Path, created_root: Path | None, written: list[Path]) -> None:
    """Remove partial output; failures here are ignored.

    *created_root* is the outermost directory this run created, which may be
    an ancestor of *target*.
    """
    if created_root is not None:
        shutil.rmtree(created_root, ignore_errors=True)
        return
    for path in reversed(written):
        path.unlink(missing_ok=True)
    for directory in sorted(
        (p for p in target.rglob("*") if p.is_dir()),
        key=lambda p: len(p.parts),
        reverse=True,
    ):
        try:
            directory.rmdir()
        except OSError:
            continue


def write_project(files: Iterable[RenderedFile], target: Path) -> Path:
    """Synchronously write *files* under *target* and return the project root.

    Raises:
        TargetExistsError: if *target* is occupied.
        MaterializationError: on any filesystem failure.
    """
    ensure_target_available(target)
    created_root = _first_missing(target)
    written: list[Path] = []
    current: Path = target
    try:
        target.mkdir(parents=True, exist_ok=True)
        for rendered in files:
            current = target / rendered.relative_path
            current.parent.mkdir(parents=True, exist_ok=True)
            current.write_bytes(rendered.content)
            written.append(current)
            if rendered.is_executable:
                _make_executable(current)
    except OSError as exc:
        _cleanup(target, created_root, written)
        raise MaterializationError(
            f"failed to write `{current}`: {exc.strerror or exc}",
            data={"path": str(current)},
        ) from exc
    return target


async def materialize(files: Iterable[RenderedFile], target: str | Path) -> Path:
    """Write *files* under *target* without blocking the event loop."""
    return await asyncio.to_thread(write_project, list(files), Path(target))
