"""cargo-casper errors.

Typed exception hierarchy for the scaffolding run.  Every user-facing failure
is a :class:`ScaffoldError` carrying a stable machine-readable ``code`` and the
process ``exit_code`` the CLI should return.

Usage::

    from cargo_casper.errors import TargetExistsError

    raise TargetExistsError("destination `demo` already exists", data={"path": "demo"})
"""

from __future__ import annotations

from typing import Any, Mapping

#: Exit code returned by the CLI for every scaffolding failure.
FAILURE_EXIT_CODE = 101


class ScaffoldError(Exception):
    """Base class for scaffolding errors.

    Subclasses set ``default_code``.
    """

    default_code = "scaffold_error"
    exit_code = FAILURE_EXIT_CODE

    def __init__(
        self,
        message: str = "",
        *,
        code: str | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.data: dict[str, Any] = dict(data) if data else {}

    def __str__(self) -> str:
        return self.message or self.code


class InvalidInputError(ScaffoldError):
    """Malformed project name or conflicting options."""

    default_code = "invalid_input"


class TargetExistsError(ScaffoldError):
    """Destination already present and not empty."""

    default_code = "target_exists"


class VersionResolutionError(ScaffoldError):
    """No compatible version could be found by any path."""

    default_code = "version_resolution_failed"


class RenderingError(ScaffoldError):
    """Catalog and substitution engine disagree about placeholders.

    Always a defect in the tool itself, never caused by user input.
    """

    default_code = "rendering_internal_error"


class MaterializationError(ScaffoldError):
    """Filesystem failure while writing the generated tree."""

    default_code = "materialization_io_error"


class RegistryUnavailable(Exception):
    """The registry could not supply a compatible version.

    Internal signal for the degraded path; the fallback source handles it.
    """


__all__ = [
    "FAILURE_EXIT_CODE",
    "InvalidInputError",
    "MaterializationError",
    "RegistryUnavailable",
    "RenderingError",
    "ScaffoldError",
    "TargetExistsError",
    "VersionResolutionError",
]
