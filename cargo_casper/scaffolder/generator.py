"""Project description and rendering for ``cargo-casper new``.

Validates the user-supplied project name, derives the name variants the
templates need, builds the placeholder context from the resolved version
pins, and renders the whole catalog into memory.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from cargo_casper.config import SourceOverrides
from cargo_casper.errors import InvalidInputError, RenderingError
from cargo_casper.scaffolder.catalog import Template, load_catalog
from cargo_casper.scaffolder.resolver import CASPER_DEPENDENCIES, VersionPin
from cargo_casper.scaffolder.templates import Placeholder, RenderedFile, TemplateRenderer

MAX_NAME_LENGTH = 64

_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")

# Names cargo refuses for a package, plus Rust keywords.
RESERVED_NAMES: frozenset[str] = frozenset(
    {
        "alloc", "core", "proc_macro", "std", "test",
        "abstract", "as", "async", "await", "become", "box", "break", "const",
        "continue", "crate", "do", "dyn", "else", "enum", "extern", "false",
        "final", "fn", "for", "if", "impl", "in", "let", "loop", "macro",
        "match", "mod", "move", "mut", "override", "priv", "pub", "ref",
        "return", "self", "static", "struct", "super", "trait", "true", "try",
        "type", "typeof", "unsafe", "unsized", "use", "virtual", "where",
        "while", "yield",
    }
)


# ---------------------------------------------------------------------------
# Project description
# ---------------------------------------------------------------------------


class ProjectSpec(BaseModel):
    """The project to scaffold: its name and where it will live."""

    model_config = ConfigDict(frozen=True)

    name: str
    target_directory: Path

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not value:
            raise ValueError("project name must not be empty")
        if "/" in value or "\\" in value:
            raise ValueError(f"project name `{value}` must not contain a path separator")
        if len(value) > MAX_NAME_LENGTH:
            raise ValueError(f"project name must be at most {MAX_NAME_LENGTH} characters")
        if not _NAME_RE.match(value):
            raise ValueError(
                f"project name `{value}` must start with a letter and contain only "
                "letters, digits, `-` or `_`"
            )
        if crate_name(value) in RESERVED_NAMES:
            raise ValueError(f"project name `{value}` is a reserved name")
        return value

    @classmethod
    def from_name(cls, name: str, parent_dir: str | Path = ".") -> "ProjectSpec":
        """Build a ``ProjectSpec`` for *name* created inside *parent_dir*.

        Raises:
            InvalidInputError: if *name* is not usable as a directory and
                crate name.
        """
        try:
            return cls(name=name, target_directory=Path(parent_dir) / name)
        except ValidationError as exc:
            reason = exc.errors()[0]["msg"].removeprefix("Value error, ")
            raise InvalidInputError(reason, data={"name": name}) from exc

    @property
    def crate_name(self) -> str:
        return crate_name(self.name)

    @property
    def project_slug(self) -> str:
        return project_slug(self.name)


def crate_name(name: str) -> str:
    """Normalise *name* the way cargo names the library target: ``My-App`` -> ``my_app``."""
    return name.lower().replace("-", "_")


def project_slug(name: str) -> str:
    """Normalise *name* for use as a directory or key: ``My_App`` -> ``my-app``."""
    return name.lower().replace("_", "-")


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class ProjectGenerator:
    """Renders the template catalog for one ``ProjectSpec``.

    Rendering is pure: the same spec, pins, toolchain and overrides always
    produce identical bytes.
    """

    def __init__(
        self,
        spec: ProjectSpec,
        *,
        toolchain: str,
        overrides: SourceOverrides | None = None,
        catalog: tuple[Template, ...] | None = None,
    ) -> None:
        self.spec = spec
        self.toolchain = toolchain
        self.overrides = overrides
        self.catalog = catalog if catalog is not None else load_catalog()
        self.renderer = TemplateRenderer()

    def build_context(self, pins: dict[str, VersionPin]) -> dict[str, Any]:
        """Build the placeholder context from the resolved *pins*."""
        context: dict[str, Any] = {
            Placeholder.PROJECT_NAME.value: self.spec.name,
            Placeholder.CRATE_NAME.value: self.spec.crate_name,
            Placeholder.PROJECT_SLUG.value: self.spec.project_slug,
            Placeholder.TOOLCHAIN_CHANNEL.value: self.toolchain,
            Placeholder.PATCH_SECTION.value: (
                self.overrides.patch_section() if self.overrides is not None else ""
            ),
        }
        for dependency in CASPER_DEPENDENCIES:
            pin = pins.get(dependency.name)
            if pin is None:
                raise RenderingError(
                    f"no version pin for `{dependency.name}`",
                    data={"dependency": dependency.name},
                )
            context[Placeholder.for_dependency(dependency.name).value] = pin.resolved_version
        return context

    def render(self, pins: dict[str, VersionPin]) -> list[RenderedFile]:
        """Render every catalog entry into memory."""
        return self.renderer.render_all(self.catalog, self.build_context(pins))
