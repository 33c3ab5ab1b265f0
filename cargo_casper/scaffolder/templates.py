"""Jinja2 template rendering for project scaffolding.

Provides the ``TemplateRenderer`` which turns catalog templates into
``RenderedFile`` objects.  Templates may only reference the closed set of
slots in :class:`Placeholder`; a template naming anything else, or a context
missing a slot a template needs, is a defect in the tool and raises
:class:`~cargo_casper.errors.RenderingError` instead of emitting literal
placeholder text.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Mapping

from jinja2 import Environment, StrictUndefined, TemplateError, meta
from pydantic import BaseModel, ConfigDict

from cargo_casper.errors import RenderingError
from cargo_casper.scaffolder.catalog import Template


class Placeholder(str, Enum):
    """Every slot a catalog template may reference."""

    PROJECT_NAME = "project_name"
    CRATE_NAME = "crate_name"
    PROJECT_SLUG = "project_slug"
    TOOLCHAIN_CHANNEL = "toolchain_channel"
    CASPER_CONTRACT_VERSION = "casper_contract_version"
    CASPER_TYPES_VERSION = "casper_types_version"
    CASPER_ENGINE_TEST_SUPPORT_VERSION = "casper_engine_test_support_version"
    CASPER_EXECUTION_ENGINE_VERSION = "casper_execution_engine_version"
    PATCH_SECTION = "patch_section"

    @classmethod
    def for_dependency(cls, crate: str) -> "Placeholder":
        """Return the version slot of *crate* (``casper-types`` -> ``casper_types_version``)."""
        return cls(f"{crate.replace('-', '_')}_version")


KNOWN_SLOTS: frozenset[str] = frozenset(p.value for p in Placeholder)


class RenderedFile(BaseModel):
    """Concrete file content waiting to be written."""

    model_config = ConfigDict(frozen=True)

    relative_path: str
    content: bytes
    is_executable: bool = False


class TemplateRenderer:
    """Renders catalog templates against a placeholder context.

    The environment keeps trailing newlines and uses ``StrictUndefined`` so
    nothing silently renders as an empty string.
    """

    def __init__(self) -> None:
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )

    def referenced_slots(self, body: str) -> set[str]:
        """Return the names a template body refers to."""
        try:
            ast = self.env.parse(body)
        except TemplateError as exc:
            raise RenderingError(f"template does not parse: {exc}") from exc
        return meta.find_undeclared_variables(ast)

    def render_string(self, body: str, context: Mapping[str, Any]) -> str:
        """Render *body* after checking every slot it names is known and supplied."""
        referenced = self.referenced_slots(body)
        unknown = sorted(referenced - KNOWN_SLOTS)
        if unknown:
            raise RenderingError(
                f"template references unknown placeholder(s): {', '.join(unknown)}",
                data={"unknown": unknown},
            )
        missing = sorted(name for name in referenced if name not in context)
        if missing:
            raise RenderingError(
                f"no value supplied for placeholder(s): {', '.join(missing)}",
                data={"missing": missing},
            )
        try:
            return self.env.from_string(body).render(**context)
        except TemplateError as exc:
            raise RenderingError(f"template failed to render: {exc}") from exc

    def render(self, template: Template, context: Mapping[str, Any]) -> RenderedFile:
        """Render one catalog template into a ``RenderedFile``."""
        try:
            text = self.render_string(template.body, context)
        except RenderingError as exc:
            exc.data.setdefault("template", template.relative_path)
            raise RenderingError(
                f"{template.relative_path}: {exc.message}", data=exc.data
            ) from exc
        return RenderedFile(
            relative_path=template.relative_path,
            content=text.encode("utf-8"),
            is_executable=template.is_executable,
        )

    def render_all(
        self, templates: Iterable[Template], context: Mapping[str, Any]
    ) -> list[RenderedFile]:
        """Render *templates* in catalog order."""
        return [self.render(template, context) for template in templates]
