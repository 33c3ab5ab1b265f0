"""cargo-casper scaffolder -- renders and writes a new contract project.

Quick usage::

    from cargo_casper.scaffolder import ProjectGenerator, ProjectSpec, materialize
    from cargo_casper.scaffolder.resolver import BundledVersionSource, resolve_all

    spec = ProjectSpec.from_name("my_project", "/tmp/output")
    pins = await resolve_all(BundledVersionSource())
    files = ProjectGenerator(spec, toolchain="nightly-2022-08-03").render(pins)
    project_path = await materialize(files, spec.target_directory)
"""

from cargo_casper.scaffolder.catalog import Template, load_catalog
from cargo_casper.scaffolder.generator import ProjectGenerator, ProjectSpec
from cargo_casper.scaffolder.materializer import materialize
from cargo_casper.scaffolder.templates import Placeholder, RenderedFile, TemplateRenderer

__all__ = [
    "Placeholder",
    "ProjectGenerator",
    "ProjectSpec",
    "RenderedFile",
    "Template",
    "TemplateRenderer",
    "load_catalog",
    "materialize",
]
