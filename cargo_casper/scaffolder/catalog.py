"""Template catalog for the generated project.

Every file written by ``cargo-casper new`` has one entry here: its path
inside the new project, the ``.j2`` template providing its body, and whether
it should be executable.  The catalog order is stable so rendered output is
reproducible.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from cargo_casper.errors import RenderingError

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

#: (destination inside the project, template file, executable)
CATALOG_ENTRIES: tuple[tuple[str, str, bool], ...] = (
    ("contract/.cargo/config.toml", "contract/cargo_config.toml.j2", False),
    ("contract/Cargo.toml", "contract/Cargo.toml.j2", False),
    ("contract/src/main.rs", "contract/main.rs.j2", False),
    ("Makefile", "Makefile.j2", False),
    ("rust-toolchain", "rust-toolchain.j2", False),
    ("tests/Cargo.toml", "tests/Cargo.toml.j2", False),
    ("tests/src/integration_tests.rs", "tests/integration_tests.rs.j2", False),
    (".travis.yml", "travis.yml.j2", False),
)


class Template(BaseModel):
    """A file blueprint: destination path plus placeholder-bearing body."""

    model_config = ConfigDict(frozen=True)

    relative_path: str
    body: str
    is_executable: bool = False


def load_catalog(template_dir: str | Path | None = None) -> tuple[Template, ...]:
    """Load every catalog entry's body from *template_dir*.

    Raises:
        RenderingError: if a template file is missing, which means the
            package was built without its data files.
    """
    base = Path(template_dir) if template_dir is not None else _DEFAULT_TEMPLATE_DIR
    templates: list[Template] = []
    for relative_path, template_name, executable in CATALOG_ENTRIES:
        source = base / template_name
        try:
            body = source.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise RenderingError(
                f"template `{template_name}` for `{relative_path}` is missing",
                data={"template": str(source)},
            ) from exc
        templates.append(
            Template(relative_path=relative_path, body=body, is_executable=executable)
        )
    return tuple(templates)
