"""Render templates and write generated output.

All escaping happens in the Renderer's filters so that documents built by
context_builder stay free of formatting concerns.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import jinja2

from .errors import DirectoryExistsError
from .schema_parser import python_literal

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


def one_line(value: Any) -> str:
    """Collapse all whitespace, newlines included, to single spaces."""
    return " ".join(str(value).split())


def docstring_text(value: Any) -> str:
    """Single-line text that is safe inside a triple-quoted docstring."""
    text = one_line(value)
    text = text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if text.endswith('"'):
        text = text[:-1] + '\\"'
    return text


def toml_string(value: Any) -> str:
    """TOML basic string literal."""
    return json.dumps(str(value), ensure_ascii=False)


def markdown_cell(value: Any) -> str:
    """Single-line text that is safe inside a Markdown table cell."""
    return one_line(value).replace("|", "\\|")


def env_value(value: Any) -> str:
    """Value for a dotenv line; quoted when it contains whitespace or '#'."""
    text = str(value)
    if any(ch.isspace() for ch in text) or "#" in text:
        return json.dumps(text)
    return text


class Renderer:
    """Jinja2 environment shared by every generated artifact."""

    def __init__(self, template_dir: Path = TEMPLATE_DIR) -> None:
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=jinja2.StrictUndefined,
        )
        self.env.filters["pystr"] = python_literal
        self.env.filters["oneline"] = one_line
        self.env.filters["docstring"] = docstring_text
        self.env.filters["tomlstr"] = toml_string
        self.env.filters["mdcell"] = markdown_cell
        self.env.filters["envvalue"] = env_value

    def render(self, template_name: str, **context: Any) -> str:
        template = self.env.get_template(template_name)
        return template.render(**context)


def create_project_structure(project_path: Path, package: str, overwrite: bool = False) -> None:
    """Create the project directories and package markers.

    Refuses to touch a non-empty existing directory unless overwrite is set.
    """
    if project_path.exists() and not overwrite:
        if not project_path.is_dir() or any(project_path.iterdir()):
            raise DirectoryExistsError(f"Directory already exists and is not empty: {project_path}")

    package_dir = project_path / "src" / package
    for subdir in ("api", "tools/openapi"):
        (package_dir / subdir).mkdir(parents=True, exist_ok=True)

    for marker in ("", "api", "tools", "tools/openapi"):
        init = package_dir / marker / "__init__.py"
        if not init.exists():
            init.write_text("", encoding="utf-8")


def write_artifact(project_path: Path, relative: str, content: str) -> Path:
    """Write one generated file below the project root."""
    output_path = project_path / relative
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content, encoding="utf-8")
    logger.debug("Wrote %s", output_path)
    return output_path
