"""Turn an OpenAPI document into a complete MCP server project on disk.

Pipeline:
  parse -> extract endpoints -> filter / cap -> analyse -> check names
  -> create directories -> render and write every artifact

Nothing is written until the document has been parsed and every tool name
has been checked.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .codegen import Renderer, create_project_structure, write_artifact
from .config import GenerationOptions
from .context_builder import (
    ToolDocument,
    build_client_document,
    build_project_document,
    build_server_document,
    build_tool_document,
    template_context,
)
from .errors import NameCollisionError
from .intent_analyzer import analyze_endpoint
from .loader import Endpoint, ParsedSpec, extract_endpoints, get_base_url, parse
from .naming import package_name, sanitize_project_name

logger = logging.getLogger(__name__)


class GeneratedProject(BaseModel):
    """Outcome of one generation run."""

    model_config = ConfigDict(frozen=True)

    project_path: Path
    tools_generated: int
    spec: ParsedSpec


def filter_endpoints(
    endpoints: list[Endpoint], filter: str | None = None, max_tools: int | None = None,
) -> list[Endpoint]:
    """Keep endpoints whose path or a tag contains ``filter``, then cap the count."""
    selected = endpoints
    if filter:
        needle = filter.lower()
        selected = [
            e for e in selected
            if needle in e.path.lower() or any(needle in tag.lower() for tag in e.tags)
        ]

    if max_tools is not None and len(selected) > max_tools:
        logger.warning(
            "Tool limit of %d reached: skipping %d endpoints",
            max_tools, len(selected) - max_tools,
        )
        selected = selected[:max_tools]

    return selected


def resolve_project_name(spec: ParsedSpec, override: str | None = None) -> str:
    """Sanitised explicit name, else the sanitised API title, else the default."""
    return sanitize_project_name(override or spec.info.title)


def _check_collisions(tools: list[ToolDocument], on_collision: str) -> None:
    counts = Counter(tool.name for tool in tools)
    duplicates = sorted(name for name, count in counts.items() if count > 1)
    if not duplicates:
        return

    if on_collision == "error":
        raise NameCollisionError(f"Duplicate tool names: {', '.join(duplicates)}")
    for name in duplicates:
        logger.warning(
            "%d endpoints map to tool %r; the last one is kept", counts[name], name,
        )


def generate(options: GenerationOptions) -> GeneratedProject:
    """Generate an MCP server project from an OpenAPI document."""
    spec = parse(options.spec_input)
    endpoints = filter_endpoints(extract_endpoints(spec), options.filter, options.max_tools)
    logger.info("Generating tools for %d endpoints", len(endpoints))

    project_name = resolve_project_name(spec, options.project_name)
    package = package_name(project_name)
    project_path = (options.output_dir / project_name).resolve()
    base_url = options.base_url or get_base_url(spec)

    tools = [build_tool_document(e, analyze_endpoint(e)) for e in endpoints]
    _check_collisions(tools, options.on_name_collision)
    # Traversal order of first appearance; the last endpoint wins the content
    registered = list({tool.name: tool for tool in tools}.values())

    create_project_structure(project_path, package, overwrite=options.overwrite)
    renderer = Renderer()
    source = Path("src") / package

    project = template_context(build_project_document(
        spec, project_name, registered, base_url, options.auth_type,
    ))
    write_artifact(project_path, "pyproject.toml", renderer.render("pyproject.toml.j2", **project))
    write_artifact(project_path, "requirements.txt", renderer.render("requirements.txt.j2", **project))
    write_artifact(project_path, ".gitignore", renderer.render("gitignore.j2", **project))

    client = template_context(build_client_document(spec, base_url, options.auth_type))
    write_artifact(project_path, str(source / "api" / "client.py"), renderer.render("client.py.j2", **client))
    write_artifact(project_path, ".env.example", renderer.render("env.example.j2", **project))

    for tool in tools:
        write_artifact(
            project_path,
            str(source / "tools" / "openapi" / f"{tool.name}.py"),
            renderer.render("tool.py.j2", **template_context(tool)),
        )

    server = template_context(build_server_document(
        spec, project_name, registered, options.auth_type,
    ))
    write_artifact(project_path, str(source / "server.py"), renderer.render("server.py.j2", **server))
    write_artifact(project_path, "README.md", renderer.render("README.md.j2", **project))

    logger.info("Wrote %s (%d tools)", project_path, len(endpoints))
    return GeneratedProject(project_path=project_path, tools_generated=len(endpoints), spec=spec)
