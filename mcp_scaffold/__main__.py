"""Entry point: mcp-scaffold / python -m mcp_scaffold

  mcp-scaffold openapi SPEC [-n NAME] [-o DIR] [--base-url URL]
                            [--auth none|api-key|bearer] [--filter TEXT]
                            [--max-tools N | --no-limit] [--force] [--strict-names]
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from .config import DEFAULT_MAX_TOOLS, GenerationOptions
from .errors import ScaffoldError
from .synthesizer import generate


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log every file written.")
def main(verbose: bool) -> None:
    """Generate MCP server projects from API descriptions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("spec_input")
@click.option("-n", "--name", "project_name", default=None, help="Project name (default: derived from the API title).")
@click.option("-o", "--output", "output_dir", default=".", type=click.Path(file_okay=False, path_type=Path), help="Directory the project is created in.")
@click.option("--base-url", default=None, help="Override the server URL declared in the document.")
@click.option("--auth", "auth_type", default="none", type=click.Choice(["none", "api-key", "bearer"]), help="Authentication mode of the generated client.")
@click.option("--filter", "filter_text", default=None, help="Only endpoints whose path or tag contains this text.")
@click.option("--max-tools", default=DEFAULT_MAX_TOOLS, type=click.IntRange(min=1), show_default=True, help="Maximum number of tools to generate.")
@click.option("--no-limit", is_flag=True, help="Generate a tool for every endpoint.")
@click.option("--force", is_flag=True, help="Write into an existing, non-empty project directory.")
@click.option("--strict-names", is_flag=True, help="Fail when two endpoints map to the same tool name.")
def openapi(
    spec_input: str,
    project_name: str | None,
    output_dir: Path,
    base_url: str | None,
    auth_type: str,
    filter_text: str | None,
    max_tools: int,
    no_limit: bool,
    force: bool,
    strict_names: bool,
) -> None:
    """Generate an MCP server from an OpenAPI 3.x document (path or URL)."""
    options = GenerationOptions(
        spec_input=spec_input,
        project_name=project_name,
        output_dir=output_dir,
        base_url=base_url,
        auth_type=auth_type,
        filter=filter_text,
        max_tools=None if no_limit else max_tools,
        overwrite=force,
        on_name_collision="error" if strict_names else "overwrite",
    )
    try:
        result = generate(options)
    except ScaffoldError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"Generated {result.project_path} ({result.tools_generated} tools)")


if __name__ == "__main__":
    main()
