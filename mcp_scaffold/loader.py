"""Load and normalise an OpenAPI 3.x document.

Reads the document from disk or over HTTP, checks the declared version,
resolves every $ref (internal and external) and exposes the endpoint list
that the rest of the pipeline works from.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import httpx
import yaml
from prance.util.resolver import RefResolver
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import SpecLoadError, UnsupportedVersionError

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "options", "head")

DEFAULT_BASE_URL = "https://api.example.com"

_SERVER_VARIABLE = re.compile(r"\{([^{}]+)\}")


class SpecInfo(BaseModel):
    """The info block of an OpenAPI document."""

    model_config = ConfigDict(frozen=True)

    title: str
    version: str
    description: str | None = None


class ParsedSpec(BaseModel):
    """Dereferenced view of an OpenAPI 3.x document."""

    model_config = ConfigDict(frozen=True)

    openapi: str
    info: SpecInfo
    servers: list[dict[str, Any]] = Field(default_factory=list)
    paths: dict[str, dict[str, Any]] = Field(default_factory=dict)
    components: dict[str, Any] | None = None
    security: list[dict[str, Any]] | None = None


class Endpoint(BaseModel):
    """A single (path, method) operation."""

    model_config = ConfigDict(frozen=True)

    path: str
    method: str  # GET / POST / PUT / DELETE / PATCH / OPTIONS / HEAD
    operation_id: str | None = None
    summary: str | None = None
    description: str | None = None
    parameters: list[dict[str, Any]] = Field(default_factory=list)
    request_body: dict[str, Any] | None = None
    responses: dict[str, Any] = Field(default_factory=dict)
    security: list[dict[str, Any]] | None = None
    tags: list[str] = Field(default_factory=list)


def is_url(spec_input: str) -> bool:
    """Return True when the spec input should be fetched over HTTP."""
    return spec_input.startswith(("http://", "https://"))


def _read_document(spec_input: str) -> tuple[str, str]:
    """Return (document text, absolute location) for a path or URL."""
    if is_url(spec_input):
        logger.info("Fetching OpenAPI document from %s", spec_input)
        response = httpx.get(spec_input, follow_redirects=True)
        response.raise_for_status()
        return response.text, str(response.url)

    path = Path(spec_input).expanduser().resolve()
    logger.info("Reading OpenAPI document from %s", path)
    return path.read_text(encoding="utf-8"), path.as_uri()


def _stop_recursion(limit: int, parsed_url: Any, recursions: Any = ()) -> dict[str, Any]:
    """Replace a recursive reference with an unconstrained schema."""
    logger.warning("Recursive reference %s replaced by an empty schema", parsed_url.geturl())
    return {}


def _dereference(document: dict[str, Any], location: str) -> dict[str, Any]:
    """Resolve every $ref in the document relative to its location."""
    resolver = RefResolver(
        document,
        location,
        recursion_limit_handler=_stop_recursion,
    )
    resolver.resolve_references()
    return resolver.specs


def _declared_version(document: dict[str, Any]) -> str | None:
    """Return the version string a document declares, if any."""
    version = document.get("openapi", document.get("swagger"))
    return None if version is None else str(version)


def _section(container: dict[str, Any], key: str, kind: type, where: str) -> Any:
    """Return ``container[key]`` (None when absent), rejecting the wrong type."""
    value = container.get(key)
    if value is not None and not isinstance(value, kind):
        raise SpecLoadError(
            f"Failed to parse OpenAPI spec: {where}{key} must be "
            f"{'a mapping' if kind is dict else 'a list'}, got {type(value).__name__}"
        )
    return value


def _check_parameters(parameters: list[Any] | None, where: str) -> None:
    for index, param in enumerate(parameters or []):
        if not isinstance(param, dict):
            raise SpecLoadError(f"Failed to parse OpenAPI spec: {where}parameters[{index}] is not a mapping")
        if not isinstance(param.get("name"), str) or not param["name"]:
            raise SpecLoadError(f"Failed to parse OpenAPI spec: {where}parameters[{index}] has no name")


def _check_paths(paths: dict[str, Any]) -> None:
    """Reject path items and operations whose fields have the wrong shape."""
    for path, item in paths.items():
        if not isinstance(item, dict):
            continue
        _check_parameters(_section(item, "parameters", list, f"{path}: "), f"{path}: ")
        for method in HTTP_METHODS:
            operation = item.get(method)
            if not isinstance(operation, dict):
                continue
            where = f"{method.upper()} {path}: "
            _check_parameters(_section(operation, "parameters", list, where), where)
            _section(operation, "tags", list, where)
            _section(operation, "responses", dict, where)
            _section(operation, "requestBody", dict, where)


def parse(spec_input: str) -> ParsedSpec:
    """Load, validate and dereference an OpenAPI document."""
    try:
        text, location = _read_document(spec_input)
        document = yaml.safe_load(text)
    except (OSError, ValueError, httpx.HTTPError, yaml.YAMLError) as exc:
        raise SpecLoadError(f"Failed to parse OpenAPI spec: {exc}") from exc

    if not isinstance(document, dict):
        raise SpecLoadError("Failed to parse OpenAPI spec: document is not a mapping")

    openapi = document.get("openapi")
    if openapi is None or not str(openapi).startswith("3."):
        raise UnsupportedVersionError(
            f"Unsupported OpenAPI version: {_declared_version(document)}. "
            "Only OpenAPI 3.x is supported."
        )

    try:
        document = _dereference(document, location)
    except Exception as exc:
        raise SpecLoadError(f"Failed to parse OpenAPI spec: {exc}") from exc

    info = _section(document, "info", dict, "") or {}
    paths = _section(document, "paths", dict, "") or {}
    _check_paths(paths)
    _section(document, "servers", list, "")
    _section(document, "components", dict, "")
    _section(document, "security", list, "")

    try:
        spec = ParsedSpec(
            openapi=str(openapi),
            info=SpecInfo(
                title=str(info.get("title") or "API"),
                version=str(info.get("version") or "1.0.0"),
                description=info.get("description"),
            ),
            servers=document.get("servers") or [],
            paths={path: item for path, item in paths.items() if isinstance(item, dict)},
            components=document.get("components"),
            security=document.get("security"),
        )
    except ValidationError as exc:
        raise SpecLoadError(f"Failed to parse OpenAPI spec: {exc}") from exc
    logger.info("Loaded %s v%s (OpenAPI %s, %d paths)",
                spec.info.title, spec.info.version, spec.openapi, len(spec.paths))
    return spec


def _merge_parameters(path_item: dict[str, Any], operation: dict[str, Any]) -> list[dict[str, Any]]:
    """Path-level parameters followed by operation-level ones, both kept."""
    params = list(path_item.get("parameters") or [])
    params.extend(operation.get("parameters") or [])
    return [p for p in params if isinstance(p, dict)]


def extract_endpoints(spec: ParsedSpec) -> list[Endpoint]:
    """Return one Endpoint per declared (path, method), in document order."""
    endpoints: list[Endpoint] = []

    for path, path_item in spec.paths.items():
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict):
                continue

            endpoints.append(Endpoint(
                path=path,
                method=method.upper(),
                operation_id=operation.get("operationId"),
                summary=operation.get("summary"),
                description=operation.get("description"),
                parameters=_merge_parameters(path_item, operation),
                request_body=operation.get("requestBody"),
                responses={str(code): resp for code, resp in (operation.get("responses") or {}).items()},
                security=operation.get("security"),
                tags=[str(t) for t in operation.get("tags") or []],
            ))

    return endpoints


def _expand_server_url(server: dict[str, Any]) -> str:
    """Substitute server variables with their declared defaults."""
    variables = server.get("variables") or {}

    def _default(match: re.Match[str]) -> str:
        var = variables.get(match.group(1))
        if isinstance(var, dict) and "default" in var:
            return str(var["default"])
        return match.group(0)

    return _SERVER_VARIABLE.sub(_default, str(server.get("url", "")))


def get_base_url(spec: ParsedSpec) -> str:
    """Return the first declared server URL, or a placeholder."""
    for server in spec.servers:
        if isinstance(server, dict) and server.get("url"):
            return _expand_server_url(server)
    return DEFAULT_BASE_URL


def get_security_schemes(spec: ParsedSpec) -> dict[str, dict[str, Any]]:
    """Return the security schemes declared under components."""
    schemes = (spec.components or {}).get("securitySchemes") or {}
    return {name: scheme for name, scheme in schemes.items() if isinstance(scheme, dict)}
