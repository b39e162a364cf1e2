"""Build the document objects the templates render.

Each generated artifact gets an explicit document (ToolDocument,
ClientDocument, ServerDocument, ProjectDocument) so that content decisions
live here and all escaping/formatting lives in codegen.Renderer.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .config import AuthType
from .intent_analyzer import ToolIntent
from .loader import Endpoint, ParsedSpec, get_security_schemes
from .naming import class_name, function_name, package_name, unique_identifiers
from .schema_parser import field_call, map_schema, render_imports

DEFAULT_API_KEY_HEADER = "X-API-Key"
DEFAULT_PACKAGE_VERSION = "0.1.0"

_RELEASE_VERSION = re.compile(r"\d+(\.\d+)*")

# Methods that send the synthetic body parameter as the JSON payload
_BODY_METHODS = {"POST", "PUT", "PATCH"}

# Module-level names a generated tool body refers to; parameters must not shadow them
RESERVED_IDENTIFIERS = frozenset({
    "CATEGORY", "DESCRIPTION", "INTENT", "METHOD", "NAME", "PATH", "RETURNS",
    "ApiClient", "api_error", "build", "expand_path", "format_response", "httpx",
})

# Dependencies of every generated project
GENERATED_DEPENDENCIES: list[str] = [
    "fastmcp>=2.10",
    "httpx>=0.27",
    "pydantic[email]>=2.7",
    "python-dotenv>=1.0",
    "typing-extensions>=4.6",
]

# Environment variables read by the generated server at start-up
ENV_BASE_URL = "API_BASE_URL"
_ENV_CREDENTIALS: dict[str, str] = {
    "api-key": "API_KEY",
    "bearer": "BEARER_TOKEN",
}


class _Document(BaseModel):
    model_config = ConfigDict(frozen=True)


class ArgumentNode(_Document):
    """One keyword parameter of a generated tool function."""

    name: str
    identifier: str
    location: str
    annotation: str
    static_type: str
    description: str | None = None
    required: bool = False


class ToolDocument(_Document):
    name: str
    function_name: str
    description: str
    method: str
    path: str
    intent: str
    category: str | None = None
    returns: str
    arguments: list[ArgumentNode] = Field(default_factory=list)
    path_arguments: list[ArgumentNode] = Field(default_factory=list)
    query_arguments: list[ArgumentNode] = Field(default_factory=list)
    header_arguments: list[ArgumentNode] = Field(default_factory=list)
    body_argument: ArgumentNode | None = None
    stdlib_imports: list[str] = Field(default_factory=list)
    third_party_imports: list[str] = Field(default_factory=list)


class ClientDocument(_Document):
    title: str
    base_url: str
    auth_type: AuthType
    api_key_header: str
    base_url_env: str = ENV_BASE_URL
    credential_env: str | None = None


class ServerDocument(_Document):
    title: str
    version: str
    package: str
    tool_modules: list[str]
    credential_env: str | None = None


class ToolSummary(_Document):
    name: str
    description: str
    method: str
    path: str


class ProjectDocument(_Document):
    project_name: str
    package: str
    title: str
    version: str
    package_version: str
    description: str
    dependencies: list[str]
    tools: list[ToolSummary]
    base_url: str
    auth_type: AuthType
    base_url_env: str = ENV_BASE_URL
    credential_env: str | None = None


def _annotation(validator: str, description: str | None, required: bool) -> str:
    """Signature annotation: the validator, optional-wrapped and described."""
    annotation = validator if required else f"{validator} | None"
    if description:
        annotation = f"Annotated[{annotation}, {field_call(description=description)}]"
    return annotation


def build_tool_document(endpoint: Endpoint, intent: ToolIntent) -> ToolDocument:
    """Assemble everything the tool template needs for one endpoint."""
    identifiers = unique_identifiers([p.name for p in intent.parameters], RESERVED_IDENTIFIERS)
    names: set[str] = set()
    arguments: list[ArgumentNode] = []

    for param, identifier in zip(intent.parameters, identifiers):
        rendering = map_schema(param.schema_, class_name(intent.name, param.name))
        names |= rendering.imports
        if param.description:
            names |= {"Annotated", "Field"}
        arguments.append(ArgumentNode(
            name=param.name,
            identifier=identifier,
            location=param.location,
            annotation=_annotation(rendering.validator, param.description, param.required),
            static_type=rendering.static_type,
            description=param.description,
            required=param.required,
        ))

    path_arguments = [a for a in arguments if f"{{{a.name}}}" in endpoint.path]
    body_argument = None
    if endpoint.method in _BODY_METHODS:
        body_argument = next(
            (a for a in arguments if a.name == "body" and a.location == "body"), None,
        )

    stdlib_imports, third_party_imports = render_imports(names)
    return ToolDocument(
        name=intent.name,
        function_name=function_name(intent.name),
        description=intent.description,
        method=endpoint.method,
        path=endpoint.path,
        intent=intent.intent,
        category=intent.category,
        returns=intent.return_description,
        # Required parameters first: Python forbids them after defaulted ones
        arguments=sorted(arguments, key=lambda a: not a.required),
        path_arguments=path_arguments,
        query_arguments=[
            a for a in arguments if a.location == "query" and a not in path_arguments
        ],
        header_arguments=[
            a for a in arguments if a.location == "header" and a not in path_arguments
        ],
        body_argument=body_argument,
        stdlib_imports=stdlib_imports,
        third_party_imports=third_party_imports,
    )


def api_key_header(spec: ParsedSpec) -> str:
    """Header name of the first header-located apiKey scheme."""
    for scheme in get_security_schemes(spec).values():
        if scheme.get("type") == "apiKey" and scheme.get("in") == "header" and scheme.get("name"):
            return str(scheme["name"])
    return DEFAULT_API_KEY_HEADER


def credential_env(auth_type: AuthType) -> str | None:
    """Environment variable holding the credential for an auth mode."""
    return _ENV_CREDENTIALS.get(auth_type)


def build_client_document(spec: ParsedSpec, base_url: str, auth_type: AuthType) -> ClientDocument:
    return ClientDocument(
        title=spec.info.title,
        base_url=base_url,
        auth_type=auth_type,
        api_key_header=api_key_header(spec),
        credential_env=credential_env(auth_type),
    )


def build_server_document(
    spec: ParsedSpec, project_name: str, tools: list[ToolDocument], auth_type: AuthType,
) -> ServerDocument:
    """Server entry: one registration per distinct tool name, traversal order."""
    modules: list[str] = []
    for tool in tools:
        if tool.name not in modules:
            modules.append(tool.name)

    return ServerDocument(
        title=spec.info.title,
        version=spec.info.version,
        package=package_name(project_name),
        tool_modules=modules,
        credential_env=credential_env(auth_type),
    )


def package_version(version: str) -> str:
    """Manifest version: the API version when it is a plain release number."""
    return version if _RELEASE_VERSION.fullmatch(version) else DEFAULT_PACKAGE_VERSION


def build_project_document(
    spec: ParsedSpec,
    project_name: str,
    tools: list[ToolDocument],
    base_url: str,
    auth_type: AuthType,
) -> ProjectDocument:
    info = spec.info
    return ProjectDocument(
        project_name=project_name,
        package=package_name(project_name),
        title=info.title,
        version=info.version,
        package_version=package_version(info.version),
        description=info.description or f"MCP server for {info.title}",
        dependencies=GENERATED_DEPENDENCIES,
        tools=[
            ToolSummary(name=t.name, description=t.description, method=t.method, path=t.path)
            for t in tools
        ],
        base_url=base_url,
        auth_type=auth_type,
        credential_env=credential_env(auth_type),
    )


def template_context(document: BaseModel) -> dict[str, Any]:
    """Expose a document's fields as top-level template variables."""
    return {name: getattr(document, name) for name in type(document).model_fields}
