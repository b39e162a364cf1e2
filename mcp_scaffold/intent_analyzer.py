"""Derive a tool identity (name, description, intent, parameters) per endpoint."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .loader import Endpoint
from .naming import build_tool_name, path_segments

ParamType = Literal["string", "number", "boolean", "array", "object"]
Intent = Literal["read", "write", "delete", "search", "other"]

_SEARCH_MARKERS = ("search", "query", "filter")

_DESCRIPTION_VERBS: dict[str, str] = {
    "GET": "Get",
    "POST": "Create",
    "PUT": "Update",
    "PATCH": "Update",
    "DELETE": "Delete",
}

_METHOD_INTENTS: dict[str, Intent] = {
    "GET": "read",
    "POST": "write",
    "PUT": "write",
    "PATCH": "write",
    "DELETE": "delete",
}

_PARAM_TYPES: dict[str, ParamType] = {
    "string": "string",
    "integer": "number",
    "number": "number",
    "boolean": "boolean",
    "array": "array",
    "object": "object",
}


class ToolParameter(BaseModel):
    """One input of a generated tool."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    type: ParamType
    description: str | None = None
    required: bool = False
    schema_: dict[str, Any] | None = Field(default=None, alias="schema")
    location: str = "query"  # path / query / header / cookie / body


class ToolIntent(BaseModel):
    """Derived identity of the tool generated for one endpoint."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    category: str | None = None
    intent: Intent
    parameters: list[ToolParameter] = Field(default_factory=list)
    return_description: str


def map_param_type(schema: dict[str, Any]) -> ParamType:
    """Five-way parameter type for a schema; unknown types fall back to string."""
    return _PARAM_TYPES.get(str(schema.get("type")), "string")


def describe(endpoint: Endpoint) -> str:
    """Summary, else first sentence of the description, else a generated phrase."""
    if endpoint.summary:
        return endpoint.summary

    if endpoint.description:
        first_sentence = endpoint.description.split(".")[0].strip()
        return f"{first_sentence}."

    segments = path_segments(endpoint.path)
    resource = segments[-1] if segments else "resource"
    verb = _DESCRIPTION_VERBS.get(endpoint.method, endpoint.method)
    return f"{verb} {resource}"


def detect_intent(endpoint: Endpoint) -> Intent:
    """Search when a parameter looks like a search term, else by method."""
    for param in endpoint.parameters:
        name = str(param.get("name", "")).lower()
        if any(marker in name for marker in _SEARCH_MARKERS):
            return "search"
    return _METHOD_INTENTS.get(endpoint.method, "other")


def extract_parameters(endpoint: Endpoint) -> list[ToolParameter]:
    """Declared parameters with a schema, plus a synthetic ``body`` parameter."""
    params: list[ToolParameter] = []

    for param in endpoint.parameters:
        schema = param.get("schema")
        if not isinstance(schema, dict):
            continue
        params.append(ToolParameter(
            name=str(param["name"]),
            type=map_param_type(schema),
            description=param.get("description"),
            required=bool(param.get("required", False)),
            schema=schema,
            location=str(param.get("in", "query")),
        ))

    body = endpoint.request_body or {}
    content = body.get("content") or {}
    if "application/json" in content:
        json_content = content["application/json"] or {}
        params.append(ToolParameter(
            name="body",
            type="object",
            description=body.get("description") or "Request body",
            required=bool(body.get("required", False)),
            schema=json_content.get("schema"),
            location="body",
        ))

    return params


def describe_return(endpoint: Endpoint) -> str:
    """Description of the 200, 201 or default response, in that order."""
    for status in ("200", "201", "default"):
        response = endpoint.responses.get(status)
        if response is None:
            continue
        if isinstance(response, dict) and response.get("description"):
            return str(response["description"])
        break
    return f"Returns the result of the {endpoint.method} operation"


def analyze_endpoint(endpoint: Endpoint) -> ToolIntent:
    """Build the ToolIntent for an endpoint. Pure and deterministic."""
    return ToolIntent(
        name=build_tool_name(endpoint.method, endpoint.path, endpoint.operation_id),
        description=describe(endpoint),
        category=endpoint.tags[0] if endpoint.tags else None,
        intent=detect_intent(endpoint),
        parameters=extract_parameters(endpoint),
        return_description=describe_return(endpoint),
    )
