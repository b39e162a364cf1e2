"""Integration tests for a generated MCP server project.

The e-commerce fixture is generated once per module, its src/ directory is
put on sys.path and the generated modules are imported and exercised
against an httpx.MockTransport standing in for the upstream API. They
validate:
- Path placeholders are URL-quoted, query and header parameters forwarded
- Request bodies are serialised as JSON for POST
- Error responses have the {"error", "status", "message"} shape
- Tool signatures validate input the way FastMCP invokes them, including
  look-ahead patterns
- The server registers every tool module
"""

from __future__ import annotations

import importlib
import json
import sys
from typing import Any, Callable
from uuid import UUID

import httpx
import pytest
from pydantic import ValidationError, validate_call

from conftest import ECOMMERCE_SPEC
from mcp_scaffold.config import GenerationOptions
from mcp_scaffold.synthesizer import generate

PACKAGE = "e_commerce_api"
BASE_URL = "https://shop.test/v1"
PRODUCT_ID = "6f1c3a52-8f0e-4c1b-9a57-5d7b7f1e2a10"


# ---------------------------------------------------------------------------
# Generated project, importable for the duration of this module
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def generated(tmp_path_factory):
    """Generate the project and make its package importable."""
    output = tmp_path_factory.mktemp("generated")
    result = generate(GenerationOptions(
        spec_input=str(ECOMMERCE_SPEC), output_dir=output, auth_type="bearer",
    ))
    src = str(result.project_path / "src")
    sys.path.insert(0, src)
    yield result
    sys.path.remove(src)
    for name in list(sys.modules):
        if name == PACKAGE or name.startswith(f"{PACKAGE}."):
            del sys.modules[name]


@pytest.fixture(scope="module")
def client_module(generated):
    return importlib.import_module(f"{PACKAGE}.api.client")


@pytest.fixture(scope="module")
def tool_module(generated) -> Callable[[str], Any]:
    """Return a callable that imports a generated tool module by tool name."""
    def _load(name: str):
        return importlib.import_module(f"{PACKAGE}.tools.openapi.{name}")
    return _load


# ---------------------------------------------------------------------------
# Fake upstream API
# ---------------------------------------------------------------------------

class Upstream:
    """Records requests and replies with a configurable response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.response = httpx.Response(200, json={})

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
async def api_client(client_module, upstream):
    config = client_module.ClientConfig(base_url=BASE_URL, bearer_token="secret")
    client = client_module.ApiClient(config, transport=httpx.MockTransport(upstream.handle))
    yield client
    await client.aclose()


# ===========================================================================
# Tool execution
# ===========================================================================

class TestToolRequests:
    """What generated tools send upstream."""

    async def test_path_parameter_quoted(self, tool_module, api_client, upstream):
        upstream.response = httpx.Response(200, json={"id": "p 1", "name": "Book"})
        get_product = tool_module("get-product").build(api_client)

        result = await get_product(id="p 1/x")

        assert upstream.last.method == "GET"
        assert upstream.last.url.raw_path == b"/v1/products/p%201%2Fx"
        assert json.loads(result) == {"id": "p 1", "name": "Book"}

    async def test_auth_header(self, tool_module, api_client, upstream):
        await tool_module("list-orders").build(api_client)()
        assert upstream.last.headers["Authorization"] == "Bearer secret"

    async def test_header_parameter(self, tool_module, api_client, upstream):
        await tool_module("get-product").build(api_client)(id="p1", X_Request_Id="trace-1")
        assert upstream.last.headers["X-Request-Id"] == "trace-1"

    async def test_optional_header_omitted(self, tool_module, api_client, upstream):
        await tool_module("get-product").build(api_client)(id="p1")
        assert "X-Request-Id" not in upstream.last.headers

    async def test_query_parameters_forwarded(self, tool_module, api_client, upstream):
        list_products = tool_module("list-products").build(api_client)
        await list_products(search="dune", limit=5)
        assert dict(upstream.last.url.params) == {"search": "dune", "limit": "5"}

    async def test_body_sent_as_json(self, tool_module, api_client, upstream):
        upstream.response = httpx.Response(201, json={"ok": True})
        add_item = tool_module("create-cart-items").build(api_client)

        result = await add_item(body={"product_id": UUID(PRODUCT_ID), "quantity": 2})

        assert upstream.last.method == "POST"
        assert upstream.last.url.path == "/v1/cart/items"
        assert json.loads(upstream.last.content) == {"product_id": PRODUCT_ID, "quantity": 2}
        assert json.loads(result) == {"ok": True}

    async def test_non_json_response_returned_as_text(self, tool_module, api_client, upstream):
        upstream.response = httpx.Response(200, text="plain text")
        assert await tool_module("list-orders").build(api_client)() == "plain text"

    async def test_empty_response(self, tool_module, api_client, upstream):
        upstream.response = httpx.Response(204)
        assert await tool_module("delete-orders").build(api_client)(id="o1") == ""


# ===========================================================================
# Error responses
# ===========================================================================

class TestToolErrors:
    """Upstream failures become structured error text."""

    async def test_404_without_body(self, tool_module, api_client, upstream):
        upstream.response = httpx.Response(404)
        result = await tool_module("delete-orders").build(api_client)(id="missing")
        assert json.loads(result) == {"error": True, "status": 404, "message": "API error"}

    async def test_message_from_body(self, tool_module, api_client, upstream):
        upstream.response = httpx.Response(409, json={"message": "Out of stock"})
        add_item = tool_module("create-cart-items").build(api_client)
        result = await add_item(body={"product_id": PRODUCT_ID, "quantity": 1})
        assert json.loads(result) == {"error": True, "status": 409, "message": "Out of stock"}

    async def test_server_error_with_text_body(self, tool_module, api_client, upstream):
        upstream.response = httpx.Response(500, text="<html>boom</html>")
        result = await tool_module("list-orders").build(api_client)()
        assert json.loads(result)["status"] == 500

    async def test_transport_errors_propagate(self, tool_module, client_module):
        def _refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = client_module.ApiClient(
            client_module.ClientConfig(base_url=BASE_URL), transport=httpx.MockTransport(_refuse),
        )
        try:
            with pytest.raises(httpx.ConnectError):
                await tool_module("list-orders").build(client)()
        finally:
            await client.aclose()


# ===========================================================================
# Input validation
# ===========================================================================

class TestToolValidation:
    """Signatures carry the validators FastMCP applies to tool input."""

    async def test_valid_body_coerced(self, tool_module, api_client, upstream):
        add_item = validate_call(tool_module("create-cart-items").build(api_client))
        await add_item(body={"product_id": PRODUCT_ID, "quantity": 3, "note": "gift"})
        assert json.loads(upstream.last.content)["product_id"] == PRODUCT_ID

    async def test_invalid_uuid_rejected(self, tool_module, api_client, upstream):
        add_item = validate_call(tool_module("create-cart-items").build(api_client))
        with pytest.raises(ValidationError):
            await add_item(body={"product_id": "not-a-uuid", "quantity": 1})
        assert upstream.requests == []

    async def test_quantity_minimum(self, tool_module, api_client):
        add_item = validate_call(tool_module("create-cart-items").build(api_client))
        with pytest.raises(ValidationError):
            await add_item(body={"product_id": PRODUCT_ID, "quantity": 0})

    async def test_missing_required_member(self, tool_module, api_client):
        add_item = validate_call(tool_module("create-cart-items").build(api_client))
        with pytest.raises(ValidationError):
            await add_item(body={"quantity": 1})

    async def test_query_constraints(self, tool_module, api_client):
        list_products = validate_call(tool_module("list-products").build(api_client))
        with pytest.raises(ValidationError):
            await list_products(limit=500)

    async def test_string_enum_not_enforced(self, tool_module, api_client, upstream):
        list_products = validate_call(tool_module("list-products").build(api_client))
        await list_products(category="food")
        assert upstream.last.url.params["category"] == "food"

    async def test_lookahead_pattern(self, tool_module, api_client, upstream):
        add_item = validate_call(tool_module("create-cart-items").build(api_client))
        await add_item(body={"product_id": PRODUCT_ID, "quantity": 1, "coupon": "SAVE10"})
        assert json.loads(upstream.last.content)["coupon"] == "SAVE10"
        with pytest.raises(ValidationError):
            await add_item(body={"product_id": PRODUCT_ID, "quantity": 1, "coupon": "SAVEME"})

    def test_module_constants(self, tool_module):
        tool = tool_module("create-cart-items")
        assert tool.NAME == "create-cart-items"
        assert tool.METHOD == "POST"
        assert tool.PATH == "/cart/items"
        assert tool.INTENT == "write"
        assert tool.CATEGORY == "cart"
        assert tool.RETURNS == "Item added"


# ===========================================================================
# Client configuration and server registration
# ===========================================================================

class TestClientConfig:

    def test_from_env(self, client_module):
        config = client_module.ClientConfig.from_env({
            "API_BASE_URL": "https://staging.test", "BEARER_TOKEN": "t0k",
        })
        assert config.base_url == "https://staging.test"
        assert config.bearer_token == "t0k"

    def test_defaults(self, client_module):
        config = client_module.ClientConfig.from_env({})
        assert config.base_url == "https://eu.shop.example.com/v1"
        assert config.bearer_token is None

    def test_expand_path_leaves_unknown_placeholders(self, client_module):
        assert client_module.expand_path("/a/{x}/{y}", {"x": 1}) == "/a/1/{y}"


class RecordingMCP:
    """Stands in for FastMCP and records tool registrations."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.tools: dict[str, Any] = {}

    def tool(self, name: str, description: str):
        def _register(fn):
            self.tools[name] = (description, fn)
            return fn
        return _register


class TestServer:

    async def test_registers_every_tool(self, generated, api_client, monkeypatch):
        server = importlib.import_module(f"{PACKAGE}.server")
        monkeypatch.setattr(server, "FastMCP", RecordingMCP)

        mcp = server.create_server(api_client)

        assert mcp.name == "E-Commerce API"
        assert list(mcp.tools) == [
            "list-products", "get-product", "create-cart-items", "list-orders", "delete-orders",
        ]
        assert mcp.tools["list-products"][0] == "List products"

    async def test_builds_real_server(self, generated, api_client):
        from fastmcp import FastMCP

        server = importlib.import_module(f"{PACKAGE}.server")
        assert isinstance(server.create_server(api_client), FastMCP)

    async def test_real_server_lists_pattern_schema(self, generated, api_client):
        server = importlib.import_module(f"{PACKAGE}.server")
        mcp = server.create_server(api_client)

        tool = await mcp.get_tool("create-cart-items")
        assert "^(?=.*" in json.dumps(tool.parameters)
