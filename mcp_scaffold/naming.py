"""Canonical names for tools, projects and generated Python identifiers.

Tool names are kebab-case and double as the tool module file name:
  - operationId present -> kebab-case of the operationId
  - GET collection      -> list-{segments}
  - GET collection/{id} -> get-{segments minus one trailing "s"}
  - POST                -> create-{segments}
  - PUT / PATCH         -> update-{segments}
  - DELETE              -> delete-{segments}
  - anything else       -> {method}-{segments}

Examples:
  GET    /products              -> list-products
  GET    /products/{id}         -> get-product
  POST   /cart/items            -> create-cart-items
  DELETE /orders/{id}           -> delete-orders
  GET    /users/{id}/orders     -> get-users-order
  listPetsByOwner (operationId) -> list-pets-by-owner
"""

from __future__ import annotations

import keyword
import re

# Standard HTTP method to verb mapping (GET depends on the path shape)
_METHOD_VERBS: dict[str, str] = {
    "post": "create",
    "put": "update",
    "patch": "update",
    "delete": "delete",
}

DEFAULT_PROJECT_NAME = "mcp-server"


def _camel_to_kebab(name: str) -> str:
    """Insert dashes at camelCase and acronym boundaries."""
    s1 = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1-\2", name)
    return re.sub(r"([a-z\d])([A-Z])", r"\1-\2", s1)


def _collapse_dashes(name: str) -> str:
    """Collapse runs of dashes and trim them from both ends."""
    return re.sub(r"-{2,}", "-", name).strip("-")


def kebab_case(name: str) -> str:
    """Convert an operationId such as ``listPetsByOwner`` to kebab-case."""
    name = _camel_to_kebab(name)
    name = re.sub(r"[^A-Za-z0-9]+", "-", name)
    return _collapse_dashes(name.lower())


def is_placeholder(segment: str) -> bool:
    """True for a path segment that is a pure ``{param}`` placeholder."""
    return segment.startswith("{") and segment.endswith("}")


def path_segments(path: str) -> list[str]:
    """Literal (non-placeholder) segments of a URL path."""
    return [p for p in path.split("/") if p and not is_placeholder(p)]


def _sanitize_segment(segment: str) -> str:
    """Lower-case a path segment and keep it file-name safe."""
    return re.sub(r"[^a-z0-9_-]+", "-", segment.lower())


def build_tool_name(method: str, path: str, operation_id: str | None = None) -> str:
    """Build the canonical kebab-case tool name for an endpoint."""
    if operation_id and kebab_case(operation_id):
        return kebab_case(operation_id)

    method_lower = method.lower()
    has_placeholder = "{" in path
    joined = "-".join(_sanitize_segment(p) for p in path_segments(path))

    if method_lower == "get":
        if has_placeholder:
            # Naive singular: one trailing "s" goes
            singular = joined[:-1] if joined.endswith("s") else joined
            return _collapse_dashes(f"get-{singular}")
        return _collapse_dashes(f"list-{joined}")

    verb = _METHOD_VERBS.get(method_lower, method_lower)
    return _collapse_dashes(f"{verb}-{joined}")


def sanitize_project_name(title: str) -> str:
    """Turn a spec title into a project directory name."""
    name = re.sub(r"[^a-z0-9-]+", "-", title.lower())
    return _collapse_dashes(name) or DEFAULT_PROJECT_NAME


def python_identifier(name: str) -> str:
    """Convert an arbitrary name into a valid, non-keyword identifier.

    Leading underscores are dropped: generated code reserves them for its
    own locals.
    """
    ident = re.sub(r"\W+", "_", name)
    ident = re.sub(r"_{2,}", "_", ident).strip("_")
    if not ident:
        ident = "param"
    if ident[0].isdigit():
        ident = f"p_{ident}"
    if keyword.iskeyword(ident):
        ident += "_"
    return ident


def unique_identifiers(names: list[str], reserved: frozenset[str] = frozenset()) -> list[str]:
    """Map names to identifiers, suffixing duplicates with _2, _3, ...

    Identifiers listed in ``reserved`` get a trailing underscore first.
    """
    used: set[str] = set()
    result: list[str] = []
    for name in names:
        base = python_identifier(name)
        if base in reserved:
            base += "_"
        ident, count = base, 1
        while ident in used:
            count += 1
            ident = f"{base}_{count}"
        used.add(ident)
        result.append(ident)
    return result


def function_name(tool_name: str) -> str:
    """Python function name for a kebab-case tool name."""
    return python_identifier(tool_name)


def package_name(project_name: str) -> str:
    """Importable package name for a project name."""
    name = re.sub(r"\W+", "_", project_name.replace("-", "_")).lower().strip("_")
    if not name:
        return DEFAULT_PROJECT_NAME.replace("-", "_")
    if name[0].isdigit() or keyword.iskeyword(name):
        return f"mcp_{name}"
    return name


def class_name(*parts: str) -> str:
    """CamelCase name built from free-form parts (used for TypedDict names)."""
    words: list[str] = []
    for part in parts:
        words.extend(w for w in re.split(r"[^A-Za-z0-9]+", _camel_to_kebab(part)) if w)
    name = "".join(w[:1].upper() + w[1:] for w in words)
    if not name:
        return "Model"
    if name[0].isdigit():
        return f"M{name}"
    return name
