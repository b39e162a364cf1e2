"""Map JSON-Schema fragments to Python validator and type expressions.

One walk produces both outputs so they cannot drift apart:
- validator: a pydantic-compatible type expression carrying constraints
  (``Annotated[int, Field(ge=1)]``, ``TypedDict("Body", {...})``, ...)
- static type: the plain type hint for the same shape (``int``, ...)

Handles:
- string formats email / uri / url / uuid (at most one refinement)
- minLength / maxLength, minimum / maximum, minItems / maxItems
- integer vs number
- arrays with or without items
- objects with or without properties, required vs NotRequired members
- pattern as a compiled Python regex (ECMA named groups rewritten,
  patterns Python cannot compile are dropped with a warning)
- typeless enums as Literal choices; string enums validate as str and
  document their choices as a Literal in the static type
- JSON-Schema 3.1 type lists (first non-null entry wins)
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .naming import class_name

logger = logging.getLogger(__name__)


class SchemaKind(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    ENUM = "enum"
    ANY = "any"


@dataclass(frozen=True)
class PropertyNode:
    name: str
    node: SchemaNode
    required: bool
    description: str | None = None


@dataclass(frozen=True)
class SchemaNode:
    """Normalised, tagged view of a JSON-Schema fragment."""

    kind: SchemaKind
    format: str | None = None
    constraints: tuple[tuple[str, Any], ...] = ()
    pattern: str | None = None
    items: SchemaNode | None = None
    properties: tuple[PropertyNode, ...] | None = None
    choices: tuple[Any, ...] = ()


@dataclass(frozen=True)
class TypeRendering:
    validator: str
    static_type: str
    imports: frozenset[str] = field(default_factory=frozenset)


# Exact format match -> refined base type; first match is the only one applied
_STRING_FORMATS: dict[str, str] = {
    "email": "EmailStr",
    "uri": "AnyUrl",
    "url": "AnyUrl",
    "uuid": "UUID",
}

# JSON-Schema keyword -> pydantic Field keyword, per kind
_CONSTRAINT_KEYWORDS: dict[SchemaKind, tuple[tuple[str, str], ...]] = {
    SchemaKind.STRING: (("minLength", "min_length"), ("maxLength", "max_length")),
    SchemaKind.INTEGER: (("minimum", "ge"), ("maximum", "le")),
    SchemaKind.NUMBER: (("minimum", "ge"), ("maximum", "le")),
    SchemaKind.ARRAY: (("minItems", "min_length"), ("maxItems", "max_length")),
}

_SCALARS: dict[SchemaKind, tuple[str, str]] = {
    SchemaKind.STRING: ("str", "str"),
    SchemaKind.INTEGER: ("int", "int"),
    SchemaKind.NUMBER: ("float", "float"),
    SchemaKind.BOOLEAN: ("bool", "bool"),
}

# Name -> module it is imported from in generated code
IMPORT_SOURCES: dict[str, str] = {
    "Annotated": "typing",
    "Any": "typing",
    "Literal": "typing",
    "UUID": "uuid",
    "AnyUrl": "pydantic",
    "EmailStr": "pydantic",
    "Field": "pydantic",
    "NotRequired": "typing_extensions",
    "TypedDict": "typing_extensions",
    "re": "re",
}

_STDLIB_MODULES = {"re", "typing", "uuid"}

# Names imported as whole modules rather than from a module
_MODULE_IMPORTS = {"re"}

# ECMA-262 named group syntax, spelled (?P<name>...) in Python
_ECMA_NAMED_GROUP = re.compile(r"\(\?<(?=[A-Za-z_])")


def python_literal(value: Any) -> str:
    """Render a JSON value as Python source."""
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    return repr(value)


def _schema_type(schema: dict[str, Any]) -> str | None:
    """Declared type, taking the first non-null entry of a type list."""
    declared = schema.get("type")
    if isinstance(declared, list):
        declared = next((t for t in declared if t != "null"), None)
    return declared if isinstance(declared, str) else None


def _constraints(kind: SchemaKind, schema: dict[str, Any]) -> tuple[tuple[str, Any], ...]:
    return tuple(
        (target, schema[source])
        for source, target in _CONSTRAINT_KEYWORDS.get(kind, ())
        if schema.get(source) is not None
    )


def python_pattern(pattern: Any) -> str | None:
    """Translate an ECMA-262 pattern to Python ``re`` syntax.

    Returns None, with a warning, when Python cannot compile the result.
    """
    if not isinstance(pattern, str):
        return None
    translated = _ECMA_NAMED_GROUP.sub("(?P<", pattern)
    try:
        re.compile(translated)
    except re.error as error:
        logger.warning("Dropping pattern %r: %s", pattern, error)
        return None
    return translated


def normalize(schema: dict[str, Any] | None) -> SchemaNode:
    """Reduce a JSON-Schema fragment to a SchemaNode."""
    if not isinstance(schema, dict):
        return SchemaNode(SchemaKind.ANY)

    declared = _schema_type(schema)
    enum = schema.get("enum")
    choices = tuple(enum) if isinstance(enum, list) else ()

    if choices and declared is None:
        return SchemaNode(SchemaKind.ENUM, choices=choices)

    if declared == "string":
        fmt = schema.get("format")
        return SchemaNode(
            SchemaKind.STRING,
            format=fmt if fmt in _STRING_FORMATS else None,
            constraints=_constraints(SchemaKind.STRING, schema),
            pattern=python_pattern(schema.get("pattern")),
            choices=choices,
        )

    if declared in ("integer", "number"):
        kind = SchemaKind(declared)
        return SchemaNode(kind, constraints=_constraints(kind, schema))

    if declared == "boolean":
        return SchemaNode(SchemaKind.BOOLEAN)

    if declared == "array":
        return SchemaNode(
            SchemaKind.ARRAY,
            items=normalize(schema.get("items")),
            constraints=_constraints(SchemaKind.ARRAY, schema),
        )

    if declared == "object":
        properties = schema.get("properties")
        if not isinstance(properties, dict) or not properties:
            return SchemaNode(SchemaKind.OBJECT)
        required = set(schema.get("required") or [])
        return SchemaNode(
            SchemaKind.OBJECT,
            properties=tuple(
                PropertyNode(
                    name=str(name),
                    node=normalize(prop),
                    required=name in required,
                    description=prop.get("description") if isinstance(prop, dict) else None,
                )
                for name, prop in properties.items()
            ),
        )

    return SchemaNode(SchemaKind.ANY)


def field_call(**kwargs: Any) -> str:
    """Render ``Field(...)`` with the given keyword values."""
    args = ", ".join(f"{key}={python_literal(value)}" for key, value in kwargs.items())
    return f"Field({args})"


def _constrained(
    base: str, constraints: tuple[tuple[str, Any], ...], pattern: str | None = None,
) -> tuple[str, set[str]]:
    if not constraints and pattern is None:
        return base, set()
    args = [f"{key}={python_literal(value)}" for key, value in constraints]
    imports = {"Annotated", "Field"}
    if pattern is not None:
        # A compiled pattern makes pydantic validate with Python re
        args.append(f"pattern=re.compile({python_literal(pattern)})")
        imports.add("re")
    return f"Annotated[{base}, Field({', '.join(args)})]", imports


def _literal(choices: tuple[Any, ...]) -> str:
    return f"Literal[{', '.join(python_literal(v) for v in choices)}]"


def _render_object(node: SchemaNode, name_hint: str) -> TypeRendering:
    typed_dict = python_literal(class_name(name_hint))
    imports: set[str] = {"TypedDict"}
    validator_members: list[str] = []
    static_members: list[str] = []

    for prop in node.properties or ():
        child = render(prop.node, class_name(name_hint, prop.name))
        imports |= child.imports

        validator = child.validator
        static = child.static_type
        if prop.description:
            validator = f"Annotated[{validator}, {field_call(description=prop.description)}]"
            imports |= {"Annotated", "Field"}
        if not prop.required:
            validator = f"NotRequired[{validator}]"
            static = f"NotRequired[{static}]"
            imports.add("NotRequired")

        key = python_literal(prop.name)
        validator_members.append(f"{key}: {validator}")
        static_members.append(f"{key}: {static}")

    return TypeRendering(
        validator=f"TypedDict({typed_dict}, {{{', '.join(validator_members)}}})",
        static_type=f"TypedDict({typed_dict}, {{{', '.join(static_members)}}})",
        imports=frozenset(imports),
    )


def render(node: SchemaNode, name_hint: str = "Model") -> TypeRendering:
    """Render a SchemaNode into its validator and static type expressions."""
    if node.kind in _SCALARS:
        base, static = _SCALARS[node.kind]
        imports: set[str] = set()
        if node.kind is SchemaKind.STRING and node.format:
            base = _STRING_FORMATS[node.format]
            imports.add(base)
        if node.kind is SchemaKind.STRING and node.choices:
            static = _literal(node.choices)
        validator, extra = _constrained(base, node.constraints, node.pattern)
        return TypeRendering(validator, static, frozenset(imports | extra))

    if node.kind is SchemaKind.ARRAY:
        item = render(node.items or SchemaNode(SchemaKind.ANY), f"{name_hint}Item")
        validator, extra = _constrained(f"list[{item.validator}]", node.constraints)
        return TypeRendering(validator, f"list[{item.static_type}]", item.imports | extra)

    if node.kind is SchemaKind.OBJECT:
        if node.properties is None:
            return TypeRendering("dict[str, Any]", "dict[str, Any]", frozenset({"Any"}))
        return _render_object(node, name_hint)

    if node.kind is SchemaKind.ENUM:
        literal = _literal(node.choices)
        return TypeRendering(literal, literal, frozenset({"Literal"}))

    return TypeRendering("Any", "Any", frozenset({"Any"}))


def map_schema(schema: dict[str, Any] | None, name_hint: str = "Model") -> TypeRendering:
    """Normalise and render a schema in one go."""
    return render(normalize(schema), name_hint)


def to_validator_expression(schema: dict[str, Any] | None, name_hint: str = "Model") -> str:
    """Validator expression for a schema (pydantic-compatible type)."""
    return map_schema(schema, name_hint).validator


def to_static_type(schema: dict[str, Any] | None, name_hint: str = "Model") -> str:
    """Static Python type hint for a schema."""
    return map_schema(schema, name_hint).static_type


def render_imports(names: set[str] | frozenset[str]) -> tuple[list[str], list[str]]:
    """Import lines for the given names, as (stdlib, third-party) groups."""
    by_module: dict[str, list[str]] = {}
    modules: set[str] = set()
    for name in names:
        source = IMPORT_SOURCES[name]
        if source in _MODULE_IMPORTS:
            modules.add(source)
        else:
            by_module.setdefault(source, []).append(name)

    def _lines(modules: list[str]) -> list[str]:
        return [
            f"from {module} import {', '.join(sorted(by_module[module]))}"
            for module in sorted(modules)
        ]

    stdlib = [f"import {m}" for m in sorted(modules)]
    stdlib += _lines([m for m in by_module if m in _STDLIB_MODULES])
    third_party = _lines([m for m in by_module if m not in _STDLIB_MODULES])
    return stdlib, third_party
