"""
Schema introspection and validation.

Schemas are JSON Schema documents (plain dicts). Pydantic model classes are
accepted too and converted through model_json_schema(). Every node is
classified by its *shape* - which keywords it carries - never by the Python
type that produced it, so schemas built by another copy of pydantic (or
written by hand, or loaded from disk) walk the same way.

Node kinds:
  OBJECT    {"type": "object", "properties": {...}, "required": [...]}
  ARRAY     {"type": "array", "items": {...}}
  NULLABLE  {"anyOf": [X, {"type": "null"}]}  or  {"type": ["string", "null"]}
  OPTIONAL  OptionalSchema(X) - a property slot missing from "required"
  PRIMITIVE anything else (scalars, enums, records, unions, foreign shapes)
"""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from jsonschema import exceptions as jsonschema_exceptions
from jsonschema.validators import Draft202012Validator, validator_for

from .exceptions import SchemaError, ValidationError
from .logger import get_module_logger

logger = get_module_logger("schema_utils")

# String format that marks a URL-constrained leaf (pydantic emits it for AnyUrl/HttpUrl)
URL_FORMAT = "uri"

# Keywords whose values are maps of name → subschema
SCHEMA_MAP_KEYWORDS = ("properties", "patternProperties", "dependentSchemas")

# Keywords whose values are instance data, not subschemas
DATA_KEYWORDS = ("enum", "const", "default", "examples")


class SchemaKind(Enum):
    """Structural tag of a schema node."""
    PRIMITIVE = "primitive"
    OBJECT = "object"
    ARRAY = "array"
    OPTIONAL = "optional"
    NULLABLE = "nullable"


class _Sentinel:
    """Falsy named singleton that survives copy/pickle as itself."""

    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return self._name


# No value satisfying the schema could be recovered at this node
UNSANITIZABLE = _Sentinel("UNSANITIZABLE")

# The value is absent (an optional property degraded to "not there")
MISSING = _Sentinel("MISSING")


@dataclass(frozen=True)
class OptionalSchema:
    """A property slot that may be absent from its parent object."""
    inner: Any


# --- Classification ---

def _is_null_branch(branch: Any) -> bool:
    return isinstance(branch, Mapping) and branch.get("type") == "null"


def _nullable_form(schema: Mapping) -> str | None:
    """Return the keyword that makes this node nullable, if any."""
    for keyword in ("anyOf", "oneOf"):
        branches = schema.get(keyword)
        if isinstance(branches, list) and len(branches) > 1:
            nulls = sum(1 for b in branches if _is_null_branch(b))
            if 0 < nulls < len(branches):
                return keyword

    types = schema.get("type")
    if isinstance(types, list) and "null" in types and any(t != "null" for t in types):
        return "type"

    return None


def kind_of(schema: Any) -> SchemaKind:
    """Classify a schema node. Unknown or foreign shapes are PRIMITIVE."""
    if isinstance(schema, OptionalSchema):
        return SchemaKind.OPTIONAL
    if not isinstance(schema, Mapping):
        return SchemaKind.PRIMITIVE

    if _nullable_form(schema) is not None:
        return SchemaKind.NULLABLE

    # Objects without "properties" are free-form maps (records) and are
    # validated whole, like any other leaf
    if isinstance(schema.get("properties"), Mapping) and schema.get("type", "object") == "object":
        return SchemaKind.OBJECT

    if schema.get("type") == "array" and isinstance(schema.get("items"), Mapping):
        return SchemaKind.ARRAY

    return SchemaKind.PRIMITIVE


def has_url_constraint(schema: Any) -> bool:
    """True only for a string node carrying the URL format."""
    return (
        isinstance(schema, Mapping)
        and schema.get("type") == "string"
        and schema.get("format") == URL_FORMAT
    )


# --- Child access and rebuilding ---
# Accessors never mutate; the with_*/rewrap helpers always return new nodes.

def object_properties(schema: Mapping) -> dict[str, Any]:
    """
    Property schemas of an OBJECT node, in declaration order.

    Properties not listed in "required" come back wrapped in OptionalSchema
    so callers see the Optional kind explicitly.
    """
    required = set(schema.get("required") or ())
    return {
        name: prop if name in required else OptionalSchema(prop)
        for name, prop in schema["properties"].items()
    }


def with_properties(schema: Mapping, properties: Mapping[str, Any]) -> dict:
    """Rebuild an OBJECT node around new property slots."""
    rebuilt = dict(schema)
    rebuilt["properties"] = {
        name: prop.inner if isinstance(prop, OptionalSchema) else prop
        for name, prop in properties.items()
    }
    required = [name for name, prop in properties.items() if not isinstance(prop, OptionalSchema)]
    if required or "required" in schema:
        rebuilt["required"] = required
    return rebuilt


def array_items(schema: Mapping) -> Any:
    """Element schema of an ARRAY node."""
    return schema["items"]


def with_items(schema: Mapping, items: Any) -> dict:
    """Rebuild an ARRAY node around a new element schema."""
    rebuilt = dict(schema)
    rebuilt["items"] = items
    return rebuilt


def unwrap(schema: Any) -> Any:
    """Inner schema of an OPTIONAL or NULLABLE node."""
    if isinstance(schema, OptionalSchema):
        return schema.inner

    form = _nullable_form(schema) if isinstance(schema, Mapping) else None
    if form is None:
        raise SchemaError("unwrap() needs an optional or nullable schema", details={"schema": schema})

    if form == "type":
        remaining = [t for t in schema["type"] if t != "null"]
        inner = dict(schema)
        inner["type"] = remaining[0] if len(remaining) == 1 else remaining
        if isinstance(inner.get("enum"), list) and None in inner["enum"]:
            inner["enum"] = [v for v in inner["enum"] if v is not None]
        return inner

    branches = [b for b in schema[form] if not _is_null_branch(b)]
    if len(branches) == 1:
        return branches[0]
    return {form: branches}


def rewrap(schema: Any, inner: Any) -> Any:
    """Rebuild an OPTIONAL or NULLABLE node around a new inner schema."""
    if isinstance(schema, OptionalSchema):
        return OptionalSchema(inner)

    form = _nullable_form(schema)
    if form == "type":
        rebuilt = dict(inner)
        rebuilt["type"] = list(schema["type"])
        if "enum" in schema:
            rebuilt["enum"] = schema["enum"]
        return rebuilt

    branches = [b for b in schema[form] if not _is_null_branch(b)]
    replacements = iter([inner] if len(branches) == 1 else inner[form])
    rebuilt = dict(schema)
    rebuilt[form] = [b if _is_null_branch(b) else next(replacements) for b in schema[form]]
    return rebuilt


def without_url_constraint(schema: Mapping) -> dict:
    """Copy of a URL string node with only the format dropped."""
    return {key: value for key, value in schema.items() if key != "format"}


# --- Normalization ---

def _resolve_pointer(root: Mapping, ref: str) -> Any:
    if not ref.startswith("#/"):
        raise SchemaError(f"Only local schema references are supported: {ref}")

    node: Any = root
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if not isinstance(node, Mapping) or part not in node:
            raise SchemaError(f"Unresolvable schema reference: {ref}")
        node = node[part]
    return node


def _inline_refs(node: Any, root: Mapping, stack: tuple) -> Any:
    if isinstance(node, list):
        return [_inline_refs(item, root, stack) for item in node]
    if not isinstance(node, Mapping):
        return node

    ref = node.get("$ref")
    if isinstance(ref, str):
        if ref in stack:
            raise SchemaError(f"Recursive schema references are not supported: {ref}")
        target = _resolve_pointer(root, ref)
        if not isinstance(target, Mapping):
            raise SchemaError(f"Schema reference does not point at a schema: {ref}")
        # Sibling keywords (description, title, ...) override the target's
        merged = {**target, **{k: v for k, v in node.items() if k != "$ref"}}
        return _inline_refs(merged, root, stack + (ref,))

    result = {}
    for key, value in node.items():
        if key in DATA_KEYWORDS:
            result[key] = copy.deepcopy(value)
        elif key in SCHEMA_MAP_KEYWORDS and isinstance(value, Mapping):
            result[key] = {name: _inline_refs(sub, root, stack) for name, sub in value.items()}
        else:
            result[key] = _inline_refs(value, root, stack)

    # {"allOf": [X], "description": ...} is how older generators attach
    # metadata to a reference; fold it into X so X's kind shows through
    branches = result.get("allOf")
    if isinstance(branches, list) and len(branches) == 1 and isinstance(branches[0], Mapping):
        siblings = {k: v for k, v in result.items() if k != "allOf"}
        result = {**branches[0], **siblings}

    return result


def normalize_schema(schema: Any) -> Any:
    """
    Turn caller input into a self-contained JSON Schema.

    Accepts a JSON Schema dict or anything with model_json_schema() (pydantic
    models). Local $refs are inlined and $defs dropped so every subtree can be
    validated on its own.

    Raises:
        SchemaError: for invalid, recursive or non-local schemas
    """
    if isinstance(schema, OptionalSchema):
        return OptionalSchema(normalize_schema(schema.inner))

    model_json_schema = getattr(schema, "model_json_schema", None)
    if callable(model_json_schema):
        schema = model_json_schema()

    if isinstance(schema, bool):
        return schema
    if not isinstance(schema, Mapping):
        raise SchemaError(
            f"Unsupported schema type: {type(schema).__name__}",
            details={"hint": "Pass a JSON Schema dict or a pydantic model class"}
        )

    body = {k: v for k, v in schema.items() if k not in ("$defs", "definitions")}
    resolved = _inline_refs(body, schema, ())

    validator_cls = validator_for(resolved, default=Draft202012Validator)
    try:
        validator_cls.check_schema(resolved)
    except jsonschema_exceptions.SchemaError as e:
        raise SchemaError(f"Invalid schema: {e.message}", details={"path": list(e.path)}) from e

    return resolved


# --- Validation ---

def _validator(schema: Any):
    validator_cls = validator_for(schema, default=Draft202012Validator)
    return validator_cls(schema, format_checker=validator_cls.FORMAT_CHECKER)


def is_valid(schema: Any, value: Any) -> bool:
    """Strict validation (formats included, no type coercion)."""
    if isinstance(schema, OptionalSchema):
        return value is MISSING or is_valid(schema.inner, value)
    if value is MISSING or value is UNSANITIZABLE:
        return False
    if not isinstance(schema, (Mapping, bool)):
        return False
    return _validator(schema).is_valid(value)


def validate(schema: Any, value: Any) -> None:
    """
    Validate a value, raising with every violation found.

    Raises:
        ValidationError: listing the jsonschema messages
    """
    if is_valid(schema, value):
        return

    if isinstance(schema, OptionalSchema):
        schema = schema.inner
    errors = []
    if isinstance(schema, (Mapping, bool)) and value is not MISSING and value is not UNSANITIZABLE:
        for error in sorted(_validator(schema).iter_errors(value), key=lambda e: [str(p) for p in e.path]):
            location = "/".join(str(p) for p in error.path) or "<root>"
            errors.append(f"{location}: {error.message}")
    else:
        errors.append(f"<root>: {value!r} is not a value")

    raise ValidationError(f"Value does not match schema ({len(errors)} errors)", errors=errors)
