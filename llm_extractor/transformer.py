"""
Schema relaxation for the model, and URL escape repair for its answer.

The model is asked to fill a schema whose URL leaves accept any string
(transform_schema_for_llm). Markdown produced by the converter escapes
parentheses inside link targets, and models echo those escapes back, so URL
leaves are unescaped afterwards (fix_url_escape_sequences) and the result is
checked against the original strict schema by the caller.
"""

from typing import Any, Mapping

from .schema_utils import (
    MISSING,
    UNSANITIZABLE,
    SchemaKind,
    array_items,
    has_url_constraint,
    kind_of,
    normalize_schema,
    object_properties,
    rewrap,
    unwrap,
    with_items,
    with_properties,
    without_url_constraint,
)


def transform_schema_for_llm(schema: Any) -> Any:
    """
    Build the schema handed to the model.

    Identical to the input except that every URL-constrained string node loses
    its "format"; descriptions, other constraints, property order and the
    optional/nullable wrappers are kept at every level. The input is never
    mutated.

    Raises:
        SchemaError: if the schema cannot be normalized
    """
    return _transform(normalize_schema(schema))


def _transform(schema: Any) -> Any:
    kind = kind_of(schema)

    if kind is SchemaKind.OBJECT:
        properties = {
            name: _transform(prop)
            for name, prop in object_properties(schema).items()
        }
        return with_properties(schema, properties)

    if kind is SchemaKind.ARRAY:
        return with_items(schema, _transform(array_items(schema)))

    if kind in (SchemaKind.OPTIONAL, SchemaKind.NULLABLE):
        return rewrap(schema, _transform(unwrap(schema)))

    if has_url_constraint(schema):
        return without_url_constraint(schema)

    return schema


def fix_url_escape_sequences(value: Any, schema: Any) -> Any:
    """
    Undo markdown escaping of parentheses in URL leaves.

    Walks the value along the original schema; wherever the schema marks a
    string as a URL, "\\(" and "\\)" become "(" and ")". Shapes that don't
    match the schema are passed through untouched - this never fails and
    never drops data.

    Args:
        value: Sanitized model output
        schema: The original (strict) schema

    Returns:
        A new value with the same structure
    """
    return _repair(normalize_schema(schema), value)


def _unescape_url(url: str) -> str:
    return url.replace("\\(", "(").replace("\\)", ")")


def _repair(schema: Any, value: Any) -> Any:
    if value is None or value is MISSING or value is UNSANITIZABLE:
        return value

    if has_url_constraint(schema):
        return _unescape_url(value) if isinstance(value, str) else value

    kind = kind_of(schema)

    if kind is SchemaKind.OBJECT:
        if not isinstance(value, Mapping):
            return value
        properties = object_properties(schema)
        return {
            key: _repair(properties[key], item) if key in properties else item
            for key, item in value.items()
        }

    if kind is SchemaKind.ARRAY:
        if not isinstance(value, list):
            return value
        element_schema = array_items(schema)
        return [_repair(element_schema, item) for item in value]

    if kind in (SchemaKind.OPTIONAL, SchemaKind.NULLABLE):
        return _repair(unwrap(schema), value)

    return value
