"""
Recursive schema-driven sanitizer.

Recovers the largest part of a model's output that satisfies a schema instead
of rejecting the whole payload on one bad leaf.

Policy per node kind:
  OBJECT    required property fails → whole object fails
            optional property fails → property omitted
            nullable property fails → property set to None
  ARRAY     failing elements are dropped, survivors keep their order
  OPTIONAL  failure degrades to MISSING
  NULLABLE  failure degrades to None when the node itself accepts null
  (for an optional nullable property the outer wrapper wins: omitted)
  PRIMITIVE validated as-is, never repaired

Every returned value validates against the schema it was sanitized with; when
nothing can be recovered the answer is the UNSANITIZABLE sentinel.
"""

import copy
from typing import Any, Mapping

from .schema_utils import (
    MISSING,
    UNSANITIZABLE,
    SchemaKind,
    array_items,
    is_valid,
    kind_of,
    normalize_schema,
    object_properties,
    unwrap,
)
from .logger import get_module_logger

logger = get_module_logger("sanitizer")


def sanitize(schema: Any, value: Any) -> Any:
    """
    Sanitize a raw value against a schema.

    Args:
        schema: JSON Schema dict or pydantic model class
        value: JSON-like value (dict/list/str/int/float/bool/None)

    Returns:
        A value that validates against the schema, or UNSANITIZABLE.
        MISSING is only possible when the schema itself is an OptionalSchema slot.

    Raises:
        SchemaError: if the schema cannot be normalized
    """
    return _sanitize(normalize_schema(schema), value)


def safe_sanitized_parse(schema: Any, value: Any) -> Any:
    """
    Like sanitize(), but answers None when nothing could be recovered.

    Note that None is also a legitimate result for a nullable schema; callers
    that must tell those apart should use sanitize() and compare against
    UNSANITIZABLE.
    """
    result = sanitize(schema, value)
    if result is UNSANITIZABLE or result is MISSING:
        return None
    return result


def _sanitize(schema: Any, value: Any) -> Any:
    kind = kind_of(schema)

    if kind is SchemaKind.OBJECT:
        return _sanitize_object(schema, value)
    if kind is SchemaKind.ARRAY:
        return _sanitize_array(schema, value)
    if kind is SchemaKind.OPTIONAL:
        return _sanitize_optional(schema, value)
    if kind is SchemaKind.NULLABLE:
        return _sanitize_nullable(schema, value)

    # Primitives (and anything we don't recognize) are all-or-nothing
    if is_valid(schema, value):
        return copy.deepcopy(value)
    return UNSANITIZABLE


def _sanitize_object(schema: Mapping, value: Any) -> Any:
    if not isinstance(value, Mapping):
        return UNSANITIZABLE

    result = {}

    for name, prop in object_properties(schema).items():
        # Absent properties are never synthesized
        if name not in value:
            continue

        kind = kind_of(prop)
        sanitized = _sanitize(prop, value[name])

        if kind is SchemaKind.OPTIONAL:
            if sanitized is MISSING:
                logger.debug(f"Dropped invalid optional property '{name}'")
                continue
            result[name] = sanitized

        else:
            # A nullable property has already degraded to None when its
            # schema allows it, so UNSANITIZABLE here is a hard failure
            if sanitized is UNSANITIZABLE:
                logger.debug(f"Required property '{name}' could not be sanitized")
                return UNSANITIZABLE
            result[name] = sanitized

    # Cross-field keywords (minProperties, dependentRequired, ...) and
    # missing required properties are only visible on the whole object
    if not is_valid(schema, result):
        logger.debug("Sanitized object failed whole-object validation")
        return UNSANITIZABLE

    return result


def _sanitize_array(schema: Mapping, value: Any) -> Any:
    if not isinstance(value, list):
        return UNSANITIZABLE

    element_schema = array_items(schema)
    result = []

    for index, item in enumerate(value):
        sanitized = _sanitize(element_schema, item)
        if sanitized is UNSANITIZABLE:
            logger.debug(f"Dropped invalid array element at index {index}")
            continue
        result.append(sanitized)

    # minItems / uniqueItems can still fail after filtering
    if not is_valid(schema, result):
        logger.debug("Sanitized array failed whole-array validation")
        return UNSANITIZABLE

    return result


def _sanitize_optional(schema: Any, value: Any) -> Any:
    inner = unwrap(schema)

    # Optional<Nullable<T>>: the outer wrapper decides, so an explicit null
    # is kept but an invalid value is omitted rather than nulled
    if kind_of(inner) is SchemaKind.NULLABLE:
        if value is None:
            return None if is_valid(inner, None) else MISSING
        inner = unwrap(inner)

    sanitized = _sanitize(inner, value)
    if sanitized is UNSANITIZABLE:
        return MISSING
    return sanitized


def _sanitize_nullable(schema: Mapping, value: Any) -> Any:
    # Sibling keywords such as enum or const can still reject null
    fallback = None if is_valid(schema, None) else UNSANITIZABLE

    if value is None:
        return fallback

    sanitized = _sanitize(unwrap(schema), value)
    if sanitized is UNSANITIZABLE:
        return fallback
    return sanitized
