"""Validation and sanitization of data against a URL metric schema.

The schema is plain JSON-schema-style data (see :mod:`url_metrics.schema`) so
extensions can contribute to it. Before validating, the schema tree is
compiled into frozen pydantic models: objects become models, arrays become
lists, and numeric/string constraints become field constraints. Pydantic's
lax mode supplies the coercion rules (numeric strings to numbers, integral
floats to integers, "true"/"false" to booleans). Booleans are never accepted
where a number is expected.

Keywords with a value of the wrong shape (a ``properties`` that is not an
object, a non-numeric ``minimum``, a ``pattern`` that does not compile) are
ignored with a logged warning, so a sloppy extension can never break
construction of every record.
"""

from __future__ import annotations

import copy
import functools
import json
import logging
import re
from datetime import datetime
from typing import Annotated, Any, Mapping, Union

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    create_model,
    model_validator,
)

from url_metrics.errors import StructuralValidationError

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

_PRIMITIVE_MAP: dict[str, type] = {
    "string": str,
    "number": float,
    "integer": int,
    "boolean": bool,
    "null": type(None),
}

_URI_ADAPTER = TypeAdapter(AnyUrl)
_DATETIME_ADAPTER = TypeAdapter(datetime)

_COMPILED_CACHE_SIZE = 64


class _ClosedObject(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)


class _OpenObject(_ClosedObject):
    model_config = ConfigDict(extra="allow")


def _check_uuid(value: str) -> str:
    if not UUID_PATTERN.fullmatch(value):
        raise ValueError("Invalid UUID.")
    return value


def _check_uri(value: str) -> str:
    try:
        _URI_ADAPTER.validate_python(value)
    except ValidationError:
        raise ValueError("Invalid URI.") from None
    return value


def _check_date_time(value: str) -> str:
    try:
        _DATETIME_ADAPTER.validate_python(value)
    except ValidationError:
        raise ValueError("Invalid date.") from None
    return value


_FORMAT_CHECKS = {
    "uuid": _check_uuid,
    "uri": _check_uri,
    "date-time": _check_date_time,
}


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("Input should be a number, not a boolean")
    return value


def _enum_check(allowed: list[Any]):
    def check(value: Any) -> Any:
        if value not in allowed:
            raise ValueError(f"Input should be one of {allowed!r}.")
        return value

    return check


def _pattern_check(pattern: re.Pattern[str], source: str):
    # JSON Schema patterns are unanchored: a match anywhere in the string counts.
    def check(value: str) -> str:
        if pattern.search(value) is None:
            raise ValueError(f"String should match pattern '{source}'")
        return value

    return check


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_length(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _keyword(schema: Mapping[str, Any], key: str, accept, name: str) -> Any:
    """Return ``schema[key]`` if ``accept`` approves of it, otherwise ``None``."""
    if key not in schema:
        return None
    value = schema[key]
    if not accept(value):
        logger.warning("Ignoring malformed %r keyword on %s: %r", key, name, value)
        return None
    return value


def _translate_pattern(source: str) -> str:
    """Rewrite end anchors so ``$`` never matches before a trailing newline."""
    out: list[str] = []
    in_class = False
    index = 0
    while index < len(source):
        char = source[index]
        if char == "\\":
            out.append(source[index : index + 2])
            index += 2
            continue
        if char == "[":
            in_class = True
        elif char == "]":
            in_class = False
        elif char == "$" and not in_class:
            char = r"\Z"
        out.append(char)
        index += 1
    return "".join(out)


def _compile_pattern(schema: Mapping[str, Any], name: str) -> re.Pattern[str] | None:
    source = _keyword(schema, "pattern", lambda v: isinstance(v, str), name)
    if source is None:
        return None
    try:
        return re.compile(_translate_pattern(source))
    except re.error as exc:
        logger.warning("Ignoring invalid pattern %r on %s: %s", source, name, exc)
        return None


def _numeric_constraints(schema: Mapping[str, Any], name: str) -> dict[str, Any]:
    constraints: dict[str, Any] = {}
    minimum = _keyword(schema, "minimum", _is_number, name)
    maximum = _keyword(schema, "maximum", _is_number, name)
    # Draft-04 uses boolean exclusiveMinimum/exclusiveMaximum, later drafts numbers.
    if minimum is not None:
        constraints["gt" if schema.get("exclusiveMinimum") is True else "ge"] = minimum
    elif _is_number(schema.get("exclusiveMinimum")):
        constraints["gt"] = schema["exclusiveMinimum"]
    if maximum is not None:
        constraints["lt" if schema.get("exclusiveMaximum") is True else "le"] = maximum
    elif _is_number(schema.get("exclusiveMaximum")):
        constraints["lt"] = schema["exclusiveMaximum"]
    multiple_of = _keyword(schema, "multipleOf", lambda v: _is_number(v) and v > 0, name)
    if multiple_of is not None:
        constraints["multiple_of"] = multiple_of
    return constraints


def _length_constraints(
    schema: Mapping[str, Any], min_key: str, max_key: str, name: str
) -> dict[str, Any]:
    constraints: dict[str, Any] = {}
    minimum = _keyword(schema, min_key, _is_length, name)
    if minimum is not None:
        constraints["min_length"] = minimum
    maximum = _keyword(schema, max_key, _is_length, name)
    if maximum is not None:
        constraints["max_length"] = maximum
    return constraints


def _resolve_single(schema: Mapping[str, Any], json_type: str, name: str) -> Any:
    if json_type == "object":
        if isinstance(schema.get("properties"), Mapping) and schema["properties"]:
            return _build_model(schema, name)
        if schema.get("additionalProperties") is False:
            return _build_model(schema, name)
        return dict[str, Any]

    if json_type == "array":
        items_schema = schema.get("items")
        item_type: Any = Any
        if isinstance(items_schema, Mapping):
            item_type = _resolve_type(items_schema, f"{name}_item")
        length = _length_constraints(schema, "minItems", "maxItems", name)
        if length:
            return Annotated[list[item_type], Field(**length)]
        return list[item_type]

    if json_type == "string":
        metadata: list[Any] = []
        length = _length_constraints(schema, "minLength", "maxLength", name)
        if length:
            metadata.append(Field(**length))
        pattern = _compile_pattern(schema, name)
        if pattern is not None:
            metadata.append(AfterValidator(_pattern_check(pattern, schema["pattern"])))
        format_name = schema.get("format")
        format_check = _FORMAT_CHECKS.get(format_name) if isinstance(format_name, str) else None
        if format_check is not None:
            metadata.append(AfterValidator(format_check))
        return Annotated[(str, *metadata)] if metadata else str

    if json_type in ("number", "integer"):
        constraints = _numeric_constraints(schema, name)
        metadata = [BeforeValidator(_reject_bool)]
        if constraints:
            metadata.append(Field(**constraints))
        return Annotated[(_PRIMITIVE_MAP[json_type], *metadata)]

    return _PRIMITIVE_MAP.get(json_type, Any)


def _resolve_type(schema: Mapping[str, Any], name: str) -> Any:
    """Recursively resolve a schema node to a type usable by ``create_model``."""
    declared = schema.get("type")
    if isinstance(declared, (list, tuple)):
        declared = [member for member in declared if isinstance(member, str)]
    if isinstance(declared, list) and declared:
        members = tuple(_resolve_single(schema, member, name) for member in declared)
        resolved = members[0] if len(members) == 1 else Union[members]
    elif isinstance(declared, str):
        resolved = _resolve_single(schema, declared, name)
    else:
        resolved = Any

    if isinstance(schema.get("enum"), list):
        resolved = Annotated[resolved, AfterValidator(_enum_check(schema["enum"]))]
    return resolved


def _field_name(key: str, index: int) -> str:
    return f"f{index}_" + re.sub(r"\W", "_", key)


def _fill_defaults(defaults: dict[str, Any]):
    def fill(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            missing = {
                key: copy.deepcopy(value) for key, value in defaults.items() if key not in data
            }
            if missing:
                data = {**data, **missing}
        return data

    return model_validator(mode="before")(fill)


def _build_model(schema: Mapping[str, Any], name: str) -> type[BaseModel]:
    """Build a frozen pydantic model from an object schema node."""
    properties = _keyword(schema, "properties", lambda v: isinstance(v, Mapping), name) or {}
    required_list = _keyword(schema, "required", lambda v: isinstance(v, (list, bool)), name)
    required_names = (
        {item for item in required_list if isinstance(item, str)}
        if isinstance(required_list, list)
        else set()
    )

    fields: dict[str, Any] = {}
    defaults: dict[str, Any] = {}
    for index, (prop_key, prop_schema) in enumerate(properties.items()):
        if not isinstance(prop_key, str) or not isinstance(prop_schema, Mapping):
            continue
        prop_type = _resolve_type(prop_schema, f"{name}_{prop_key}")
        field_kwargs: dict[str, Any] = {"alias": prop_key}
        if isinstance(prop_schema.get("description"), str):
            field_kwargs["description"] = prop_schema["description"]

        if prop_schema.get("required") is True or prop_key in required_names:
            fields[_field_name(prop_key, index)] = (prop_type, Field(..., **field_kwargs))
        else:
            if "default" in prop_schema:
                defaults[prop_key] = prop_schema["default"]
            # Unset optional properties are left out of dumps via exclude_unset.
            fields[_field_name(prop_key, index)] = (prop_type, Field(None, **field_kwargs))

    base = _ClosedObject if schema.get("additionalProperties") is False else _OpenObject
    validators = {"fill_defaults": _fill_defaults(defaults)} if defaults else None
    return create_model(
        re.sub(r"\W", "_", name),
        __base__=base,
        __validators__=validators,
        **fields,
    )


def _compile(schema: Mapping[str, Any]) -> type[BaseModel]:
    if schema.get("type") != "object":
        raise ValueError(f'Top-level schema must have type "object", got {schema.get("type")!r}')
    title = schema.get("title")
    return _build_model(schema, title if isinstance(title, str) and title else "Schema")


@functools.lru_cache(maxsize=_COMPILED_CACHE_SIZE)
def _compile_cached(schema_text: str) -> type[BaseModel]:
    return _compile(json.loads(schema_text))


def compile_schema(schema: Mapping[str, Any]) -> type[BaseModel]:
    """Compile an object schema into a pydantic model class.

    Compiled models are cached on the schema's JSON text, so equal schemas
    share one model class. Schemas that are not JSON serializable are
    compiled every time.

    Raises:
        ValueError: If the top-level schema is not an object schema.
    """
    try:
        schema_text = json.dumps(schema)
    except (TypeError, ValueError):
        return _compile(schema)
    return _compile_cached(schema_text)


def _format_location(loc: tuple[Any, ...]) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def describe_error(exc: ValidationError) -> str:
    """Return a human readable description of the first validation error."""
    errors = exc.errors(include_url=False)
    if not errors:
        return str(exc)
    first = errors[0]
    location = _format_location(tuple(first.get("loc", ())))
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def validate_value(value: Any, schema: Mapping[str, Any]) -> dict[str, Any]:
    """Validate ``value`` against ``schema`` and return the sanitized data.

    Raises:
        StructuralValidationError: Describing the first violation found.
    """
    model = compile_schema(schema)
    try:
        instance = model.model_validate(value)
    except ValidationError as exc:
        raise StructuralValidationError(describe_error(exc)) from exc
    return instance.model_dump(mode="json", by_alias=True, exclude_unset=True)


__all__ = ["UUID_PATTERN", "compile_schema", "describe_error", "validate_value"]
