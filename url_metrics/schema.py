"""JSON schema describing a URL metric, plus extension composition."""

from __future__ import annotations

import copy
from typing import Any

from url_metrics.extensions import (
    ELEMENT_PROPERTIES_FILTER,
    ROOT_PROPERTIES_FILTER,
    DiagnosticCallback,
    ExtensionRegistry,
    extend_schema_with_optional_properties,
)

# Element locators as emitted by the detection script, e.g.
# "/*[0][self::HTML]/*[1][self::BODY]/*[0][self::IMG]", or plain tag steps
# such as "/HTML/BODY/DIV[1]/IMG[1]".
XPATH_PATTERN = (
    r"^(?:(?:/\*\[\d+\]\[self::[^\]]+\])+|(?:/[A-Za-z][A-Za-z0-9-]*(?:\[\d+\])?)+)$"
)

SCHEMA_TITLE = "od-url-metric"

# DOMRectReadOnly. "number" rather than "integer" since browsers report doubles.
_DOM_RECT_KEYS = ("width", "height", "x", "y", "top", "right", "bottom", "left")


def _dom_rect_schema() -> dict[str, Any]:
    properties = {key: {"type": "number", "required": True} for key in _DOM_RECT_KEYS}

    # Negative sizes are allowed by DOMRect but are meaningless for intersection rects.
    properties["width"]["minimum"] = 0.0
    properties["height"]["minimum"] = 0.0

    return {
        "type": "object",
        "required": True,
        "properties": properties,
        "additionalProperties": False,
    }


DOM_RECT_SCHEMA = _dom_rect_schema()


def _base_schema(xpath_pattern: str) -> dict[str, Any]:
    return {
        "$schema": "http://json-schema.org/draft-04/schema#",
        "title": SCHEMA_TITLE,
        "type": "object",
        "required": True,
        "properties": {
            "uuid": {
                "description": "The UUID for the URL metric.",
                "type": "string",
                "format": "uuid",
                "required": True,
                "readonly": True,
            },
            "url": {
                "description": "The URL for which the metric was obtained.",
                "type": "string",
                "required": True,
                "format": "uri",
                "pattern": "^https?://",
            },
            "viewport": {
                "description": "Viewport dimensions",
                "type": "object",
                "required": True,
                "properties": {
                    "width": {"type": "integer", "required": True, "minimum": 0},
                    "height": {"type": "integer", "required": True, "minimum": 0},
                },
                "additionalProperties": False,
            },
            "timestamp": {
                "description": "Timestamp at which the URL metric was captured.",
                "type": "number",
                "required": True,
                "readonly": True,
                "minimum": 0,
            },
            "elements": {
                "description": "Element metrics",
                "type": "array",
                "required": True,
                "items": {
                    "type": "object",
                    "required": True,
                    "properties": {
                        "isLCP": {"type": "boolean", "required": True},
                        "isLCPCandidate": {"type": "boolean", "required": True},
                        "xpath": {
                            "type": "string",
                            "required": True,
                            "pattern": xpath_pattern,
                        },
                        "intersectionRatio": {
                            "type": "number",
                            "required": True,
                            "minimum": 0.0,
                            "maximum": 1.0,
                        },
                        "intersectionRect": copy.deepcopy(DOM_RECT_SCHEMA),
                        "boundingClientRect": copy.deepcopy(DOM_RECT_SCHEMA),
                    },
                    "additionalProperties": False,
                },
            },
        },
        "additionalProperties": False,
    }


def build_schema(
    registry: ExtensionRegistry | None = None,
    *,
    xpath_pattern: str = XPATH_PATTERN,
    on_diagnostic: DiagnosticCallback | None = None,
) -> dict[str, Any]:
    """Build the URL metric schema, including properties added by extensions.

    A new dictionary is returned on every call.
    """

    schema = _base_schema(xpath_pattern)
    if registry is None:
        return schema

    root_additions = registry.root_properties()
    if root_additions:
        schema["properties"] = extend_schema_with_optional_properties(
            schema["properties"],
            root_additions,
            ROOT_PROPERTIES_FILTER,
            on_diagnostic=on_diagnostic,
        )

    element_additions = registry.element_properties()
    if element_additions:
        items = schema["properties"]["elements"]["items"]
        items["properties"] = extend_schema_with_optional_properties(
            items["properties"],
            element_additions,
            ELEMENT_PROPERTIES_FILTER,
            on_diagnostic=on_diagnostic,
        )

    return schema


def writable_schema(
    registry: ExtensionRegistry | None = None,
    *,
    xpath_pattern: str = XPATH_PATTERN,
) -> dict[str, Any]:
    """Schema for data accepted from clients: read-only root properties are omitted."""

    schema = build_schema(registry, xpath_pattern=xpath_pattern)
    schema["properties"] = {
        key: value
        for key, value in schema["properties"].items()
        if not value.get("readonly", False)
    }
    return schema


__all__ = [
    "DOM_RECT_SCHEMA",
    "SCHEMA_TITLE",
    "XPATH_PATTERN",
    "build_schema",
    "writable_schema",
]
