"""Canonical, immutable representation of a single URL metric."""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from typing import Any, Callable

from url_metrics.config import (
    ViewportAspectRatioBounds,
    generate_uuid,
    get_viewport_aspect_ratio_bounds,
)
from url_metrics.errors import DomainInvariantError, StructuralValidationError
from url_metrics.extensions import ExtensionRegistry
from url_metrics.schema import build_schema
from url_metrics.validation import validate_value


class URLMetric:
    """Measurements taken from a single client's visit to a specific URL.

    The constructor validates untrusted data against :func:`build_schema`,
    checks the viewport aspect ratio, and keeps the sanitized result. A
    record cannot be modified once built; every accessor returns a copy.

    Raises:
        StructuralValidationError: When the data does not match the schema.
        DomainInvariantError: When the viewport aspect ratio is out of bounds.
    """

    __slots__ = ("_data",)

    def __init__(
        self,
        data: Mapping[str, Any],
        *,
        registry: ExtensionRegistry | None = None,
        bounds: ViewportAspectRatioBounds | None = None,
        uuid_factory: Callable[[], str] = generate_uuid,
    ) -> None:
        if not isinstance(data, Mapping):
            raise StructuralValidationError(
                f"URL metric data must be an object, got {type(data).__name__}."
            )
        data = dict(data)
        if data.get("uuid") is None:
            data["uuid"] = uuid_factory()
        object.__setattr__(self, "_data", self._prepare_data(data, registry, bounds))

    @staticmethod
    def _prepare_data(
        data: dict[str, Any],
        registry: ExtensionRegistry | None,
        bounds: ViewportAspectRatioBounds | None,
    ) -> dict[str, Any]:
        schema = build_schema(registry)
        sanitized = validate_value(data, schema)

        width = sanitized["viewport"]["width"]
        height = sanitized["viewport"]["height"]
        if height == 0:
            raise DomainInvariantError(
                f"Viewport height must be greater than zero (width {width}, height {height})."
            )
        aspect_ratio = width / height

        bounds = bounds or get_viewport_aspect_ratio_bounds()
        if not bounds.contains(aspect_ratio):
            raise DomainInvariantError(
                f"Viewport aspect ratio ({aspect_ratio:.3f}) is not in the accepted range "
                f"of {bounds.minimum} to {bounds.maximum}.",
                aspect_ratio=aspect_ratio,
                minimum=bounds.minimum,
                maximum=bounds.maximum,
            )
        return sanitized

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, URLMetric):
            return NotImplemented
        return self._data == other._data

    __hash__ = None  # type: ignore[assignment]

    def __copy__(self) -> URLMetric:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> URLMetric:
        return self

    @classmethod
    def from_json(cls, text: str | bytes, **kwargs: Any) -> URLMetric:
        """Build a record from JSON text; malformed JSON is a structural error."""
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StructuralValidationError(f"Invalid JSON: {exc.msg}.") from exc
        return cls(payload, **kwargs)

    def __repr__(self) -> str:
        return f"URLMetric(uuid={self.uuid!r}, url={self.url!r}, viewport={self.viewport!r})"

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``, including extension properties."""
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    @property
    def uuid(self) -> str:
        return self._data["uuid"]

    @property
    def url(self) -> str:
        return self._data["url"]

    @property
    def timestamp(self) -> float:
        return self._data["timestamp"]

    @property
    def viewport(self) -> dict[str, int]:
        return dict(self._data["viewport"])

    @property
    def viewport_width(self) -> int:
        return self._data["viewport"]["width"]

    @property
    def elements(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._data["elements"])

    def to_dict(self) -> dict[str, Any]:
        """Data to be serialized, including read-only fields."""
        return copy.deepcopy(self._data)

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self._data, **kwargs)


__all__ = ["URLMetric"]
