"""Optional schema properties contributed by extensions.

Extensions may add properties at the root of a URL metric or to each item of
its ``elements`` array. Contributions are merged into the base schema by
:func:`extend_schema_with_optional_properties`, which drops or corrects
malformed entries instead of failing the whole schema build.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Mapping, Protocol, runtime_checkable

from url_metrics.errors import ExtensionContributionWarning

ROOT_PROPERTIES_FILTER = "od_url_metric_schema_root_additional_properties"
ELEMENT_PROPERTIES_FILTER = "od_url_metric_schema_element_item_additional_properties"

SchemaFragment = Mapping[str, Any]
DiagnosticCallback = Callable[[ExtensionContributionWarning], None]

logger = logging.getLogger(__name__)


@runtime_checkable
class SchemaExtension(Protocol):
    """Capability object contributing optional properties to the schema."""

    def root_properties(self) -> Mapping[str, Any]:
        ...

    def element_properties(self) -> Mapping[str, Any]:
        ...


@dataclass(frozen=True)
class StaticSchemaExtension:
    """Extension declared with fixed property maps."""

    name: str
    root: Mapping[str, Any] = field(default_factory=dict)
    element: Mapping[str, Any] = field(default_factory=dict)

    def root_properties(self) -> Mapping[str, Any]:
        return self.root

    def element_properties(self) -> Mapping[str, Any]:
        return self.element


class ExtensionRegistry:
    """Ordered collection of schema extensions queried by the schema builder.

    Contributions are combined in registration order. When two extensions
    propose the same property name the later one replaces the earlier one,
    mirroring how chained filters behave.
    """

    def __init__(self, extensions: Iterable[SchemaExtension] = ()) -> None:
        self._extensions: list[SchemaExtension] = []
        for extension in extensions:
            self.register(extension)

    def register(self, extension: SchemaExtension) -> SchemaExtension:
        if not isinstance(extension, SchemaExtension):
            raise TypeError(
                f"{extension!r} must provide root_properties() and element_properties()"
            )
        self._extensions.append(extension)
        return extension

    def __len__(self) -> int:
        return len(self._extensions)

    def __iter__(self) -> Iterator[SchemaExtension]:
        return iter(tuple(self._extensions))

    def _collect(self, method: str) -> dict[str, Any]:
        combined: dict[str, Any] = {}
        for extension in self._extensions:
            contributed = getattr(extension, method)()
            if not isinstance(contributed, Mapping):
                logger.warning(
                    "Ignoring %s() from %r: expected a mapping, got %s.",
                    method,
                    extension,
                    type(contributed).__name__,
                )
                continue
            combined.update(contributed)
        return combined

    def root_properties(self) -> dict[str, Any]:
        return self._collect("root_properties")

    def element_properties(self) -> dict[str, Any]:
        return self._collect("element_properties")


def _has_valid_type(fragment: SchemaFragment) -> bool:
    declared = fragment.get("type")
    if isinstance(declared, str):
        return True
    if isinstance(declared, (list, tuple)):
        return len(declared) > 0 and all(isinstance(item, str) for item in declared)
    return False


def extend_schema_with_optional_properties(
    properties_schema: Mapping[str, Any],
    additional_properties: Mapping[str, Any],
    filter_name: str,
    *,
    on_diagnostic: DiagnosticCallback | None = None,
) -> dict[str, Any]:
    """Return ``properties_schema`` extended with optional ``additional_properties``.

    Entries which are not mappings are skipped. Entries overriding an existing
    property or lacking a ``type`` are rejected with a diagnostic. Entries
    flagged ``required`` are reported and merged as optional anyway, since
    deactivating an extension must not invalidate URL metrics already stored.
    """

    def doing_it_wrong(property_name: str, message: str) -> None:
        diagnostic = ExtensionContributionWarning(
            filter_name=filter_name, property_name=property_name, message=message
        )
        logger.warning("%s", diagnostic)
        if on_diagnostic is not None:
            on_diagnostic(diagnostic)

    extended = dict(properties_schema)
    for property_key, property_schema in additional_properties.items():
        if not isinstance(property_schema, Mapping):
            continue
        if property_key in extended:
            doing_it_wrong(
                property_key,
                f'Disallowed override of existing schema property "{property_key}".',
            )
            continue
        if not _has_valid_type(property_schema):
            doing_it_wrong(
                property_key,
                f'Supplied schema property "{property_key}" with missing "type" key.',
            )
            continue

        property_schema = copy.deepcopy(dict(property_schema))
        if property_schema.get("required") not in (None, False):
            doing_it_wrong(
                property_key,
                f'Supplied schema property "{property_key}" has a truthy value for '
                '"required". All extended properties must be optional so that URL '
                "metrics are not all immediately invalidated once an extension is "
                "deactivated.",
            )
        property_schema["required"] = False

        extended[property_key] = property_schema
    return extended


__all__ = [
    "ELEMENT_PROPERTIES_FILTER",
    "ROOT_PROPERTIES_FILTER",
    "ExtensionRegistry",
    "SchemaExtension",
    "StaticSchemaExtension",
    "extend_schema_with_optional_properties",
]
