"""Exceptions and diagnostics raised while building or validating URL metrics."""

from __future__ import annotations

from dataclasses import dataclass


class DataValidationError(ValueError):
    """Raised when URL metric data cannot be turned into a record."""


class StructuralValidationError(DataValidationError):
    """Input does not match the URL metric schema."""


class DomainInvariantError(DataValidationError):
    """Input matches the schema but violates the viewport aspect ratio bounds."""

    def __init__(
        self,
        message: str,
        *,
        aspect_ratio: float | None = None,
        minimum: float | None = None,
        maximum: float | None = None,
    ) -> None:
        super().__init__(message)
        self.aspect_ratio = aspect_ratio
        self.minimum = minimum
        self.maximum = maximum


@dataclass(frozen=True)
class ExtensionContributionWarning:
    """Non-fatal problem with a schema property supplied by an extension."""

    filter_name: str
    property_name: str
    message: str

    def __str__(self) -> str:
        return f"Filter '{self.filter_name}': {self.message}"


__all__ = [
    "DataValidationError",
    "StructuralValidationError",
    "DomainInvariantError",
    "ExtensionContributionWarning",
]
