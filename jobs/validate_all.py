"""Batch job that validates URL metric payloads stored in JSON or NDJSON files."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator

from dotenv import load_dotenv

from url_metrics.config import ViewportAspectRatioBounds
from url_metrics.errors import DataValidationError
from url_metrics.extensions import ExtensionRegistry
from url_metrics.model import URLMetric

load_dotenv()

logger = logging.getLogger(__name__)

NDJSON_SUFFIXES = {".ndjson", ".jsonl"}


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of validating one payload."""

    source: str
    position: int
    uuid: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def describe(self) -> str:
        if self.ok:
            return f"{self.source}#{self.position}: ok ({self.uuid})"
        return f"{self.source}#{self.position}: {self.error}"


def _iter_payloads(path: Path) -> Iterator[tuple[int, Any, str | None]]:
    """Yield ``(position, payload, decode_error)`` for every record in ``path``."""

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in NDJSON_SUFFIXES:
        for line_number, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                yield line_number, json.loads(line), None
            except json.JSONDecodeError as exc:
                yield line_number, None, f"Invalid JSON: {exc.msg}."
        return

    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        yield 1, None, f"Invalid JSON: {exc.msg}."
        return
    if isinstance(document, list):
        for index, payload in enumerate(document, start=1):
            yield index, payload, None
    else:
        yield 1, document, None


def validate_path(
    path: str | os.PathLike[str],
    *,
    registry: ExtensionRegistry | None = None,
    bounds: ViewportAspectRatioBounds | None = None,
) -> list[ValidationOutcome]:
    """Validate every payload found in a single file."""

    file_path = Path(path)
    outcomes: list[ValidationOutcome] = []
    for position, payload, decode_error in _iter_payloads(file_path):
        if decode_error is not None:
            outcomes.append(
                ValidationOutcome(source=str(file_path), position=position, error=decode_error)
            )
            continue
        try:
            metric = URLMetric(payload, registry=registry, bounds=bounds)
        except DataValidationError as exc:
            outcomes.append(
                ValidationOutcome(source=str(file_path), position=position, error=str(exc))
            )
            continue
        outcomes.append(
            ValidationOutcome(source=str(file_path), position=position, uuid=metric.uuid)
        )
    return outcomes


def validate_all(
    paths: Iterable[str | os.PathLike[str]],
    *,
    registry: ExtensionRegistry | None = None,
    bounds: ViewportAspectRatioBounds | None = None,
) -> list[ValidationOutcome]:
    """Validate the payloads of every file, logging a summary per file."""

    outcomes: list[ValidationOutcome] = []
    for path in paths:
        logger.info("Validating URL metrics in %s...", path)
        try:
            file_outcomes = validate_path(path, registry=registry, bounds=bounds)
        except OSError as exc:
            logger.error("Unable to read %s: %s", path, exc)
            outcomes.append(ValidationOutcome(source=str(path), position=0, error=str(exc)))
            continue
        failed = sum(1 for outcome in file_outcomes if not outcome.ok)
        if not file_outcomes:
            logger.warning("No URL metrics found in %s.", path)
        logger.info(
            "Validated %s records in %s (%s invalid).", len(file_outcomes), path, failed
        )
        outcomes.extend(file_outcomes)
    return outcomes


def main(paths: Iterable[str | os.PathLike[str]], *, verbose: bool = False) -> int:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    outcomes = validate_all(paths)
    for outcome in outcomes:
        if verbose or not outcome.ok:
            print(outcome.describe())
    failed = sum(1 for outcome in outcomes if not outcome.ok)
    logger.info("Validation finished (records=%s, invalid=%s).", len(outcomes), failed)
    return 1 if failed else 0


__all__ = ["ValidationOutcome", "main", "validate_all", "validate_path"]
