"""Runtime configuration consulted while validating URL metrics."""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

MINIMUM_ASPECT_RATIO_ENV = "OD_MINIMUM_VIEWPORT_ASPECT_RATIO"
MAXIMUM_ASPECT_RATIO_ENV = "OD_MAXIMUM_VIEWPORT_ASPECT_RATIO"

# Roughly a phone in portrait orientation up to a wide desktop monitor.
DEFAULT_MINIMUM_ASPECT_RATIO = 0.4
DEFAULT_MAXIMUM_ASPECT_RATIO = 2.5


@dataclass(frozen=True)
class ViewportAspectRatioBounds:
    """Inclusive range of accepted viewport aspect ratios (width / height)."""

    minimum: float = DEFAULT_MINIMUM_ASPECT_RATIO
    maximum: float = DEFAULT_MAXIMUM_ASPECT_RATIO

    def __post_init__(self) -> None:
        if self.minimum > self.maximum:
            raise ValueError(
                f"Minimum viewport aspect ratio ({self.minimum}) exceeds the maximum ({self.maximum})."
            )

    def contains(self, aspect_ratio: float) -> bool:
        return self.minimum <= aspect_ratio <= self.maximum


def _read_ratio(env_var: str, default: float) -> float:
    raw = os.getenv(env_var)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using default %s.", env_var, raw, default)
        return default
    if not value > 0 or value == float("inf"):
        logger.warning("%s=%r must be a positive number; using default %s.", env_var, raw, default)
        return default
    return value


def get_viewport_aspect_ratio_bounds() -> ViewportAspectRatioBounds:
    """Resolve the accepted aspect ratio range from the environment."""

    return ViewportAspectRatioBounds(
        minimum=_read_ratio(MINIMUM_ASPECT_RATIO_ENV, DEFAULT_MINIMUM_ASPECT_RATIO),
        maximum=_read_ratio(MAXIMUM_ASPECT_RATIO_ENV, DEFAULT_MAXIMUM_ASPECT_RATIO),
    )


def generate_uuid() -> str:
    return str(uuid.uuid4())


__all__ = [
    "DEFAULT_MAXIMUM_ASPECT_RATIO",
    "DEFAULT_MINIMUM_ASPECT_RATIO",
    "MAXIMUM_ASPECT_RATIO_ENV",
    "MINIMUM_ASPECT_RATIO_ENV",
    "ViewportAspectRatioBounds",
    "generate_uuid",
    "get_viewport_aspect_ratio_bounds",
]
