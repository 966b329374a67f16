"""Pure functions for fields derived from other tour fields."""

import math

from slugify import slugify


def derive_slug(name: str) -> str:
    """Return the URL slug for a tour name: lower-cased, words joined by hyphens."""
    return slugify(name, lowercase=True, separator="-")


def round_rating(value: float) -> float:
    """
    Round a rating to one decimal place.

    Halves round up (4.65 -> 4.7, 4.666 -> 4.7) instead of Python's
    banker's rounding.

    Raises:
        ValueError: If the value, or the value scaled to tenths, is not finite
    """
    scaled = value * 10
    if not math.isfinite(scaled):
        raise ValueError("Rating must be a finite number")
    return math.floor(scaled + 0.5) / 10
