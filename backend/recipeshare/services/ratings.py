"""
RecipeShare Backend — Rating Arithmetic
=========================================

What:  Pure helpers for star ratings: validation, mean, per-star distribution
       and the full/half/empty star breakdown the dashboard renders.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable

from recipeshare.exceptions import ValidationError

MIN_RATING = 1.0
MAX_RATING = 5.0
STAR_COUNT = 5


def validate_rating(value: float) -> float:
    """
    Accept 1.0 to 5.0 in steps of 0.5.

    Raises:
        ValidationError: NaN, out of range, or not a multiple of 0.5
    """
    if math.isnan(value) or not MIN_RATING <= value <= MAX_RATING or (value * 2) % 1 != 0:
        raise ValidationError(
            message="Rating must be between 1 and 5 in steps of 0.5",
            field="rating",
            context={"rating": value},
        )
    return float(value)


def average(values: Iterable[float]) -> float:
    """Mean rounded half up to one decimal (4.25 -> 4.3); 0.0 for no ratings."""
    values = [Decimal(str(v)) for v in values]
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def distribution(values: Iterable[float]) -> Dict[str, int]:
    """Count ratings per whole star, "5" down to "1". 4.5 counts as 4."""
    counts = {str(star): 0 for star in range(STAR_COUNT, 0, -1)}
    for value in values:
        star = min(STAR_COUNT, max(1, math.floor(value)))
        counts[str(star)] += 1
    return counts


def star_breakdown(rating: float) -> Dict[str, int]:
    """
    How many full, half and empty stars a rating renders as.

    full = floor(rating); one half star when there is any fractional part;
    the rest of the five are empty.
    """
    rating = min(float(STAR_COUNT), max(0.0, rating))
    full = math.floor(rating)
    half = 1 if rating % 1 != 0 else 0
    return {"full": full, "half": half, "empty": STAR_COUNT - full - half}
