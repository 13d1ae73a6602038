"""Weekly meal plan helpers."""

from collections.abc import Mapping, Sequence

from tastetrail.errors import ValidationError
from tastetrail.models import WEEKDAYS


def normalize_day(day: str) -> str:
    """Validate a weekday name, case-insensitively."""
    day_key = (day or "").strip().lower()
    if day_key not in WEEKDAYS:
        raise ValidationError("Invalid day of week")
    return day_key


def collect_recipe_ids(meals: Mapping[str, Sequence[str]] | None) -> list[str]:
    """Flatten a week of meals into recipe ids, Monday first.

    Duplicates are kept; a recipe planned twice appears twice.
    """
    if not meals:
        return []
    return [recipe_id for day in WEEKDAYS for recipe_id in meals.get(day) or []]
