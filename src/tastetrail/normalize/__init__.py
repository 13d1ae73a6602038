"""Normalize free-text ingredient data into structured values."""

from tastetrail.normalize.ingredients import (
    CATEGORIES,
    CATEGORY_KEYWORDS,
    VALID_UNITS,
    ParsedIngredient,
    categorize_ingredient,
    extract_ingredient_tags,
    normalize_ingredient_field,
    normalize_string_list,
    parse_ingredient_line,
)

__all__ = [
    "CATEGORIES",
    "CATEGORY_KEYWORDS",
    "VALID_UNITS",
    "ParsedIngredient",
    "categorize_ingredient",
    "extract_ingredient_tags",
    "normalize_ingredient_field",
    "normalize_string_list",
    "parse_ingredient_line",
]
