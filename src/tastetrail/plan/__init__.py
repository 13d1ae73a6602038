"""Shopping list aggregation and meal planning logic."""

from tastetrail.plan.meal_plan import collect_recipe_ids, normalize_day
from tastetrail.plan.shopping_list import (
    GeneratedShoppingList,
    ShoppingListGenerator,
    ShoppingListItem,
    aggregate_ingredient_lines,
)

__all__ = [
    "GeneratedShoppingList",
    "ShoppingListGenerator",
    "ShoppingListItem",
    "aggregate_ingredient_lines",
    "collect_recipe_ids",
    "normalize_day",
]
