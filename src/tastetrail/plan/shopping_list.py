"""Shopping list generation from recipe ingredients."""

import math
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

from tastetrail.config import get_settings
from tastetrail.errors import NotFoundError, ValidationError
from tastetrail.logging_config import get_logger
from tastetrail.normalize.ingredients import (
    ParsedIngredient,
    categorize_ingredient,
    parse_ingredient_line,
)

logger = get_logger(__name__)


class RecipeSource(Protocol):
    """Anything that can load recipes by id."""

    async def find_by_ids(self, recipe_ids: Sequence[str]) -> Sequence[Any]: ...


@dataclass
class ShoppingListItem:
    """A single line in a shopping list."""

    name: str
    quantity: float
    unit: str
    category: str
    checked: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize for storage in a JSON column."""
        return asdict(self)


@dataclass
class GeneratedShoppingList:
    """Result of one aggregation run, ready to be persisted."""

    name: str
    owner_id: str
    recipe_ids: list[str]
    items: list[ShoppingListItem] = field(default_factory=list)
    notes: str = ""
    dietary_preferences: list[str] = field(default_factory=list)
    week_number: int | None = None

    @property
    def items_by_category(self) -> dict[str, list[ShoppingListItem]]:
        """Group items by category, keeping item order within each group."""
        grouped: dict[str, list[ShoppingListItem]] = {}
        for item in self.items:
            grouped.setdefault(item.category, []).append(item)
        return grouped


def aggregate_ingredient_lines(lines: Iterable[str]) -> list[ShoppingListItem]:
    """
    Parse, merge and categorize ingredient lines.

    Lines with the same name and unit have their quantities summed. The same
    name with a different unit stays a separate item; no unit conversion is
    attempted. Items keep the order in which they first appeared.
    """
    merged: dict[tuple[str, str], ParsedIngredient] = {}

    for line in lines:
        parsed = parse_ingredient_line(line)
        existing = merged.get(parsed.merge_key)
        if existing is not None:
            total = existing.quantity + parsed.quantity
            if math.isfinite(total):
                existing.quantity = total
            else:
                logger.warning(
                    f"Quantity overflow for {parsed.name!r}, keeping {existing.quantity}"
                )
        else:
            merged[parsed.merge_key] = parsed

    items = []
    for ingredient in merged.values():
        category = categorize_ingredient(ingredient.name)
        logger.debug(f"Ingredient {ingredient.name!r} -> {category}")
        items.append(
            ShoppingListItem(
                name=ingredient.name,
                quantity=ingredient.quantity,
                unit=ingredient.unit,
                category=category,
            )
        )

    return items


class ShoppingListGenerator:
    """
    Generates shopping lists from selected recipes with:
    - Best-effort parsing of free-text ingredient lines
    - Quantity merging for identical name and unit
    - Keyword-based category assignment

    The generator does not persist anything; callers save the result.
    """

    def __init__(self, recipe_store: RecipeSource):
        self.recipe_store = recipe_store

    async def generate(
        self,
        recipe_ids: Sequence[str],
        user: Any,
        name: str | None = None,
        notes: str | None = None,
        week_number: int | None = None,
    ) -> GeneratedShoppingList:
        """
        Generate a shopping list from recipes.

        Args:
            recipe_ids: Recipe IDs to aggregate ingredients from.
            user: The requesting user; stamps ownership and dietary preferences.
            name: List name, defaults to the configured default name.
            notes: Optional free-text notes.
            week_number: ISO week the list is for, when generated from a plan.

        Returns:
            GeneratedShoppingList with merged, categorized items.

        Raises:
            ValidationError: If no recipe IDs were given.
            NotFoundError: If none of the recipe IDs exist.
        """
        if not recipe_ids:
            raise ValidationError("Please select at least one recipe")

        recipes = await self.recipe_store.find_by_ids(list(recipe_ids))
        if not recipes:
            raise NotFoundError("No recipes found")

        lines = [line for recipe in recipes for line in (recipe.ingredients or [])]
        items = aggregate_ingredient_lines(lines)

        generated = GeneratedShoppingList(
            name=name or get_settings().default_shopping_list_name,
            owner_id=user.id,
            recipe_ids=list(recipe_ids),
            items=items,
            notes=notes or "",
            dietary_preferences=list(getattr(user, "dietary_preferences", None) or []),
            week_number=week_number,
        )

        logger.info(
            f"Generated shopping list from {len(recipes)} recipes: "
            f"{len(lines)} ingredient lines -> {len(items)} items "
            f"in {len(generated.items_by_category)} categories"
        )
        return generated
