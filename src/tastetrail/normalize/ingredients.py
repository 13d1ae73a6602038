"""Ingredient line parsing, categorization and tag extraction."""

import math
import re
from dataclasses import dataclass
from typing import Any

from tastetrail.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Vocabularies
# =============================================================================

VALID_UNITS: tuple[str, ...] = ("g", "kg", "ml", "l", "cup", "tbsp", "tsp", "piece", "pcs", "item")
DEFAULT_UNIT = "item"
DEFAULT_NAME = "item"

# Spellings folded onto a valid unit before the validity check
UNIT_ALIASES: dict[str, str] = {
    "cups": "cup",
    "tbsps": "tbsp",
    "tablespoon": "tbsp",
    "tablespoons": "tbsp",
    "tsps": "tsp",
    "teaspoon": "tsp",
    "teaspoons": "tsp",
    "gram": "g",
    "grams": "g",
    "kilogram": "kg",
    "kilograms": "kg",
    "liter": "l",
    "liters": "l",
    "litre": "l",
    "litres": "l",
    "pieces": "piece",
    "items": "item",
}

OTHER_CATEGORY = "Other"
CATEGORIES: tuple[str, ...] = (
    "Vegetables",
    "Fruits",
    "Dairy",
    "Meat & Poultry",
    "Seafood",
    "Grains & Cereals",
    "Spices & Seasonings",
    "Oils & Condiments",
    "Beverages",
    OTHER_CATEGORY,
)

# Checked in this order; the first category with a keyword inside the name wins.
# Beverages has no keywords and is never assigned automatically.
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "Vegetables",
        (
            "potato",
            "carrot",
            "onion",
            "garlic",
            "broccoli",
            "spinach",
            "tomato",
            "pepper",
            "cucumber",
            "lettuce",
            "cabbage",
        ),
    ),
    ("Fruits", ("apple", "banana", "orange", "lemon", "strawberry", "blueberry")),
    ("Dairy", ("milk", "cheese", "yogurt", "butter", "cream", "mozzarella", "feta")),
    (
        "Meat & Poultry",
        ("chicken", "beef", "pork", "turkey", "ham", "bacon", "sausage", "guanciale", "pancetta"),
    ),
    ("Seafood", ("fish", "salmon", "shrimp", "crab", "lobster")),
    ("Grains & Cereals", ("rice", "pasta", "bread", "flour", "wheat", "quinoa", "oats", "cereal")),
    (
        "Spices & Seasonings",
        ("salt", "pepper", "cinnamon", "cumin", "paprika", "oregano", "basil", "thyme"),
    ),
    ("Oils & Condiments", ("oil", "vinegar", "soy sauce", "sauce", "dressing")),
)

# Words dropped when building searchable ingredient tags
TAG_STOP_WORDS: frozenset[str] = frozenset(
    {
        "and",
        "or",
        "of",
        "the",
        "a",
        "an",
        "fresh",
        "large",
        "small",
        "chopped",
        "diced",
        "minced",
        "to",
        "taste",
        "optional",
        "into",
        "for",
        "with",
        "in",
        "on",
        "about",
    }
)

_LINE_PATTERN = re.compile(r"^([\d.]+)\s*(\w+)\s+(.+)$")
_PARENTHETICAL = re.compile(r"\([^)]*\)")
_NUMBER_TOKEN = re.compile(r"\b\d+[\d/.]*\b")
_UNIT_WORDS = re.compile(
    r"\b(cups?|tbsp|tablespoons?|tsp|teaspoons?|grams?|g|kg|ml|l|oz|ounces?|pounds?|lbs?)\b"
)
_NON_LETTERS = re.compile(r"[^a-z\s]")


@dataclass
class ParsedIngredient:
    """One ingredient line broken into quantity, unit and name."""

    name: str
    quantity: float = 1.0
    unit: str = DEFAULT_UNIT

    @property
    def merge_key(self) -> tuple[str, str]:
        """Identity used when merging duplicate ingredients."""
        return self.name, self.unit


# =============================================================================
# Parsing
# =============================================================================


def _parse_quantity(raw: str) -> float:
    """Parse a leading number, falling back to 1 for anything unusable."""
    try:
        value = float(raw)
    except ValueError:
        return 1.0
    return value if math.isfinite(value) and value > 0 else 1.0


def parse_ingredient_line(line: Any) -> ParsedIngredient:
    """
    Parse a free-text ingredient line such as "200g pasta" or "1.5 cups flour".

    This is a best-effort heuristic: only a leading ``<number><unit> <name>``
    is recognised. Unknown units become ``item``; lines without a leading
    number and unit are kept whole as the name with quantity 1.
    """
    if not isinstance(line, str) or not line.strip():
        return ParsedIngredient(name=DEFAULT_NAME)

    match = _LINE_PATTERN.match(line)
    if match:
        quantity, unit, name = match.groups()
        unit = unit.lower().strip()
        unit = UNIT_ALIASES.get(unit, unit)
        name = name.lower().strip()
        return ParsedIngredient(
            name=name or DEFAULT_NAME,
            quantity=_parse_quantity(quantity),
            unit=unit if unit in VALID_UNITS else DEFAULT_UNIT,
        )

    return ParsedIngredient(name=line.lower().strip())


def normalize_string_list(value: Any) -> list[str]:
    """
    Normalize a free-form list field into trimmed, non-empty strings.

    Clients send either a list of strings or a single comma-joined string.

    Raises:
        ValueError: If the value is neither None, a string, nor a list/tuple.
    """
    if value is None:
        return []

    if isinstance(value, str):
        entries = value.split(",")
    elif isinstance(value, (list, tuple)):
        entries = [str(entry) for entry in value if entry is not None]
    else:
        raise ValueError("expected a list of strings or a comma-separated string")

    return [entry.strip() for entry in entries if entry.strip()]


def normalize_ingredient_field(value: Any) -> list[str]:
    """Normalize an ingredients field into a list of ingredient lines."""
    return normalize_string_list(value)


def extract_ingredient_tags(ingredients: list[str]) -> list[str]:
    """Extract searchable keyword tags from ingredient lines."""
    tags: dict[str, None] = {}

    for line in ingredients:
        text = str(line).lower()
        text = _PARENTHETICAL.sub(" ", text)
        text = _NUMBER_TOKEN.sub(" ", text)
        text = _UNIT_WORDS.sub(" ", text)
        text = _NON_LETTERS.sub(" ", text)

        for token in text.split():
            if len(token) > 2 and token not in TAG_STOP_WORDS:
                tags.setdefault(token, None)

    return list(tags)


# =============================================================================
# Categorization
# =============================================================================


def categorize_ingredient(name: str) -> str:
    """Assign a shopping category by first keyword match against the name."""
    lower = name.lower()

    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return category

    return OTHER_CATEGORY
