"""TasteTrail: recipes, meal plans and aggregated shopping lists."""

__version__ = "0.1.0"
