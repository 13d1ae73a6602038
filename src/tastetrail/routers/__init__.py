"""API routers for the TasteTrail application."""

from tastetrail.routers.meal_plans import router as meal_plans_router
from tastetrail.routers.recipes import router as recipes_router
from tastetrail.routers.shopping_lists import router as shopping_lists_router
from tastetrail.routers.users import router as users_router

__all__ = [
    "meal_plans_router",
    "recipes_router",
    "shopping_lists_router",
    "users_router",
]
