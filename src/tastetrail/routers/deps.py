"""Shared router dependencies and error translation."""

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tastetrail.database import get_db
from tastetrail.errors import (
    ForbiddenError,
    NotFoundError,
    OutOfRangeError,
    TasteTrailError,
    ValidationError,
)
from tastetrail.repository import (
    MealPlanRepository,
    RecipeRepository,
    ReviewRepository,
    ShoppingListRepository,
    UserRepository,
)

_STATUS_BY_ERROR: dict[type[TasteTrailError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    OutOfRangeError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
}


def to_http_exception(error: TasteTrailError) -> HTTPException:
    """Map a domain error onto the HTTP status it is reported with."""
    status_code = _STATUS_BY_ERROR.get(type(error), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=error.message)


async def get_recipe_repository(db: AsyncSession = Depends(get_db)) -> RecipeRepository:
    return RecipeRepository(db)


async def get_shopping_list_repository(
    db: AsyncSession = Depends(get_db),
) -> ShoppingListRepository:
    return ShoppingListRepository(db)


async def get_meal_plan_repository(db: AsyncSession = Depends(get_db)) -> MealPlanRepository:
    return MealPlanRepository(db)


async def get_review_repository(db: AsyncSession = Depends(get_db)) -> ReviewRepository:
    return ReviewRepository(db)


async def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    return UserRepository(db)
