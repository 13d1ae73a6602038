"""API routes for shopping list generation and management."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from tastetrail.auth import CurrentUser
from tastetrail.errors import TasteTrailError
from tastetrail.logging_config import LoggingContext, get_logger
from tastetrail.models import ShoppingList
from tastetrail.plan.shopping_list import GeneratedShoppingList, ShoppingListGenerator
from tastetrail.repository import RecipeRepository, ShoppingListRepository
from tastetrail.routers.deps import (
    get_recipe_repository,
    get_shopping_list_repository,
    to_http_exception,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/shopping-lists", tags=["shopping-lists"])


# =============================================================================
# Request/Response Schemas
# =============================================================================


class GenerateShoppingListRequest(BaseModel):
    """Request to generate a shopping list from recipes."""

    name: str | None = None
    recipe_ids: list[str] = Field(default_factory=list, description="Recipes to shop for")
    notes: str | None = None


class ShoppingListUpdateRequest(BaseModel):
    """Request to rename a shopping list or change its notes."""

    name: str | None = None
    notes: str | None = None


class ShoppingListItemSchema(BaseModel):
    """Single item in the shopping list."""

    name: str
    quantity: float
    unit: str
    category: str
    checked: bool = False


class ShoppingListResponse(BaseModel):
    """Stored shopping list."""

    id: str
    user_id: str
    name: str
    recipe_ids: list[str]
    items: list[ShoppingListItemSchema]
    dietary_preferences: list[str] = Field(default_factory=list)
    notes: str = ""
    week_number: int | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ShoppingListListResponse(BaseModel):
    """All shopping lists of a user, newest first."""

    shopping_lists: list[ShoppingListResponse]
    count: int


def _to_response(shopping_list: ShoppingList) -> ShoppingListResponse:
    return ShoppingListResponse.model_validate(shopping_list)


async def save_generated_list(
    lists: ShoppingListRepository, generated: GeneratedShoppingList
) -> ShoppingList:
    """Persist a generated list, reporting store failures as a 500."""
    try:
        return await lists.create(generated)
    except SQLAlchemyError as e:
        logger.error(f"Failed to save shopping list: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save shopping list",
        )


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "/generate",
    response_model=ShoppingListResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_shopping_list(
    request: GenerateShoppingListRequest,
    user: CurrentUser,
    recipes: RecipeRepository = Depends(get_recipe_repository),
    lists: ShoppingListRepository = Depends(get_shopping_list_repository),
) -> ShoppingListResponse:
    """
    Generate a shopping list from selected recipes.

    Ingredients from all recipes are parsed, merged by name and unit, and
    categorized. The result is saved as a new list owned by the caller.
    """
    logger.info(f"Generating shopping list from {len(request.recipe_ids)} recipe ids")

    generator = ShoppingListGenerator(recipes)
    try:
        generated = await generator.generate(
            request.recipe_ids,
            user,
            name=request.name,
            notes=request.notes,
        )
    except TasteTrailError as e:
        logger.warning(f"Shopping list generation rejected: {e.message}")
        raise to_http_exception(e)

    shopping_list = await save_generated_list(lists, generated)
    with LoggingContext(list_id=shopping_list.id):
        logger.info(f"Shopping list {shopping_list.name!r} created")

    return _to_response(shopping_list)


@router.get("/", response_model=ShoppingListListResponse)
async def list_shopping_lists(
    user: CurrentUser,
    lists: ShoppingListRepository = Depends(get_shopping_list_repository),
) -> ShoppingListListResponse:
    """List the caller's shopping lists."""
    shopping_lists = await lists.list_for_user(user.id)
    logger.info(f"Found {len(shopping_lists)} shopping lists")

    return ShoppingListListResponse(
        shopping_lists=[_to_response(sl) for sl in shopping_lists],
        count=len(shopping_lists),
    )


@router.get("/{list_id}", response_model=ShoppingListResponse)
async def get_shopping_list(
    list_id: str,
    user: CurrentUser,
    lists: ShoppingListRepository = Depends(get_shopping_list_repository),
) -> ShoppingListResponse:
    """Get a specific shopping list by ID."""
    try:
        shopping_list = await lists.get_owned(list_id, user.id)
    except TasteTrailError as e:
        raise to_http_exception(e)

    return _to_response(shopping_list)


@router.put("/{list_id}", response_model=ShoppingListResponse)
async def update_shopping_list(
    list_id: str,
    request: ShoppingListUpdateRequest,
    user: CurrentUser,
    lists: ShoppingListRepository = Depends(get_shopping_list_repository),
) -> ShoppingListResponse:
    """Rename a shopping list and/or update its notes."""
    with LoggingContext(list_id=list_id):
        logger.info("Updating shopping list")
        try:
            shopping_list = await lists.update_meta(
                list_id, user.id, name=request.name, notes=request.notes
            )
        except TasteTrailError as e:
            raise to_http_exception(e)

    return _to_response(shopping_list)


@router.patch("/{list_id}/items/{item_index}", response_model=ShoppingListResponse)
async def toggle_shopping_list_item(
    list_id: str,
    item_index: int,
    user: CurrentUser,
    lists: ShoppingListRepository = Depends(get_shopping_list_repository),
) -> ShoppingListResponse:
    """Toggle the checked status of one item by its position."""
    with LoggingContext(list_id=list_id):
        try:
            shopping_list = await lists.toggle_item(list_id, user.id, item_index)
        except TasteTrailError as e:
            raise to_http_exception(e)

        logger.info(
            f"Item {item_index} checked={shopping_list.items[item_index]['checked']}"
        )

    return _to_response(shopping_list)


@router.delete("/{list_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shopping_list(
    list_id: str,
    user: CurrentUser,
    lists: ShoppingListRepository = Depends(get_shopping_list_repository),
) -> None:
    """Delete a shopping list."""
    with LoggingContext(list_id=list_id):
        try:
            await lists.delete(list_id, user.id)
        except TasteTrailError as e:
            raise to_http_exception(e)
