"""API routes for weekly meal plans."""

from datetime import date, datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from tastetrail.auth import CurrentUser
from tastetrail.config import get_settings
from tastetrail.errors import NotFoundError, TasteTrailError, ValidationError
from tastetrail.logging_config import LoggingContext, get_logger
from tastetrail.plan.meal_plan import collect_recipe_ids
from tastetrail.plan.shopping_list import ShoppingListGenerator
from tastetrail.repository import MealPlanRepository, RecipeRepository, ShoppingListRepository
from tastetrail.routers.deps import (
    get_meal_plan_repository,
    get_recipe_repository,
    get_shopping_list_repository,
    to_http_exception,
)
from tastetrail.routers.shopping_lists import ShoppingListResponse, save_generated_list

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/meal-plans", tags=["meal-plans"])


# =============================================================================
# Request/Response Schemas
# =============================================================================


class MealPlanCreateRequest(BaseModel):
    """Request to create an empty weekly meal plan."""

    name: str | None = None
    start_date: date
    notes: str = ""


class MealPlanUpdateRequest(BaseModel):
    """Request to rename a plan or change its notes."""

    name: str | None = None
    notes: str | None = None


class MealSlotRequest(BaseModel):
    """A recipe on a weekday."""

    day: str = Field(description="monday .. sunday")
    recipe_id: str


class MealPlanResponse(BaseModel):
    """Weekly meal plan with recipe ids per weekday."""

    id: str
    user_id: str
    name: str
    start_date: date
    notes: str = ""
    meals: dict[str, list[str]]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MealPlanListResponse(BaseModel):
    """All meal plans of a user, latest week first."""

    meal_plans: list[MealPlanResponse]
    count: int


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/", response_model=MealPlanResponse, status_code=status.HTTP_201_CREATED)
async def create_meal_plan(
    request: MealPlanCreateRequest,
    user: CurrentUser,
    plans: MealPlanRepository = Depends(get_meal_plan_repository),
) -> MealPlanResponse:
    """Create an empty weekly meal plan."""
    name = (request.name or "").strip() or get_settings().default_meal_plan_name
    plan = await plans.create(user.id, name, request.start_date, notes=request.notes)
    return MealPlanResponse.model_validate(plan)


@router.get("/", response_model=MealPlanListResponse)
async def list_meal_plans(
    user: CurrentUser,
    plans: MealPlanRepository = Depends(get_meal_plan_repository),
) -> MealPlanListResponse:
    """List the caller's meal plans."""
    meal_plans = await plans.list_for_user(user.id)
    return MealPlanListResponse(
        meal_plans=[MealPlanResponse.model_validate(p) for p in meal_plans],
        count=len(meal_plans),
    )


@router.get("/{plan_id}", response_model=MealPlanResponse)
async def get_meal_plan(
    plan_id: str,
    user: CurrentUser,
    plans: MealPlanRepository = Depends(get_meal_plan_repository),
) -> MealPlanResponse:
    """Get a specific meal plan by ID."""
    try:
        plan = await plans.get_owned(plan_id, user.id)
    except TasteTrailError as e:
        raise to_http_exception(e)
    return MealPlanResponse.model_validate(plan)


@router.post("/{plan_id}/recipes", response_model=MealPlanResponse)
async def add_recipe_to_day(
    plan_id: str,
    request: MealSlotRequest,
    user: CurrentUser,
    plans: MealPlanRepository = Depends(get_meal_plan_repository),
    recipes: RecipeRepository = Depends(get_recipe_repository),
) -> MealPlanResponse:
    """Schedule a recipe on a weekday of the plan."""
    logger.info(f"Adding recipe {request.recipe_id} to {request.day} of plan {plan_id}")
    try:
        if await recipes.get(request.recipe_id) is None:
            raise NotFoundError("Recipe not found")
        plan = await plans.add_recipe(plan_id, user.id, request.day, request.recipe_id)
    except TasteTrailError as e:
        raise to_http_exception(e)
    return MealPlanResponse.model_validate(plan)


@router.delete("/{plan_id}/recipes", response_model=MealPlanResponse)
async def remove_recipe_from_day(
    plan_id: str,
    request: MealSlotRequest,
    user: CurrentUser,
    plans: MealPlanRepository = Depends(get_meal_plan_repository),
) -> MealPlanResponse:
    """Remove a recipe from a weekday of the plan."""
    try:
        plan = await plans.remove_recipe(plan_id, user.id, request.day, request.recipe_id)
    except TasteTrailError as e:
        raise to_http_exception(e)
    return MealPlanResponse.model_validate(plan)


@router.put("/{plan_id}", response_model=MealPlanResponse)
async def update_meal_plan(
    plan_id: str,
    request: MealPlanUpdateRequest,
    user: CurrentUser,
    plans: MealPlanRepository = Depends(get_meal_plan_repository),
) -> MealPlanResponse:
    """Rename a plan and/or update its notes."""
    try:
        plan = await plans.update_meta(plan_id, user.id, name=request.name, notes=request.notes)
    except TasteTrailError as e:
        raise to_http_exception(e)
    return MealPlanResponse.model_validate(plan)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meal_plan(
    plan_id: str,
    user: CurrentUser,
    plans: MealPlanRepository = Depends(get_meal_plan_repository),
) -> None:
    """Delete a meal plan."""
    try:
        await plans.delete(plan_id, user.id)
    except TasteTrailError as e:
        raise to_http_exception(e)


@router.post(
    "/{plan_id}/shopping-list",
    response_model=ShoppingListResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_shopping_list_from_meal_plan(
    plan_id: str,
    user: CurrentUser,
    plans: MealPlanRepository = Depends(get_meal_plan_repository),
    recipes: RecipeRepository = Depends(get_recipe_repository),
    lists: ShoppingListRepository = Depends(get_shopping_list_repository),
) -> ShoppingListResponse:
    """
    Generate a shopping list covering every recipe in the week.

    The list is named after the plan and saved for the caller.
    """
    try:
        plan = await plans.get_owned(plan_id, user.id)
        recipe_ids = collect_recipe_ids(plan.meals)
        if not recipe_ids:
            raise ValidationError("No recipes in meal plan to generate shopping list")

        generated = await ShoppingListGenerator(recipes).generate(
            recipe_ids,
            user,
            name=plan.name,
            week_number=plan.start_date.isocalendar()[1],
        )
    except TasteTrailError as e:
        logger.warning(f"Meal plan shopping list rejected: {e.message}")
        raise to_http_exception(e)

    shopping_list = await save_generated_list(lists, generated)
    with LoggingContext(list_id=shopping_list.id):
        logger.info(f"Shopping list created from meal plan {plan_id}")

    return ShoppingListResponse.model_validate(shopping_list)
