"""API routes for recipes and their reviews."""

from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from tastetrail.auth import CurrentUser
from tastetrail.errors import TasteTrailError
from tastetrail.logging_config import get_logger
from tastetrail.normalize.ingredients import normalize_ingredient_field
from tastetrail.repository import RecipeRepository, ReviewRepository
from tastetrail.routers.deps import get_recipe_repository, get_review_repository, to_http_exception

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/recipes", tags=["recipes"])

SortOrder = Literal["newest", "rating", "prep_time", "name"]


# Request/Response schemas
class RecipeCreateRequest(BaseModel):
    """Request to create a recipe.

    Ingredients may be sent as a list of lines or one comma-joined string.
    """

    name: str = Field(min_length=1)
    description: str = ""
    ingredients: list[str]
    instructions: list[str] = Field(default_factory=list)
    dietary_tags: list[str] = Field(default_factory=list)
    cuisine: str | None = None
    prep_time: int = Field(default=0, ge=0)
    cook_time: int = Field(default=0, ge=0)

    @field_validator("ingredients", mode="before")
    @classmethod
    def split_ingredients(cls, value: object) -> list[str]:
        ingredients = normalize_ingredient_field(value)
        if not ingredients:
            raise ValueError("at least one ingredient is required")
        return ingredients


class RecipeResponse(BaseModel):
    """Stored recipe."""

    id: str
    user_id: str
    name: str
    description: str = ""
    ingredients: list[str]
    instructions: list[str] = Field(default_factory=list)
    ingredient_tags: list[str] = Field(default_factory=list)
    dietary_tags: list[str] = Field(default_factory=list)
    cuisine: str | None = None
    prep_time: int = 0
    cook_time: int = 0
    rating: float = 0.0
    num_reviews: int = 0
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RecipeListResponse(BaseModel):
    """Paginated list of recipes."""

    recipes: list[RecipeResponse]
    total: int
    offset: int
    limit: int


class ReviewCreateRequest(BaseModel):
    """Request to review a recipe."""

    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=1)


class ReviewUpdateRequest(BaseModel):
    """Request to edit a review; omitted fields are unchanged."""

    rating: int | None = Field(default=None, ge=1, le=5)
    comment: str | None = None


class ReviewResponse(BaseModel):
    """Stored review."""

    id: str
    recipe_id: str
    user_id: str
    name: str
    rating: int
    comment: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Recipe Endpoints
# =============================================================================


@router.get("/", response_model=RecipeListResponse)
async def list_recipes(
    ingredient: Annotated[str | None, Query(description="Filter by ingredient")] = None,
    cuisine: Annotated[str | None, Query(description="Filter by cuisine")] = None,
    search: Annotated[str | None, Query(description="Search name and description")] = None,
    dietary_tags: Annotated[
        list[str] | None, Query(description="Recipes carrying any of these tags")
    ] = None,
    max_prep_time: Annotated[
        int | None, Query(ge=0, description="Maximum prep time in minutes")
    ] = None,
    min_rating: Annotated[
        float | None, Query(ge=0, le=5, description="Minimum average rating")
    ] = None,
    sort_by: Annotated[SortOrder, Query(description="Sort order")] = "newest",
    limit: Annotated[int, Query(ge=1, le=100, description="Max recipes to return")] = 20,
    offset: Annotated[int, Query(ge=0, description="Offset for pagination")] = 0,
    recipes: RecipeRepository = Depends(get_recipe_repository),
) -> RecipeListResponse:
    """List recipes with optional filters."""
    logger.info(
        f"Listing recipes: ingredient={ingredient}, cuisine={cuisine}, search={search}, "
        f"dietary_tags={dietary_tags}, max_prep_time={max_prep_time}, "
        f"min_rating={min_rating}, sort_by={sort_by}, limit={limit}, offset={offset}"
    )
    found = await recipes.search(
        ingredient=ingredient,
        cuisine=cuisine,
        search=search,
        dietary_tags=dietary_tags,
        max_prep_time=max_prep_time,
        min_rating=min_rating,
        sort_by=sort_by,
        limit=limit,
        offset=offset,
    )

    return RecipeListResponse(
        recipes=[RecipeResponse.model_validate(r) for r in found],
        total=len(found),
        offset=offset,
        limit=limit,
    )
@router.get("/{recipe_id}", response_model=RecipeResponse)
async def get_recipe(
    recipe_id: str,
    recipes: RecipeRepository = Depends(get_recipe_repository),
) -> RecipeResponse:
    """Get a specific recipe by ID."""
    recipe = await recipes.get(recipe_id)
    if recipe is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Recipe {recipe_id} not found",
        )
    return RecipeResponse.model_validate(recipe)


@router.post("/", response_model=RecipeResponse, status_code=status.HTTP_201_CREATED)
async def create_recipe(
    request: RecipeCreateRequest,
    user: CurrentUser,
    recipes: RecipeRepository = Depends(get_recipe_repository),
) -> RecipeResponse:
    """Create a recipe owned by the caller."""
    recipe = await recipes.create(
        user_id=user.id,
        name=request.name,
        ingredients=request.ingredients,
        description=request.description,
        instructions=request.instructions,
        dietary_tags=request.dietary_tags,
        cuisine=request.cuisine,
        prep_time=request.prep_time,
        cook_time=request.cook_time,
    )
    return RecipeResponse.model_validate(recipe)


# =============================================================================
# Review Endpoints
# =============================================================================


@router.get("/{recipe_id}/reviews", response_model=list[ReviewResponse])
async def list_reviews(
    recipe_id: str,
    reviews: ReviewRepository = Depends(get_review_repository),
) -> list[ReviewResponse]:
    """List a recipe's reviews, oldest first."""
    try:
        await reviews.get_recipe(recipe_id)
    except TasteTrailError as e:
        raise to_http_exception(e) from e
    return [ReviewResponse.model_validate(r) for r in await reviews.list_for_recipe(recipe_id)]


@router.post(
    "/{recipe_id}/reviews", response_model=RecipeResponse, status_code=status.HTTP_201_CREATED
)
async def add_review(
    recipe_id: str,
    request: ReviewCreateRequest,
    user: CurrentUser,
    reviews: ReviewRepository = Depends(get_review_repository),
) -> RecipeResponse:
    """Review a recipe; each user may review a recipe once."""
    try:
        recipe = await reviews.add(recipe_id, user, request.rating, request.comment)
    except TasteTrailError as e:
        raise to_http_exception(e) from e
    return RecipeResponse.model_validate(recipe)


@router.put("/{recipe_id}/reviews/{review_id}", response_model=RecipeResponse)
async def update_review(
    recipe_id: str,
    review_id: str,
    request: ReviewUpdateRequest,
    user: CurrentUser,
    reviews: ReviewRepository = Depends(get_review_repository),
) -> RecipeResponse:
    """Edit the caller's own review."""
    try:
        recipe = await reviews.update(
            recipe_id, review_id, user.id, rating=request.rating, comment=request.comment
        )
    except TasteTrailError as e:
        raise to_http_exception(e) from e
    return RecipeResponse.model_validate(recipe)


@router.delete("/{recipe_id}/reviews/{review_id}", response_model=RecipeResponse)
async def delete_review(
    recipe_id: str,
    review_id: str,
    user: CurrentUser,
    reviews: ReviewRepository = Depends(get_review_repository),
) -> RecipeResponse:
    """Delete the caller's own review and return the re-rated recipe."""
    try:
        recipe = await reviews.delete(recipe_id, review_id, user.id)
    except TasteTrailError as e:
        raise to_http_exception(e) from e
    return RecipeResponse.model_validate(recipe)
