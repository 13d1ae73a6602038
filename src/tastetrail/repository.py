"""Repositories for recipes, reviews, users, shopping lists and meal plans."""

import uuid
from collections.abc import Sequence
from datetime import date, datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, String, cast, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from tastetrail.errors import ForbiddenError, NotFoundError, OutOfRangeError, ValidationError
from tastetrail.logging_config import get_logger
from tastetrail.models import MealPlan, Recipe, Review, ShoppingList, User, empty_week
from tastetrail.normalize.ingredients import extract_ingredient_tags
from tastetrail.plan.meal_plan import normalize_day
from tastetrail.plan.shopping_list import GeneratedShoppingList

logger = get_logger(__name__)

OwnedModel = TypeVar("OwnedModel", ShoppingList, MealPlan)

RECIPE_SORT_ORDERS = {
    "newest": Recipe.created_at.desc(),
    "rating": Recipe.rating.desc(),
    "prep_time": Recipe.prep_time.asc(),
    "name": Recipe.name.asc(),
}

_LIKE_ESCAPE = "\\"


def _new_id() -> str:
    return str(uuid.uuid4())


def _like_literal(value: str) -> str:
    """Escape LIKE wildcards so user input only matches literally."""
    return (
        value.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def recipe_search_query(
    ingredient: str | None = None,
    cuisine: str | None = None,
    search: str | None = None,
    dietary_tags: Sequence[str] | None = None,
    max_prep_time: int | None = None,
    min_rating: float | None = None,
    sort_by: str = "newest",
    limit: int = 20,
    offset: int = 0,
) -> Select:
    """
    Build the recipe listing query.

    Text filters are case-insensitive substring matches; ``dietary_tags``
    matches recipes carrying any of the given tags.
    """
    query = select(Recipe)
    if search:
        pattern = f"%{_like_literal(search.strip())}%"
        query = query.where(
            or_(
                Recipe.name.ilike(pattern, escape=_LIKE_ESCAPE),
                Recipe.description.ilike(pattern, escape=_LIKE_ESCAPE),
            )
        )
    if cuisine:
        query = query.where(
            Recipe.cuisine.ilike(f"%{_like_literal(cuisine.strip())}%", escape=_LIKE_ESCAPE)
        )
    if ingredient:
        # Tags are stored as a JSON array of lowercase words
        pattern = f'%"{_like_literal(ingredient.lower().strip())}%'
        query = query.where(
            cast(Recipe.ingredient_tags, String).ilike(pattern, escape=_LIKE_ESCAPE)
        )
    tags = [tag.strip() for tag in dietary_tags or [] if tag.strip()]
    if tags:
        query = query.where(
            or_(
                *(
                    cast(Recipe.dietary_tags, String).ilike(
                        f'%"{_like_literal(tag)}"%', escape=_LIKE_ESCAPE
                    )
                    for tag in tags
                )
            )
        )
    if max_prep_time is not None:
        query = query.where(Recipe.prep_time <= max_prep_time)
    if min_rating is not None:
        query = query.where(Recipe.rating >= min_rating)

    order = RECIPE_SORT_ORDERS.get(sort_by, RECIPE_SORT_ORDERS["newest"])
    return query.order_by(order, Recipe.created_at.desc()).offset(offset).limit(limit)


# =============================================================================
# Recipes
# =============================================================================


class RecipeRepository:
    """Recipe store backed by PostgreSQL."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_ids(self, recipe_ids: Sequence[str]) -> list[Recipe]:
        """Load every existing recipe among the given ids; unknown ids are skipped."""
        if not recipe_ids:
            return []
        result = await self.session.execute(
            select(Recipe).where(Recipe.id.in_(set(recipe_ids)))
        )
        return list(result.scalars().all())

    async def get(self, recipe_id: str) -> Recipe | None:
        return await self.session.get(Recipe, recipe_id)

    async def search(
        self,
        ingredient: str | None = None,
        cuisine: str | None = None,
        search: str | None = None,
        dietary_tags: Sequence[str] | None = None,
        max_prep_time: int | None = None,
        min_rating: float | None = None,
        sort_by: str = "newest",
        limit: int = 20,
        offset: int = 0,
    ) -> list[Recipe]:
        """List recipes, optionally filtered; see ``recipe_search_query``."""
        query = recipe_search_query(
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
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        user_id: str,
        name: str,
        ingredients: list[str],
        description: str = "",
        instructions: list[str] | None = None,
        dietary_tags: list[str] | None = None,
        cuisine: str | None = None,
        prep_time: int = 0,
        cook_time: int = 0,
    ) -> Recipe:
        """Create a recipe; ingredient tags are derived from the ingredient lines."""
        now = datetime.utcnow()
        recipe = Recipe(
            id=_new_id(),
            user_id=user_id,
            name=name.strip(),
            description=description,
            ingredients=list(ingredients),
            instructions=list(instructions or []),
            ingredient_tags=extract_ingredient_tags(ingredients),
            dietary_tags=list(dietary_tags or []),
            cuisine=cuisine.strip() if cuisine else None,
            prep_time=prep_time,
            cook_time=cook_time,
            rating=0.0,
            num_reviews=0,
            created_at=now,
            updated_at=now,
        )
        self.session.add(recipe)
        await self.session.commit()
        await self.session.refresh(recipe)

        logger.info(f"Created recipe {recipe.id} with {len(recipe.ingredients)} ingredients")
        return recipe


# =============================================================================
# Reviews
# =============================================================================


class ReviewRepository:
    """Recipe reviews; every change recomputes the recipe's average rating."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_recipe(self, recipe_id: str) -> list[Review]:
        result = await self.session.execute(
            select(Review).where(Review.recipe_id == recipe_id).order_by(Review.created_at)
        )
        return list(result.scalars().all())

    async def find_by_user(self, recipe_id: str, user_id: str) -> Review | None:
        result = await self.session.execute(
            select(Review).where(Review.recipe_id == recipe_id, Review.user_id == user_id)
        )
        return result.scalars().first()

    async def get_recipe(self, recipe_id: str) -> Recipe:
        recipe = await self.session.get(Recipe, recipe_id)
        if recipe is None:
            raise NotFoundError("Recipe not found")
        return recipe

    async def _get_own_review(self, recipe_id: str, review_id: str, user_id: str) -> Review:
        review = await self.session.get(Review, review_id)
        if review is None or review.recipe_id != recipe_id:
            raise NotFoundError("Review not found")
        if review.user_id != user_id:
            raise ForbiddenError("Not authorized to change this review")
        return review

    async def _refresh_rating(self, recipe: Recipe) -> None:
        """Recompute the average over the recipe's reviews; 0 when there are none."""
        reviews = await self.list_for_recipe(recipe.id)
        recipe.num_reviews = len(reviews)
        recipe.rating = (
            sum(review.rating for review in reviews) / len(reviews) if reviews else 0.0
        )
        recipe.updated_at = datetime.utcnow()

    async def add(self, recipe_id: str, user: User, rating: int, comment: str) -> Recipe:
        """
        Add the user's review to a recipe.

        Raises:
            NotFoundError: If the recipe does not exist.
            ValidationError: If the user already reviewed this recipe.
        """
        recipe = await self.get_recipe(recipe_id)
        if await self.find_by_user(recipe_id, user.id) is not None:
            raise ValidationError("You have already reviewed this recipe")

        now = datetime.utcnow()
        review = Review(
            id=_new_id(),
            recipe_id=recipe_id,
            user_id=user.id,
            name=user.name or user.email,
            rating=rating,
            comment=comment.strip(),
            created_at=now,
            updated_at=now,
        )
        self.session.add(review)
        await self._refresh_rating(recipe)
        await self.session.commit()
        await self.session.refresh(recipe)

        logger.info(
            f"Review {review.id} added to recipe {recipe_id}, "
            f"rating now {recipe.rating:.2f} over {recipe.num_reviews}"
        )
        return recipe

    async def update(
        self,
        recipe_id: str,
        review_id: str,
        user_id: str,
        rating: int | None = None,
        comment: str | None = None,
    ) -> Recipe:
        """Edit the user's own review; fields left as None are unchanged."""
        recipe = await self.get_recipe(recipe_id)
        review = await self._get_own_review(recipe_id, review_id, user_id)

        if rating is not None:
            review.rating = rating
        if comment is not None and comment.strip():
            review.comment = comment.strip()
        review.updated_at = datetime.utcnow()
        self.session.add(review)
        await self._refresh_rating(recipe)
        await self.session.commit()
        await self.session.refresh(recipe)
        return recipe

    async def delete(self, recipe_id: str, review_id: str, user_id: str) -> Recipe:
        recipe = await self.get_recipe(recipe_id)
        review = await self._get_own_review(recipe_id, review_id, user_id)

        await self.session.delete(review)
        await self._refresh_rating(recipe)
        await self.session.commit()
        await self.session.refresh(recipe)

        logger.info(f"Deleted review {review_id} from recipe {recipe_id}")
        return recipe


# =============================================================================
# Users
# =============================================================================


class UserRepository:
    """Profile updates for the authenticated user."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def update_profile(
        self,
        user: User,
        name: str | None = None,
        dietary_preferences: list[str] | None = None,
        allergies: list[str] | None = None,
        favorite_cuisines: list[str] | None = None,
    ) -> User:
        """
        Update profile fields. Lists replace the stored ones; None leaves a field as is.

        New shopping lists copy ``dietary_preferences`` at generation time, so a
        change here does not touch lists that already exist.
        """
        if name and name.strip():
            user.name = name.strip()
        if dietary_preferences is not None:
            user.dietary_preferences = list(dietary_preferences)
        if allergies is not None:
            user.allergies = list(allergies)
        if favorite_cuisines is not None:
            user.favorite_cuisines = list(favorite_cuisines)

        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)

        logger.info(f"Updated profile of user {user.id}")
        return user


# =============================================================================
# User-owned documents
# =============================================================================


class OwnedRepository(Generic[OwnedModel]):
    """Shared load/ownership/save plumbing for documents owned by one user."""

    model: type[OwnedModel]
    label: str

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _fetch(self, object_id: str) -> OwnedModel | None:
        return await self.session.get(self.model, object_id)

    async def _persist(self, obj: OwnedModel) -> None:
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)

    async def _remove(self, obj: OwnedModel) -> None:
        await self.session.delete(obj)
        await self.session.commit()

    async def get_owned(self, object_id: str, user_id: str) -> OwnedModel:
        """
        Load a document and check that it belongs to the user.

        Raises:
            NotFoundError: If the document does not exist.
            ForbiddenError: If it belongs to another user.
        """
        obj = await self._fetch(object_id)
        if obj is None:
            raise NotFoundError(f"{self.label} not found")
        if obj.user_id != user_id:
            raise ForbiddenError(f"Not authorized to access this {self.label.lower()}")
        return obj

    async def update_meta(
        self,
        object_id: str,
        user_id: str,
        name: str | None = None,
        notes: str | None = None,
    ) -> OwnedModel:
        """Rename and/or re-annotate. An empty name is ignored; empty notes clear them."""
        obj = await self.get_owned(object_id, user_id)
        if name and name.strip():
            obj.name = name.strip()
        if notes is not None:
            obj.notes = notes
        obj.updated_at = datetime.utcnow()
        await self._persist(obj)
        return obj

    async def delete(self, object_id: str, user_id: str) -> None:
        obj = await self.get_owned(object_id, user_id)
        await self._remove(obj)
        logger.info(f"Deleted {self.label.lower()} {object_id}")


class ShoppingListRepository(OwnedRepository[ShoppingList]):
    """List store: persists generated shopping lists and applies user edits."""

    model = ShoppingList
    label = "Shopping list"

    async def list_for_user(self, user_id: str) -> list[ShoppingList]:
        result = await self.session.execute(
            select(ShoppingList)
            .where(ShoppingList.user_id == user_id)
            .order_by(ShoppingList.created_at.desc())
        )
        return list(result.scalars().all())

    async def create(self, generated: GeneratedShoppingList) -> ShoppingList:
        """Persist a generated list as a new, independent document."""
        now = datetime.utcnow()
        shopping_list = ShoppingList(
            id=_new_id(),
            user_id=generated.owner_id,
            name=generated.name,
            recipe_ids=list(generated.recipe_ids),
            items=[item.to_dict() for item in generated.items],
            dietary_preferences=list(generated.dietary_preferences),
            notes=generated.notes,
            week_number=generated.week_number,
            created_at=now,
            updated_at=now,
        )
        await self._persist(shopping_list)

        logger.info(
            f"Saved shopping list {shopping_list.id} with {len(shopping_list.items)} items"
        )
        return shopping_list

    async def toggle_item(self, list_id: str, user_id: str, item_index: int) -> ShoppingList:
        """
        Flip the checked flag of one item by its position.

        Raises:
            OutOfRangeError: If item_index is not a valid position.
        """
        shopping_list = await self.get_owned(list_id, user_id)

        # JSON columns only notice reassignment, so work on a copy
        items: list[dict[str, Any]] = [dict(item) for item in shopping_list.items or []]
        if item_index < 0 or item_index >= len(items):
            raise OutOfRangeError("Invalid item index")

        items[item_index]["checked"] = not items[item_index].get("checked", False)
        shopping_list.items = items
        shopping_list.updated_at = datetime.utcnow()
        await self._persist(shopping_list)
        return shopping_list


class MealPlanRepository(OwnedRepository[MealPlan]):
    """Weekly meal plans."""

    model = MealPlan
    label = "Meal plan"

    async def list_for_user(self, user_id: str) -> list[MealPlan]:
        result = await self.session.execute(
            select(MealPlan)
            .where(MealPlan.user_id == user_id)
            .order_by(MealPlan.start_date.desc())
        )
        return list(result.scalars().all())

    async def create(
        self,
        user_id: str,
        name: str,
        start_date: date,
        notes: str = "",
    ) -> MealPlan:
        now = datetime.utcnow()
        plan = MealPlan(
            id=_new_id(),
            user_id=user_id,
            name=name,
            start_date=start_date,
            notes=notes,
            meals=empty_week(),
            created_at=now,
            updated_at=now,
        )
        await self._persist(plan)
        logger.info(f"Created meal plan {plan.id} starting {start_date}")
        return plan

    async def add_recipe(self, plan_id: str, user_id: str, day: str, recipe_id: str) -> MealPlan:
        """Schedule a recipe on a weekday; scheduling it twice on one day is a no-op."""
        day_key = normalize_day(day)
        plan = await self.get_owned(plan_id, user_id)

        meals = {key: list(ids) for key, ids in (plan.meals or empty_week()).items()}
        day_meals = meals.setdefault(day_key, [])
        if recipe_id not in day_meals:
            day_meals.append(recipe_id)
            plan.meals = meals
            plan.updated_at = datetime.utcnow()
            await self._persist(plan)
        return plan

    async def remove_recipe(
        self, plan_id: str, user_id: str, day: str, recipe_id: str
    ) -> MealPlan:
        day_key = normalize_day(day)
        plan = await self.get_owned(plan_id, user_id)

        meals = {key: list(ids) for key, ids in (plan.meals or empty_week()).items()}
        meals[day_key] = [rid for rid in meals.get(day_key, []) if rid != recipe_id]
        plan.meals = meals
        plan.updated_at = datetime.utcnow()
        await self._persist(plan)
        return plan
