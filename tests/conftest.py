"""Pytest configuration and shared fixtures."""

import os
from collections.abc import Sequence
from datetime import datetime
from types import SimpleNamespace
from typing import Annotated, Any
from unittest.mock import AsyncMock

import pytest
from fastapi import Header, HTTPException, status
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from tastetrail.auth import get_current_user
from tastetrail.database import Base
from tastetrail.main import app
from tastetrail.models import MealPlan, Recipe, Review, ShoppingList, User
from tastetrail.repository import (
    MealPlanRepository,
    RecipeRepository,
    ReviewRepository,
    ShoppingListRepository,
    UserRepository,
)
from tastetrail.routers.deps import (
    get_meal_plan_repository,
    get_recipe_repository,
    get_review_repository,
    get_shopping_list_repository,
    get_user_repository,
)

# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (require external services)"
    )


# =============================================================================
# Recipe Fixtures
# =============================================================================


@pytest.fixture
def rice_and_chicken_recipes():
    """Two recipes sharing rice, as plain objects exposing ingredients."""
    return [
        SimpleNamespace(id="r1", ingredients=["2 cups rice", "1 tbsp salt"]),
        SimpleNamespace(id="r2", ingredients=["1 cups rice", "chicken breast"]),
    ]


@pytest.fixture
def user():
    """Authenticated user with dietary preferences."""
    return User(
        id="user-1",
        email="user-1@example.com",
        name="Ada",
        dietary_preferences=["vegetarian"],
        allergies=[],
        favorite_cuisines=[],
    )


@pytest.fixture
def mock_recipe_store():
    """Recipe store double whose find_by_ids result is set per test."""
    store = AsyncMock()
    store.find_by_ids.return_value = []
    return store


# =============================================================================
# In-memory persistence
# =============================================================================


class InMemorySession:
    """Stand-in for AsyncSession covering add/get/delete/commit/refresh."""

    def __init__(self) -> None:
        self.objects: dict[tuple[type, str], Any] = {}
        self.commits = 0

    def add(self, obj: Any) -> None:
        self.objects[(type(obj), obj.id)] = obj

    async def get(self, model: type, object_id: str) -> Any:
        return self.objects.get((model, object_id))

    async def delete(self, obj: Any) -> None:
        self.objects.pop((type(obj), obj.id), None)

    async def commit(self) -> None:
        self.commits += 1

    async def refresh(self, obj: Any) -> None:
        pass

    def all(self, model: type) -> list[Any]:
        return [obj for (obj_model, _), obj in self.objects.items() if obj_model is model]


class InMemoryRecipeRepository(RecipeRepository):
    """Recipe repository whose queries run over the in-memory session."""

    async def find_by_ids(self, recipe_ids: Sequence[str]) -> list[Recipe]:
        wanted = set(recipe_ids)
        return [r for r in self.session.all(Recipe) if r.id in wanted]

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
        found = self.session.all(Recipe)
        if cuisine:
            found = [r for r in found if cuisine.lower() in (r.cuisine or "").lower()]
        if ingredient:
            found = [
                r for r in found if any(t.startswith(ingredient.lower()) for t in r.ingredient_tags)
            ]
        if search:
            needle = search.lower()
            found = [
                r for r in found if needle in r.name.lower() or needle in r.description.lower()
            ]
        if dietary_tags:
            wanted = {tag.lower() for tag in dietary_tags}
            found = [r for r in found if wanted & {tag.lower() for tag in r.dietary_tags}]
        if max_prep_time is not None:
            found = [r for r in found if r.prep_time <= max_prep_time]
        if min_rating is not None:
            found = [r for r in found if r.rating >= min_rating]

        found.sort(key=lambda r: r.created_at, reverse=True)
        if sort_by == "rating":
            found.sort(key=lambda r: r.rating, reverse=True)
        elif sort_by == "prep_time":
            found.sort(key=lambda r: r.prep_time)
        elif sort_by == "name":
            found.sort(key=lambda r: r.name)
        return found[offset : offset + limit]


class InMemoryReviewRepository(ReviewRepository):
    async def list_for_recipe(self, recipe_id: str) -> list[Review]:
        found = [rv for rv in self.session.all(Review) if rv.recipe_id == recipe_id]
        return sorted(found, key=lambda rv: rv.created_at)

    async def find_by_user(self, recipe_id: str, user_id: str) -> Review | None:
        for review in await self.list_for_recipe(recipe_id):
            if review.user_id == user_id:
                return review
        return None


class InMemoryShoppingListRepository(ShoppingListRepository):
    async def list_for_user(self, user_id: str) -> list[ShoppingList]:
        found = [sl for sl in self.session.all(ShoppingList) if sl.user_id == user_id]
        return sorted(found, key=lambda sl: sl.created_at, reverse=True)


class InMemoryMealPlanRepository(MealPlanRepository):
    async def list_for_user(self, user_id: str) -> list[MealPlan]:
        found = [p for p in self.session.all(MealPlan) if p.user_id == user_id]
        return sorted(found, key=lambda p: p.start_date, reverse=True)


@pytest.fixture
def session():
    """Fresh in-memory session."""
    return InMemorySession()


@pytest.fixture
def recipe_repository(session):
    return InMemoryRecipeRepository(session)


@pytest.fixture
def shopping_list_repository(session):
    return InMemoryShoppingListRepository(session)


@pytest.fixture
def meal_plan_repository(session):
    return InMemoryMealPlanRepository(session)


@pytest.fixture
def review_repository(session):
    return InMemoryReviewRepository(session)


@pytest.fixture
def user_repository(session):
    return UserRepository(session)


def make_recipe(recipe_id: str, ingredients: list[str], **kwargs: Any) -> Recipe:
    """Build a stored-looking recipe."""
    now = datetime.utcnow()
    return Recipe(
        id=recipe_id,
        user_id=kwargs.pop("user_id", "chef"),
        name=kwargs.pop("name", recipe_id),
        description=kwargs.pop("description", ""),
        ingredients=ingredients,
        instructions=kwargs.pop("instructions", []),
        ingredient_tags=kwargs.pop("ingredient_tags", []),
        dietary_tags=kwargs.pop("dietary_tags", []),
        cuisine=kwargs.pop("cuisine", None),
        prep_time=kwargs.pop("prep_time", 0),
        cook_time=kwargs.pop("cook_time", 0),
        rating=kwargs.pop("rating", 0.0),
        num_reviews=kwargs.pop("num_reviews", 0),
        created_at=kwargs.pop("created_at", now),
        updated_at=now,
    )


# =============================================================================
# API client
# =============================================================================


def _header_user_from(session: InMemorySession):
    """Auth override resolving X-User-Id to a user kept in the in-memory session."""

    async def header_user(x_user_id: Annotated[str | None, Header()] = None) -> User:
        if not x_user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
            )
        user = await session.get(User, x_user_id)
        if user is None:
            user = User(
                id=x_user_id,
                email=f"{x_user_id}@example.com",
                name=x_user_id,
                dietary_preferences=["vegetarian"],
                allergies=[],
                favorite_cuisines=[],
            )
            session.add(user)
        return user

    return header_user


@pytest.fixture
def client(session):
    """TestClient with repositories and auth backed by the in-memory session."""
    app.dependency_overrides[get_recipe_repository] = lambda: InMemoryRecipeRepository(session)
    app.dependency_overrides[get_review_repository] = lambda: InMemoryReviewRepository(session)
    app.dependency_overrides[get_user_repository] = lambda: UserRepository(session)
    app.dependency_overrides[get_shopping_list_repository] = (
        lambda: InMemoryShoppingListRepository(session)
    )
    app.dependency_overrides[get_meal_plan_repository] = lambda: InMemoryMealPlanRepository(
        session
    )
    app.dependency_overrides[get_current_user] = _header_user_from(session)

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def seeded_recipes(session):
    """Two recipes stored in the in-memory session."""
    recipes = [
        make_recipe("r1", ["2 cups rice", "1 tbsp salt"], name="Rice bowl"),
        make_recipe("r2", ["1 cups rice", "chicken breast"], name="Chicken rice"),
    ]
    for recipe in recipes:
        session.add(recipe)
    return recipes


# =============================================================================
# SQLite Test Database Fixtures
# =============================================================================


def get_test_database_url() -> str:
    """Get the test database URL from environment or use in-memory SQLite."""
    return os.environ.get("TEST_DATABASE_URL", "sqlite://")


@pytest.fixture(scope="function")
def test_db_engine():
    """Create a test database engine with all tables, dropped after each test."""
    engine = create_engine(get_test_database_url(), echo=False)
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_session(test_db_engine):
    """Create a test database session."""
    with Session(test_db_engine) as db_session:
        yield db_session
