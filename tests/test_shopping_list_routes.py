"""API tests for the shopping list endpoints."""

import pytest
from sqlalchemy.exc import OperationalError

from tastetrail.main import app
from tastetrail.models import ShoppingList
from tastetrail.repository import ShoppingListRepository
from tastetrail.routers.deps import get_shopping_list_repository

BASE = "/api/v1/shopping-lists"
OWNER = {"X-User-Id": "user-1"}
INTRUDER = {"X-User-Id": "user-2"}


@pytest.fixture
def created_list(client, seeded_recipes):
    """A list generated from the seeded rice recipes."""
    response = client.post(
        f"{BASE}/generate",
        json={"recipe_ids": ["r1", "r2"], "name": "Week 12"},
        headers=OWNER,
    )
    assert response.status_code == 201
    return response.json()


class TestGenerateShoppingList:
    """Tests for POST /shopping-lists/generate."""

    def test_generate(self, created_list):
        """Test the aggregated, categorized result."""
        assert created_list["name"] == "Week 12"
        assert created_list["user_id"] == "user-1"
        assert created_list["recipe_ids"] == ["r1", "r2"]
        assert created_list["dietary_preferences"] == ["vegetarian"]
        assert created_list["items"] == [
            {
                "name": "rice",
                "quantity": 3.0,
                "unit": "cup",
                "category": "Grains & Cereals",
                "checked": False,
            },
            {
                "name": "salt",
                "quantity": 1.0,
                "unit": "tbsp",
                "category": "Spices & Seasonings",
                "checked": False,
            },
            {
                "name": "chicken breast",
                "quantity": 1.0,
                "unit": "item",
                "category": "Meat & Poultry",
                "checked": False,
            },
        ]

    def test_default_name(self, client, seeded_recipes):
        """Test that a missing name falls back to the default."""
        response = client.post(f"{BASE}/generate", json={"recipe_ids": ["r1"]}, headers=OWNER)
        assert response.status_code == 201
        assert response.json()["name"] == "My Shopping List"

    def test_is_persisted(self, client, created_list, session):
        """Test that the generated list is stored."""
        stored = session.all(ShoppingList)
        assert [sl.id for sl in stored] == [created_list["id"]]

    def test_no_recipes_selected(self, client, seeded_recipes):
        """Test that an empty selection is a 400."""
        response = client.post(f"{BASE}/generate", json={"recipe_ids": []}, headers=OWNER)
        assert response.status_code == 400
        assert response.json()["detail"] == "Please select at least one recipe"

    def test_unknown_recipes(self, client, seeded_recipes, session):
        """Test that ids matching no recipe are a 404 and nothing is stored."""
        response = client.post(f"{BASE}/generate", json={"recipe_ids": ["nope"]}, headers=OWNER)
        assert response.status_code == 404
        assert response.json()["detail"] == "No recipes found"
        assert session.all(ShoppingList) == []

    def test_unauthenticated(self, client, seeded_recipes):
        """Test that a request without a user is a 401."""
        response = client.post(f"{BASE}/generate", json={"recipe_ids": ["r1"]})
        assert response.status_code == 401


class TestReadShoppingLists:
    """Tests for listing and fetching shopping lists."""

    def test_list_own(self, client, created_list):
        """Test that users only see their own lists."""
        mine = client.get(f"{BASE}/", headers=OWNER).json()
        theirs = client.get(f"{BASE}/", headers=INTRUDER).json()

        assert mine["count"] == 1
        assert mine["shopping_lists"][0]["id"] == created_list["id"]
        assert theirs == {"shopping_lists": [], "count": 0}

    def test_get(self, client, created_list):
        """Test fetching a list by id."""
        response = client.get(f"{BASE}/{created_list['id']}", headers=OWNER)
        assert response.status_code == 200
        assert response.json()["items"] == created_list["items"]

    def test_get_forbidden(self, client, created_list):
        """Test that another user's list is a 403."""
        response = client.get(f"{BASE}/{created_list['id']}", headers=INTRUDER)
        assert response.status_code == 403

    def test_get_missing(self, client):
        """Test that an unknown id is a 404."""
        response = client.get(f"{BASE}/missing", headers=OWNER)
        assert response.status_code == 404


class TestToggleItem:
    """Tests for PATCH /shopping-lists/{id}/items/{index}."""

    def test_toggle(self, client, created_list):
        """Test toggling one item on and off again."""
        url = f"{BASE}/{created_list['id']}/items/0"

        first = client.patch(url, headers=OWNER).json()
        assert first["items"][0]["checked"] is True
        assert first["items"][1]["checked"] is False

        second = client.patch(url, headers=OWNER).json()
        assert second["items"][0]["checked"] is False

    @pytest.mark.parametrize("index", ["3", "-1"])
    def test_out_of_range(self, client, created_list, index):
        """Test that an invalid position is a 400."""
        response = client.patch(f"{BASE}/{created_list['id']}/items/{index}", headers=OWNER)
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid item index"

    def test_non_integer_index(self, client, created_list):
        """Test that a non-numeric position fails request validation."""
        response = client.patch(f"{BASE}/{created_list['id']}/items/first", headers=OWNER)
        assert response.status_code == 422

    def test_forbidden(self, client, created_list):
        """Test that another user cannot toggle items."""
        response = client.patch(f"{BASE}/{created_list['id']}/items/0", headers=INTRUDER)
        assert response.status_code == 403


class TestUpdateAndDelete:
    """Tests for PUT and DELETE on a shopping list."""

    def test_update(self, client, created_list):
        """Test renaming and setting notes."""
        response = client.put(
            f"{BASE}/{created_list['id']}",
            json={"name": "Party", "notes": "bring bags"},
            headers=OWNER,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Party"
        assert response.json()["notes"] == "bring bags"

    def test_update_blank_name(self, client, created_list):
        """Test that a blank name keeps the current one."""
        response = client.put(f"{BASE}/{created_list['id']}", json={"name": ""}, headers=OWNER)
        assert response.json()["name"] == "Week 12"

    def test_delete(self, client, created_list):
        """Test deleting a list."""
        url = f"{BASE}/{created_list['id']}"

        assert client.delete(url, headers=OWNER).status_code == 204
        assert client.get(url, headers=OWNER).status_code == 404

    def test_delete_forbidden(self, client, created_list):
        """Test that another user cannot delete a list."""
        response = client.delete(f"{BASE}/{created_list['id']}", headers=INTRUDER)
        assert response.status_code == 403


class FailingShoppingListRepository(ShoppingListRepository):
    async def create(self, generated):
        raise OperationalError("INSERT INTO shopping_lists", {}, Exception("connection lost"))


def test_store_failure_is_500(client, seeded_recipes, session):
    """Test that a failed save is reported as a server error."""
    app.dependency_overrides[get_shopping_list_repository] = (
        lambda: FailingShoppingListRepository(session)
    )

    response = client.post(f"{BASE}/generate", json={"recipe_ids": ["r1"]}, headers=OWNER)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to save shopping list"


def test_huge_quantities_stay_finite(client):
    """Test that quantities beyond the float range never reach the response as infinity."""
    ingredients = ["9" * 400 + " g sugar", "9" * 308 + " g flour", "9" * 308 + " g flour"]
    recipe = client.post(
        "/api/v1/recipes/",
        json={"name": "Cake", "ingredients": ingredients},
        headers=OWNER,
    ).json()

    response = client.post(f"{BASE}/generate", json={"recipe_ids": [recipe["id"]]}, headers=OWNER)

    assert response.status_code == 201
    quantities = {item["name"]: item["quantity"] for item in response.json()["items"]}
    assert quantities == {"sugar": 1.0, "flour": float("9" * 308)}
