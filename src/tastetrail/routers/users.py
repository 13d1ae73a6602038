"""API routes for the authenticated user's profile."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, field_validator

from tastetrail.auth import CurrentUser
from tastetrail.normalize.ingredients import normalize_string_list
from tastetrail.repository import UserRepository
from tastetrail.routers.deps import get_user_repository

router = APIRouter(prefix="/api/v1/users", tags=["users"])


class UserProfileUpdateRequest(BaseModel):
    """Profile changes. List fields accept a list or one comma-joined string."""

    name: str | None = None
    dietary_preferences: list[str] | None = None
    allergies: list[str] | None = None
    favorite_cuisines: list[str] | None = None

    @field_validator("dietary_preferences", "allergies", "favorite_cuisines", mode="before")
    @classmethod
    def split_entries(cls, value: object) -> list[str] | None:
        if value is None:
            return None
        return normalize_string_list(value)


class UserResponse(BaseModel):
    """User profile."""

    id: str
    email: str
    name: str
    dietary_preferences: list[str] = []
    allergies: list[str] = []
    favorite_cuisines: list[str] = []

    model_config = ConfigDict(from_attributes=True)

    @field_validator("dietary_preferences", "allergies", "favorite_cuisines", mode="before")
    @classmethod
    def none_as_empty(cls, value: object) -> object:
        return [] if value is None else value


@router.get("/me", response_model=UserResponse)
async def get_profile(user: CurrentUser) -> UserResponse:
    """Get the caller's profile."""
    return UserResponse.model_validate(user)


@router.put("/me", response_model=UserResponse)
async def update_profile(
    request: UserProfileUpdateRequest,
    user: CurrentUser,
    users: UserRepository = Depends(get_user_repository),
) -> UserResponse:
    """Update the caller's name, dietary preferences, allergies or favorite cuisines."""
    updated = await users.update_profile(
        user,
        name=request.name,
        dietary_preferences=request.dietary_preferences,
        allergies=request.allergies,
        favorite_cuisines=request.favorite_cuisines,
    )
    return UserResponse.model_validate(updated)
