"""Resolve the authenticated user for a request.

Tokens are issued and verified by the upstream auth layer, which forwards
the verified user id in the ``X-User-Id`` header.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tastetrail.database import get_db
from tastetrail.logging_config import get_logger, set_context
from tastetrail.models import User

logger = get_logger(__name__)


async def get_or_create_user(db: AsyncSession, user_id: str) -> User:
    """Get existing user or create a placeholder."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        logger.info(f"Creating placeholder user {user_id}")
        user = User(
            id=user_id,
            email=f"{user_id}@placeholder.local",
            name=user_id,
            dietary_preferences=[],
            allergies=[],
            favorite_cuisines=[],
        )
        db.add(user)
        await db.commit()

    return user


async def get_current_user(
    x_user_id: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_db),
) -> User:
    """FastAPI dependency returning the authenticated user."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    user = await get_or_create_user(db, x_user_id.strip())
    set_context(user_id=user.id)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
