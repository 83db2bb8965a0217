"""
Accounts: guest and host registration, password login, token issuing.

Emails are stored lowercased, so lookups are case-insensitive.
"""

from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.core.logging import get_logger
from stayhub.core.security import create_access_token, hash_password, verify_password
from stayhub.models.user import User
from stayhub.schemas.user import UserCreate, UserLogin

logger = get_logger(__name__)


def issue_token(user: User) -> str:
    """Bearer token carrying the user id and host role."""
    return create_access_token(data={"sub": str(user.id), "is_host": user.is_host})


async def find_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """Create an account; 409 when the email is taken."""
    if await find_user_by_email(db, user_data.email) is not None:
        logger.warning("registration_failed", reason="email_exists")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists with this email",
        )

    user = User(
        email=user_data.email.lower(),
        name=user_data.name.strip(),
        hashed_password=hash_password(user_data.password),
        is_host=user_data.is_host,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, is_host=user.is_host)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """Check credentials and return an access token; 401 on mismatch, 403 if deactivated."""
    user = await find_user_by_email(db, login_data.email)

    if user is None or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        logger.warning("login_refused", user_id=user.id, reason="inactive")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")

    logger.info("user_logged_in", user_id=user.id, is_host=user.is_host)
    return issue_token(user)
