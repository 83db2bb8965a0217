"""
Account endpoints. Hosts register with `is_host: true`; everyone else is a guest.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.db.session import get_db
from stayhub.schemas.user import Token, UserCreate, UserLogin, UserResponse
from stayhub.services import auth_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    return await auth_service.register_user(db, user_data)


@router.post("/login", response_model=Token)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Exchange email and password for a bearer token."""
    return Token(access_token=await auth_service.authenticate_user(db, login_data))
