"""
Authentication endpoints.

Endpoints:
- POST /api/v1/auth/register - Register new user
- POST /api/v1/auth/login - Login
- POST /api/v1/auth/refresh - Refresh token
- GET /api/v1/auth/me - Current user profile

Note: Logout is handled client-side by discarding the token.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from bridgeneeds.db.base import get_db
from bridgeneeds.core.security import get_password_hash, verify_password, create_access_token
from bridgeneeds.core.deps import get_current_user
from bridgeneeds.models.user import User
from bridgeneeds.schemas.auth import UserCreate, UserLogin, UserResponse, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a new donor or organization account."""
    if user_data.password != user_data.passwordConfirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"password": {"message": "Passwords do not match"}}
        )

    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"email": {"message": "Email already registered"}}
        )

    user = User(
        email=user_data.email,
        password_hash=get_password_hash(user_data.password),
        name=user_data.name,
        account_type=user_data.account_type,
        phone=user_data.phone,
        verified=False,
    )
    db.add(user)
    await db.commit()  # Commit immediately so subsequent login can find the user
    await db.refresh(user)

    logger.info(f"Registered {user.account_type} account {user.id}")
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Authenticate with email and password."""
    result = await db.execute(select(User).where(User.email == credentials.identity))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid email or password"
        )

    return TokenResponse(
        token=create_access_token(user.id, user.email, user.account_type),
        record=UserResponse.model_validate(user)
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(current_user: User = Depends(get_current_user)):
    """Issue a fresh token for the current user."""
    return TokenResponse(
        token=create_access_token(current_user.id, current_user.email, current_user.account_type),
        record=UserResponse.model_validate(current_user)
    )


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)
