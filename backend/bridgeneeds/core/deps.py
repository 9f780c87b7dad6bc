"""
FastAPI dependencies: authentication and service wiring.
"""
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bridgeneeds.core.config import settings
from bridgeneeds.core.security import read_access_token
from bridgeneeds.db.base import get_db, get_session_factory
from bridgeneeds.models.user import User
from bridgeneeds.schemas.auth import Viewer
from bridgeneeds.services.donation_store import SQLDonationStore
from bridgeneeds.services.payment import PaymentSimulator
from bridgeneeds.services.unified_donations import UnifiedDonationService
from bridgeneeds.services.donations import DonationService
from bridgeneeds.services.physical_donations import PhysicalDonationService

security = HTTPBearer(auto_error=False)


async def _user_from_credentials(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: AsyncSession
) -> Optional[User]:
    if credentials is None:
        return None
    claims = read_access_token(credentials.credentials)
    if claims is None:
        return None
    result = await db.execute(select(User).where(User.id == claims.sub))
    user = result.scalar_one_or_none()
    # Issued before an email change
    if user is None or not claims.matches(user.id, user.email):
        return None
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Authenticated user; 401 when the bearer token is missing or invalid."""
    user = await _user_from_credentials(credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Authenticated user, or None for anonymous requests."""
    return await _user_from_credentials(credentials, db)


def to_viewer(user: Optional[User]) -> Optional[Viewer]:
    if user is None:
        return None
    return Viewer(user_id=user.id, email=user.email, name=user.name)


# ============================================================================
# SERVICES
# ============================================================================

def get_donation_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory)
) -> SQLDonationStore:
    return SQLDonationStore(session_factory)


def get_payment_gateway() -> PaymentSimulator:
    return PaymentSimulator(
        processing_delay=settings.PAYMENT_PROCESSING_DELAY_SECONDS,
        failure_rate=settings.PAYMENT_FAILURE_RATE,
        max_amount=settings.PAYMENT_MAX_AMOUNT,
    )


def get_physical_donation_service(
    store: SQLDonationStore = Depends(get_donation_store)
) -> PhysicalDonationService:
    return PhysicalDonationService(store)


def get_unified_donation_service(
    store: SQLDonationStore = Depends(get_donation_store),
    physical_service: PhysicalDonationService = Depends(get_physical_donation_service)
) -> UnifiedDonationService:
    return UnifiedDonationService(store, physical_service=physical_service)


def get_donation_service(
    store: SQLDonationStore = Depends(get_donation_store),
    gateway: PaymentSimulator = Depends(get_payment_gateway)
) -> DonationService:
    return DonationService(store, gateway)
