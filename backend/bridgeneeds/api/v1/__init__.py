"""
v1 API routers.

Provides endpoints for:
- Authentication
- Unified donation history and the cash donation flow
- Physical donations
- Organization donation statistics
"""
from fastapi import APIRouter

from bridgeneeds.api.v1.auth import router as auth_router
from bridgeneeds.api.v1.donations import router as donations_router
from bridgeneeds.api.v1.physical_donations import router as physical_donations_router
from bridgeneeds.api.v1.organizations import router as organizations_router

# Combined v1 router
api_router = APIRouter()

api_router.include_router(
    auth_router,
    prefix="/auth",
    tags=["auth"]
)

api_router.include_router(
    donations_router,
    prefix="/donations",
    tags=["donations"]
)

api_router.include_router(
    physical_donations_router,
    prefix="/physical-donations",
    tags=["physical-donations"]
)

api_router.include_router(
    organizations_router,
    prefix="/organizations",
    tags=["organizations"]
)

__all__ = ["api_router"]
