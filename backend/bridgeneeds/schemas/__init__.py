"""
Pydantic schemas for request/response validation.
"""
from bridgeneeds.schemas.common import HealthResponse
from bridgeneeds.schemas.auth import UserCreate, UserLogin, UserResponse, TokenResponse, Viewer
from bridgeneeds.schemas.unified_donation import (
    UnifiedDonation,
    DonationItemView,
    DonationContext,
    DateRange,
    DonationHistoryFilters,
    DonationHistorySort,
    MonthlyBucket,
    CategoryBucket,
    DonationStats,
    MonthlyTrendPoint,
    DonationHistoryResponse,
    DonationStatsResponse,
    DashboardSummary,
    DonationSearchResponse,
    AcceptedDonationTypes,
    StatusUpdateResult,
)

__all__ = [
    "HealthResponse",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "TokenResponse",
    "Viewer",
    "UnifiedDonation",
    "DonationItemView",
    "DonationContext",
    "DateRange",
    "DonationHistoryFilters",
    "DonationHistorySort",
    "MonthlyBucket",
    "CategoryBucket",
    "DonationStats",
    "MonthlyTrendPoint",
    "DonationHistoryResponse",
    "DonationStatsResponse",
    "DashboardSummary",
    "DonationSearchResponse",
    "AcceptedDonationTypes",
    "StatusUpdateResult",
]
