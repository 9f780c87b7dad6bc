"""
Organization donation endpoints.

Statistics and received-donation listings for organization owners.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bridgeneeds.core.deps import (
    get_current_user,
    get_donation_service,
    get_physical_donation_service,
    get_unified_donation_service,
)
from bridgeneeds.core.permissions import require_org_owner
from bridgeneeds.db.base import get_db
from bridgeneeds.models.user import User
from bridgeneeds.schemas.donation import CashDonationListResponse, OrganizationDonationStats
from bridgeneeds.schemas.physical_donation import PhysicalDonationStats
from bridgeneeds.schemas.unified_donation import AcceptedDonationTypes, DonationStatsResponse
from bridgeneeds.services.donations import DonationService
from bridgeneeds.services.physical_donations import PhysicalDonationService
from bridgeneeds.services.unified_donations import UnifiedDonationService

router = APIRouter()


@router.get("/{org_id}/donation-stats", response_model=DonationStatsResponse)
async def organization_donation_stats(
    org_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: UnifiedDonationService = Depends(get_unified_donation_service)
):
    """Received cash and approved physical donations, including those made to the organization's campaigns."""
    await require_org_owner(db, current_user, org_id)
    return await service.get_organization_campaign_donations_stats(org_id)


@router.get("/{org_id}/cash-donation-stats", response_model=OrganizationDonationStats)
async def organization_cash_donation_stats(
    org_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service)
):
    await require_org_owner(db, current_user, org_id)
    return await service.get_organization_donation_stats(org_id)


@router.get("/{org_id}/physical-donation-stats", response_model=PhysicalDonationStats)
async def organization_physical_donation_stats(
    org_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: PhysicalDonationService = Depends(get_physical_donation_service)
):
    await require_org_owner(db, current_user, org_id)
    return await service.get_organization_donation_stats(org_id)


@router.get("/{org_id}/received-donations", response_model=CashDonationListResponse)
async def organization_received_donations(
    org_id: str,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service)
):
    """Succeeded cash donations tagged with the organization, newest first."""
    await require_org_owner(db, current_user, org_id)
    return await service.get_organization_received_donations(org_id, limit=limit, offset=offset)


@router.get("/{org_id}/accepted-donation-types", response_model=AcceptedDonationTypes)
async def organization_accepted_donation_types(
    org_id: str,
    service: UnifiedDonationService = Depends(get_unified_donation_service)
):
    """Public: which donation types the organization accepts."""
    return await service.get_accepted_donation_types("organization", org_id)
