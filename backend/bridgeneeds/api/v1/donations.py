"""
Donation endpoints.

Unified (cash + physical) history, statistics, dashboard and search for a
donor, organization or campaign, plus the cash donation flow.

Context resolution for the read endpoints:
- organization_id: caller must own the organization
- campaign_id: caller must own the campaign's organization
- user_id / donor_email: must be the caller
- none of the above: the caller's own donations
"""
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional, Literal
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bridgeneeds.core.config import settings
from bridgeneeds.core.deps import (
    get_current_user,
    get_optional_user,
    get_unified_donation_service,
    get_donation_service,
    to_viewer,
)
from bridgeneeds.core.permissions import (
    require_org_owner,
    require_campaign_owner,
    manages_donation,
    is_donor,
)
from bridgeneeds.db.base import get_db
from bridgeneeds.models.user import User
from bridgeneeds.schemas.donation import (
    DonationFormData,
    DonationResult,
    CashDonationListResponse,
    UserDonationStats,
)
from bridgeneeds.schemas.physical_donation import PhysicalDonationStatusUpdate
from bridgeneeds.schemas.unified_donation import (
    AcceptedDonationTypes,
    DashboardSummary,
    DateRange,
    DonationContext,
    DonationHistoryFilters,
    DonationHistoryResponse,
    DonationHistorySort,
    DonationSearchResponse,
    DonationStatsResponse,
    StatusUpdateResult,
    UnifiedDonation,
)
from bridgeneeds.services.donations import DonationService, SIGN_IN_REQUIRED
from bridgeneeds.services.unified_donations import UnifiedDonationService

router = APIRouter()


async def resolve_context(
    db: AsyncSession,
    user: Optional[User],
    organization_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    user_id: Optional[str] = None,
    donor_email: Optional[str] = None,
) -> DonationContext:
    """Build the donation context for a request and check the caller may read it."""
    if organization_id:
        await require_org_owner(db, user, organization_id)
        return DonationContext(organization_id=organization_id)

    if campaign_id:
        await require_campaign_owner(db, user, campaign_id)
        return DonationContext(campaign_id=campaign_id)

    if user_id or donor_email:
        if user is None:
            # The service reports the missing session
            return DonationContext(user_id=user_id, donor_email=donor_email)
        if user_id and user_id != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view these donations")
        if donor_email and donor_email.strip().lower() != user.email.lower():
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view these donations")
        return DonationContext(user_id=user.id, donor_email=user.email)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return DonationContext(user_id=user.id, donor_email=user.email)


def build_date_range(start_date: Optional[date], end_date: Optional[date]) -> Optional[DateRange]:
    """Whole-day UTC range; the end date is included."""
    if start_date is None and end_date is None:
        return None
    return DateRange(
        start=datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else None,
        end=datetime.combine(end_date, time.max, tzinfo=timezone.utc) if end_date else None,
    )


# ============================================================================
# UNIFIED HISTORY
# ============================================================================

@router.get("/history", response_model=DonationHistoryResponse)
async def donation_history(
    organization_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    user_id: Optional[str] = None,
    donor_email: Optional[str] = None,
    donation_type: Literal["cash", "physical", "all"] = "all",
    donation_status: Optional[str] = Query(None, alias="status"),
    target_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0),
    sort_field: Literal["created_at", "amount", "estimated_value", "donor_name"] = "created_at",
    sort_direction: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.HISTORY_DEFAULT_PAGE_SIZE, ge=1, le=settings.HISTORY_MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
    service: UnifiedDonationService = Depends(get_unified_donation_service)
):
    """Merged cash and physical donation history, filtered, sorted and paginated."""
    context = await resolve_context(db, current_user, organization_id, campaign_id, user_id, donor_email)
    filters = DonationHistoryFilters(
        donation_type=donation_type,
        status=donation_status or "all",
        target_type=target_type or "all",
        date_range=build_date_range(start_date, end_date),
        min_amount=min_amount,
        max_amount=max_amount,
    )
    return await service.get_donation_history(
        context,
        filters=filters,
        sorting=DonationHistorySort(field=sort_field, direction=sort_direction),
        page=page,
        page_size=page_size,
        viewer=to_viewer(current_user),
    )


@router.get("/stats", response_model=DonationStatsResponse)
async def donation_stats(
    organization_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    user_id: Optional[str] = None,
    donor_email: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
    service: UnifiedDonationService = Depends(get_unified_donation_service)
):
    context = await resolve_context(db, current_user, organization_id, campaign_id, user_id, donor_email)
    return await service.get_donation_stats(
        context,
        date_range=build_date_range(start_date, end_date),
        viewer=to_viewer(current_user),
    )


@router.get("/dashboard", response_model=DashboardSummary)
async def donation_dashboard(
    organization_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    user_id: Optional[str] = None,
    donor_email: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
    service: UnifiedDonationService = Depends(get_unified_donation_service)
):
    context = await resolve_context(db, current_user, organization_id, campaign_id, user_id, donor_email)
    return await service.get_dashboard_summary(context, viewer=to_viewer(current_user))


@router.get("/search", response_model=DonationSearchResponse)
async def search_donations(
    q: str = Query(..., min_length=1),
    organization_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    user_id: Optional[str] = None,
    donor_email: Optional[str] = None,
    donation_type: Optional[Literal["cash", "physical"]] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
    service: UnifiedDonationService = Depends(get_unified_donation_service)
):
    """Donations whose donor, target, message or items contain ``q``."""
    context = await resolve_context(db, current_user, organization_id, campaign_id, user_id, donor_email)
    return await service.search_donations(q, context, donation_type=donation_type, viewer=to_viewer(current_user))


@router.get("/accepted-types", response_model=AcceptedDonationTypes)
async def accepted_donation_types(
    target_type: Literal["organization", "campaign"],
    target_id: str,
    service: UnifiedDonationService = Depends(get_unified_donation_service)
):
    """Public: which donation types an organization or campaign accepts."""
    return await service.get_accepted_donation_types(target_type, target_id)


# ============================================================================
# CASH DONATIONS
# ============================================================================

@router.post("", response_model=DonationResult, status_code=status.HTTP_201_CREATED)
async def create_donation(
    form: DonationFormData,
    response: Response,
    current_user: Optional[User] = Depends(get_optional_user),
    service: DonationService = Depends(get_donation_service)
):
    """Charge and record a cash donation for the signed-in donor."""
    result = await service.process_donation(form, to_viewer(current_user))
    if not result.success:
        if result.error == SIGN_IN_REQUIRED:
            response.status_code = status.HTTP_401_UNAUTHORIZED
        elif result.payment_result is not None and result.payment_result.success:
            # Charged but not recorded
            response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        else:
            response.status_code = status.HTTP_400_BAD_REQUEST
    return result


@router.get("/mine", response_model=CashDonationListResponse)
async def my_donations(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service)
):
    return await service.get_user_donations(to_viewer(current_user), limit=limit, offset=offset)


@router.get("/mine/stats", response_model=UserDonationStats)
async def my_donation_stats(
    current_user: User = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service)
):
    return await service.get_user_donation_stats(to_viewer(current_user))


# ============================================================================
# SINGLE DONATION
# ============================================================================

async def get_donation_or_404(
    db: AsyncSession,
    service: UnifiedDonationService,
    donation_type: str,
    donation_id: str,
    current_user: User
) -> UnifiedDonation:
    """Fetch a donation the caller made or manages, else 404/403."""
    donation = await service.get_donation_details(donation_id, donation_type, to_viewer(current_user))
    if donation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Donation not found")
    if not is_donor(current_user, donation) and not await manages_donation(db, current_user, donation):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this donation")
    return donation


@router.get("/{donation_type}/{donation_id}", response_model=UnifiedDonation)
async def get_donation(
    donation_type: Literal["cash", "physical"],
    donation_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: UnifiedDonationService = Depends(get_unified_donation_service)
):
    """A single donation, visible to its donor and the receiving organization's owner."""
    return await get_donation_or_404(db, service, donation_type, donation_id, current_user)


@router.patch("/{donation_type}/{donation_id}/status", response_model=StatusUpdateResult)
async def update_donation_status(
    donation_type: Literal["cash", "physical"],
    donation_id: str,
    update: PhysicalDonationStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: UnifiedDonationService = Depends(get_unified_donation_service)
):
    """Change a donation's status; only the receiving organization's owner may."""
    donation = await get_donation_or_404(db, service, donation_type, donation_id, current_user)
    if not await manages_donation(db, current_user, donation):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not the owner of this organization")
    return await service.update_donation_status(
        donation_id, donation_type, update.status, update.coordinator_notes
    )
