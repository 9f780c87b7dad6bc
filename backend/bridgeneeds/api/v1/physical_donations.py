"""
Physical (in-kind) donation endpoints.

Donors offer items; the receiving organization's owner coordinates them
through pending -> confirmed -> in_transit -> received.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from bridgeneeds.core.deps import get_current_user, get_optional_user, get_physical_donation_service
from bridgeneeds.core.permissions import manages_donation, is_donor
from bridgeneeds.db.base import get_db
from bridgeneeds.models.user import User
from bridgeneeds.schemas.physical_donation import (
    PhysicalDonationCreate,
    PhysicalDonationResult,
    PhysicalDonationStatusUpdate,
    PhysicalDonationCancel,
    DonationItemsAdd,
    DonationItemUpdate,
    DonationItemStatusUpdate,
    DonationItemResult,
)
from bridgeneeds.schemas.unified_donation import StatusUpdateResult, UnifiedDonation
from bridgeneeds.services.exceptions import DonationValidationError, InvalidStatusTransition
from bridgeneeds.services.physical_donations import PhysicalDonationService

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_physical_donation_or_404(
    db: AsyncSession,
    service: PhysicalDonationService,
    donation_id: str,
    current_user: User
) -> UnifiedDonation:
    donation = await service.get_physical_donation(donation_id, hide_anonymous=False)
    if donation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Physical donation not found")
    if not is_donor(current_user, donation) and not await manages_donation(db, current_user, donation):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to access this donation")
    return donation


def status_result_or_error(result: StatusUpdateResult) -> StatusUpdateResult:
    if not result.success:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)
    return result


async def require_item_manager(
    db: AsyncSession,
    service: PhysicalDonationService,
    item_id: str,
    current_user: User
) -> None:
    item = await service.get_donation_item(item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Donation item not found")
    donation = await service.get_physical_donation(item.physical_donation_id, hide_anonymous=False)
    if donation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Physical donation not found")
    if not await manages_donation(db, current_user, donation):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not the owner of this organization")


def item_result_or_error(result: DonationItemResult) -> DonationItemResult:
    if not result.success:
        if result.error == "Donation item not found":
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)
    return result


# ============================================================================
# DONATION ITEMS
# ============================================================================

@router.patch("/items/{item_id}/status", response_model=DonationItemResult)
async def update_donation_item_status(
    item_id: str,
    update: DonationItemStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: PhysicalDonationService = Depends(get_physical_donation_service)
):
    """Accept, decline or mark an item received."""
    await require_item_manager(db, service, item_id, current_user)
    result = await service.update_donation_item_status(item_id, update.status, update.decline_reason)
    return item_result_or_error(result)


@router.patch("/items/{item_id}", response_model=DonationItemResult)
async def update_donation_item(
    item_id: str,
    changes: DonationItemUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: PhysicalDonationService = Depends(get_physical_donation_service)
):
    await require_item_manager(db, service, item_id, current_user)
    try:
        result = await service.update_donation_item(item_id, changes)
    except DonationValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=[error.model_dump() for error in exc.errors]
        )
    return item_result_or_error(result)


@router.delete("/items/{item_id}", response_model=StatusUpdateResult)
async def remove_donation_item(
    item_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: PhysicalDonationService = Depends(get_physical_donation_service)
):
    await require_item_manager(db, service, item_id, current_user)
    result = await service.remove_donation_item(item_id)
    logger.info(f"User {current_user.id} removed donation item {item_id}")
    return status_result_or_error(result)


@router.post("/{donation_id}/items", response_model=PhysicalDonationResult, status_code=status.HTTP_201_CREATED)
async def add_donation_items(
    donation_id: str,
    payload: DonationItemsAdd,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: PhysicalDonationService = Depends(get_physical_donation_service)
):
    """Add items to a donation; only the receiving organization's owner may."""
    donation = await get_physical_donation_or_404(db, service, donation_id, current_user)
    if not await manages_donation(db, current_user, donation):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not the owner of this organization")

    try:
        result = await service.add_donation_items(donation_id, payload.items)
    except DonationValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=[error.model_dump() for error in exc.errors]
        )
    if not result.success:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)
    return result


@router.post("", response_model=PhysicalDonationResult, status_code=status.HTTP_201_CREATED)
async def create_physical_donation(
    form: PhysicalDonationCreate,
    current_user: Optional[User] = Depends(get_optional_user),
    service: PhysicalDonationService = Depends(get_physical_donation_service)
):
    """Offer a physical donation. Guests may donate; signed-in donors are linked."""
    try:
        result = await service.create_physical_donation(form, user_id=current_user.id if current_user else None)
    except DonationValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=[error.model_dump() for error in exc.errors]
        )
    if not result.success:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)
    return result


@router.get("/{donation_id}", response_model=UnifiedDonation)
async def get_physical_donation(
    donation_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: PhysicalDonationService = Depends(get_physical_donation_service)
):
    donation = await get_physical_donation_or_404(db, service, donation_id, current_user)
    if donation.is_anonymous and not is_donor(current_user, donation):
        return await service.get_physical_donation(donation_id)
    return donation


@router.patch("/{donation_id}/status", response_model=StatusUpdateResult)
async def update_physical_donation_status(
    donation_id: str,
    update: PhysicalDonationStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: PhysicalDonationService = Depends(get_physical_donation_service)
):
    """Coordinator status change; only the receiving organization's owner may."""
    donation = await get_physical_donation_or_404(db, service, donation_id, current_user)
    if not await manages_donation(db, current_user, donation):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not the owner of this organization")

    try:
        result = await service.update_donation_status(donation_id, update.status, update.coordinator_notes)
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return status_result_or_error(result)


@router.post("/{donation_id}/cancel", response_model=StatusUpdateResult)
async def cancel_physical_donation(
    donation_id: str,
    cancel: PhysicalDonationCancel,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: PhysicalDonationService = Depends(get_physical_donation_service)
):
    """Cancel a pending or confirmed donation, as its donor or the receiving organization."""
    await get_physical_donation_or_404(db, service, donation_id, current_user)

    try:
        result = await service.cancel_physical_donation(donation_id, cancel.reason)
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    logger.info(f"User {current_user.id} cancelled physical donation {donation_id}")
    return status_result_or_error(result)
