"""
Physical donation service.

Creates in-kind donations with their items, moves them through the
coordination workflow and summarizes them for organizations.
"""
import logging
from enum import Enum
from decimal import Decimal
from typing import Optional

from email_validator import validate_email, EmailNotValidError

from bridgeneeds.models.base import utcnow
from bridgeneeds.models.donation import TargetType
from bridgeneeds.models.physical_donation import (
    PhysicalDonation,
    DonationItem,
    PhysicalDonationStatus,
    DonationItemStatus,
    ItemCondition,
    PickupPreference,
)
from bridgeneeds.schemas.physical_donation import (
    DonationError,
    DonationItemCreate,
    DonationItemResult,
    DonationItemUpdate,
    PhysicalDonationCreate,
    PhysicalDonationResult,
    PhysicalDonationStats,
)
from bridgeneeds.schemas.unified_donation import StatusUpdateResult, UnifiedDonation
from bridgeneeds.services.exceptions import DonationValidationError, InvalidStatusTransition
from bridgeneeds.services.loaders import item_to_view, physical_to_unified

logger = logging.getLogger(__name__)

# Statuses that count toward an organization's received value
APPROVED_STATUSES = frozenset({
    PhysicalDonationStatus.CONFIRMED,
    PhysicalDonationStatus.IN_TRANSIT,
    PhysicalDonationStatus.RECEIVED,
})

ALLOWED_TRANSITIONS: dict[PhysicalDonationStatus, frozenset[PhysicalDonationStatus]] = {
    PhysicalDonationStatus.PENDING: frozenset({
        PhysicalDonationStatus.CONFIRMED,
        PhysicalDonationStatus.CANCELLED,
        PhysicalDonationStatus.DECLINED,
    }),
    PhysicalDonationStatus.CONFIRMED: frozenset({
        PhysicalDonationStatus.IN_TRANSIT,
        PhysicalDonationStatus.CANCELLED,
        PhysicalDonationStatus.DECLINED,
    }),
    PhysicalDonationStatus.IN_TRANSIT: frozenset({PhysicalDonationStatus.RECEIVED}),
    PhysicalDonationStatus.RECEIVED: frozenset(),
    PhysicalDonationStatus.CANCELLED: frozenset(),
    PhysicalDonationStatus.DECLINED: frozenset(),
}


def check_transition(current: PhysicalDonationStatus, requested: PhysicalDonationStatus) -> None:
    """
    Raise InvalidStatusTransition unless ``current -> requested`` is allowed.

    Re-applying the current status is allowed so notes can be updated.
    """
    if requested == current:
        return
    if requested not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(current.value, requested.value)


def _is_valid_email(email: Optional[str]) -> bool:
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _item_errors(item: DonationItemCreate, index: int) -> list[DonationError]:
    """Problems with one item; ``index`` is its 0-based position in the donation."""
    errors: list[DonationError] = []
    position = index + 1
    if not item.item_name or not item.item_name.strip():
        errors.append(DonationError(
            code="ITEM_NAME_REQUIRED",
            message=f"Item name is required for item {position}",
            field=f"items[{index}].itemName",
        ))
    if not item.category:
        errors.append(DonationError(
            code="ITEM_CATEGORY_REQUIRED",
            message=f"Category is required for item {position}",
            field=f"items[{index}].category",
        ))
    if item.quantity <= 0:
        errors.append(DonationError(
            code="INVALID_QUANTITY",
            message=f"Quantity must be greater than 0 for item {position}",
            field=f"items[{index}].quantity",
        ))
    if item.estimated_value_per_unit is not None and item.estimated_value_per_unit < 0:
        errors.append(DonationError(
            code="INVALID_VALUE",
            message=f"Estimated value cannot be negative for item {position}",
            field=f"items[{index}].estimatedValuePerUnit",
        ))
    return errors


def validate_donation_items(items: list[DonationItemCreate]) -> list[DonationError]:
    """Collect every problem with a list of donation items."""
    if not items:
        return [DonationError(code="ITEMS_REQUIRED", message="At least one donation item is required")]
    errors: list[DonationError] = []
    for index, item in enumerate(items):
        errors.extend(_item_errors(item, index))
    return errors


def validate_physical_donation_form(form: PhysicalDonationCreate) -> list[DonationError]:
    """Collect every problem with a physical donation form."""
    errors: list[DonationError] = []

    if not form.donor_name or not form.donor_name.strip():
        errors.append(DonationError(code="DONOR_NAME_REQUIRED", message="Donor name is required"))

    if not _is_valid_email(form.donor_email):
        errors.append(DonationError(code="INVALID_EMAIL", message="Valid donor email is required"))

    if not form.target_name or not form.target_name.strip():
        errors.append(DonationError(code="TARGET_NAME_REQUIRED", message="Target name is required"))

    errors.extend(validate_donation_items(form.items))

    if form.pickup_preference != "delivery" and (not form.pickup_address or not form.pickup_address.strip()):
        errors.append(DonationError(code="PICKUP_ADDRESS_REQUIRED", message="Pickup address is required"))

    return errors


def item_columns(item: DonationItemCreate) -> dict:
    """Column values for an item row, with the total computed from quantity and unit value."""
    per_unit = item.estimated_value_per_unit
    return {
        "category": item.category,
        "subcategory": item.subcategory,
        "item_name": item.item_name.strip(),
        "description": item.description,
        "quantity": item.quantity,
        "unit": item.unit,
        "condition": ItemCondition(item.condition) if item.condition else None,
        "estimated_value_per_unit": per_unit,
        "total_estimated_value": item.quantity * (per_unit or Decimal("0")),
        "special_handling_notes": item.special_handling_notes,
        "expiry_date": item.expiry_date,
        "is_fragile": item.is_fragile,
        "requires_refrigeration": item.requires_refrigeration,
    }


def build_donation_item(item: DonationItemCreate) -> DonationItem:
    return DonationItem(**item_columns(item), item_status=DonationItemStatus.PENDING)


def item_form_values(item: DonationItem) -> dict:
    """Current values of an item row, in DonationItemCreate field names."""
    values = {}
    for field in DonationItemCreate.model_fields:
        value = getattr(item, field)
        values[field] = value.value if isinstance(value, Enum) else value
    return values


class PhysicalDonationService:
    """Physical donation workflow over a donation store."""

    def __init__(self, store):
        self.store = store

    async def _resolve_target(self, form: PhysicalDonationCreate) -> tuple[Optional[str], Optional[str]]:
        """Return (organization_id, campaign_id) for the form's target."""
        if form.target_type == TargetType.ORGANIZATION.value:
            return form.target_id, None
        if form.target_type == TargetType.CAMPAIGN.value and form.target_id:
            campaign = await self.store.get_campaign(form.target_id)
            return (campaign.organization_id if campaign else None), form.target_id
        return None, None

    async def create_physical_donation(
        self,
        form: PhysicalDonationCreate,
        user_id: Optional[str] = None
    ) -> PhysicalDonationResult:
        """
        Create a pending physical donation with its items.

        Raises:
            DonationValidationError: If the form is invalid
        """
        errors = validate_physical_donation_form(form)
        if errors:
            raise DonationValidationError(errors)

        items = [build_donation_item(item) for item in form.items]

        try:
            organization_id, campaign_id = await self._resolve_target(form)
            donation = PhysicalDonation(
                donor_name=form.donor_name.strip(),
                donor_email=form.donor_email.strip(),
                donor_phone=form.donor_phone,
                message=form.message,
                is_anonymous=form.is_anonymous,
                target_type=TargetType(form.target_type),
                target_id=form.target_id,
                target_name=form.target_name.strip(),
                user_id=user_id,
                organization_id=organization_id,
                campaign_id=campaign_id,
                pickup_preference=PickupPreference(form.pickup_preference) if form.pickup_preference else None,
                pickup_address=form.pickup_address,
                pickup_instructions=form.pickup_instructions,
                preferred_pickup_date=form.preferred_pickup_date,
                preferred_time_slot=form.preferred_time_slot,
                estimated_value=sum((item.total_estimated_value for item in items), Decimal("0")),
                donation_status=PhysicalDonationStatus.PENDING,
            )
            saved = await self.store.add_physical_donation(donation, items)
        except Exception:
            logger.exception(f"Failed to save physical donation for {form.target_type} {form.target_id}")
            return PhysicalDonationResult(
                success=False,
                error="Failed to save physical donation. Please try again."
            )

        logger.info(f"Created physical donation {saved.id} with {len(items)} item(s)")
        return PhysicalDonationResult(success=True, donation=physical_to_unified(saved, hide_anonymous=False))

    async def get_physical_donation(
        self,
        donation_id: str,
        hide_anonymous: bool = True
    ) -> Optional[UnifiedDonation]:
        try:
            donation = await self.store.get_physical_donation(donation_id)
        except Exception:
            logger.exception(f"Failed to fetch physical donation {donation_id}")
            return None
        if donation is None:
            return None
        return physical_to_unified(donation, hide_anonymous)

    async def update_donation_status(
        self,
        donation_id: str,
        status: str,
        coordinator_notes: Optional[str] = None
    ) -> StatusUpdateResult:
        """
        Move a physical donation to a new status.

        Stamps ``confirmed_at`` and ``received_at`` on the matching
        transitions.

        Raises:
            InvalidStatusTransition: If the workflow does not allow the change
        """
        requested = PhysicalDonationStatus(status)

        try:
            donation = await self.store.get_physical_donation(donation_id)
        except Exception:
            logger.exception(f"Failed to fetch physical donation {donation_id}")
            return StatusUpdateResult(success=False, error="Failed to load physical donation.")
        if donation is None:
            return StatusUpdateResult(success=False, error="Physical donation not found")

        check_transition(PhysicalDonationStatus(donation.donation_status), requested)

        values = {"donation_status": requested}
        if coordinator_notes is not None:
            values["coordinator_notes"] = coordinator_notes
        if requested == PhysicalDonationStatus.CONFIRMED and donation.confirmed_at is None:
            values["confirmed_at"] = utcnow()
        elif requested == PhysicalDonationStatus.RECEIVED and donation.received_at is None:
            values["received_at"] = utcnow()

        try:
            await self.store.update_physical_donation(donation_id, **values)
        except Exception:
            logger.exception(f"Failed to update physical donation {donation_id} to {requested.value}")
            return StatusUpdateResult(success=False, error="Failed to update donation status.")

        logger.info(f"Physical donation {donation_id} moved to {requested.value}")
        return StatusUpdateResult(success=True)

    async def cancel_physical_donation(self, donation_id: str, reason: Optional[str] = None) -> StatusUpdateResult:
        """
        Cancel a pending or confirmed physical donation.

        Raises:
            InvalidStatusTransition: If the donation is already in transit or closed
        """
        return await self.update_donation_status(donation_id, PhysicalDonationStatus.CANCELLED, reason)

    # ========================================================================
    # DONATION ITEMS
    # ========================================================================

    async def get_donation_item(self, item_id: str) -> Optional[DonationItem]:
        try:
            return await self.store.get_donation_item(item_id)
        except Exception:
            logger.exception(f"Failed to fetch donation item {item_id}")
            return None

    async def add_donation_items(
        self,
        donation_id: str,
        items: list[DonationItemCreate]
    ) -> PhysicalDonationResult:
        """
        Append items to a physical donation and recompute its estimated value.

        Raises:
            DonationValidationError: If any item is invalid
        """
        errors = validate_donation_items(items)
        if errors:
            raise DonationValidationError(errors)

        try:
            saved = await self.store.add_donation_items(
                donation_id, [build_donation_item(item) for item in items]
            )
        except Exception:
            logger.exception(f"Failed to add items to physical donation {donation_id}")
            return PhysicalDonationResult(success=False, error="Failed to add donation items.")
        if saved is None:
            return PhysicalDonationResult(success=False, error="Physical donation not found")

        logger.info(f"Added {len(items)} item(s) to physical donation {donation_id}")
        return PhysicalDonationResult(success=True, donation=physical_to_unified(saved, hide_anonymous=False))

    async def update_donation_item(self, item_id: str, changes: DonationItemUpdate) -> DonationItemResult:
        """
        Edit an item and recompute its donation's estimated value.

        The edited item is checked with the same rules as the donation form.

        Raises:
            DonationValidationError: If the edited item is invalid
        """
        item = await self.get_donation_item(item_id)
        if item is None:
            return DonationItemResult(success=False, error="Donation item not found")

        values = item_form_values(item)
        for field, value in changes.model_dump(exclude_unset=True).items():
            # Required columns cannot be cleared
            if value is None and field in {"quantity", "unit", "is_fragile", "requires_refrigeration"}:
                continue
            values[field] = value
        edited = DonationItemCreate(**values)

        errors = _item_errors(edited, item.position)
        if errors:
            raise DonationValidationError(errors)

        try:
            saved = await self.store.update_donation_item(item_id, **item_columns(edited))
        except Exception:
            logger.exception(f"Failed to update donation item {item_id}")
            return DonationItemResult(success=False, error="Failed to update donation item.")
        if saved is None:
            return DonationItemResult(success=False, error="Donation item not found")

        logger.info(f"Updated donation item {item_id}")
        return DonationItemResult(success=True, item=item_to_view(saved))

    async def update_donation_item_status(
        self,
        item_id: str,
        status: str,
        decline_reason: Optional[str] = None
    ) -> DonationItemResult:
        """Record a coordinator decision on one item; only declined items keep a reason."""
        requested = DonationItemStatus(status)
        reason = decline_reason if requested == DonationItemStatus.DECLINED else None

        try:
            saved = await self.store.update_donation_item(
                item_id, item_status=requested, decline_reason=reason
            )
        except Exception:
            logger.exception(f"Failed to set donation item {item_id} to {requested.value}")
            return DonationItemResult(success=False, error="Failed to update item status.")
        if saved is None:
            return DonationItemResult(success=False, error="Donation item not found")

        logger.info(f"Donation item {item_id} moved to {requested.value}")
        return DonationItemResult(success=True, item=item_to_view(saved))

    async def remove_donation_item(self, item_id: str) -> StatusUpdateResult:
        """Delete an item and recompute its donation's estimated value."""
        try:
            donation_id = await self.store.remove_donation_item(item_id)
        except Exception:
            logger.exception(f"Failed to remove donation item {item_id}")
            return StatusUpdateResult(success=False, error="Failed to remove donation item.")
        if donation_id is None:
            return StatusUpdateResult(success=False, error="Donation item not found")

        logger.info(f"Removed donation item {item_id} from physical donation {donation_id}")
        return StatusUpdateResult(success=True)

    async def get_organization_donation_stats(self, organization_id: str) -> PhysicalDonationStats:
        """Count an organization's physical donations by status and sum their value."""
        try:
            donations = await self.store.physical_donations_for_organization(organization_id)
        except Exception:
            logger.exception(f"Failed to load physical donation stats for organization {organization_id}")
            return PhysicalDonationStats(error="Failed to load physical donation statistics.")

        stats = PhysicalDonationStats(total=len(donations))
        for donation in donations:
            stats.estimated_value += Decimal(donation.estimated_value or 0)
            status = PhysicalDonationStatus(donation.donation_status)
            if status == PhysicalDonationStatus.PENDING:
                stats.pending += 1
            elif status == PhysicalDonationStatus.CONFIRMED:
                stats.confirmed += 1
            elif status == PhysicalDonationStatus.RECEIVED:
                stats.received += 1
        return stats
