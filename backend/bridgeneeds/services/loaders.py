"""
Source loaders for the unified donation history.

Each loader resolves a DonationContext to the rows of one source (cash or
physical) and maps them to UnifiedDonation. Store failures are logged and
produce an empty list for that source only.
"""
import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from bridgeneeds.models.base import as_utc
from bridgeneeds.models.donation import Donation, PaymentStatus
from bridgeneeds.models.physical_donation import PhysicalDonation, DonationItem
from bridgeneeds.schemas.unified_donation import (
    DonationContext,
    DonationItemView,
    UnifiedDonation,
)
from bridgeneeds.services.donation_aggregation import dedupe_by_id

logger = logging.getLogger(__name__)

ANONYMOUS_DONOR_NAME = "Anonymous"

# Organizations and campaigns only see completed cash payments
RECEIVED_CASH_STATUSES = [PaymentStatus.SUCCEEDED]


def _value(field: Any) -> Optional[str]:
    if isinstance(field, Enum):
        return field.value
    return field


def _donor_identity(row: Any, hide_anonymous: bool) -> tuple[str, str]:
    if hide_anonymous and row.is_anonymous:
        return ANONYMOUS_DONOR_NAME, ""
    return row.donor_name, row.donor_email or ""


def cash_to_unified(donation: Donation, hide_anonymous: bool = True) -> UnifiedDonation:
    """Map a cash donation row to the unified shape."""
    donor_name, donor_email = _donor_identity(donation, hide_anonymous)
    return UnifiedDonation(
        id=donation.id,
        type="cash",
        donor_name=donor_name,
        donor_email=donor_email,
        message=donation.message,
        target_type=_value(donation.target_type),
        target_id=donation.target_id,
        target_name=donation.target_name,
        created_at=as_utc(donation.created),
        status=_value(donation.payment_status),
        is_anonymous=bool(donation.is_anonymous),
        organization_id=donation.organization_id,
        campaign_id=donation.campaign_id,
        user_id=donation.user_id,
        amount=Decimal(donation.amount),
        currency=donation.currency,
        is_recurring=bool(donation.is_recurring),
        frequency=_value(donation.frequency),
        payment_intent_id=donation.payment_intent_id,
    )


def item_to_view(item: DonationItem) -> DonationItemView:
    return DonationItemView(
        id=item.id,
        item_name=item.item_name,
        category=item.category,
        quantity=item.quantity,
        unit=item.unit or "pcs",
        condition=_value(item.condition),
        estimated_value_per_unit=item.estimated_value_per_unit,
        total_estimated_value=item.total_estimated_value or Decimal("0"),
        item_status=_value(item.item_status) or "pending",
        decline_reason=item.decline_reason,
    )


def physical_to_unified(donation: PhysicalDonation, hide_anonymous: bool = True) -> UnifiedDonation:
    """
    Map a physical donation row (items loaded) to the unified shape.

    The estimated value is the sum of the item totals; the stored value is
    used only when the donation has no items.
    """
    donor_name, donor_email = _donor_identity(donation, hide_anonymous)
    items = [item_to_view(item) for item in donation.donation_items or []]
    if items:
        estimated_value = sum((item.total_estimated_value for item in items), Decimal("0"))
    else:
        estimated_value = Decimal(donation.estimated_value or 0)

    return UnifiedDonation(
        id=donation.id,
        type="physical",
        donor_name=donor_name,
        donor_email=donor_email,
        message=donation.message,
        target_type=_value(donation.target_type),
        target_id=donation.target_id,
        target_name=donation.target_name,
        created_at=as_utc(donation.created),
        status=_value(donation.donation_status),
        is_anonymous=bool(donation.is_anonymous),
        organization_id=donation.organization_id,
        campaign_id=donation.campaign_id,
        user_id=donation.user_id,
        estimated_value=estimated_value,
        donation_items=items,
        pickup_preference=_value(donation.pickup_preference),
        preferred_pickup_date=donation.preferred_pickup_date,
        coordinator_notes=donation.coordinator_notes,
        confirmed_at=as_utc(donation.confirmed_at),
        received_at=as_utc(donation.received_at),
    )


class DonationLoader:
    """
    Base loader: routes a context to one query branch.

    Precedence is organization, then campaign, then donor. A context with
    none of these yields no donations.
    """
    source = "donation"

    def __init__(self, store):
        self.store = store

    async def load(self, context: DonationContext) -> list[UnifiedDonation]:
        kind = context.kind
        if kind is None:
            return []

        try:
            if kind == "organization":
                rows = await self.for_organization(context.organization_id)
            elif kind == "campaign":
                rows = await self.for_campaigns([context.campaign_id])
            else:
                rows = await self.for_donor(context.user_id, context.donor_email)
        except Exception:
            logger.exception(f"Failed to load {self.source} donations for {kind} context {context.model_dump(exclude_none=True)}")
            return []

        # Donors always see their own names
        hide_anonymous = kind != "donor"
        return [self.to_unified(row, hide_anonymous) for row in rows]

    async def for_organization(self, organization_id: str) -> list:
        direct = await self.direct_for_organization(organization_id)
        campaign_ids = await self.store.campaign_ids_for_organization(organization_id)
        via_campaigns = await self.for_campaigns(campaign_ids)
        return dedupe_by_id(direct, via_campaigns)

    async def direct_for_organization(self, organization_id: str) -> list:
        raise NotImplementedError

    async def for_campaigns(self, campaign_ids: list[str]) -> list:
        raise NotImplementedError

    async def for_donor(self, user_id: Optional[str], donor_email: Optional[str]) -> list:
        raise NotImplementedError

    def to_unified(self, row, hide_anonymous: bool) -> UnifiedDonation:
        raise NotImplementedError


class CashDonationLoader(DonationLoader):
    """Cash donations; organization and campaign contexts see succeeded payments only."""
    source = "cash"

    async def direct_for_organization(self, organization_id: str) -> list[Donation]:
        return await self.store.cash_donations_for_organization(organization_id, RECEIVED_CASH_STATUSES)

    async def for_campaigns(self, campaign_ids: list[str]) -> list[Donation]:
        return await self.store.cash_donations_for_campaigns(campaign_ids, RECEIVED_CASH_STATUSES)

    async def for_donor(self, user_id: Optional[str], donor_email: Optional[str]) -> list[Donation]:
        return await self.store.cash_donations_for_donor(user_id, donor_email)

    def to_unified(self, row: Donation, hide_anonymous: bool) -> UnifiedDonation:
        return cash_to_unified(row, hide_anonymous)


class PhysicalDonationLoader(DonationLoader):
    """Physical donations in every status, items included."""
    source = "physical"

    async def direct_for_organization(self, organization_id: str) -> list[PhysicalDonation]:
        return await self.store.physical_donations_for_organization(organization_id)

    async def for_campaigns(self, campaign_ids: list[str]) -> list[PhysicalDonation]:
        return await self.store.physical_donations_for_campaigns(campaign_ids)

    async def for_donor(self, user_id: Optional[str], donor_email: Optional[str]) -> list[PhysicalDonation]:
        return await self.store.physical_donations_for_donor(user_id, donor_email)

    def to_unified(self, row: PhysicalDonation, hide_anonymous: bool) -> UnifiedDonation:
        return physical_to_unified(row, hide_anonymous)
