"""
Tests for the physical donation service over the SQL donation store.

Tests cover:
- Form validation error codes
- Creation with items and target resolution
- Status workflow and timestamps
- Organization physical donation statistics
- Item edits and the recomputed estimated value
"""
import pytest
import pytest_asyncio
from decimal import Decimal

from bridgeneeds.models.campaign import Campaign
from bridgeneeds.models.physical_donation import PhysicalDonationStatus
from bridgeneeds.schemas.physical_donation import (
    DonationItemCreate,
    DonationItemUpdate,
    PhysicalDonationCreate,
)
from bridgeneeds.schemas.unified_donation import DonationContext
from bridgeneeds.services.donation_store import SQLDonationStore
from bridgeneeds.services.exceptions import DonationValidationError, InvalidStatusTransition
from bridgeneeds.services.unified_donations import UnifiedDonationService
from bridgeneeds.services.physical_donations import (
    PhysicalDonationService,
    check_transition,
    validate_physical_donation_form,
)


def coat_form(**extra) -> PhysicalDonationCreate:
    values = dict(
        donor_name="Dana Donor",
        donor_email="dana@example.com",
        target_type="campaign",
        target_name="Winter Coat Drive",
        pickup_preference="pickup",
        pickup_address="12 Harbor Lane",
        items=[
            DonationItemCreate(
                category="clothing",
                item_name="Wool coat",
                quantity=3,
                condition="good",
                estimated_value_per_unit=Decimal("40"),
            ),
            DonationItemCreate(category="clothing", item_name="Scarf", quantity=2),
        ],
    )
    values.update(extra)
    return PhysicalDonationCreate(**values)


@pytest.fixture
def service(session_factory) -> PhysicalDonationService:
    return PhysicalDonationService(SQLDonationStore(session_factory))


@pytest_asyncio.fixture
async def donation(service, test_org):
    """A pending coat donation to the test organization, worth 120."""
    created = await service.create_physical_donation(
        coat_form(target_type="organization", target_id=test_org.id, target_name=test_org.name)
    )
    return created.donation


class TestValidation:

    def test_valid_form(self):
        assert validate_physical_donation_form(coat_form()) == []

    def test_collects_every_error(self):
        form = PhysicalDonationCreate(
            donor_name=" ",
            donor_email="not-an-email",
            target_name="",
            pickup_preference="pickup",
            items=[DonationItemCreate(quantity=0, estimated_value_per_unit=Decimal("-1"))],
        )
        codes = [error.code for error in validate_physical_donation_form(form)]
        assert codes == [
            "DONOR_NAME_REQUIRED",
            "INVALID_EMAIL",
            "TARGET_NAME_REQUIRED",
            "ITEM_NAME_REQUIRED",
            "ITEM_CATEGORY_REQUIRED",
            "INVALID_QUANTITY",
            "INVALID_VALUE",
            "PICKUP_ADDRESS_REQUIRED",
        ]

    def test_items_required(self):
        errors = validate_physical_donation_form(coat_form(items=[]))
        assert [error.code for error in errors] == ["ITEMS_REQUIRED"]

    def test_delivery_needs_no_address(self):
        assert validate_physical_donation_form(coat_form(pickup_preference="delivery", pickup_address=None)) == []

    def test_item_error_fields(self):
        form = coat_form(items=[DonationItemCreate(category="food", item_name="Rice", quantity=-2)])
        errors = validate_physical_donation_form(form)
        assert errors[0].field == "items[0].quantity"


class TestTransitions:

    def test_allowed(self):
        check_transition(PhysicalDonationStatus.PENDING, PhysicalDonationStatus.CONFIRMED)
        check_transition(PhysicalDonationStatus.CONFIRMED, PhysicalDonationStatus.IN_TRANSIT)
        check_transition(PhysicalDonationStatus.IN_TRANSIT, PhysicalDonationStatus.RECEIVED)
        check_transition(PhysicalDonationStatus.RECEIVED, PhysicalDonationStatus.RECEIVED)

    def test_rejected(self):
        with pytest.raises(InvalidStatusTransition):
            check_transition(PhysicalDonationStatus.PENDING, PhysicalDonationStatus.RECEIVED)
        with pytest.raises(InvalidStatusTransition):
            check_transition(PhysicalDonationStatus.IN_TRANSIT, PhysicalDonationStatus.CANCELLED)
        with pytest.raises(InvalidStatusTransition):
            check_transition(PhysicalDonationStatus.DECLINED, PhysicalDonationStatus.PENDING)


class TestPhysicalDonationService:

    @pytest.mark.asyncio
    async def test_create_with_items(self, service, test_campaign: Campaign, test_user):
        result = await service.create_physical_donation(
            coat_form(target_id=test_campaign.id), user_id=test_user.id
        )

        assert result.success is True
        donation = result.donation
        assert donation.type == "physical"
        assert donation.status == "pending"
        assert donation.campaign_id == test_campaign.id
        assert donation.organization_id == test_campaign.organization_id
        assert donation.user_id == test_user.id
        assert donation.estimated_value == Decimal("120")
        assert [item.item_name for item in donation.donation_items] == ["Wool coat", "Scarf"]
        assert donation.donation_items[0].total_estimated_value == Decimal("120")
        assert donation.donation_items[1].total_estimated_value == Decimal("0")

    @pytest.mark.asyncio
    async def test_create_invalid_raises(self, service):
        with pytest.raises(DonationValidationError) as exc_info:
            await service.create_physical_donation(coat_form(donor_email="nope"))
        assert [error.code for error in exc_info.value.errors] == ["INVALID_EMAIL"]

    @pytest.mark.asyncio
    async def test_status_workflow_sets_timestamps(self, service, test_org):
        created = await service.create_physical_donation(
            coat_form(target_type="organization", target_id=test_org.id, target_name=test_org.name)
        )
        donation_id = created.donation.id

        confirmed = await service.update_donation_status(donation_id, "confirmed", "Pickup on Friday")
        assert confirmed.success is True
        await service.update_donation_status(donation_id, "in_transit")
        await service.update_donation_status(donation_id, "received")

        donation = await service.get_physical_donation(donation_id)
        assert donation.status == "received"
        assert donation.coordinator_notes == "Pickup on Friday"
        assert donation.confirmed_at is not None
        assert donation.received_at is not None

    @pytest.mark.asyncio
    async def test_cancel_after_transit_rejected(self, service, test_org):
        created = await service.create_physical_donation(
            coat_form(target_type="organization", target_id=test_org.id, target_name=test_org.name)
        )
        donation_id = created.donation.id
        await service.update_donation_status(donation_id, "confirmed")
        await service.update_donation_status(donation_id, "in_transit")

        with pytest.raises(InvalidStatusTransition):
            await service.cancel_physical_donation(donation_id, "Changed my mind")

    @pytest.mark.asyncio
    async def test_update_missing_donation(self, service):
        result = await service.update_donation_status("doesnotexist123", "confirmed")
        assert result.success is False
        assert result.error == "Physical donation not found"

    @pytest.mark.asyncio
    async def test_organization_stats(self, service, test_org):
        form = coat_form(target_type="organization", target_id=test_org.id, target_name=test_org.name)
        first = await service.create_physical_donation(form)
        await service.create_physical_donation(form)
        await service.update_donation_status(first.donation.id, "confirmed")

        stats = await service.get_organization_donation_stats(test_org.id)
        assert stats.total == 2
        assert stats.pending == 1
        assert stats.confirmed == 1
        assert stats.estimated_value == Decimal("240")


class TestDonationItems:

    @pytest.mark.asyncio
    async def test_add_items_raises_value(self, service, donation):
        result = await service.add_donation_items(donation.id, [
            DonationItemCreate(category="clothing", item_name="Boots", quantity=2,
                               estimated_value_per_unit=Decimal("25")),
        ])

        assert result.success is True
        assert result.donation.estimated_value == Decimal("170")
        assert [item.item_name for item in result.donation.donation_items] == ["Wool coat", "Scarf", "Boots"]

        stats = await service.get_organization_donation_stats(donation.organization_id)
        assert stats.estimated_value == Decimal("170")

    @pytest.mark.asyncio
    async def test_add_invalid_items_raises(self, service, donation):
        with pytest.raises(DonationValidationError) as exc_info:
            await service.add_donation_items(donation.id, [
                DonationItemCreate(category="clothing", item_name="Boots", quantity=2),
                DonationItemCreate(category="clothing", item_name=" ", quantity=0),
            ])
        errors = exc_info.value.errors
        assert [error.code for error in errors] == ["ITEM_NAME_REQUIRED", "INVALID_QUANTITY"]
        assert errors[0].field == "items[1].itemName"

        with pytest.raises(DonationValidationError) as exc_info:
            await service.add_donation_items(donation.id, [])
        assert [error.code for error in exc_info.value.errors] == ["ITEMS_REQUIRED"]

    @pytest.mark.asyncio
    async def test_add_to_missing_donation(self, service):
        result = await service.add_donation_items(
            "doesnotexist123", [DonationItemCreate(category="food", item_name="Rice", quantity=1)]
        )
        assert result.success is False
        assert result.error == "Physical donation not found"

    @pytest.mark.asyncio
    async def test_update_quantity_recomputes_totals(self, service, donation):
        coat = donation.donation_items[0]

        result = await service.update_donation_item(coat.id, DonationItemUpdate(quantity=1))

        assert result.success is True
        assert result.item.quantity == 1
        assert result.item.total_estimated_value == Decimal("40")
        assert result.item.condition == "good"
        stats = await service.get_organization_donation_stats(donation.organization_id)
        assert stats.estimated_value == Decimal("40")

    @pytest.mark.asyncio
    async def test_update_invalid_item_raises(self, service, donation):
        scarf = donation.donation_items[1]
        with pytest.raises(DonationValidationError) as exc_info:
            await service.update_donation_item(
                scarf.id, DonationItemUpdate(estimated_value_per_unit=Decimal("-1"))
            )
        error = exc_info.value.errors[0]
        assert error.code == "INVALID_VALUE"
        assert error.field == "items[1].estimatedValuePerUnit"

    @pytest.mark.asyncio
    async def test_update_missing_item(self, service):
        result = await service.update_donation_item("doesnotexist123", DonationItemUpdate(quantity=1))
        assert result.success is False
        assert result.error == "Donation item not found"

    @pytest.mark.asyncio
    async def test_item_status_keeps_reason_only_when_declined(self, service, donation):
        scarf = donation.donation_items[1]

        declined = await service.update_donation_item_status(scarf.id, "declined", "Torn")
        assert declined.item.item_status == "declined"
        assert declined.item.decline_reason == "Torn"

        accepted = await service.update_donation_item_status(scarf.id, "accepted", "ignored")
        assert accepted.item.item_status == "accepted"
        assert accepted.item.decline_reason is None

    @pytest.mark.asyncio
    async def test_remove_item_lowers_history_value(self, service, session_factory, donation, test_org):
        history = UnifiedDonationService(SQLDonationStore(session_factory))
        context = DonationContext(organization_id=test_org.id)
        before = await history.get_donation_history(context)
        assert before.donations[0].estimated_value == Decimal("120")

        result = await service.remove_donation_item(donation.donation_items[0].id)
        assert result.success is True

        after = await history.get_donation_history(context)
        assert after.donations[0].estimated_value == Decimal("0")
        assert [item.item_name for item in after.donations[0].donation_items] == ["Scarf"]
        assert after.stats.total_estimated_value == Decimal("0")

        stats = await service.get_organization_donation_stats(test_org.id)
        assert stats.estimated_value == Decimal("0")

    @pytest.mark.asyncio
    async def test_remove_missing_item(self, service):
        result = await service.remove_donation_item("doesnotexist123")
        assert result.success is False
        assert result.error == "Donation item not found"
