"""
Tests for the unified donation service.

Tests cover:
- Organization stats across direct and campaign-tagged donations
- Approved-status filtering and deduplication
- History filtering, sorting, pagination and stats scope
- Source failures degrading to partial results
- Anonymous donor handling and signed-out donor contexts
- Accepted donation types with campaign fallback
"""
import pytest
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Optional

from bridgeneeds.models.campaign import Campaign
from bridgeneeds.models.organization import Organization
from bridgeneeds.models.donation import Donation, PaymentStatus, TargetType
from bridgeneeds.models.physical_donation import PhysicalDonation, DonationItem, PhysicalDonationStatus
from bridgeneeds.schemas.auth import Viewer
from bridgeneeds.schemas.unified_donation import (
    DonationContext,
    DonationHistoryFilters,
    DonationHistorySort,
    DateRange,
)
from bridgeneeds.services.unified_donations import UnifiedDonationService


BASE_TIME = datetime(2025, 4, 1, 12, 0, tzinfo=timezone.utc)


def make_cash(
    id: str,
    amount: str,
    organization_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    status: PaymentStatus = PaymentStatus.SUCCEEDED,
    minutes: int = 0,
    **extra
) -> Donation:
    values = dict(
        id=id,
        amount=Decimal(amount),
        currency="USD",
        donor_name="Cash Donor",
        donor_email="cash@example.com",
        is_anonymous=False,
        is_recurring=False,
        payment_intent_id=f"pi_{id}",
        payment_status=status,
        target_type=TargetType.CAMPAIGN if campaign_id else TargetType.ORGANIZATION,
        target_id=campaign_id or organization_id,
        target_name="Harbor Food Bank",
        organization_id=organization_id,
        campaign_id=campaign_id,
        created=BASE_TIME + timedelta(minutes=minutes),
    )
    values.update(extra)
    return Donation(**values)


def make_physical(
    id: str,
    item_values: list[str],
    organization_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    status: PhysicalDonationStatus = PhysicalDonationStatus.RECEIVED,
    minutes: int = 0,
    **extra
) -> PhysicalDonation:
    items = [
        DonationItem(
            id=f"{id}-item{index}",
            position=index,
            category="clothing",
            item_name=f"Item {index}",
            quantity=1,
            unit="pcs",
            total_estimated_value=Decimal(value),
        )
        for index, value in enumerate(item_values)
    ]
    values = dict(
        id=id,
        donor_name="Item Donor",
        donor_email="items@example.com",
        is_anonymous=False,
        target_type=TargetType.CAMPAIGN if campaign_id else TargetType.ORGANIZATION,
        target_id=campaign_id or organization_id,
        target_name="Winter Coat Drive",
        organization_id=organization_id,
        campaign_id=campaign_id,
        estimated_value=sum((Decimal(v) for v in item_values), Decimal("0")),
        donation_status=status,
        donation_items=items,
        created=BASE_TIME + timedelta(minutes=minutes),
    )
    values.update(extra)
    return PhysicalDonation(**values)


class FakeDonationStore:
    """In-memory stand-in for SQLDonationStore."""

    def __init__(self, cash=(), physical=(), campaigns=(), organizations=()):
        self.cash = list(cash)
        self.physical = list(physical)
        self.campaigns = {c.id: c for c in campaigns}
        self.organizations = {o.id: o for o in organizations}
        self.fail_cash = False
        self.fail_physical = False
        self.updates: list[tuple[str, dict]] = []

    def _cash(self, predicate, statuses):
        if self.fail_cash:
            raise RuntimeError("cash store unavailable")
        return [
            d for d in self.cash
            if predicate(d) and (not statuses or d.payment_status in statuses)
        ]

    def _physical(self, predicate):
        if self.fail_physical:
            raise RuntimeError("physical store unavailable")
        return [d for d in self.physical if predicate(d)]

    async def cash_donations_for_organization(self, organization_id, statuses=None):
        return self._cash(lambda d: d.organization_id == organization_id, statuses)

    async def cash_donations_for_campaigns(self, campaign_ids, statuses=None):
        return self._cash(lambda d: d.campaign_id in campaign_ids, statuses)

    async def cash_donations_for_donor(self, user_id=None, donor_email=None, statuses=None):
        return self._cash(
            lambda d: (user_id and d.user_id == user_id) or (donor_email and d.donor_email == donor_email),
            statuses,
        )

    async def physical_donations_for_organization(self, organization_id):
        return self._physical(lambda d: d.organization_id == organization_id)

    async def physical_donations_for_campaigns(self, campaign_ids):
        return self._physical(lambda d: d.campaign_id in campaign_ids)

    async def physical_donations_for_donor(self, user_id=None, donor_email=None):
        return self._physical(
            lambda d: (user_id and d.user_id == user_id) or (donor_email and d.donor_email == donor_email)
        )

    async def get_cash_donation(self, donation_id):
        return next((d for d in self.cash if d.id == donation_id), None)

    async def get_physical_donation(self, donation_id):
        return next((d for d in self.physical if d.id == donation_id), None)

    async def update_physical_donation(self, donation_id, **values):
        self.updates.append((donation_id, values))
        donation = await self.get_physical_donation(donation_id)
        if donation is None:
            return None
        for field, value in values.items():
            setattr(donation, field, value)
        return donation

    async def campaign_ids_for_organization(self, organization_id):
        return [c.id for c in self.campaigns.values() if c.organization_id == organization_id]

    async def get_campaign(self, campaign_id):
        return self.campaigns.get(campaign_id)

    async def get_organization(self, organization_id):
        return self.organizations.get(organization_id)


@pytest.fixture
def org() -> Organization:
    return Organization(
        id="org-1",
        name="Harbor Food Bank",
        slug="harbor-food-bank",
        owner_id="owner-1",
        accepts_cash_donations=True,
        accepts_physical_donations=True,
        physical_donation_categories=["food", "clothing"],
    )


@pytest.fixture
def campaign() -> Campaign:
    return Campaign(
        id="camp-1",
        organization_id="org-1",
        title="Winter Coat Drive",
        slug="winter-coat-drive",
        goal_amount=Decimal("5000"),
    )


def service_for(store) -> UnifiedDonationService:
    return UnifiedDonationService(store)


class TestOrganizationCampaignStats:
    """Tests for get_organization_campaign_donations_stats."""

    @pytest.mark.asyncio
    async def test_direct_cash_and_campaign_physical(self, org, campaign):
        store = FakeDonationStore(
            cash=[make_cash("c1", "1000", "org-1"), make_cash("c2", "500", "org-1")],
            physical=[make_physical("p1", ["200", "100"], campaign_id="camp-1")],
            campaigns=[campaign],
            organizations=[org],
        )
        result = await service_for(store).get_organization_campaign_donations_stats("org-1")

        assert result.error is None
        assert result.stats.total_cash_amount == Decimal("1500")
        assert result.stats.total_cash_donations == 2
        assert result.stats.total_estimated_value == Decimal("300")
        assert result.stats.total_physical_donations == 1

    @pytest.mark.asyncio
    async def test_pending_physical_donation_is_excluded(self, org, campaign):
        store = FakeDonationStore(
            cash=[make_cash("c1", "1000", "org-1"), make_cash("c2", "500", "org-1")],
            physical=[make_physical("p1", ["300"], campaign_id="camp-1", status=PhysicalDonationStatus.PENDING)],
            campaigns=[campaign],
            organizations=[org],
        )
        result = await service_for(store).get_organization_campaign_donations_stats("org-1")

        assert result.stats.total_estimated_value == Decimal("0")
        assert result.stats.total_physical_donations == 0
        assert result.stats.total_cash_amount == Decimal("1500")

    @pytest.mark.asyncio
    async def test_dually_tagged_donation_counted_once(self, org, campaign):
        store = FakeDonationStore(
            cash=[make_cash("c1", "250", organization_id="org-1", campaign_id="camp-1")],
            campaigns=[campaign],
            organizations=[org],
        )
        result = await service_for(store).get_organization_campaign_donations_stats("org-1")

        assert result.stats.total_cash_donations == 1
        assert result.stats.total_cash_amount == Decimal("250")

    @pytest.mark.asyncio
    async def test_unsucceeded_cash_is_excluded(self, org):
        store = FakeDonationStore(
            cash=[
                make_cash("c1", "100", "org-1"),
                make_cash("c2", "900", "org-1", status=PaymentStatus.FAILED),
            ],
            organizations=[org],
        )
        result = await service_for(store).get_organization_campaign_donations_stats("org-1")
        assert result.stats.total_cash_donations == 1
        assert result.stats.total_cash_amount == Decimal("100")

    @pytest.mark.asyncio
    async def test_store_failure_reports_error(self, org):
        store = FakeDonationStore(organizations=[org])
        store.fail_cash = True
        result = await service_for(store).get_organization_campaign_donations_stats("org-1")
        assert result.error is not None
        assert result.stats.total_cash_donations == 0


class TestDonationHistory:
    """Tests for get_donation_history."""

    @pytest.fixture
    def store(self, org, campaign) -> FakeDonationStore:
        return FakeDonationStore(
            cash=[
                make_cash("c1", "1000", "org-1", minutes=1),
                make_cash("c2", "500", "org-1", minutes=3),
                make_cash("c3", "50", campaign_id="camp-1", minutes=5),
            ],
            physical=[
                make_physical("p1", ["300"], campaign_id="camp-1", minutes=2),
                make_physical("p2", ["40"], "org-1", minutes=4, status=PhysicalDonationStatus.PENDING),
            ],
            campaigns=[campaign],
            organizations=[org],
        )

    @pytest.mark.asyncio
    async def test_merges_both_sources_newest_first(self, store):
        result = await service_for(store).get_donation_history(DonationContext(organization_id="org-1"))

        assert result.error is None
        assert [d.id for d in result.donations] == ["c3", "p2", "c2", "p1", "c1"]
        assert result.total_count == 5
        assert result.has_more is False

    @pytest.mark.asyncio
    async def test_filter_by_donation_type(self, store):
        result = await service_for(store).get_donation_history(
            DonationContext(organization_id="org-1"),
            filters=DonationHistoryFilters(donation_type="physical"),
        )
        assert len(result.donations) == 2
        assert all(d.type == "physical" for d in result.donations)
        assert result.total_count == 2

    @pytest.mark.asyncio
    async def test_stats_describe_whole_context(self, store):
        result = await service_for(store).get_donation_history(
            DonationContext(organization_id="org-1"),
            filters=DonationHistoryFilters(donation_type="cash", min_amount=Decimal("600")),
        )
        assert [d.id for d in result.donations] == ["c1"]
        assert result.stats.total_cash_donations == 3
        assert result.stats.total_physical_donations == 2

    @pytest.mark.asyncio
    async def test_min_amount_invariant(self, store):
        result = await service_for(store).get_donation_history(
            DonationContext(organization_id="org-1"),
            filters=DonationHistoryFilters(min_amount=Decimal("300")),
        )
        assert {d.id for d in result.donations} == {"c1", "c2", "p1"}
        assert all(d.value >= Decimal("300") for d in result.donations)

    @pytest.mark.asyncio
    async def test_pages_are_contiguous(self, store):
        service = service_for(store)
        context = DonationContext(organization_id="org-1")
        sorting = DonationHistorySort(field="amount", direction="desc")

        first = await service.get_donation_history(context, sorting=sorting, page=1, page_size=2)
        second = await service.get_donation_history(context, sorting=sorting, page=2, page_size=2)
        third = await service.get_donation_history(context, sorting=sorting, page=3, page_size=2)

        assert first.has_more is True
        assert second.has_more is True
        assert third.has_more is False
        ids = [d.id for page in (first, second, third) for d in page.donations]
        assert ids == ["c1", "c2", "p1", "c3", "p2"]
        assert first.total_count == second.total_count == third.total_count == 5

    @pytest.mark.asyncio
    async def test_campaign_context(self, store):
        result = await service_for(store).get_donation_history(DonationContext(campaign_id="camp-1"))
        assert {d.id for d in result.donations} == {"c3", "p1"}

    @pytest.mark.asyncio
    async def test_organization_wins_over_campaign(self, store):
        result = await service_for(store).get_donation_history(
            DonationContext(organization_id="org-1", campaign_id="camp-1")
        )
        assert result.total_count == 5

    @pytest.mark.asyncio
    async def test_failed_source_degrades_to_partial_result(self, store):
        store.fail_physical = True
        result = await service_for(store).get_donation_history(DonationContext(organization_id="org-1"))

        assert result.error is None
        assert {d.type for d in result.donations} == {"cash"}
        assert result.total_count == 3

    @pytest.mark.asyncio
    async def test_both_sources_failing_gives_empty_history(self, store):
        store.fail_cash = True
        store.fail_physical = True
        result = await service_for(store).get_donation_history(DonationContext(organization_id="org-1"))
        assert result.donations == []
        assert result.total_count == 0

    @pytest.mark.asyncio
    async def test_invalid_page(self, store):
        result = await service_for(store).get_donation_history(
            DonationContext(organization_id="org-1"), page=0
        )
        assert result.error is not None
        assert result.donations == []

    @pytest.mark.asyncio
    async def test_empty_context_yields_nothing(self, store):
        result = await service_for(store).get_donation_history(DonationContext())
        assert result.donations == []
        assert result.error is None


class TestDonorContext:
    """Tests for donor histories and anonymous donors."""

    @pytest.fixture
    def store(self, org) -> FakeDonationStore:
        return FakeDonationStore(
            cash=[
                make_cash("c1", "75", "org-1", user_id="user-1", is_anonymous=True,
                          donor_name="Dana Donor", donor_email="dana@example.com"),
                make_cash("c2", "20", "org-1", user_id="user-2", minutes=1,
                          status=PaymentStatus.FAILED),
            ],
            organizations=[org],
        )

    @pytest.mark.asyncio
    async def test_requires_viewer(self, store):
        result = await service_for(store).get_donation_history(DonationContext(user_id="user-1"))
        assert result.error == "You must be signed in to view your donation history."
        assert result.donations == []

    @pytest.mark.asyncio
    async def test_donor_sees_own_name_and_all_statuses(self, store):
        viewer = Viewer(user_id="user-2", email="other@example.com", name="Other")
        result = await service_for(store).get_donation_history(
            DonationContext(user_id="user-2"), viewer=viewer
        )
        assert [d.id for d in result.donations] == ["c2"]
        assert result.donations[0].status == "failed"

        viewer = Viewer(user_id="user-1", email="dana@example.com", name="Dana Donor")
        result = await service_for(store).get_donation_history(
            DonationContext(user_id="user-1", donor_email="dana@example.com"), viewer=viewer
        )
        assert result.donations[0].donor_name == "Dana Donor"

    @pytest.mark.asyncio
    async def test_organization_sees_anonymous_placeholder(self, store):
        result = await service_for(store).get_donation_history(DonationContext(organization_id="org-1"))
        assert len(result.donations) == 1
        assert result.donations[0].donor_name == "Anonymous"
        assert result.donations[0].donor_email == ""
        assert result.donations[0].is_anonymous is True

    @pytest.mark.asyncio
    async def test_details_reveal_donor_only_to_donor(self, store):
        service = service_for(store)
        hidden = await service.get_donation_details("c1", "cash")
        assert hidden.donor_name == "Anonymous"

        donor = Viewer(user_id="user-1", email="dana@example.com", name="Dana Donor")
        shown = await service.get_donation_details("c1", "cash", viewer=donor)
        assert shown.donor_name == "Dana Donor"
        assert shown.donor_email == "dana@example.com"

    @pytest.mark.asyncio
    async def test_details_unknown(self, store):
        service = service_for(store)
        assert await service.get_donation_details("missing", "cash") is None
        assert await service.get_donation_details("c1", "crypto") is None


class TestSummaries:
    """Tests for stats, dashboard and search."""

    @pytest.fixture
    def store(self, org, campaign) -> FakeDonationStore:
        return FakeDonationStore(
            cash=[
                make_cash("c1", "100", "org-1", created=datetime(2025, 1, 5, tzinfo=timezone.utc)),
                make_cash("c2", "200", "org-1", created=datetime(2025, 3, 5, tzinfo=timezone.utc),
                          message="For the soup kitchen"),
            ],
            physical=[
                make_physical("p1", ["30", "20"], campaign_id="camp-1",
                              created=datetime(2025, 2, 5, tzinfo=timezone.utc)),
            ],
            campaigns=[campaign],
            organizations=[org],
        )

    @pytest.mark.asyncio
    async def test_stats_with_date_range(self, store):
        result = await service_for(store).get_donation_stats(
            DonationContext(organization_id="org-1"),
            date_range=DateRange(
                start=datetime(2025, 2, 1, tzinfo=timezone.utc),
                end=datetime(2025, 3, 31, tzinfo=timezone.utc),
            ),
        )
        assert result.stats.total_cash_donations == 1
        assert result.stats.total_cash_amount == Decimal("200")
        assert result.stats.total_estimated_value == Decimal("50")

    @pytest.mark.asyncio
    async def test_dashboard_summary(self, store):
        summary = await service_for(store).get_dashboard_summary(DonationContext(organization_id="org-1"))

        assert summary.total_value == Decimal("350")
        assert summary.total_donations == 3
        assert [point.month for point in summary.monthly_trend] == ["2025-01", "2025-02", "2025-03"]
        assert [d.id for d in summary.recent_donations] == ["c2", "p1", "c1"]
        assert summary.top_categories[0].category == "clothing"
        assert summary.top_categories[0].count == 2

    @pytest.mark.asyncio
    async def test_search(self, store):
        service = service_for(store)
        result = await service.search_donations("soup", DonationContext(organization_id="org-1"))
        assert [d.id for d in result.donations] == ["c2"]

        result = await service.search_donations(
            "harbor", DonationContext(organization_id="org-1"), donation_type="cash"
        )
        assert result.total_count == 2


class TestAcceptedDonationTypes:
    """Tests for get_accepted_donation_types."""

    @pytest.mark.asyncio
    async def test_organization(self, org):
        result = await service_for(FakeDonationStore(organizations=[org])).get_accepted_donation_types(
            "organization", "org-1"
        )
        assert result.cash is True
        assert result.physical is True
        assert result.categories == ["food", "clothing"]

    @pytest.mark.asyncio
    async def test_campaign_falls_back_to_organization(self, org, campaign):
        campaign.accepts_cash_donations = False
        store = FakeDonationStore(campaigns=[campaign], organizations=[org])
        result = await service_for(store).get_accepted_donation_types("campaign", "camp-1")
        assert result.cash is False
        assert result.physical is True
        assert result.categories == ["food", "clothing"]

    @pytest.mark.asyncio
    async def test_unknown_target_defaults(self):
        result = await service_for(FakeDonationStore()).get_accepted_donation_types("campaign", "nope")
        assert result.cash is True
        assert result.physical is False
        assert result.categories == []


class TestUpdateDonationStatus:
    """Tests for update_donation_status."""

    @pytest.mark.asyncio
    async def test_cash_status_is_not_editable(self):
        result = await service_for(FakeDonationStore()).update_donation_status("c1", "cash", "received")
        assert result.success is False

    @pytest.mark.asyncio
    async def test_physical_transition(self, org):
        store = FakeDonationStore(
            physical=[make_physical("p1", ["10"], "org-1", status=PhysicalDonationStatus.PENDING)],
            organizations=[org],
        )
        result = await service_for(store).update_donation_status("p1", "physical", "confirmed", "Pickup Friday")
        assert result.success is True
        donation_id, values = store.updates[0]
        assert donation_id == "p1"
        assert values["donation_status"] == PhysicalDonationStatus.CONFIRMED
        assert values["coordinator_notes"] == "Pickup Friday"
        assert values["confirmed_at"] is not None

    @pytest.mark.asyncio
    async def test_invalid_transition_reported(self, org):
        store = FakeDonationStore(
            physical=[make_physical("p1", ["10"], "org-1", status=PhysicalDonationStatus.RECEIVED)],
            organizations=[org],
        )
        result = await service_for(store).update_donation_status("p1", "physical", "pending")
        assert result.success is False
        assert result.error == "Cannot change donation status from received to pending"
        assert store.updates == []

    @pytest.mark.asyncio
    async def test_unknown_status_reported(self):
        result = await service_for(FakeDonationStore()).update_donation_status("p1", "physical", "lost")
        assert result.success is False
        assert "lost" in result.error
