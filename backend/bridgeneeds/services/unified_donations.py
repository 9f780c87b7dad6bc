"""
Unified donation service.

Merges cash and physical donations for a context into one history with
filtering, sorting, pagination and statistics. Every public method
returns a result carrying an optional ``error`` instead of raising.

Statistics always describe the whole context; filters and pagination
only shape the returned page.
"""
import asyncio
import logging
from typing import Optional

from bridgeneeds.core.config import settings
from bridgeneeds.models.donation import PaymentStatus
from bridgeneeds.models.physical_donation import PhysicalDonationStatus
from bridgeneeds.schemas.auth import Viewer
from bridgeneeds.schemas.unified_donation import (
    AcceptedDonationTypes,
    DashboardSummary,
    DateRange,
    DonationContext,
    DonationHistoryFilters,
    DonationHistoryResponse,
    DonationHistorySort,
    DonationSearchResponse,
    DonationStats,
    DonationStatsResponse,
    StatusUpdateResult,
    UnifiedDonation,
)
from bridgeneeds.services import donation_aggregation as aggregation
from bridgeneeds.services.exceptions import InvalidStatusTransition
from bridgeneeds.services.loaders import (
    CashDonationLoader,
    PhysicalDonationLoader,
    cash_to_unified,
    physical_to_unified,
)
from bridgeneeds.services.physical_donations import APPROVED_STATUSES, PhysicalDonationService

logger = logging.getLogger(__name__)

SIGN_IN_REQUIRED = "You must be signed in to view your donation history."


class UnifiedDonationService:
    """
    Cash + physical donation history for a donor, organization or campaign.

    Args:
        store: Donation record store
        cash_loader: Loader for cash donations (built from the store if omitted)
        physical_loader: Loader for physical donations (built from the store if omitted)
        physical_service: Physical donation workflow used for status changes
    """

    def __init__(
        self,
        store,
        cash_loader: Optional[CashDonationLoader] = None,
        physical_loader: Optional[PhysicalDonationLoader] = None,
        physical_service: Optional[PhysicalDonationService] = None,
        top_categories_limit: int = settings.TOP_CATEGORIES_LIMIT,
        dashboard_categories_limit: int = settings.DASHBOARD_TOP_CATEGORIES_LIMIT,
        dashboard_trend_months: int = settings.DASHBOARD_TREND_MONTHS,
        dashboard_recent_donations: int = settings.DASHBOARD_RECENT_DONATIONS,
    ):
        self.store = store
        self.cash_loader = cash_loader or CashDonationLoader(store)
        self.physical_loader = physical_loader or PhysicalDonationLoader(store)
        self.physical_service = physical_service or PhysicalDonationService(store)
        self.top_categories_limit = top_categories_limit
        self.dashboard_categories_limit = dashboard_categories_limit
        self.dashboard_trend_months = dashboard_trend_months
        self.dashboard_recent_donations = dashboard_recent_donations

    @staticmethod
    def _missing_session(context: DonationContext, viewer: Optional[Viewer]) -> bool:
        return context.kind == "donor" and viewer is None

    async def _load(self, context: DonationContext) -> list[UnifiedDonation]:
        """Fetch both sources concurrently and concatenate them."""
        cash, physical = await asyncio.gather(
            self.cash_loader.load(context),
            self.physical_loader.load(context),
        )
        return cash + physical

    def calculate_stats(self, donations: list[UnifiedDonation]) -> DonationStats:
        return aggregation.calculate_stats(donations, self.top_categories_limit)

    async def get_donation_history(
        self,
        context: DonationContext,
        filters: Optional[DonationHistoryFilters] = None,
        sorting: Optional[DonationHistorySort] = None,
        page: int = 1,
        page_size: int = settings.HISTORY_DEFAULT_PAGE_SIZE,
        viewer: Optional[Viewer] = None
    ) -> DonationHistoryResponse:
        """
        One page of the merged donation history.

        Args:
            context: Organization, campaign or donor whose donations to list
            filters: Optional predicates applied before sorting
            sorting: Sort field and direction (newest first by default)
            page: 1-based page number
            page_size: Donations per page
            viewer: Signed-in donor, required for donor contexts

        Returns:
            DonationHistoryResponse; ``total_count`` counts the filtered set,
            ``stats`` the whole context
        """
        if self._missing_session(context, viewer):
            return DonationHistoryResponse(error=SIGN_IN_REQUIRED)
        if page < 1 or page_size < 1:
            return DonationHistoryResponse(error="Page and page size must be positive.")

        donations = await self._load(context)
        stats = self.calculate_stats(donations)

        filtered = aggregation.filter_donations(donations, filters)
        ordered = aggregation.sort_donations(filtered, sorting)

        return DonationHistoryResponse(
            donations=aggregation.paginate(ordered, page, page_size),
            total_count=len(ordered),
            stats=stats,
            has_more=aggregation.has_more(len(ordered), page, page_size),
        )

    async def get_donation_stats(
        self,
        context: DonationContext,
        date_range: Optional[DateRange] = None,
        viewer: Optional[Viewer] = None
    ) -> DonationStatsResponse:
        """Statistics for a context, optionally limited to a creation date range."""
        if self._missing_session(context, viewer):
            return DonationStatsResponse(error=SIGN_IN_REQUIRED)

        donations = await self._load(context)
        if date_range is not None:
            donations = aggregation.filter_donations(
                donations, DonationHistoryFilters(date_range=date_range)
            )
        return DonationStatsResponse(stats=self.calculate_stats(donations))

    async def get_organization_campaign_donations_stats(self, organization_id: str) -> DonationStatsResponse:
        """
        Received-donation statistics for an organization.

        Older rows are tagged either with the organization or with one of its
        campaigns, so both are queried and the union is deduplicated by id.
        Cash counts only succeeded payments; physical donations count only
        once approved (confirmed, in transit or received).
        """
        succeeded = [PaymentStatus.SUCCEEDED]
        try:
            campaign_ids = await self.store.campaign_ids_for_organization(organization_id)
            cash_direct, cash_via_campaigns, physical_direct, physical_via_campaigns = await asyncio.gather(
                self.store.cash_donations_for_organization(organization_id, succeeded),
                self.store.cash_donations_for_campaigns(campaign_ids, succeeded),
                self.store.physical_donations_for_organization(organization_id),
                self.store.physical_donations_for_campaigns(campaign_ids),
            )
        except Exception:
            logger.exception(f"Failed to load donation stats for organization {organization_id}")
            return DonationStatsResponse(error="Failed to load organization donation statistics.")

        cash = aggregation.dedupe_by_id(cash_direct, cash_via_campaigns)
        physical = [
            donation
            for donation in aggregation.dedupe_by_id(physical_direct, physical_via_campaigns)
            if PhysicalDonationStatus(donation.donation_status) in APPROVED_STATUSES
        ]

        donations = [cash_to_unified(d) for d in cash] + [physical_to_unified(d) for d in physical]
        return DonationStatsResponse(stats=self.calculate_stats(donations))

    async def get_dashboard_summary(
        self,
        context: DonationContext,
        viewer: Optional[Viewer] = None
    ) -> DashboardSummary:
        """Totals, recent monthly trend, latest donations and top item categories."""
        if self._missing_session(context, viewer):
            return DashboardSummary(error=SIGN_IN_REQUIRED)

        donations = await self._load(context)
        stats = self.calculate_stats(donations)
        newest_first = aggregation.sort_donations(donations, DonationHistorySort(field="created_at", direction="desc"))

        return DashboardSummary(
            total_value=stats.total_cash_amount + stats.total_estimated_value,
            total_cash_amount=stats.total_cash_amount,
            total_estimated_value=stats.total_estimated_value,
            total_donations=stats.total_cash_donations + stats.total_physical_donations,
            monthly_trend=aggregation.monthly_trend(stats, self.dashboard_trend_months),
            recent_donations=newest_first[:self.dashboard_recent_donations],
            top_categories=aggregation.top_categories(
                aggregation.bucket_by_category(donations), self.dashboard_categories_limit
            ),
        )

    async def search_donations(
        self,
        query: str,
        context: DonationContext,
        donation_type: Optional[str] = None,
        viewer: Optional[Viewer] = None
    ) -> DonationSearchResponse:
        """Donations in a context whose donor, target, message or items match ``query``."""
        if self._missing_session(context, viewer):
            return DonationSearchResponse(query=query, error=SIGN_IN_REQUIRED)

        donations = await self._load(context)
        if donation_type:
            donations = aggregation.filter_donations(
                donations, DonationHistoryFilters(donation_type=donation_type)
            )
        matches = aggregation.sort_donations(
            [donation for donation in donations if aggregation.matches_query(donation, query)]
        )
        return DonationSearchResponse(query=query, donations=matches, total_count=len(matches))

    async def get_donation_details(
        self,
        donation_id: str,
        donation_type: str,
        viewer: Optional[Viewer] = None
    ) -> Optional[UnifiedDonation]:
        """
        A single cash or physical donation, or None if it does not exist.

        Anonymous donors are hidden unless the viewer made the donation.
        """
        try:
            if donation_type == "physical":
                row = await self.store.get_physical_donation(donation_id)
                mapper = physical_to_unified
            elif donation_type == "cash":
                row = await self.store.get_cash_donation(donation_id)
                mapper = cash_to_unified
            else:
                return None
        except Exception:
            logger.exception(f"Failed to load {donation_type} donation {donation_id}")
            return None

        if row is None:
            return None
        is_donor = viewer is not None and row.user_id == viewer.user_id
        return mapper(row, hide_anonymous=not is_donor)

    async def get_accepted_donation_types(self, target_type: str, target_id: str) -> AcceptedDonationTypes:
        """
        Donation types an organization or campaign accepts.

        Campaign settings left unset fall back to the owning organization.
        Unknown targets accept cash only.
        """
        try:
            if target_type == "organization":
                organization = await self.store.get_organization(target_id)
                if organization is None:
                    return AcceptedDonationTypes()
                return AcceptedDonationTypes(
                    cash=bool(organization.accepts_cash_donations),
                    physical=bool(organization.accepts_physical_donations),
                    categories=organization.physical_donation_categories or [],
                )

            if target_type == "campaign":
                campaign = await self.store.get_campaign(target_id)
                if campaign is None:
                    return AcceptedDonationTypes()
                organization = None
                if campaign.organization_id:
                    organization = await self.store.get_organization(campaign.organization_id)

                def effective(own, attribute: str, default):
                    if own is not None:
                        return own
                    if organization is not None:
                        return getattr(organization, attribute)
                    return default

                return AcceptedDonationTypes(
                    cash=bool(effective(campaign.accepts_cash_donations, "accepts_cash_donations", True)),
                    physical=bool(effective(campaign.accepts_physical_donations, "accepts_physical_donations", False)),
                    categories=effective(campaign.physical_donation_categories, "physical_donation_categories", None) or [],
                )
        except Exception:
            logger.exception(f"Failed to load accepted donation types for {target_type} {target_id}")

        return AcceptedDonationTypes()

    async def update_donation_status(
        self,
        donation_id: str,
        donation_type: str,
        status: str,
        notes: Optional[str] = None
    ) -> StatusUpdateResult:
        """Change the status of a physical donation; cash status follows the payment."""
        if donation_type != "physical":
            return StatusUpdateResult(
                success=False,
                error="Cash donation status is managed by the payment flow."
            )
        try:
            return await self.physical_service.update_donation_status(donation_id, status, notes)
        except InvalidStatusTransition as exc:
            return StatusUpdateResult(success=False, error=str(exc))
        except ValueError:
            return StatusUpdateResult(success=False, error=f"Unknown donation status: {status}")
