"""
Pydantic schemas for the unified (cash + physical) donation view.

Responses use camelCase keys; nested donation items keep the snake_case
column names they are stored with.
"""
from typing import Optional, Literal
from datetime import datetime, date
from decimal import Decimal
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


DonationType = Literal["cash", "physical"]
DonationTypeFilter = Literal["cash", "physical", "all"]
SortField = Literal["created_at", "amount", "estimated_value", "donor_name"]
SortDirection = Literal["asc", "desc"]


class CamelModel(BaseModel):
    """Base for schemas serialized with camelCase keys."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ============================================================================
# UNIFIED DONATION
# ============================================================================

class DonationItemView(BaseModel):
    """Line item of a physical donation, as stored."""
    id: Optional[str] = None
    item_name: str
    category: str
    quantity: int
    unit: str = "pcs"
    condition: Optional[str] = None
    estimated_value_per_unit: Optional[Decimal] = None
    total_estimated_value: Decimal = Decimal("0")
    item_status: str = "pending"
    decline_reason: Optional[str] = None

    class Config:
        from_attributes = True


class UnifiedDonation(CamelModel):
    """
    A cash or physical donation in one shape.

    ``amount`` is only meaningful for cash donations and ``estimated_value``
    only for physical ones.
    """
    id: str
    type: DonationType
    donor_name: str
    donor_email: str = ""
    message: Optional[str] = None
    target_type: str
    target_id: Optional[str] = None
    target_name: str
    created_at: datetime
    status: str
    is_anonymous: bool = False
    organization_id: Optional[str] = None
    campaign_id: Optional[str] = None
    # Donor account, used for access checks only
    user_id: Optional[str] = Field(None, exclude=True)

    # Cash
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    is_recurring: Optional[bool] = None
    frequency: Optional[str] = None
    payment_intent_id: Optional[str] = None

    # Physical
    estimated_value: Optional[Decimal] = None
    donation_items: Optional[list[DonationItemView]] = None
    pickup_preference: Optional[str] = None
    preferred_pickup_date: Optional[date] = None
    coordinator_notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    received_at: Optional[datetime] = None

    @property
    def value(self) -> Decimal:
        """Comparable value: amount, else estimated value, else zero."""
        if self.amount is not None:
            return self.amount
        if self.estimated_value is not None:
            return self.estimated_value
        return Decimal("0")


# ============================================================================
# QUERY PARAMETERS
# ============================================================================

class DonationContext(CamelModel):
    """
    Which donations a query is about.

    Only one branch applies, chosen in the order organization, campaign,
    donor.
    """
    organization_id: Optional[str] = None
    campaign_id: Optional[str] = None
    user_id: Optional[str] = None
    donor_email: Optional[str] = None

    @property
    def kind(self) -> Optional[str]:
        if self.organization_id:
            return "organization"
        if self.campaign_id:
            return "campaign"
        if self.user_id or self.donor_email:
            return "donor"
        return None


class DateRange(CamelModel):
    """Inclusive creation-time range."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class DonationHistoryFilters(CamelModel):
    """Optional predicates; ``all`` or ``None`` means the predicate is off."""
    donation_type: DonationTypeFilter = "all"
    status: Optional[str] = "all"
    target_type: Optional[str] = "all"
    date_range: Optional[DateRange] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None


class DonationHistorySort(CamelModel):
    """Sort key and direction."""
    field: SortField = "created_at"
    direction: SortDirection = "desc"


# ============================================================================
# STATISTICS
# ============================================================================

class MonthlyBucket(CamelModel):
    """Donations created within one calendar month (``YYYY-MM``)."""
    month: str
    cash_donations: int = 0
    physical_donations: int = 0
    cash_amount: Decimal = Decimal("0")
    estimated_value: Decimal = Decimal("0")

    def add(self, donation: UnifiedDonation) -> None:
        if donation.type == "cash":
            self.cash_donations += 1
            self.cash_amount += donation.amount or Decimal("0")
        else:
            self.physical_donations += 1
            self.estimated_value += donation.estimated_value or Decimal("0")

    def merge(self, other: "MonthlyBucket") -> "MonthlyBucket":
        if other.month != self.month:
            raise ValueError(f"Cannot merge bucket {other.month} into {self.month}")
        return MonthlyBucket(
            month=self.month,
            cash_donations=self.cash_donations + other.cash_donations,
            physical_donations=self.physical_donations + other.physical_donations,
            cash_amount=self.cash_amount + other.cash_amount,
            estimated_value=self.estimated_value + other.estimated_value,
        )


class CategoryBucket(CamelModel):
    """Physical donation items of one category."""
    category: str
    count: int = 0
    estimated_value: Decimal = Decimal("0")

    def add(self, item: DonationItemView) -> None:
        self.count += 1
        self.estimated_value += item.total_estimated_value or Decimal("0")

    def merge(self, other: "CategoryBucket") -> "CategoryBucket":
        if other.category != self.category:
            raise ValueError(f"Cannot merge category {other.category} into {self.category}")
        return CategoryBucket(
            category=self.category,
            count=self.count + other.count,
            estimated_value=self.estimated_value + other.estimated_value,
        )


class DonationStats(CamelModel):
    """Summary of a set of donations."""
    total_cash_donations: int = 0
    total_physical_donations: int = 0
    total_cash_amount: Decimal = Decimal("0")
    total_estimated_value: Decimal = Decimal("0")
    donations_by_month: list[MonthlyBucket] = []
    top_categories: list[CategoryBucket] = []


class MonthlyTrendPoint(CamelModel):
    """One month of the dashboard trend."""
    month: str
    cash_amount: Decimal = Decimal("0")
    physical_value: Decimal = Decimal("0")
    total_donations: int = 0


# ============================================================================
# RESPONSES
# ============================================================================

class DonationHistoryResponse(CamelModel):
    """One page of the unified donation history."""
    donations: list[UnifiedDonation] = []
    total_count: int = 0
    stats: DonationStats = Field(default_factory=DonationStats)
    has_more: bool = False
    error: Optional[str] = None


class DonationStatsResponse(CamelModel):
    """Statistics for a donation context."""
    stats: DonationStats = Field(default_factory=DonationStats)
    error: Optional[str] = None


class DashboardSummary(CamelModel):
    """Dashboard overview of a donation context."""
    total_value: Decimal = Decimal("0")
    total_cash_amount: Decimal = Decimal("0")
    total_estimated_value: Decimal = Decimal("0")
    total_donations: int = 0
    monthly_trend: list[MonthlyTrendPoint] = []
    recent_donations: list[UnifiedDonation] = []
    top_categories: list[CategoryBucket] = []
    error: Optional[str] = None


class DonationSearchResponse(CamelModel):
    """Donations matching a text query."""
    query: str
    donations: list[UnifiedDonation] = []
    total_count: int = 0
    error: Optional[str] = None


class AcceptedDonationTypes(CamelModel):
    """Donation types a target accepts."""
    cash: bool = True
    physical: bool = False
    categories: list[str] = []


class StatusUpdateResult(CamelModel):
    """Outcome of a donation status change."""
    success: bool
    error: Optional[str] = None
