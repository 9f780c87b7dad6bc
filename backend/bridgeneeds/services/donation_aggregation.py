"""
Pure functions over unified donations: filtering, sorting, pagination and
statistics. Nothing here touches the database.
"""
from datetime import timezone
from decimal import Decimal
from typing import Iterable, Optional, Any

from bridgeneeds.models.base import as_utc
from bridgeneeds.schemas.unified_donation import (
    CategoryBucket,
    DonationHistoryFilters,
    DonationHistorySort,
    DonationStats,
    MonthlyBucket,
    MonthlyTrendPoint,
    UnifiedDonation,
)

ALL = "all"


def dedupe_by_id(*groups: Iterable[Any]) -> list:
    """
    Union of several record lists, keyed by ``id``.

    The first occurrence of an id wins and order is preserved.
    """
    seen: dict[str, Any] = {}
    for group in groups:
        for record in group:
            if record.id not in seen:
                seen[record.id] = record
    return list(seen.values())


def _is_active(value: Optional[str]) -> bool:
    return value is not None and value != ALL


def filter_donations(
    donations: list[UnifiedDonation],
    filters: Optional[DonationHistoryFilters] = None
) -> list[UnifiedDonation]:
    """
    Keep the donations that pass every active filter.

    ``all`` and ``None`` disable a filter. The date range is inclusive on
    both ends; amount bounds compare ``amount``, else ``estimated_value``,
    else zero.
    """
    if filters is None:
        return list(donations)

    start = end = None
    if filters.date_range is not None:
        start = as_utc(filters.date_range.start)
        end = as_utc(filters.date_range.end)

    def matches(donation: UnifiedDonation) -> bool:
        if _is_active(filters.donation_type) and donation.type != filters.donation_type:
            return False
        if _is_active(filters.status) and donation.status != filters.status:
            return False
        if _is_active(filters.target_type) and donation.target_type != filters.target_type:
            return False
        if start is not None and donation.created_at < start:
            return False
        if end is not None and donation.created_at > end:
            return False
        if filters.min_amount is not None and donation.value < filters.min_amount:
            return False
        if filters.max_amount is not None and donation.value > filters.max_amount:
            return False
        return True

    return [donation for donation in donations if matches(donation)]


def _sort_key(field: str):
    if field in ("amount", "estimated_value"):
        return lambda donation: donation.value
    if field == "donor_name":
        return lambda donation: donation.donor_name.lower()
    return lambda donation: donation.created_at


def sort_donations(
    donations: list[UnifiedDonation],
    sorting: Optional[DonationHistorySort] = None
) -> list[UnifiedDonation]:
    """Stable sort by the requested field; equal keys keep their input order."""
    sorting = sorting or DonationHistorySort()
    return sorted(
        donations,
        key=_sort_key(sorting.field),
        reverse=sorting.direction == "desc",
    )


def paginate(donations: list[UnifiedDonation], page: int, page_size: int) -> list[UnifiedDonation]:
    """Slice ``[(page - 1) * page_size, page * page_size)``."""
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    offset = (page - 1) * page_size
    return donations[offset:offset + page_size]


def has_more(total: int, page: int, page_size: int) -> bool:
    """Whether any donations remain after the given page."""
    return total > (page - 1) * page_size + page_size


def month_key(donation: UnifiedDonation) -> str:
    return as_utc(donation.created_at).astimezone(timezone.utc).strftime("%Y-%m")


def bucket_by_month(donations: Iterable[UnifiedDonation]) -> dict[str, MonthlyBucket]:
    buckets: dict[str, MonthlyBucket] = {}
    for donation in donations:
        key = month_key(donation)
        if key not in buckets:
            buckets[key] = MonthlyBucket(month=key)
        buckets[key].add(donation)
    return buckets


def bucket_by_category(donations: Iterable[UnifiedDonation]) -> dict[str, CategoryBucket]:
    """Tally physical donation items by category."""
    buckets: dict[str, CategoryBucket] = {}
    for donation in donations:
        if donation.type != "physical":
            continue
        for item in donation.donation_items or []:
            if item.category not in buckets:
                buckets[item.category] = CategoryBucket(category=item.category)
            buckets[item.category].add(item)
    return buckets


def merge_monthly_buckets(*maps: dict[str, MonthlyBucket]) -> dict[str, MonthlyBucket]:
    merged: dict[str, MonthlyBucket] = {}
    for buckets in maps:
        for key, bucket in buckets.items():
            merged[key] = merged[key].merge(bucket) if key in merged else bucket.model_copy()
    return merged


def merge_category_buckets(*maps: dict[str, CategoryBucket]) -> dict[str, CategoryBucket]:
    merged: dict[str, CategoryBucket] = {}
    for buckets in maps:
        for key, bucket in buckets.items():
            merged[key] = merged[key].merge(bucket) if key in merged else bucket.model_copy()
    return merged


def top_categories(buckets: dict[str, CategoryBucket], limit: int) -> list[CategoryBucket]:
    """Most frequent categories first; ties keep first-seen order."""
    return sorted(buckets.values(), key=lambda bucket: bucket.count, reverse=True)[:limit]


def calculate_stats(donations: list[UnifiedDonation], top_n: int = 10) -> DonationStats:
    """
    Summarize donations.

    Args:
        donations: Any mix of cash and physical donations
        top_n: Number of item categories to keep

    Returns:
        DonationStats with totals, monthly buckets in ascending month order
        and the top item categories by count
    """
    cash = [d for d in donations if d.type == "cash"]
    physical = [d for d in donations if d.type == "physical"]

    # Bucket each source on its own, then combine
    sources = [cash, physical]
    monthly = merge_monthly_buckets(*(bucket_by_month(source) for source in sources))
    categories = merge_category_buckets(*(bucket_by_category(source) for source in sources))

    return DonationStats(
        total_cash_donations=len(cash),
        total_physical_donations=len(physical),
        total_cash_amount=sum((d.amount or Decimal("0") for d in cash), Decimal("0")),
        total_estimated_value=sum((d.estimated_value or Decimal("0") for d in physical), Decimal("0")),
        donations_by_month=[monthly[key] for key in sorted(monthly)],
        top_categories=top_categories(categories, top_n),
    )


def monthly_trend(stats: DonationStats, months: int) -> list[MonthlyTrendPoint]:
    """The last ``months`` months that had donations, oldest first."""
    if months <= 0:
        return []
    return [
        MonthlyTrendPoint(
            month=bucket.month,
            cash_amount=bucket.cash_amount,
            physical_value=bucket.estimated_value,
            total_donations=bucket.cash_donations + bucket.physical_donations,
        )
        for bucket in stats.donations_by_month[-months:]
    ]


def matches_query(donation: UnifiedDonation, query: str) -> bool:
    """Case-insensitive text match on donor, target, message and items."""
    term = query.strip().lower()
    if not term:
        return True
    if term in donation.donor_name.lower() or term in donation.target_name.lower():
        return True
    if donation.message and term in donation.message.lower():
        return True
    return any(
        term in item.item_name.lower() or term in item.category.lower()
        for item in donation.donation_items or []
    )
