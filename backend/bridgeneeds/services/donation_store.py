"""
Donation record store.

Typed query and insert helpers over the donation tables. Every call opens
its own session from the injected factory, so independent reads can be
awaited concurrently.
"""
from typing import Optional, Iterable, Any
from sqlalchemy import select, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from bridgeneeds.models.campaign import Campaign
from bridgeneeds.models.organization import Organization
from bridgeneeds.models.donation import Donation, Subscription, PaymentStatus
from bridgeneeds.models.physical_donation import PhysicalDonation, DonationItem


class SQLDonationStore:
    """Donation store backed by the application database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _all(self, query) -> list:
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def _one(self, query):
        async with self.session_factory() as session:
            result = await session.execute(query)
            return result.scalar_one_or_none()

    # ========================================================================
    # CASH DONATIONS
    # ========================================================================

    @staticmethod
    def _with_statuses(query, statuses: Optional[Iterable[PaymentStatus]]):
        if statuses:
            query = query.where(Donation.payment_status.in_(list(statuses)))
        return query

    async def cash_donations_for_organization(
        self,
        organization_id: str,
        statuses: Optional[Iterable[PaymentStatus]] = None
    ) -> list[Donation]:
        """Cash donations tagged directly with an organization."""
        query = select(Donation).where(Donation.organization_id == organization_id)
        query = self._with_statuses(query, statuses).order_by(Donation.created.desc())
        return await self._all(query)

    async def cash_donations_for_campaigns(
        self,
        campaign_ids: list[str],
        statuses: Optional[Iterable[PaymentStatus]] = None
    ) -> list[Donation]:
        """Cash donations tagged with any of the given campaigns."""
        if not campaign_ids:
            return []
        query = select(Donation).where(Donation.campaign_id.in_(campaign_ids))
        query = self._with_statuses(query, statuses).order_by(Donation.created.desc())
        return await self._all(query)

    async def cash_donations_for_donor(
        self,
        user_id: Optional[str] = None,
        donor_email: Optional[str] = None,
        statuses: Optional[Iterable[PaymentStatus]] = None
    ) -> list[Donation]:
        """Cash donations made by a donor, matched by user id or email."""
        conditions = []
        if user_id:
            conditions.append(Donation.user_id == user_id)
        if donor_email:
            conditions.append(Donation.donor_email == donor_email)
        if not conditions:
            return []
        query = select(Donation).where(or_(*conditions))
        query = self._with_statuses(query, statuses).order_by(Donation.created.desc())
        return await self._all(query)

    async def cash_donation_page(
        self,
        organization_id: Optional[str] = None,
        user_id: Optional[str] = None,
        statuses: Optional[Iterable[PaymentStatus]] = None,
        limit: int = 50,
        offset: int = 0
    ) -> tuple[list[Donation], int]:
        """
        One page of cash donations, newest first, plus the exact total.

        Args:
            organization_id: Restrict to donations tagged with this organization
            user_id: Restrict to donations made by this user
            statuses: Restrict to these payment statuses
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of (donations, total)
        """
        conditions = []
        if organization_id:
            conditions.append(Donation.organization_id == organization_id)
        if user_id:
            conditions.append(Donation.user_id == user_id)
        if statuses:
            conditions.append(Donation.payment_status.in_(list(statuses)))

        async with self.session_factory() as session:
            count_result = await session.execute(
                select(func.count(Donation.id)).where(*conditions)
            )
            total = count_result.scalar() or 0

            result = await session.execute(
                select(Donation)
                .where(*conditions)
                .order_by(Donation.created.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(result.scalars().all()), total

    async def get_cash_donation(self, donation_id: str) -> Optional[Donation]:
        return await self._one(select(Donation).where(Donation.id == donation_id))

    async def add_cash_donation(self, donation: Donation) -> Donation:
        async with self.session_factory() as session:
            session.add(donation)
            await session.commit()
            await session.refresh(donation)
            return donation

    async def add_subscription(self, subscription: Subscription) -> Subscription:
        async with self.session_factory() as session:
            session.add(subscription)
            await session.commit()
            await session.refresh(subscription)
            return subscription

    # ========================================================================
    # PHYSICAL DONATIONS
    # ========================================================================

    @staticmethod
    def _physical_query():
        return select(PhysicalDonation).options(selectinload(PhysicalDonation.donation_items))

    async def physical_donations_for_organization(self, organization_id: str) -> list[PhysicalDonation]:
        """Physical donations tagged directly with an organization, items included."""
        query = self._physical_query().where(
            PhysicalDonation.organization_id == organization_id
        ).order_by(PhysicalDonation.created.desc())
        return await self._all(query)

    async def physical_donations_for_campaigns(self, campaign_ids: list[str]) -> list[PhysicalDonation]:
        """Physical donations tagged with any of the given campaigns, items included."""
        if not campaign_ids:
            return []
        query = self._physical_query().where(
            PhysicalDonation.campaign_id.in_(campaign_ids)
        ).order_by(PhysicalDonation.created.desc())
        return await self._all(query)

    async def physical_donations_for_donor(
        self,
        user_id: Optional[str] = None,
        donor_email: Optional[str] = None
    ) -> list[PhysicalDonation]:
        """Physical donations made by a donor, matched by user id or email."""
        conditions = []
        if user_id:
            conditions.append(PhysicalDonation.user_id == user_id)
        if donor_email:
            conditions.append(PhysicalDonation.donor_email == donor_email)
        if not conditions:
            return []
        query = self._physical_query().where(or_(*conditions)).order_by(PhysicalDonation.created.desc())
        return await self._all(query)

    async def get_physical_donation(self, donation_id: str) -> Optional[PhysicalDonation]:
        return await self._one(self._physical_query().where(PhysicalDonation.id == donation_id))

    async def add_physical_donation(
        self,
        donation: PhysicalDonation,
        items: list[DonationItem]
    ) -> PhysicalDonation:
        """Insert a physical donation together with its items in one transaction."""
        async with self.session_factory() as session:
            for position, item in enumerate(items):
                item.position = position
            donation.donation_items = items
            session.add(donation)
            await session.commit()

        return await self.get_physical_donation(donation.id)

    async def update_physical_donation(self, donation_id: str, **values: Any) -> Optional[PhysicalDonation]:
        """Set columns on a physical donation; returns None if it does not exist."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(PhysicalDonation).where(PhysicalDonation.id == donation_id)
            )
            donation = result.scalar_one_or_none()
            if donation is None:
                return None
            for field, value in values.items():
                setattr(donation, field, value)
            await session.commit()

        return await self.get_physical_donation(donation_id)

    # ========================================================================
    # DONATION ITEMS
    # ========================================================================

    @staticmethod
    async def _recompute_estimated_value(session: AsyncSession, donation_id: str) -> None:
        """Set a donation's estimated value to the sum of its item totals."""
        await session.flush()
        total = await session.scalar(
            select(func.coalesce(func.sum(DonationItem.total_estimated_value), 0))
            .where(DonationItem.physical_donation_id == donation_id)
        )
        await session.execute(
            update(PhysicalDonation)
            .where(PhysicalDonation.id == donation_id)
            .values(estimated_value=total)
        )

    async def get_donation_item(self, item_id: str) -> Optional[DonationItem]:
        return await self._one(select(DonationItem).where(DonationItem.id == item_id))

    async def add_donation_items(
        self,
        donation_id: str,
        items: list[DonationItem]
    ) -> Optional[PhysicalDonation]:
        """Append items after the existing ones; returns None if the donation does not exist."""
        async with self.session_factory() as session:
            exists = await session.scalar(
                select(PhysicalDonation.id).where(PhysicalDonation.id == donation_id)
            )
            if exists is None:
                return None

            last_position = await session.scalar(
                select(func.max(DonationItem.position))
                .where(DonationItem.physical_donation_id == donation_id)
            )
            start = 0 if last_position is None else last_position + 1
            for offset, item in enumerate(items):
                item.physical_donation_id = donation_id
                item.position = start + offset
                session.add(item)

            await self._recompute_estimated_value(session, donation_id)
            await session.commit()

        return await self.get_physical_donation(donation_id)

    async def update_donation_item(self, item_id: str, **values: Any) -> Optional[DonationItem]:
        """Set columns on an item; returns None if it does not exist."""
        async with self.session_factory() as session:
            item = await session.scalar(select(DonationItem).where(DonationItem.id == item_id))
            if item is None:
                return None
            for field, value in values.items():
                setattr(item, field, value)
            await self._recompute_estimated_value(session, item.physical_donation_id)
            await session.commit()
            return item

    async def remove_donation_item(self, item_id: str) -> Optional[str]:
        """Delete an item; returns its donation's id, or None if the item does not exist."""
        async with self.session_factory() as session:
            item = await session.scalar(select(DonationItem).where(DonationItem.id == item_id))
            if item is None:
                return None
            donation_id = item.physical_donation_id
            await session.delete(item)
            await self._recompute_estimated_value(session, donation_id)
            await session.commit()
            return donation_id

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    async def campaign_ids_for_organization(self, organization_id: str) -> list[str]:
        return await self._all(
            select(Campaign.id).where(Campaign.organization_id == organization_id)
        )

    async def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        return await self._one(select(Campaign).where(Campaign.id == campaign_id))

    async def get_organization(self, organization_id: str) -> Optional[Organization]:
        return await self._one(select(Organization).where(Organization.id == organization_id))
