"""Ownership checks for organization- and campaign-scoped donation data."""
from typing import Optional
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from bridgeneeds.models.organization import Organization
from bridgeneeds.models.campaign import Campaign
from bridgeneeds.models.user import User


async def ensure_org_exists(db: AsyncSession, organization_id: str) -> Organization:
    result = await db.execute(select(Organization).where(Organization.id == organization_id))
    org = result.scalar_one_or_none()
    if org is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")
    return org


async def ensure_campaign_exists(db: AsyncSession, campaign_id: str) -> Campaign:
    result = await db.execute(select(Campaign).where(Campaign.id == campaign_id))
    campaign = result.scalar_one_or_none()
    if campaign is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found")
    return campaign


async def require_org_owner(db: AsyncSession, user: Optional[User], organization_id: str) -> Organization:
    """
    Ensure the user owns the organization.

    Raises 401 without a user, 404 for an unknown organization and 403 when
    someone else owns it.
    """
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    org = await ensure_org_exists(db, organization_id)
    if org.owner_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not the owner of this organization")
    return org


async def require_campaign_owner(db: AsyncSession, user: Optional[User], campaign_id: str) -> Campaign:
    """Ensure the user owns the organization running the campaign."""
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    campaign = await ensure_campaign_exists(db, campaign_id)
    if campaign.organization_id is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Campaign has no owning organization")
    await require_org_owner(db, user, campaign.organization_id)
    return campaign


async def owns_organization(db: AsyncSession, user: Optional[User], organization_id: Optional[str]) -> bool:
    if user is None or not organization_id:
        return False
    result = await db.execute(
        select(Organization.id).where(
            Organization.id == organization_id,
            Organization.owner_id == user.id
        )
    )
    return result.scalar_one_or_none() is not None


async def manages_donation(db: AsyncSession, user: Optional[User], donation) -> bool:
    """
    Whether the user owns the organization that received the donation.

    Donations tagged only with a campaign resolve the organization through
    the campaign.
    """
    if await owns_organization(db, user, donation.organization_id):
        return True
    if user is None or not donation.campaign_id:
        return False
    result = await db.execute(select(Campaign.organization_id).where(Campaign.id == donation.campaign_id))
    return await owns_organization(db, user, result.scalar_one_or_none())


def is_donor(user: Optional[User], donation) -> bool:
    return user is not None and donation.user_id is not None and donation.user_id == user.id
