"""
SQLAlchemy models for Bridge Needs.

- Accounts: users, organizations, campaigns
- Cash donations: donations, subscriptions
- Physical donations: physical_donations, donation_items
"""
from bridgeneeds.models.user import User
from bridgeneeds.models.organization import Organization
from bridgeneeds.models.campaign import Campaign

from bridgeneeds.models.donation import (
    Donation,
    Subscription,
    TargetType,
    PaymentStatus,
    Frequency,
    SubscriptionStatus,
)
from bridgeneeds.models.physical_donation import (
    PhysicalDonation,
    DonationItem,
    PhysicalDonationStatus,
    PickupPreference,
    ItemCondition,
    DonationItemStatus,
)

__all__ = [
    "User",
    "Organization",
    "Campaign",
    "Donation",
    "Subscription",
    "TargetType",
    "PaymentStatus",
    "Frequency",
    "SubscriptionStatus",
    "PhysicalDonation",
    "DonationItem",
    "PhysicalDonationStatus",
    "PickupPreference",
    "ItemCondition",
    "DonationItemStatus",
]
