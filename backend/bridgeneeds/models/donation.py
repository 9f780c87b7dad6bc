"""
Cash donation and recurring subscription models.
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, Text, ForeignKey, Numeric, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bridgeneeds.models.base import BaseModel

if TYPE_CHECKING:
    from bridgeneeds.models.user import User
    from bridgeneeds.models.organization import Organization
    from bridgeneeds.models.campaign import Campaign


class TargetType(str, Enum):
    """Recipient of a donation."""
    CAMPAIGN = "campaign"
    ORGANIZATION = "organization"
    GENERAL = "general"


class PaymentStatus(str, Enum):
    """Status of a cash donation payment."""
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class Frequency(str, Enum):
    """Recurrence of a recurring donation."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    PAUSED = "paused"


def _enum(enum_cls, name: str) -> SQLEnum:
    # Store lowercase values in DB
    return SQLEnum(
        enum_cls,
        name=name,
        create_constraint=True,
        values_callable=lambda x: [e.value for e in x]
    )


class Donation(BaseModel):
    """
    Cash donation model.

    Historical rows may carry only ``campaign_id`` or only ``organization_id``;
    newer rows carry both when the donation targets a campaign.
    """
    __tablename__ = "donations"

    # Amount
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)

    # Donor
    donor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    donor_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    donor_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False)

    # Recurrence
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False)
    frequency: Mapped[Optional[Frequency]] = mapped_column(_enum(Frequency, "donationfrequency"), nullable=True)

    # Payment information
    payment_intent_id: Mapped[str] = mapped_column(String(255), nullable=False)
    payment_method_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _enum(PaymentStatus, "paymentstatus"),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Target
    target_type: Mapped[TargetType] = mapped_column(_enum(TargetType, "donationtargettype"), nullable=False)
    target_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    target_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relations
    user_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    organization_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    campaign_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("campaigns.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    user: Mapped[Optional["User"]] = relationship("User", foreign_keys=[user_id])
    organization: Mapped[Optional["Organization"]] = relationship("Organization", foreign_keys=[organization_id])
    campaign: Mapped[Optional["Campaign"]] = relationship("Campaign", foreign_keys=[campaign_id])

    def __repr__(self) -> str:
        return f"<Donation {self.amount} {self.currency} ({self.payment_status.value})>"


class Subscription(BaseModel):
    """Recurring donation subscription created alongside the first donation."""
    __tablename__ = "subscriptions"

    donation_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("donations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    subscription_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    status: Mapped[SubscriptionStatus] = mapped_column(
        _enum(SubscriptionStatus, "subscriptionstatus"),
        default=SubscriptionStatus.ACTIVE,
        nullable=False,
        index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    frequency: Mapped[Frequency] = mapped_column(_enum(Frequency, "subscriptionfrequency"), nullable=False)

    customer_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)

    target_type: Mapped[TargetType] = mapped_column(_enum(TargetType, "subscriptiontargettype"), nullable=False)
    target_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    target_name: Mapped[str] = mapped_column(String(255), nullable=False)

    next_payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    donation: Mapped["Donation"] = relationship("Donation", foreign_keys=[donation_id])

    def __repr__(self) -> str:
        return f"<Subscription {self.subscription_id} ({self.status.value})>"
