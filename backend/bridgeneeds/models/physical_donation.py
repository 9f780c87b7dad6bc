"""
Physical (in-kind) donation models.
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, Text, ForeignKey, Numeric, Integer, Boolean, Date, DateTime, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bridgeneeds.models.base import BaseModel
from bridgeneeds.models.donation import TargetType

if TYPE_CHECKING:
    from bridgeneeds.models.user import User


class PhysicalDonationStatus(str, Enum):
    """
    Status of a physical donation.

    pending -> confirmed -> in_transit -> received, with cancelled/declined
    reachable from pending or confirmed.
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_TRANSIT = "in_transit"
    RECEIVED = "received"
    CANCELLED = "cancelled"
    DECLINED = "declined"


class PickupPreference(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    FLEXIBLE = "flexible"


class ItemCondition(str, Enum):
    NEW = "new"
    LIKE_NEW = "like_new"
    GOOD = "good"
    FAIR = "fair"


class DonationItemStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    RECEIVED = "received"


class PhysicalDonation(BaseModel):
    """In-kind donation made up of one or more donation items."""
    __tablename__ = "physical_donations"

    # Donor
    donor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    donor_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    donor_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False)

    # Target
    target_type: Mapped[TargetType] = mapped_column(
        SQLEnum(
            TargetType,
            name="physicaltargettype",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False
    )
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

    # Logistics
    pickup_preference: Mapped[Optional[PickupPreference]] = mapped_column(
        SQLEnum(
            PickupPreference,
            name="pickuppreference",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=True
    )
    pickup_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pickup_instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    preferred_pickup_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    preferred_time_slot: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Value and status
    estimated_value: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), default=Decimal("0"), nullable=False
    )
    donation_status: Mapped[PhysicalDonationStatus] = mapped_column(
        SQLEnum(
            PhysicalDonationStatus,
            name="physicaldonationstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=PhysicalDonationStatus.PENDING,
        nullable=False,
        index=True
    )
    coordinator_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    user: Mapped[Optional["User"]] = relationship("User", foreign_keys=[user_id])
    donation_items: Mapped[list["DonationItem"]] = relationship(
        "DonationItem",
        back_populates="physical_donation",
        cascade="all, delete-orphan",
        order_by="DonationItem.position"
    )

    def __repr__(self) -> str:
        return f"<PhysicalDonation {self.target_name} ({self.donation_status.value})>"


class DonationItem(BaseModel):
    """Single line item of a physical donation."""
    __tablename__ = "donation_items"

    physical_donation_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("physical_donations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    subcategory: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit: Mapped[str] = mapped_column(String(50), default="pcs", nullable=False)
    condition: Mapped[Optional[ItemCondition]] = mapped_column(
        SQLEnum(
            ItemCondition,
            name="itemcondition",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=True
    )
    estimated_value_per_unit: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=12, scale=2), nullable=True
    )
    # quantity * estimated_value_per_unit, maintained on write
    total_estimated_value: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), default=Decimal("0"), nullable=False
    )
    special_handling_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_fragile: Mapped[bool] = mapped_column(Boolean, default=False)
    requires_refrigeration: Mapped[bool] = mapped_column(Boolean, default=False)
    item_status: Mapped[DonationItemStatus] = mapped_column(
        SQLEnum(
            DonationItemStatus,
            name="donationitemstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=DonationItemStatus.PENDING,
        nullable=False
    )
    decline_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    physical_donation: Mapped["PhysicalDonation"] = relationship(
        "PhysicalDonation",
        back_populates="donation_items"
    )

    def __repr__(self) -> str:
        return f"<DonationItem {self.item_name} x{self.quantity}>"
