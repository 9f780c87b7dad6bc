"""
Fundraising campaign model.
"""
from typing import Optional, TYPE_CHECKING
from decimal import Decimal
from sqlalchemy import String, Text, ForeignKey, Numeric, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bridgeneeds.models.base import BaseModel

if TYPE_CHECKING:
    from bridgeneeds.models.organization import Organization


class Campaign(BaseModel):
    """
    Campaign model.

    A fundraising campaign run by an organization. Donations to a campaign
    also count toward the owning organization.
    """
    __tablename__ = "campaigns"

    organization_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="draft", nullable=False)

    goal_amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    raised_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), default=Decimal("0"), nullable=False
    )
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)

    # Accepted donation types; None falls back to the organization's settings
    accepts_cash_donations: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    accepts_physical_donations: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    physical_donation_categories: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    organization: Mapped[Optional["Organization"]] = relationship(
        "Organization",
        foreign_keys=[organization_id],
        back_populates="campaigns"
    )

    def __repr__(self) -> str:
        return f"<Campaign {self.title}>"
