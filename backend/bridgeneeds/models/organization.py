"""
Organization model.
"""
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Text, ForeignKey, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bridgeneeds.models.base import BaseModel

if TYPE_CHECKING:
    from bridgeneeds.models.user import User
    from bridgeneeds.models.campaign import Campaign


class Organization(BaseModel):
    """Nonprofit organization receiving donations."""
    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    verification_status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Accepted donation types
    accepts_cash_donations: Mapped[bool] = mapped_column(Boolean, default=True)
    accepts_physical_donations: Mapped[bool] = mapped_column(Boolean, default=False)
    physical_donation_categories: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    # Owner relation
    owner_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Relationships
    owner: Mapped["User"] = relationship(
        "User",
        foreign_keys=[owner_id],
        back_populates="owned_organizations"
    )
    campaigns: Mapped[list["Campaign"]] = relationship(
        "Campaign",
        back_populates="organization",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Organization {self.name}>"
