"""
User model.
"""
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bridgeneeds.models.base import BaseModel

if TYPE_CHECKING:
    from bridgeneeds.models.organization import Organization


class User(BaseModel):
    """User model for authentication and donor profile."""
    __tablename__ = "users"

    # Core auth fields
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    verified: Mapped[bool] = mapped_column(Boolean, default=False)

    # "individual" donors or "organization" accounts
    account_type: Mapped[str] = mapped_column(String(20), default="individual", nullable=False)

    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Relationships
    owned_organizations: Mapped[list["Organization"]] = relationship(
        "Organization",
        foreign_keys="Organization.owner_id",
        back_populates="owner"
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"
