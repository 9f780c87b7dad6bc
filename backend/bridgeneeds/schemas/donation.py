"""
Pydantic schemas for cash donation endpoints.
"""
from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field

from bridgeneeds.models.donation import TargetType, PaymentStatus, Frequency
from bridgeneeds.schemas.payment import PaymentMethod, PaymentResult
from bridgeneeds.schemas.unified_donation import CamelModel


class DonationFormData(BaseModel):
    """Cash donation form as submitted by a signed-in donor."""
    amount: Optional[Decimal] = None
    custom_amount: Optional[str] = None
    donor_name: Optional[str] = Field(None, max_length=255)
    donor_email: Optional[str] = Field(None, max_length=255)
    donor_phone: Optional[str] = Field(None, max_length=20)
    message: Optional[str] = None
    is_recurring: bool = False
    frequency: Optional[str] = Field(None, pattern="^(monthly|quarterly|yearly)$")
    payment_method: Optional[PaymentMethod] = None
    is_anonymous: bool = False

    # Target
    campaign_id: Optional[str] = None
    organization_id: Optional[str] = None

    def resolved_amount(self) -> Optional[Decimal]:
        """Chosen amount, falling back to the free-form custom amount."""
        if self.amount:
            return self.amount
        if self.custom_amount:
            try:
                return Decimal(self.custom_amount.strip())
            except ArithmeticError:
                return None
        return None


class DonationResult(BaseModel):
    """Outcome of processing a cash donation."""
    success: bool
    donation_id: Optional[str] = None
    error: Optional[str] = None
    errors: dict[str, str] = {}
    payment_result: Optional[PaymentResult] = None
    subscription_id: Optional[str] = None


class CashDonationResponse(BaseModel):
    """Cash donation row."""
    id: str
    amount: Decimal
    currency: str
    target_type: TargetType
    target_name: str
    target_id: Optional[str] = None
    message: Optional[str] = None
    is_recurring: bool = False
    frequency: Optional[Frequency] = None
    payment_status: PaymentStatus
    created: datetime
    processed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CashDonationListResponse(BaseModel):
    """Page of cash donations."""
    donations: list[CashDonationResponse] = []
    total: int = 0
    error: Optional[str] = None


class OrganizationDonationStats(CamelModel):
    """Cash donations received by an organization."""
    total_received: Decimal = Decimal("0")
    donation_count: int = 0
    recurring_donations: int = 0
    campaign_donations: int = 0
    direct_donations: int = 0
    error: Optional[str] = None


class UserDonationStats(CamelModel):
    """Cash donations made by a donor."""
    total_donated: Decimal = Decimal("0")
    donation_count: int = 0
    recurring_donations: int = 0
    error: Optional[str] = None
