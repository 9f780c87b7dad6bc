"""
Pydantic schemas for the payment simulator.
"""
from typing import Optional, Literal
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class DonationInput(BaseModel):
    """What the payment layer needs to know about a donation."""
    amount: Decimal
    currency: str = "USD"
    donor_email: str
    donor_name: str
    campaign_id: Optional[str] = None
    organization_id: Optional[str] = None
    is_recurring: bool = False
    frequency: Optional[str] = None  # monthly, quarterly, yearly
    message: Optional[str] = None


class CardDetails(BaseModel):
    brand: str
    last4: str = Field(..., min_length=4, max_length=4)
    exp_month: int = Field(..., ge=1, le=12)
    exp_year: int


class PaymentMethod(BaseModel):
    """Payment method supplied by the donor."""
    id: str
    type: Literal["card", "bank_account", "digital_wallet"] = "card"
    card: Optional[CardDetails] = None


class PaymentIntent(BaseModel):
    """Simulated payment intent."""
    id: str
    amount: Decimal
    currency: str
    status: Literal[
        "requires_payment_method",
        "requires_confirmation",
        "processing",
        "canceled",
        "succeeded",
    ]
    client_secret: str
    metadata: dict[str, str] = {}


class PaymentResult(BaseModel):
    """Outcome of confirming a payment intent."""
    success: bool
    payment_intent: Optional[PaymentIntent] = None
    error: Optional[str] = None
    transaction_id: Optional[str] = None


class SubscriptionPlan(BaseModel):
    """Simulated recurring donation subscription."""
    id: str
    status: Literal["active", "canceled", "past_due", "incomplete"] = "active"
    amount: Decimal
    currency: str
    frequency: str
    customer_email: str
    customer_name: str
    metadata: dict[str, str] = {}
    current_period_end: datetime
    created: datetime
