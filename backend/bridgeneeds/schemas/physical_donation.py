"""
Pydantic schemas for physical (in-kind) donation endpoints.

Form fields are deliberately loose; the physical donation service reports
missing or invalid values with stable error codes.
"""
from typing import Optional
from datetime import date
from decimal import Decimal
from pydantic import BaseModel, Field

from bridgeneeds.schemas.unified_donation import CamelModel, DonationItemView, UnifiedDonation


class DonationItemCreate(BaseModel):
    """One item of a physical donation form."""
    category: Optional[str] = None
    subcategory: Optional[str] = None
    item_name: Optional[str] = None
    description: Optional[str] = None
    quantity: int = 0
    unit: str = "pcs"
    condition: Optional[str] = Field(None, pattern="^(new|like_new|good|fair)$")
    estimated_value_per_unit: Optional[Decimal] = None
    special_handling_notes: Optional[str] = None
    expiry_date: Optional[date] = None
    is_fragile: bool = False
    requires_refrigeration: bool = False


class PhysicalDonationCreate(BaseModel):
    """Physical donation form."""
    donor_name: Optional[str] = None
    donor_email: Optional[str] = None
    donor_phone: Optional[str] = Field(None, max_length=20)
    message: Optional[str] = None
    is_anonymous: bool = False

    target_type: str = Field(default="organization", pattern="^(campaign|organization|general)$")
    target_id: Optional[str] = None
    target_name: Optional[str] = None

    pickup_preference: Optional[str] = Field(None, pattern="^(pickup|delivery|flexible)$")
    pickup_address: Optional[str] = None
    pickup_instructions: Optional[str] = None
    preferred_pickup_date: Optional[date] = None
    preferred_time_slot: Optional[str] = Field(None, max_length=50)

    items: list[DonationItemCreate] = []


class DonationError(BaseModel):
    """A single validation failure."""
    code: str
    message: str
    field: Optional[str] = None


class PhysicalDonationResult(BaseModel):
    """Outcome of creating a physical donation."""
    success: bool
    donation: Optional[UnifiedDonation] = None
    error: Optional[str] = None
    errors: list[DonationError] = []


class PhysicalDonationStatusUpdate(BaseModel):
    """Status change requested by an organization coordinator."""
    status: str = Field(..., pattern="^(pending|confirmed|in_transit|received|cancelled|declined)$")
    coordinator_notes: Optional[str] = None


class PhysicalDonationCancel(BaseModel):
    """Cancellation request."""
    reason: Optional[str] = None


class PhysicalDonationStats(CamelModel):
    """Physical donations received by an organization."""
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    received: int = 0
    estimated_value: Decimal = Decimal("0")
    error: Optional[str] = None


class DonationItemsAdd(BaseModel):
    """Items added to an existing physical donation."""
    items: list[DonationItemCreate] = []


class DonationItemUpdate(BaseModel):
    """Partial item edit; fields left out keep their current value."""
    category: Optional[str] = None
    subcategory: Optional[str] = None
    item_name: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[int] = None
    unit: Optional[str] = None
    condition: Optional[str] = Field(None, pattern="^(new|like_new|good|fair)$")
    estimated_value_per_unit: Optional[Decimal] = None
    special_handling_notes: Optional[str] = None
    expiry_date: Optional[date] = None
    is_fragile: Optional[bool] = None
    requires_refrigeration: Optional[bool] = None


class DonationItemStatusUpdate(BaseModel):
    """Coordinator decision on a single item."""
    status: str = Field(..., pattern="^(pending|accepted|declined|received)$")
    decline_reason: Optional[str] = None


class DonationItemResult(BaseModel):
    """Outcome of an item change."""
    success: bool
    item: Optional[DonationItemView] = None
    error: Optional[str] = None
