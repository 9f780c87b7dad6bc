"""
Domain exceptions raised by the donation services.
"""
from typing import Optional


class PaymentError(Exception):
    """Payment intent or subscription could not be created."""


class DonationValidationError(Exception):
    """A physical donation form failed validation."""

    def __init__(self, errors: list):
        self.errors = errors
        super().__init__(", ".join(e.message for e in errors))


class InvalidStatusTransition(Exception):
    """A physical donation cannot move from its current status to the requested one."""

    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        self.current = current
        self.requested = requested
        super().__init__(message or f"Cannot change donation status from {current} to {requested}")
