"""
Donation services.

Services are plain classes wired with their collaborators (store, payment
gateway, loaders) by the dependencies in ``bridgeneeds.core.deps``.
"""
from bridgeneeds.services.donation_store import SQLDonationStore
from bridgeneeds.services.payment import PaymentSimulator
from bridgeneeds.services.loaders import CashDonationLoader, PhysicalDonationLoader
from bridgeneeds.services.unified_donations import UnifiedDonationService
from bridgeneeds.services.donations import DonationService
from bridgeneeds.services.physical_donations import PhysicalDonationService

__all__ = [
    "SQLDonationStore",
    "PaymentSimulator",
    "CashDonationLoader",
    "PhysicalDonationLoader",
    "UnifiedDonationService",
    "DonationService",
    "PhysicalDonationService",
]
