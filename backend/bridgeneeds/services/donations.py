"""
Cash donation service.

Validates the donation form, runs the payment through the gateway, records
the donation and, for recurring gifts, its subscription.
"""
import logging
from decimal import Decimal
from typing import Optional

from bridgeneeds.core.config import settings
from bridgeneeds.models.base import utcnow
from bridgeneeds.models.donation import (
    Donation,
    Subscription,
    TargetType,
    PaymentStatus,
    Frequency,
    SubscriptionStatus,
)
from bridgeneeds.schemas.auth import Viewer
from bridgeneeds.schemas.donation import (
    DonationFormData,
    DonationResult,
    CashDonationResponse,
    CashDonationListResponse,
    OrganizationDonationStats,
    UserDonationStats,
)
from bridgeneeds.schemas.payment import DonationInput
from bridgeneeds.services.exceptions import PaymentError
from bridgeneeds.services.payment import format_amount

logger = logging.getLogger(__name__)

SIGN_IN_REQUIRED = "You must be signed in to make a donation. Please sign in and try again."
GENERAL_FUND = "General Fund"

ANNUAL_MULTIPLIER = {
    "monthly": 12,
    "quarterly": 4,
    "yearly": 1,
}

SUCCEEDED = [PaymentStatus.SUCCEEDED]


def calculate_recurring_total(amount: Decimal, frequency: Optional[str]) -> Decimal:
    """Annual equivalent of a recurring donation."""
    return amount * ANNUAL_MULTIPLIER.get(frequency, 1)


class DonationService:
    """
    Cash donation flow.

    Args:
        store: Donation record store
        gateway: Payment gateway (the payment simulator in this deployment)
    """

    def __init__(
        self,
        store,
        gateway,
        min_amount: Decimal = settings.DONATION_MIN_AMOUNT,
        max_amount: Decimal = settings.DONATION_MAX_AMOUNT,
        currency: str = settings.DEFAULT_CURRENCY,
    ):
        self.store = store
        self.gateway = gateway
        self.min_amount = min_amount
        self.max_amount = max_amount
        self.currency = currency

    def validate_donation_form(self, form: DonationFormData) -> dict[str, str]:
        """Return a field -> message map of form errors (empty when valid)."""
        errors: dict[str, str] = {}

        amount = form.resolved_amount()
        if not amount or amount <= 0:
            errors["amount"] = "Please enter a valid donation amount"
        elif amount < self.min_amount:
            errors["amount"] = f"Minimum donation amount is {format_amount(self.min_amount, self.currency)}"
        elif amount > self.max_amount:
            errors["amount"] = f"Maximum donation amount is {format_amount(self.max_amount, self.currency)}"

        if form.payment_method is None:
            errors["payment_method"] = "Please select a payment method"

        if form.is_recurring and not form.frequency:
            errors["frequency"] = "Please select a frequency for recurring donations"

        return errors

    async def _resolve_target(self, form: DonationFormData) -> tuple[TargetType, Optional[str], str, Optional[str]]:
        """
        Work out (target_type, target_id, target_name, organization_id).

        A campaign wins over an organization and always carries its own
        organization; with neither the donation goes to the general fund.
        """
        organization_id = form.organization_id
        if form.campaign_id:
            campaign = await self.store.get_campaign(form.campaign_id)
            if campaign is None:
                raise LookupError("Campaign not found")
            if organization_id and organization_id != campaign.organization_id:
                raise LookupError("Campaign does not belong to this organization")
            return TargetType.CAMPAIGN, campaign.id, campaign.title, campaign.organization_id

        if organization_id:
            organization = await self.store.get_organization(organization_id)
            if organization is None:
                raise LookupError("Organization not found")
            return TargetType.ORGANIZATION, organization.id, organization.name, organization.id

        return TargetType.GENERAL, None, GENERAL_FUND, None

    async def process_donation(self, form: DonationFormData, viewer: Optional[Viewer]) -> DonationResult:
        """
        Charge and record a cash donation.

        Recurring donations also get a subscription; failing to create it is
        logged and does not fail the donation.
        """
        if viewer is None:
            return DonationResult(success=False, error=SIGN_IN_REQUIRED)

        errors = self.validate_donation_form(form)
        if errors:
            return DonationResult(
                success=False,
                error="Please fix the form errors before submitting",
                errors=errors,
            )

        try:
            target_type, target_id, target_name, organization_id = await self._resolve_target(form)
        except LookupError as exc:
            return DonationResult(success=False, error=str(exc))

        frequency = form.frequency if form.is_recurring else None
        donation_input = DonationInput(
            amount=form.resolved_amount(),
            currency=self.currency,
            donor_email=(form.donor_email or viewer.email).strip(),
            donor_name=(form.donor_name or viewer.name).strip(),
            campaign_id=form.campaign_id,
            organization_id=organization_id,
            is_recurring=form.is_recurring,
            frequency=frequency,
            message=(form.message or "").strip() or None,
        )

        try:
            intent = await self.gateway.create_intent(donation_input)
        except PaymentError as exc:
            logger.warning(f"Payment intent rejected for {viewer.user_id}: {exc}")
            return DonationResult(success=False, error=str(exc))

        payment_result = await self.gateway.confirm(intent, form.payment_method)
        if not payment_result.success:
            return DonationResult(
                success=False,
                error=payment_result.error or "Payment failed",
                payment_result=payment_result,
            )

        donation = Donation(
            amount=donation_input.amount,
            currency=donation_input.currency.upper(),
            donor_name=donation_input.donor_name,
            donor_email=donation_input.donor_email,
            donor_phone=form.donor_phone,
            message=donation_input.message,
            is_anonymous=form.is_anonymous,
            is_recurring=form.is_recurring,
            frequency=Frequency(frequency) if frequency else None,
            payment_intent_id=payment_result.payment_intent.id,
            payment_method_id=form.payment_method.id,
            payment_status=PaymentStatus.SUCCEEDED,
            processed_at=utcnow(),
            target_type=target_type,
            target_id=target_id,
            target_name=target_name,
            user_id=viewer.user_id,
            organization_id=organization_id,
            campaign_id=form.campaign_id,
        )
        try:
            donation = await self.store.add_cash_donation(donation)
        except Exception:
            logger.exception(f"Failed to save donation for payment intent {payment_result.payment_intent.id}")
            return DonationResult(
                success=False,
                error="Failed to save donation to database",
                payment_result=payment_result,
            )

        logger.info(f"Recorded donation {donation.id} of {format_amount(donation.amount, donation.currency)} to {target_name}")

        subscription_id = None
        if form.is_recurring:
            subscription_id = await self._create_subscription(donation, donation_input)

        return DonationResult(
            success=True,
            donation_id=donation.id,
            payment_result=payment_result,
            subscription_id=subscription_id,
        )

    async def _create_subscription(self, donation: Donation, donation_input: DonationInput) -> Optional[str]:
        try:
            plan = await self.gateway.create_subscription(donation_input)
            await self.store.add_subscription(Subscription(
                donation_id=donation.id,
                subscription_id=plan.id,
                status=SubscriptionStatus.ACTIVE,
                amount=plan.amount,
                currency=plan.currency,
                frequency=Frequency(plan.frequency),
                customer_email=plan.customer_email,
                customer_name=plan.customer_name,
                target_type=donation.target_type,
                target_id=donation.target_id,
                target_name=donation.target_name,
                next_payment_date=plan.current_period_end,
            ))
        except Exception:
            logger.exception(f"Failed to create subscription for donation {donation.id}")
            return None
        return plan.id

    async def get_user_donations(
        self,
        viewer: Optional[Viewer],
        limit: int = 50,
        offset: int = 0
    ) -> CashDonationListResponse:
        """Succeeded cash donations made by the signed-in donor, newest first."""
        if viewer is None:
            return CashDonationListResponse(error="You must be signed in to view your donations.")
        try:
            rows, total = await self.store.cash_donation_page(
                user_id=viewer.user_id, statuses=SUCCEEDED, limit=limit, offset=offset
            )
        except Exception:
            logger.exception(f"Failed to load donations for user {viewer.user_id}")
            return CashDonationListResponse(error="Failed to load your donation history. Please try again.")
        return CashDonationListResponse(
            donations=[CashDonationResponse.model_validate(row) for row in rows],
            total=total,
        )

    async def get_organization_received_donations(
        self,
        organization_id: str,
        limit: int = 50,
        offset: int = 0
    ) -> CashDonationListResponse:
        """Succeeded cash donations tagged with an organization, newest first."""
        try:
            rows, total = await self.store.cash_donation_page(
                organization_id=organization_id, statuses=SUCCEEDED, limit=limit, offset=offset
            )
        except Exception:
            logger.exception(f"Failed to load received donations for organization {organization_id}")
            return CashDonationListResponse(error="Failed to load donation history. Please try again.")
        return CashDonationListResponse(
            donations=[CashDonationResponse.model_validate(row) for row in rows],
            total=total,
        )

    async def get_organization_donation_stats(self, organization_id: str) -> OrganizationDonationStats:
        """Totals of the succeeded cash donations tagged with an organization."""
        try:
            donations = await self.store.cash_donations_for_organization(organization_id, SUCCEEDED)
        except Exception:
            logger.exception(f"Failed to load donation stats for organization {organization_id}")
            return OrganizationDonationStats(error="Failed to load donation statistics.")

        return OrganizationDonationStats(
            total_received=sum((Decimal(d.amount) for d in donations), Decimal("0")),
            donation_count=len(donations),
            recurring_donations=sum(1 for d in donations if d.is_recurring),
            campaign_donations=sum(1 for d in donations if TargetType(d.target_type) == TargetType.CAMPAIGN),
            direct_donations=sum(1 for d in donations if TargetType(d.target_type) == TargetType.ORGANIZATION),
        )

    async def get_user_donation_stats(self, viewer: Optional[Viewer]) -> UserDonationStats:
        """Totals of the signed-in donor's succeeded cash donations."""
        if viewer is None:
            return UserDonationStats(error="You must be signed in to view your donation statistics.")
        try:
            donations = await self.store.cash_donations_for_donor(user_id=viewer.user_id, statuses=SUCCEEDED)
        except Exception:
            logger.exception(f"Failed to load donation stats for user {viewer.user_id}")
            return UserDonationStats(error="Failed to load your donation statistics.")

        return UserDonationStats(
            total_donated=sum((Decimal(d.amount) for d in donations), Decimal("0")),
            donation_count=len(donations),
            recurring_donations=sum(1 for d in donations if d.is_recurring),
        )

    def calculate_recurring_total(self, amount: Decimal, frequency: Optional[str]) -> Decimal:
        return calculate_recurring_total(amount, frequency)

    def format_amount(self, amount: Decimal) -> str:
        return format_amount(amount, self.currency)
