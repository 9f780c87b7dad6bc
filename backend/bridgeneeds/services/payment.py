"""
Payment simulator.

Stands in for a payment gateway: intents and confirmations are fabricated
after an artificial delay, and confirmations may be declined at a
configurable rate. A real gateway client would implement the same three
coroutines.
"""
import asyncio
import logging
import random
import string
import time
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from dateutil.relativedelta import relativedelta

from bridgeneeds.schemas.payment import (
    DonationInput,
    PaymentIntent,
    PaymentMethod,
    PaymentResult,
    SubscriptionPlan,
)
from bridgeneeds.services.exceptions import PaymentError

logger = logging.getLogger(__name__)

MIN_PAYMENT_AMOUNT = Decimal("1")

INVALID_DETAILS_MESSAGE = "Invalid payment details provided."
DECLINED_MESSAGE = "Payment was declined. Please try again."

PERIOD_BY_FREQUENCY = {
    "monthly": relativedelta(months=1),
    "quarterly": relativedelta(months=3),
    "yearly": relativedelta(years=1),
}

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "CAD": "CA$", "AUD": "A$"}


def format_amount(amount: Decimal, currency: str = "USD") -> str:
    """Format an amount for display, e.g. ``$1,234.50``."""
    quantized = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    code = currency.upper()
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{code} {quantized:,.2f}"
    if quantized < 0:
        return f"-{symbol}{-quantized:,.2f}"
    return f"{symbol}{quantized:,.2f}"


class PaymentSimulator:
    """
    Simulated payment gateway.

    Args:
        processing_delay: Seconds awaited before every gateway call returns
        failure_rate: Probability in [0, 1] that a confirmation is declined
        max_amount: Largest accepted payment amount
        rng: Random source, injectable for deterministic tests
    """

    def __init__(
        self,
        processing_delay: float = 1.5,
        failure_rate: float = 0.0,
        max_amount: Decimal = Decimal("500000"),
        rng: Optional[random.Random] = None,
    ):
        if not 0 <= failure_rate <= 1:
            raise ValueError("failure_rate must be between 0 and 1")
        self.processing_delay = processing_delay
        self.failure_rate = failure_rate
        self.max_amount = max_amount
        self.rng = rng or random.Random()

    def _random_suffix(self, length: int) -> str:
        return "".join(self.rng.choices(string.ascii_lowercase + string.digits, k=length))

    def _generate_id(self, prefix: str) -> str:
        return f"{prefix}_{int(time.time() * 1000)}_{self._random_suffix(9)}"

    async def _simulate_network_request(self) -> None:
        if self.processing_delay > 0:
            await asyncio.sleep(self.processing_delay)

    def validate_amount(self, amount: Decimal) -> None:
        if amount is None or amount <= 0:
            raise PaymentError("Invalid donation amount")
        if amount < MIN_PAYMENT_AMOUNT:
            raise PaymentError(f"Minimum donation amount is {format_amount(MIN_PAYMENT_AMOUNT)}")
        if amount > self.max_amount:
            raise PaymentError(f"Maximum donation amount is {format_amount(self.max_amount)}")

    async def create_intent(self, donation: DonationInput) -> PaymentIntent:
        """
        Create a payment intent for a donation.

        Raises:
            PaymentError: If the amount is outside the accepted range
        """
        self.validate_amount(donation.amount)
        await self._simulate_network_request()

        intent_id = self._generate_id("pi")
        client_secret = f"{intent_id}_secret_{self._random_suffix(16)}"

        intent = PaymentIntent(
            id=intent_id,
            amount=donation.amount,
            currency=donation.currency.lower(),
            status="requires_payment_method",
            client_secret=client_secret,
            metadata={
                "donorEmail": donation.donor_email,
                "donorName": donation.donor_name,
                "campaignId": donation.campaign_id or "",
                "organizationId": donation.organization_id or "",
                "message": donation.message or "",
            },
        )
        logger.info(f"Created payment intent {intent.id} for {format_amount(donation.amount, donation.currency)}")
        return intent

    async def confirm(
        self,
        intent: Optional[PaymentIntent],
        method: Optional[PaymentMethod],
    ) -> PaymentResult:
        """Confirm a payment intent with the donor's payment method."""
        await self._simulate_network_request()

        if intent is None or method is None or not intent.client_secret:
            return PaymentResult(success=False, error=INVALID_DETAILS_MESSAGE)

        if self.failure_rate and self.rng.random() < self.failure_rate:
            logger.warning(f"Simulated decline for payment intent {intent.id}")
            return PaymentResult(
                success=False,
                payment_intent=intent.model_copy(update={"status": "canceled"}),
                error=DECLINED_MESSAGE,
            )

        return PaymentResult(
            success=True,
            payment_intent=intent.model_copy(update={"status": "succeeded"}),
            transaction_id=self._generate_id("txn"),
        )

    async def create_subscription(self, donation: DonationInput) -> SubscriptionPlan:
        """
        Create a recurring subscription for a donation.

        Raises:
            PaymentError: If the donation is not recurring or the amount is invalid
        """
        if not donation.is_recurring or not donation.frequency:
            raise PaymentError("Subscription data is required for recurring donations")
        period = PERIOD_BY_FREQUENCY.get(donation.frequency)
        if period is None:
            raise PaymentError(f"Unsupported donation frequency: {donation.frequency}")

        self.validate_amount(donation.amount)
        await self._simulate_network_request()

        now = datetime.now(timezone.utc)
        return SubscriptionPlan(
            id=self._generate_id("sub"),
            status="active",
            amount=donation.amount,
            currency=donation.currency.lower(),
            frequency=donation.frequency,
            customer_email=donation.donor_email,
            customer_name=donation.donor_name,
            metadata={
                "campaignId": donation.campaign_id or "",
                "organizationId": donation.organization_id or "",
                "message": donation.message or "",
            },
            current_period_end=now + period,
            created=now,
        )

    def format_amount(self, amount: Decimal, currency: str = "USD") -> str:
        return format_amount(amount, currency)
