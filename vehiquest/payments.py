"""
This module contains the payment-intent creation through Stripe.
"""
import logging

import anyio.to_thread
import stripe

from .config import Settings
from .errors import Internal, InvalidInput

logger = logging.getLogger(__name__)


def amount_in_cents(price) -> int:
    """
    Converts a price to the smallest currency unit.

    Raises:
        InvalidInput: If the price is missing or rounds below one cent.
    """
    try:
        amount = int(float(price) * 100)
    except (TypeError, ValueError):
        raise InvalidInput("Price must be a number") from None
    if amount < 1:
        raise InvalidInput("Price must be at least 0.01")
    return amount


def _create_intent(api_key: str, amount: int) -> str:
    intent = stripe.PaymentIntent.create(
        api_key=api_key,
        amount=amount,
        currency="usd",
        payment_method_types=["card"],
    )
    return intent.client_secret


async def create_payment_intent(price, settings: Settings) -> str:
    """
    Creates a card payment intent for `price` dollars and returns its client secret.

    Args:
        price (float): Amount in dollars.
        settings (Settings): Provides the Stripe secret key.

    Returns:
        str: The client secret the frontend confirms the payment with.
    """
    amount = amount_in_cents(price)
    if not settings.payment_secret_key:
        raise Internal("Payments are not configured", reason="payment_unavailable")

    try:
        client_secret = await anyio.to_thread.run_sync(_create_intent, settings.payment_secret_key, amount)
    except stripe.StripeError as exc:
        logger.error(f"Stripe refused a payment intent of {amount} cents: {exc}")
        raise Internal("The payment processor is unavailable", reason="payment_unavailable") from exc
    logger.info(f"Payment intent created for {amount} cents")
    return client_secret
