"""
Stripe Payment Provider
========================

Concrete implementation of PaymentProviderInterface using Stripe Connect.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import stripe
from django.conf import settings
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .interface import (
    PaymentException,
    PaymentProviderInterface,
    TransferResult,
    TransferStatus,
    to_minor_units,
)

logger = logging.getLogger(__name__)

RETRYABLE_STRIPE_ERRORS = (
    stripe.error.RateLimitError,
    stripe.error.APIConnectionError,
    stripe.error.APIError,
)

# Rate limits and transient API failures are retried; card and request errors are not
stripe_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(RETRYABLE_STRIPE_ERRORS),
    reraise=True,
)


class StripeProvider(PaymentProviderInterface):
    """
    Stripe payment provider implementation.

    Configuration (in settings.py):
        STRIPE_SECRET_KEY: Stripe secret API key
    """

    def __init__(self):
        """Initialize Stripe provider with API credentials."""
        stripe.api_key = getattr(settings, "STRIPE_SECRET_KEY", "")
        stripe.max_network_retries = 0  # tenacity owns the retry policy

        if not stripe.api_key:
            logger.warning("STRIPE_SECRET_KEY not configured")

    @stripe_retry
    def _create_account_api(self, **kwargs):
        """Internal method to create a connected account with retries."""
        return stripe.Account.create(**kwargs)

    def create_connected_account(self, email: str) -> str:
        """
        Create a Stripe Express account able to receive transfers.

        Args:
            email: Store owner's email

        Returns:
            Stripe account ID (acct_...)

        Raises:
            PaymentException: If account creation fails
        """
        try:
            account = self._create_account_api(
                type="express",
                email=email,
                capabilities={
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
            )

            logger.info(f"Created Stripe connected account: {account.id}")

            return account.id

        except stripe.error.StripeError as e:
            logger.error(f"Stripe account creation failed: {str(e)}")
            raise PaymentException(f"Failed to create connected account: {str(e)}") from e

    @stripe_retry
    def _create_account_link_api(self, **kwargs):
        return stripe.AccountLink.create(**kwargs)

    def create_onboarding_link(self, account_id: str, refresh_url: str, return_url: str) -> str:
        """
        Create a Stripe account onboarding link.

        Args:
            account_id: Stripe account ID
            refresh_url: Redirect when the link expires
            return_url: Redirect when onboarding completes

        Returns:
            Onboarding URL

        Raises:
            PaymentException: If link creation fails
        """
        try:
            account_link = self._create_account_link_api(
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
            )

            logger.info(f"Created onboarding link for account {account_id}")

            return account_link.url

        except stripe.error.StripeError as e:
            logger.error(f"Failed to create onboarding link for {account_id}: {str(e)}")
            raise PaymentException(f"Onboarding link creation failed: {str(e)}") from e

    @stripe_retry
    def _create_transfer_api(self, **kwargs):
        return stripe.Transfer.create(**kwargs)

    def create_transfer(
        self,
        amount: Decimal,
        currency: str,
        destination_account: str,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TransferResult:
        """
        Create a transfer to a connected account.

        Args:
            amount: Amount to transfer in major units
            currency: Currency code
            destination_account: Destination Stripe account ID
            description: Transfer description
            metadata: Optional metadata

        Returns:
            TransferResult

        Raises:
            PaymentException: If transfer fails, including timeouts after retries
        """
        try:
            amount_cents = to_minor_units(amount)

            transfer_params = {
                "amount": amount_cents,
                "currency": currency.lower(),
                "destination": destination_account,
            }

            if description:
                transfer_params["description"] = description

            if metadata:
                transfer_params["metadata"] = metadata

            transfer = self._create_transfer_api(**transfer_params)

            logger.info(f"Created Stripe transfer: {transfer.id} to {destination_account}")

            return TransferResult(
                transfer_id=transfer.id,
                amount=transfer.amount,
                currency=transfer.currency,
                destination=transfer.destination,
                status=TransferStatus.SUCCEEDED,  # Transfers are synchronous
                metadata=metadata or {},
            )

        except stripe.error.StripeError as e:
            logger.error(f"Stripe transfer failed: {str(e)}")
            raise PaymentException(f"Transfer failed: {str(e)}") from e
