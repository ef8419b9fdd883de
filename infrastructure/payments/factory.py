"""
Payment Provider Factory
=========================

Builds the payout transfer provider named by ``settings.PAYMENT_PROVIDER``.
"""

import logging
from typing import Literal

from django.conf import settings

from .interface import PaymentProviderInterface

logger = logging.getLogger(__name__)

PaymentBackend = Literal["stripe", "mock"]


class PaymentFactory:
    """
    Factory for payout providers.

    Usage:
        # settings.py
        PAYMENT_PROVIDER = 'stripe'  # 'mock' keeps transfers in memory

        provider = PaymentFactory.create()
        provider.create_transfer(Decimal("25.00"), "usd", "acct_123")
    """

    @staticmethod
    def create(backend: PaymentBackend | None = None) -> PaymentProviderInterface:
        """
        Args:
            backend: 'stripe' or 'mock'; settings.PAYMENT_PROVIDER when None

        Raises:
            ValueError: unknown backend name
        """
        backend_type = backend or getattr(settings, "PAYMENT_PROVIDER", "stripe")
        logger.info(f"Creating payment provider: {backend_type}")

        if backend_type == "stripe":
            from .stripe_provider import StripeProvider

            return StripeProvider()
        if backend_type == "mock":
            from .mock_provider import MockPaymentProvider

            return MockPaymentProvider()

        raise ValueError(f"Invalid payment provider: {backend_type}. Use 'stripe' or 'mock'")
