"""
Payment Service Abstraction Layer
==================================

Provides a unified interface for payout transfers across payment providers.
"""

from .factory import PaymentFactory
from .interface import (
    PaymentException,
    PaymentProviderInterface,
    TransferResult,
    TransferStatus,
    to_minor_units,
)
from .mock_provider import MockPaymentProvider
from .stripe_provider import StripeProvider

__all__ = [
    "PaymentProviderInterface",
    "TransferResult",
    "TransferStatus",
    "PaymentException",
    "to_minor_units",
    "StripeProvider",
    "MockPaymentProvider",
    "PaymentFactory",
]
