"""
Payment Provider Interface
===========================

Abstract base class defining the contract for payout transfers.
The commission engine only needs three capabilities from a payment
processor: open a connected account for a store, hand the store owner an
onboarding link, and move money to that account.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Optional


class TransferStatus(str, Enum):
    """Transfer status enumeration."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class TransferResult:
    """
    Represents a completed transfer to a connected account.

    Attributes:
        transfer_id: Provider reference for the transfer
        amount: Transferred amount in smallest currency unit (cents)
        currency: ISO currency code (e.g., 'usd')
        destination: Destination account identifier
        status: Transfer status
        metadata: Additional custom data
    """

    transfer_id: str
    amount: int
    currency: str
    destination: str
    status: TransferStatus = TransferStatus.SUCCEEDED
    metadata: Dict[str, Any] = field(default_factory=dict)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit decimal amount (10.50) to cents (1050)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentProviderInterface(ABC):
    """
    Abstract interface for payment provider operations.

    Concrete implementations:
        - StripeProvider: Stripe Connect transfers
        - MockPaymentProvider: in-memory provider for tests and local development
    """

    @abstractmethod
    def create_connected_account(self, email: str) -> str:
        """
        Create a connected (payout) account for a store owner.

        Args:
            email: Store owner's email address

        Returns:
            Provider account identifier

        Raises:
            PaymentException: If account creation fails
        """
        pass

    @abstractmethod
    def create_onboarding_link(self, account_id: str, refresh_url: str, return_url: str) -> str:
        """
        Create an onboarding link the store owner follows to finish account setup.

        Args:
            account_id: Connected account identifier
            refresh_url: URL the provider redirects to when the link expires
            return_url: URL the provider redirects to once onboarding is done

        Returns:
            Onboarding URL

        Raises:
            PaymentException: If link creation fails
        """
        pass

    @abstractmethod
    def create_transfer(
        self,
        amount: Decimal,
        currency: str,
        destination_account: str,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TransferResult:
        """
        Create a transfer to a connected account (e.g. store payout).

        Args:
            amount: Amount to transfer in major currency units (converted to cents here)
            currency: Currency code
            destination_account: Destination account ID (e.g. Stripe Connect ID)
            description: Human readable description shown on the transfer
            metadata: Optional metadata

        Returns:
            TransferResult with the provider reference

        Raises:
            PaymentException: If transfer fails or times out
        """
        pass


class PaymentException(Exception):
    """Base exception for payment operations."""

    pass
