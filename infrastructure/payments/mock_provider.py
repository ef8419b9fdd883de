"""
Mock Payment Provider
=====================

Mock implementation of PaymentProviderInterface for testing.
Records transfers in memory instead of moving real money.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .interface import PaymentException, PaymentProviderInterface, TransferResult, to_minor_units

logger = logging.getLogger(__name__)


class MockPaymentProvider(PaymentProviderInterface):
    """
    Mock payment provider for testing and development.

    Instead of calling a processor, this provider:
        - Logs all operations
        - Stores accounts and transfers in memory for verification
        - Fails transfers on demand via ``fail_transfers_with``

    Useful for:
        - Unit testing
        - Development environments
        - CI/CD pipelines
    """

    def __init__(self, base_onboarding_url: str = "https://connect.example.test/onboarding"):
        self.base_onboarding_url = base_onboarding_url
        self.accounts: Dict[str, str] = {}
        self.transfers: List[TransferResult] = []
        self.fail_transfers_with: Optional[str] = None

    def create_connected_account(self, email: str) -> str:
        account_id = f"acct_mock_{uuid.uuid4().hex[:16]}"
        self.accounts[account_id] = email
        logger.info(f"[MOCK PAYMENTS] Created account {account_id} for {email}")
        return account_id

    def create_onboarding_link(self, account_id: str, refresh_url: str, return_url: str) -> str:
        if account_id not in self.accounts:
            raise PaymentException(f"No such account: {account_id}")
        return f"{self.base_onboarding_url}/{account_id}"

    def create_transfer(
        self,
        amount: Decimal,
        currency: str,
        destination_account: str,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TransferResult:
        if self.fail_transfers_with:
            logger.info(f"[MOCK PAYMENTS] Failing transfer to {destination_account}: {self.fail_transfers_with}")
            raise PaymentException(self.fail_transfers_with)

        transfer = TransferResult(
            transfer_id=f"tr_mock_{uuid.uuid4().hex[:16]}",
            amount=to_minor_units(amount),
            currency=currency.lower(),
            destination=destination_account,
            metadata=metadata or {},
        )
        self.transfers.append(transfer)

        logger.info(f"[MOCK PAYMENTS] Transfer {transfer.transfer_id}: {transfer.amount} {currency} to {destination_account}")
        return transfer

    def reset(self):
        """Clear recorded accounts and transfers."""
        self.accounts.clear()
        self.transfers.clear()
        self.fail_transfers_with = None
