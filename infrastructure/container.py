"""
Dependency Injection Container
================================

Simple service locator for the payment provider and the commission
services that depend on it. Each service is built once, on first use, and
shared by every caller; the settings resolver in particular must be a single
instance so that cache invalidation reaches everyone.

Usage:
    from infrastructure.container import container

    ledger = container.earnings_ledger()
    ledger.record_order_commission(store_id, amount)
"""

import logging
from typing import Optional

from .payments import PaymentFactory, PaymentProviderInterface

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Service container for infrastructure and commission services.

    Implements lazy initialization and caching of service instances.
    Singleton pattern.
    """

    _instance: Optional["ServiceContainer"] = None
    _initialized: bool = False

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize container (only once)."""
        if not self._initialized:
            self._clear()
            self._initialized = True
            logger.info("Service container initialized")

    def _clear(self):
        self._payment: Optional[PaymentProviderInterface] = None
        self._settings_resolver = None
        self._calculator = None
        self._earnings_ledger = None
        self._settlement_service = None
        self._payout_service = None
        self._background_jobs = None
        self._reporting_service = None

    def payment(self, backend: Optional[str] = None) -> PaymentProviderInterface:
        """
        Get payment provider instance.

        Args:
            backend: Payment backend type ('stripe' or 'mock')
                    If None, uses configuration from settings

        Returns:
            PaymentProviderInterface implementation (cached)
        """
        if self._payment is None or backend is not None:
            self._payment = PaymentFactory.create(backend)
            self._payout_service = None
            self._background_jobs = None
            logger.debug(f"Created payment service: {type(self._payment).__name__}")

        return self._payment

    def settings_resolver(self):
        """Get the shared SettingsResolver."""
        if self._settings_resolver is None:
            from commission.domain.services import SettingsResolver

            self._settings_resolver = SettingsResolver()
            logger.debug("Created SettingsResolver")
        return self._settings_resolver

    def calculator(self):
        """Get CommissionCalculator instance."""
        if self._calculator is None:
            from commission.domain.services import CommissionCalculator

            self._calculator = CommissionCalculator(settings_resolver=self.settings_resolver())
            logger.debug("Created CommissionCalculator")
        return self._calculator

    def earnings_ledger(self):
        """Get EarningsLedger instance."""
        if self._earnings_ledger is None:
            from commission.domain.services import EarningsLedger

            self._earnings_ledger = EarningsLedger(calculator=self.calculator())
            logger.debug("Created EarningsLedger")
        return self._earnings_ledger

    def settlement_service(self):
        """Get SettlementService instance."""
        if self._settlement_service is None:
            from commission.domain.services import SettlementService

            self._settlement_service = SettlementService()
            logger.debug("Created SettlementService")
        return self._settlement_service

    def payout_service(self):
        """Get PayoutService instance."""
        if self._payout_service is None:
            from commission.domain.services import PayoutService

            # PayoutService depends on the payment provider
            self._payout_service = PayoutService(payment_provider=self.payment())
            logger.debug("Created PayoutService")
        return self._payout_service

    def background_jobs(self):
        """Get BackgroundJobs instance."""
        if self._background_jobs is None:
            from commission.domain.services import BackgroundJobs

            self._background_jobs = BackgroundJobs(
                settings_resolver=self.settings_resolver(),
                ledger=self.earnings_ledger(),
                settlement=self.settlement_service(),
                payouts=self.payout_service(),
            )
            logger.debug("Created BackgroundJobs")
        return self._background_jobs

    def reporting_service(self):
        """Get ReportingService instance."""
        if self._reporting_service is None:
            from commission.domain.services import ReportingService

            self._reporting_service = ReportingService()
            logger.debug("Created ReportingService")
        return self._reporting_service

    def reset(self):
        """
        Reset all cached service instances.

        Useful for testing or when switching between environments.
        """
        self._clear()
        logger.info("Service container reset")

    def configure_for_testing(self):
        """Configure container with the in-memory payment provider."""
        self.reset()
        self._payment = PaymentFactory.create("mock")
        logger.info("Service container configured for testing")
        return self._payment


# Global singleton instance
container = ServiceContainer()


def get_payment_provider() -> PaymentProviderInterface:
    """Get payment provider from global container."""
    return container.payment()
