"""
Service Container Tests
========================

Unit tests for dependency injection container.
"""

from django.test import TestCase, override_settings

from commission.domain.services import (
    BackgroundJobs,
    CommissionCalculator,
    EarningsLedger,
    PayoutService,
    ReportingService,
    SettingsResolver,
    SettlementService,
)
from infrastructure.container import ServiceContainer, container, get_payment_provider
from infrastructure.payments import MockPaymentProvider, PaymentProviderInterface, StripeProvider


class ServiceContainerTest(TestCase):
    """Test ServiceContainer implementation."""

    def setUp(self):
        """Set up test fixtures."""
        # Reset container before each test
        container.reset()

    def test_container_is_singleton(self):
        """Test that ServiceContainer is a singleton."""
        container1 = ServiceContainer()
        container2 = ServiceContainer()

        self.assertIs(container1, container2)
        self.assertIs(container1, container)

    @override_settings(PAYMENT_PROVIDER="stripe", STRIPE_SECRET_KEY="sk_test_fake")
    def test_get_payment_service(self):
        """Test getting payment service from container."""
        payment = container.payment()

        self.assertIsInstance(payment, PaymentProviderInterface)
        self.assertIsInstance(payment, StripeProvider)

        # Second call should return cached instance
        self.assertIs(container.payment(), payment)
        self.assertIs(get_payment_provider(), payment)

    def test_services_are_cached(self):
        self.assertIsInstance(container.settings_resolver(), SettingsResolver)
        self.assertIsInstance(container.calculator(), CommissionCalculator)
        self.assertIsInstance(container.earnings_ledger(), EarningsLedger)
        self.assertIsInstance(container.settlement_service(), SettlementService)
        self.assertIsInstance(container.reporting_service(), ReportingService)

        self.assertIs(container.earnings_ledger(), container.earnings_ledger())
        self.assertIs(container.reporting_service(), container.reporting_service())

    def test_settings_resolver_shared_by_dependents(self):
        resolver = container.settings_resolver()

        self.assertIs(container.calculator().settings_resolver, resolver)
        self.assertIs(container.earnings_ledger().calculator, container.calculator())
        self.assertIs(container.background_jobs().settings_resolver, resolver)

    def test_background_jobs_wiring(self):
        container.payment("mock")
        jobs = container.background_jobs()

        self.assertIsInstance(jobs, BackgroundJobs)
        self.assertIs(jobs.payouts, container.payout_service())
        self.assertIs(jobs.settlement, container.settlement_service())
        self.assertIs(jobs.ledger, container.earnings_ledger())

    def test_switching_payment_backend_rebuilds_payout_service(self):
        container.payment("mock")
        first = container.payout_service()

        provider = container.payment("mock")
        second = container.payout_service()

        self.assertIsNot(first, second)
        self.assertIsInstance(second, PayoutService)
        self.assertIs(second.payment_provider, provider)

    def test_reset_container(self):
        """Test resetting container clears cache."""
        resolver = container.settings_resolver()

        container.reset()

        self.assertIsNot(container.settings_resolver(), resolver)

    def test_configure_for_testing(self):
        provider = container.configure_for_testing()

        self.assertIsInstance(provider, MockPaymentProvider)
        self.assertIs(container.payment(), provider)
        self.assertIs(container.payout_service().payment_provider, provider)
