"""
Payment Infrastructure Tests
==============================

Unit tests for payment provider abstraction layer.
"""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import stripe
from django.test import TestCase, override_settings

from infrastructure.payments import (
    MockPaymentProvider,
    PaymentException,
    PaymentFactory,
    PaymentProviderInterface,
    StripeProvider,
    TransferStatus,
    to_minor_units,
)


class PaymentInterfaceTest(TestCase):
    """Test PaymentProviderInterface contract."""

    def test_interface_is_abstract(self):
        """PaymentProviderInterface should not be instantiable."""
        with self.assertRaises(TypeError):
            PaymentProviderInterface()

    def test_to_minor_units_rounds_half_up(self):
        self.assertEqual(to_minor_units(Decimal("10.50")), 1050)
        self.assertEqual(to_minor_units(Decimal("0.005")), 1)
        self.assertEqual(to_minor_units(Decimal("250")), 25000)


@override_settings(STRIPE_SECRET_KEY="sk_test_fake")
class StripeProviderTest(TestCase):
    """Test StripeProvider implementation."""

    def setUp(self):
        """Set up test fixtures."""
        self.provider = StripeProvider()

    @patch("stripe.Transfer.create")
    def test_create_transfer_success(self, mock_create):
        """Amounts are sent to Stripe in cents."""
        mock_transfer = MagicMock()
        mock_transfer.id = "tr_test_123"
        mock_transfer.amount = 25000
        mock_transfer.currency = "usd"
        mock_transfer.destination = "acct_123"
        mock_create.return_value = mock_transfer

        result = self.provider.create_transfer(
            amount=Decimal("250.00"),
            currency="USD",
            destination_account="acct_123",
            description="Marketplace payout for Oak & Co",
            metadata={"store_id": "store_1"},
        )

        self.assertEqual(result.transfer_id, "tr_test_123")
        self.assertEqual(result.amount, 25000)
        self.assertEqual(result.status, TransferStatus.SUCCEEDED)
        mock_create.assert_called_once_with(
            amount=25000,
            currency="usd",
            destination="acct_123",
            description="Marketplace payout for Oak & Co",
            metadata={"store_id": "store_1"},
        )

    @patch("stripe.Transfer.create")
    def test_create_transfer_error(self, mock_create):
        """Stripe errors surface as PaymentException."""
        mock_create.side_effect = stripe.error.InvalidRequestError("Insufficient funds", param="amount")

        with self.assertRaises(PaymentException) as ctx:
            self.provider.create_transfer(amount=Decimal("10.00"), currency="usd", destination_account="acct_123")

        self.assertIn("Insufficient funds", str(ctx.exception))
        mock_create.assert_called_once()

    @patch("stripe.Account.create")
    def test_create_connected_account(self, mock_create):
        mock_create.return_value = MagicMock(id="acct_new")

        account_id = self.provider.create_connected_account("owner@example.com")

        self.assertEqual(account_id, "acct_new")
        kwargs = mock_create.call_args.kwargs
        self.assertEqual(kwargs["type"], "express")
        self.assertEqual(kwargs["email"], "owner@example.com")
        self.assertTrue(kwargs["capabilities"]["transfers"]["requested"])

    @patch("stripe.Account.create")
    def test_create_connected_account_error(self, mock_create):
        mock_create.side_effect = stripe.error.InvalidRequestError("Invalid email", param="email")

        with self.assertRaises(PaymentException):
            self.provider.create_connected_account("bad")

    @patch("stripe.AccountLink.create")
    def test_create_onboarding_link(self, mock_create):
        mock_create.return_value = MagicMock(url="https://connect.stripe.com/setup/e/acct_new")

        url = self.provider.create_onboarding_link(
            "acct_new", refresh_url="https://shop.test/r", return_url="https://shop.test/done"
        )

        self.assertEqual(url, "https://connect.stripe.com/setup/e/acct_new")
        mock_create.assert_called_once_with(
            account="acct_new",
            refresh_url="https://shop.test/r",
            return_url="https://shop.test/done",
            type="account_onboarding",
        )


class MockPaymentProviderTest(TestCase):
    """Test in-memory provider used by tests and local development."""

    def setUp(self):
        self.provider = MockPaymentProvider()

    def test_records_transfers(self):
        account_id = self.provider.create_connected_account("owner@example.com")

        result = self.provider.create_transfer(Decimal("12.34"), "USD", account_id, metadata={"k": "v"})

        self.assertEqual(self.provider.transfers, [result])
        self.assertEqual(result.amount, 1234)
        self.assertEqual(result.currency, "usd")
        self.assertEqual(result.metadata, {"k": "v"})

    def test_fail_transfers_with(self):
        self.provider.fail_transfers_with = "Account restricted"

        with self.assertRaises(PaymentException):
            self.provider.create_transfer(Decimal("1.00"), "usd", "acct_x")

        self.assertEqual(self.provider.transfers, [])

    def test_onboarding_link_requires_known_account(self):
        with self.assertRaises(PaymentException):
            self.provider.create_onboarding_link("acct_unknown", "https://r", "https://d")

    def test_reset(self):
        self.provider.create_connected_account("owner@example.com")
        self.provider.fail_transfers_with = "nope"

        self.provider.reset()

        self.assertEqual(self.provider.accounts, {})
        self.assertIsNone(self.provider.fail_transfers_with)


class PaymentFactoryTest(TestCase):
    """Test PaymentFactory."""

    @override_settings(PAYMENT_PROVIDER="stripe", STRIPE_SECRET_KEY="sk_test_fake")
    def test_create_from_settings(self):
        self.assertIsInstance(PaymentFactory.create(), StripeProvider)

    def test_create_mock(self):
        self.assertIsInstance(PaymentFactory.create("mock"), MockPaymentProvider)

    def test_create_invalid_backend(self):
        """Test creating provider with invalid backend."""
        with self.assertRaises(ValueError):
            PaymentFactory.create("paypal")
