import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

from django.test import TestCase
from django.utils import timezone

from commission.domain.exceptions import InsufficientBalance, InvalidPayoutState, PayoutProviderError, PayoutValidationError
from commission.domain.services import PayoutService
from commission.domain.services.payout_service import NO_PAYOUT_METHOD, validate_payout_amount
from commission.models import PayoutRequest, StoreEarnings, StorePayoutAccount
from commission.tests.factories import PayoutRequestFactory, StoreEarningsFactory, StorePayoutAccountFactory
from infrastructure.container import container
from infrastructure.payments import PaymentException, PaymentProviderInterface


class ValidatePayoutAmountTest(TestCase):
    def test_valid_amounts(self):
        self.assertEqual(validate_payout_amount("10.5"), Decimal("10.50"))
        self.assertEqual(validate_payout_amount(Decimal("0.01")), Decimal("0.01"))

    def test_invalid_amounts(self):
        for amount in ("0", "-1.00", "10.001", "abc"):
            with self.subTest(amount=amount):
                with self.assertRaises(PayoutValidationError):
                    validate_payout_amount(amount)


class RequestPayoutTest(TestCase):
    def setUp(self):
        self.service = container.payout_service()
        self.earnings = StoreEarningsFactory(store_id="store_1", available_balance=Decimal("300.00"))

    def test_request_reserves_funds(self):
        payout_request = self.service.request_payout("store_1", Decimal("120.00"), bank_details={"iban": "PT50"})

        self.assertEqual(payout_request.status, PayoutRequest.STATUS_PENDING)
        self.assertEqual(payout_request.amount, Decimal("120.00"))
        self.assertEqual(payout_request.currency, "USD")
        self.assertEqual(payout_request.bank_details, {"iban": "PT50"})

        self.earnings.refresh_from_db()
        self.assertEqual(self.earnings.available_balance, Decimal("180.00"))

    def test_request_for_full_balance_allowed(self):
        self.service.request_payout("store_1", Decimal("300.00"))

        self.earnings.refresh_from_db()
        self.assertEqual(self.earnings.available_balance, Decimal("0.00"))

    def test_insufficient_balance_leaves_ledger_untouched(self):
        with self.assertRaises(InsufficientBalance) as ctx:
            self.service.request_payout("store_1", Decimal("500.00"))

        self.assertEqual(ctx.exception.available, Decimal("300.00"))
        self.assertEqual(ctx.exception.requested, Decimal("500.00"))
        self.earnings.refresh_from_db()
        self.assertEqual(self.earnings.available_balance, Decimal("300.00"))
        self.assertFalse(PayoutRequest.objects.exists())

    def test_insufficient_balance_logged_as_warning(self):
        with self.assertLogs("commission.domain.services.payout_service", level="WARNING") as log:
            with self.assertRaises(InsufficientBalance):
                self.service.request_payout("store_1", Decimal("500.00"))

        self.assertEqual([record.levelname for record in log.records], ["WARNING"])
        self.assertIn("rejected for store store_1", log.output[0])

    def test_store_without_ledger_has_no_balance(self):
        with self.assertRaises(InsufficientBalance):
            self.service.request_payout("store_unknown", Decimal("1.00"))

    def test_invalid_amount_rejected(self):
        with self.assertRaises(PayoutValidationError):
            self.service.request_payout("store_1", Decimal("0"))

    def test_history_newest_first(self):
        older = PayoutRequestFactory(store_id="store_1", requested_at=timezone.now() - timedelta(days=3))
        newer = PayoutRequestFactory(store_id="store_1")
        PayoutRequestFactory(store_id="store_2")

        self.assertEqual(self.service.get_store_payout_history("store_1"), [newer, older])


class ProcessManualPayoutTest(TestCase):
    def setUp(self):
        self.provider = container.payment()
        self.service = container.payout_service()
        self.earnings = StoreEarningsFactory(store_id="store_1", available_balance=Decimal("300.00"))

    def test_connected_account_transfer(self):
        StorePayoutAccountFactory(store_id="store_1", store_name="Oak & Co", stripe_account_id="acct_1")
        payout_request = self.service.request_payout("store_1", Decimal("100.00"))

        self.assertTrue(self.service.process_manual_payout(payout_request.id))

        payout_request.refresh_from_db()
        self.assertEqual(payout_request.status, PayoutRequest.STATUS_COMPLETED)
        self.assertEqual(payout_request.payout_method, PayoutRequest.METHOD_STRIPE_CONNECT)
        self.assertTrue(payout_request.transfer_id.startswith("tr_mock_"))
        self.assertIsNotNone(payout_request.processed_at)

        transfer = self.provider.transfers[0]
        self.assertEqual(transfer.amount, 10000)
        self.assertEqual(transfer.destination, "acct_1")
        self.assertEqual(transfer.metadata["payout_request_id"], str(payout_request.id))

        self.earnings.refresh_from_db()
        self.assertEqual(self.earnings.available_balance, Decimal("200.00"))
        self.assertIsNotNone(self.earnings.last_payout_date)
        self.assertIsNone(self.earnings.next_payout_date)

    def test_transfer_description_uses_store_name(self):
        provider = MagicMock(spec=PaymentProviderInterface)
        provider.create_transfer.return_value = MagicMock(transfer_id="tr_1")
        StorePayoutAccountFactory(store_id="store_1", store_name="Oak & Co", stripe_account_id="acct_1")
        service = PayoutService(payment_provider=provider)
        payout_request = service.request_payout("store_1", Decimal("100.00"))

        service.process_manual_payout(payout_request.id)

        kwargs = provider.create_transfer.call_args.kwargs
        self.assertEqual(kwargs["description"], "Manual payout for Oak & Co")
        self.assertEqual(kwargs["amount"], Decimal("100.00"))

    def test_failed_transfer_restores_balance(self):
        StorePayoutAccountFactory(store_id="store_1", stripe_account_id="acct_1")
        payout_request = self.service.request_payout("store_1", Decimal("100.00"))
        self.provider.fail_transfers_with = "Insufficient platform funds"

        self.assertFalse(self.service.process_manual_payout(payout_request.id))

        payout_request.refresh_from_db()
        self.assertEqual(payout_request.status, PayoutRequest.STATUS_FAILED)
        self.assertEqual(payout_request.failure_reason, "Insufficient platform funds")

        self.earnings.refresh_from_db()
        self.assertEqual(self.earnings.available_balance, Decimal("300.00"))

    def test_unexpected_transfer_error_restores_balance(self):
        provider = MagicMock(spec=PaymentProviderInterface)
        provider.create_transfer.side_effect = TimeoutError()
        StorePayoutAccountFactory(store_id="store_1", stripe_account_id="acct_1")
        service = PayoutService(payment_provider=provider)
        payout_request = service.request_payout("store_1", Decimal("100.00"))

        self.assertFalse(service.process_manual_payout(payout_request.id))

        payout_request.refresh_from_db()
        self.assertEqual(payout_request.status, PayoutRequest.STATUS_FAILED)
        self.assertEqual(payout_request.failure_reason, "TimeoutError")
        self.earnings.refresh_from_db()
        self.assertEqual(self.earnings.available_balance, Decimal("300.00"))

    def test_bank_details_without_account_recorded_as_bank_transfer(self):
        payout_request = self.service.request_payout("store_1", Decimal("80.00"), bank_details={"iban": "PT50"})

        self.assertTrue(self.service.process_manual_payout(payout_request.id))

        payout_request.refresh_from_db()
        self.assertEqual(payout_request.status, PayoutRequest.STATUS_COMPLETED)
        self.assertEqual(payout_request.payout_method, PayoutRequest.METHOD_BANK_TRANSFER)
        self.assertRegex(payout_request.transfer_id, r"^bank_\d+$")
        self.assertEqual(self.provider.transfers, [])

    def test_no_payout_method_fails_and_restores(self):
        payout_request = self.service.request_payout("store_1", Decimal("80.00"))

        self.assertFalse(self.service.process_manual_payout(payout_request.id))

        payout_request.refresh_from_db()
        self.assertEqual(payout_request.status, PayoutRequest.STATUS_FAILED)
        self.assertEqual(payout_request.failure_reason, NO_PAYOUT_METHOD)
        self.earnings.refresh_from_db()
        self.assertEqual(self.earnings.available_balance, Decimal("300.00"))

    def test_non_pending_request_rejected(self):
        payout_request = PayoutRequestFactory(store_id="store_1", status=PayoutRequest.STATUS_COMPLETED)

        with self.assertRaises(InvalidPayoutState):
            self.service.process_manual_payout(payout_request.id)

    def test_unknown_request_rejected(self):
        with self.assertRaises(InvalidPayoutState):
            self.service.process_manual_payout(uuid.uuid4())

    def test_malformed_request_id_rejected(self):
        with self.assertRaises(InvalidPayoutState):
            self.service.process_manual_payout("not-a-uuid")

    def test_request_cannot_be_processed_twice(self):
        payout_request = self.service.request_payout("store_1", Decimal("80.00"), bank_details={"iban": "PT50"})
        self.service.process_manual_payout(payout_request.id)

        with self.assertRaises(InvalidPayoutState):
            self.service.process_manual_payout(payout_request.id)


class ProcessAutomaticPayoutTest(TestCase):
    def setUp(self):
        self.provider = container.payment()
        self.service = container.payout_service()
        self.earnings = StoreEarningsFactory(
            store_id="store_auto",
            available_balance=Decimal("250.00"),
            payout_schedule=StoreEarnings.SCHEDULE_AUTOMATIC,
        )
        self.account = StorePayoutAccountFactory(store_id="store_auto", stripe_account_id="acct_auto")

    def test_pays_whole_available_balance(self):
        before = timezone.now()

        self.assertTrue(self.service.process_automatic_payout("store_auto"))

        self.earnings.refresh_from_db()
        self.assertEqual(self.earnings.available_balance, Decimal("0.00"))
        self.assertIsNotNone(self.earnings.last_payout_date)
        self.assertEqual(self.earnings.next_payout_date, self.earnings.last_payout_date + timedelta(days=7))
        self.assertGreaterEqual(self.earnings.last_payout_date, before)

        payout_request = PayoutRequest.objects.get(store_id="store_auto")
        self.assertEqual(payout_request.status, PayoutRequest.STATUS_COMPLETED)
        self.assertEqual(payout_request.amount, Decimal("250.00"))
        self.assertTrue(payout_request.is_automatic)
        self.assertEqual(self.provider.transfers[0].amount, 25000)

    def test_manual_schedule_not_paid(self):
        StoreEarnings.objects.filter(pk=self.earnings.pk).update(payout_schedule=StoreEarnings.SCHEDULE_MANUAL)

        self.assertFalse(self.service.process_automatic_payout("store_auto"))
        self.assertFalse(PayoutRequest.objects.exists())

    def test_missing_account_not_paid(self):
        self.account.delete()

        self.assertFalse(self.service.process_automatic_payout("store_auto"))

        self.earnings.refresh_from_db()
        self.assertEqual(self.earnings.available_balance, Decimal("250.00"))

    def test_zero_balance_not_paid(self):
        StoreEarnings.objects.filter(pk=self.earnings.pk).update(available_balance=Decimal("0.00"))

        self.assertFalse(self.service.process_automatic_payout("store_auto"))
        self.assertEqual(self.provider.transfers, [])

    def test_failed_transfer_restores_balance_and_records_failure(self):
        self.provider.fail_transfers_with = "Account restricted"

        self.assertFalse(self.service.process_automatic_payout("store_auto"))

        self.earnings.refresh_from_db()
        self.assertEqual(self.earnings.available_balance, Decimal("250.00"))
        self.assertIsNone(self.earnings.next_payout_date)

        payout_request = PayoutRequest.objects.get(store_id="store_auto")
        self.assertEqual(payout_request.status, PayoutRequest.STATUS_FAILED)
        self.assertEqual(payout_request.failure_reason, "Account restricted")

    def test_run_automatic_payouts_only_due_stores(self):
        now = timezone.now()
        StoreEarningsFactory(
            store_id="store_later",
            available_balance=Decimal("90.00"),
            payout_schedule=StoreEarnings.SCHEDULE_AUTOMATIC,
            next_payout_date=now + timedelta(days=2),
        )
        StorePayoutAccountFactory(store_id="store_later")
        StoreEarningsFactory(store_id="store_manual", available_balance=Decimal("90.00"))

        result = self.service.run_automatic_payouts(now=now)

        self.assertEqual(result.succeeded, ["store_auto"])
        self.assertTrue(result.ok)
        self.assertEqual(StoreEarnings.objects.get(store_id="store_later").available_balance, Decimal("90.00"))

    def test_run_automatic_payouts_collects_failures(self):
        self.provider.fail_transfers_with = "Account restricted"

        result = self.service.run_automatic_payouts()

        self.assertEqual(result.succeeded, [])
        self.assertEqual(result.failed, [("store_auto", "Account restricted")])

    def test_run_automatic_payouts_skips_ineligible_stores(self):
        self.account.delete()

        result = self.service.run_automatic_payouts()

        self.assertEqual(result.succeeded, [])
        self.assertEqual(result.failed, [])
        self.assertTrue(result.ok)
        self.assertFalse(PayoutRequest.objects.exists())


class SetupExternalPayoutAccountTest(TestCase):
    def setUp(self):
        self.provider = container.payment()
        self.service = container.payout_service()

    def test_links_account_and_returns_onboarding_url(self):
        url = self.service.setup_external_payout_account("store_1", "owner@example.com", store_name="Oak & Co")

        account = StorePayoutAccount.objects.get(store_id="store_1")
        self.assertTrue(account.stripe_account_id.startswith("acct_mock_"))
        self.assertEqual(account.email, "owner@example.com")
        self.assertEqual(url, f"https://connect.example.test/onboarding/{account.stripe_account_id}")

    def test_onboarding_urls_point_at_store_dashboard(self):
        provider = MagicMock(spec=PaymentProviderInterface)
        provider.create_connected_account.return_value = "acct_1"
        provider.create_onboarding_link.return_value = "https://connect.stripe.com/setup/acct_1"
        service = PayoutService(payment_provider=provider)

        with self.settings(FRONTEND_URL="https://shop.example.com/"):
            url = service.setup_external_payout_account("store_1", "owner@example.com")

        self.assertEqual(url, "https://connect.stripe.com/setup/acct_1")
        provider.create_onboarding_link.assert_called_once_with(
            "acct_1",
            refresh_url="https://shop.example.com/store/dashboard?refresh=true",
            return_url="https://shop.example.com/store/dashboard?connected=true",
        )

    def test_relinking_updates_existing_account(self):
        StorePayoutAccountFactory(store_id="store_1", stripe_account_id="acct_old")

        self.service.setup_external_payout_account("store_1", "new@example.com")

        account = StorePayoutAccount.objects.get(store_id="store_1")
        self.assertNotEqual(account.stripe_account_id, "acct_old")
        self.assertEqual(account.email, "new@example.com")

    def test_provider_error_raised_as_payout_provider_error(self):
        provider = MagicMock(spec=PaymentProviderInterface)
        provider.create_connected_account.side_effect = PaymentException("Stripe error: invalid email")
        service = PayoutService(payment_provider=provider)

        with self.assertRaises(PayoutProviderError):
            service.setup_external_payout_account("store_1", "bad")

        self.assertFalse(StorePayoutAccount.objects.exists())
