"""
Payout orchestration.

Payout request lifecycle::

    pending -> processing -> completed
                          -> failed   (reserved amount returned to available_balance)

Funds are reserved from ``StoreEarnings.available_balance`` under a row lock
and committed before the payment provider is called, so a slow transfer
never holds a database lock. When the transfer fails the reservation is
handed back in a second locked transaction.
"""

import time
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from infrastructure.payments import PaymentException, PaymentProviderInterface
from utils.service_base import BaseService, BatchResult
from utils.transaction_utils import locked_row, retry_on_deadlock

from ...infra.observability.metrics import payout_volume_total
from ..exceptions import (
    CommissionValidationError,
    InsufficientBalance,
    InvalidPayoutState,
    LedgerUpdateError,
    PayoutProviderError,
    PayoutValidationError,
)
from ..models import PayoutRequest, StoreEarnings, StorePayoutAccount
from .commission_calculator import CENTS, ZERO, to_decimal


NO_PAYOUT_METHOD = "No payout method available"


def validate_payout_amount(amount) -> Decimal:
    try:
        value = to_decimal(amount)
    except CommissionValidationError as e:
        raise PayoutValidationError(str(e)) from e
    if value <= 0:
        raise PayoutValidationError(f"Payout amount must be positive: {value}")
    if value != value.quantize(CENTS):
        raise PayoutValidationError(f"Payout amount must have at most 2 decimal places: {value}")
    return value.quantize(CENTS)


class PayoutService(BaseService):
    def __init__(
        self,
        payment_provider: PaymentProviderInterface,
        payout_interval_days: Optional[int] = None,
        currency: Optional[str] = None,
    ):
        super().__init__()
        self.payment_provider = payment_provider
        interval = payout_interval_days if payout_interval_days is not None else settings.COMMISSION_PAYOUT_INTERVAL_DAYS
        self.payout_interval = timedelta(days=interval)
        self.currency = (currency or settings.PAYOUT_CURRENCY).upper()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    @retry_on_deadlock()
    def request_payout(self, store_id: str, amount, bank_details: Optional[dict] = None) -> PayoutRequest:
        """
        Reserve ``amount`` from the store's available balance and open a pending request.

        Raises:
            PayoutValidationError: amount is not a positive value with at most 2 decimals
            InsufficientBalance: no ledger for the store, or amount exceeds available balance
        """
        amount = validate_payout_amount(amount)

        with locked_row(StoreEarnings.objects.filter(store_id=store_id)) as earnings:
            available = earnings.available_balance if earnings is not None else ZERO
            if earnings is None or amount > available:
                self.logger.warning(f"Payout of {amount} rejected for store {store_id}: available {available}")
                raise InsufficientBalance(store_id, amount, available)

            earnings.available_balance -= amount
            earnings.save(update_fields=["available_balance", "updated_at"])

            payout_request = PayoutRequest.objects.create(
                store_id=store_id,
                amount=amount,
                currency=self.currency,
                status=PayoutRequest.STATUS_PENDING,
                bank_details=bank_details or None,
            )

        self.logger.info(f"Payout request {payout_request.id} created for store {store_id}: {amount} reserved")
        return payout_request

    def get_store_payout_history(self, store_id: str) -> List[PayoutRequest]:
        return list(PayoutRequest.objects.filter(store_id=store_id).order_by("-requested_at"))

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    @BaseService.log_performance
    def process_automatic_payout(self, store_id: str) -> bool:
        """
        Pay a store's whole available balance to its connected account.

        Returns False, without raising, when the store is not eligible or any
        step fails; the next scheduled run tries again.
        """
        processed, _ = self._attempt_automatic_payout(store_id)
        return bool(processed)

    def _attempt_automatic_payout(self, store_id: str) -> Tuple[Optional[bool], Optional[str]]:
        """
        Returns ``(None, None)`` when the store is not eligible, ``(True, None)``
        once paid and ``(False, reason)`` when an attempt failed.
        """
        try:
            reservation = self._reserve_automatic_payout(store_id)
        except Exception as e:
            self.logger.error(f"Error reserving automatic payout for store {store_id}: {e}", exc_info=True)
            return False, str(e)

        if reservation is None:
            return None, None

        payout_request, account = reservation
        try:
            transfer = self.payment_provider.create_transfer(
                amount=payout_request.amount,
                currency=self.currency,
                destination_account=account.stripe_account_id,
                description=f"Marketplace payout for {account.display_name}",
                metadata={"payout_request_id": str(payout_request.id), "store_id": store_id},
            )
        except Exception as e:
            self.logger.error(f"Automatic payout transfer failed for store {store_id}: {e}")
            self._fail_payout(payout_request.id, str(e))
            return False, str(e)

        try:
            self._complete_payout(
                payout_request.id, transfer.transfer_id, PayoutRequest.METHOD_STRIPE_CONNECT, schedule_next=True
            )
        except Exception as e:
            self.logger.critical(
                f"Transfer {transfer.transfer_id} succeeded but payout {payout_request.id} could not be "
                f"marked completed: {e}",
                exc_info=True,
            )
            return False, f"Transfer {transfer.transfer_id} sent but payout not marked completed: {e}"

        self.logger.info(
            f"Automatic payout {payout_request.id} of {payout_request.amount} {self.currency} "
            f"sent to store {store_id} ({transfer.transfer_id})"
        )
        return True, None

    @retry_on_deadlock()
    def _reserve_automatic_payout(self, store_id):
        account = StorePayoutAccount.objects.filter(store_id=store_id).first()

        with locked_row(StoreEarnings.objects.filter(store_id=store_id)) as earnings:
            if earnings is None or not earnings.is_automatic:
                self.logger.debug(f"Store {store_id} is not on an automatic payout schedule")
                return None
            if account is None or not account.stripe_account_id:
                self.logger.warning(f"Store {store_id} has automatic payouts but no linked payout account")
                return None
            if earnings.available_balance <= 0:
                return None

            amount = earnings.available_balance
            earnings.available_balance = ZERO
            earnings.save(update_fields=["available_balance", "updated_at"])

            payout_request = PayoutRequest.objects.create(
                store_id=store_id,
                amount=amount,
                currency=self.currency,
                status=PayoutRequest.STATUS_PROCESSING,
                processed_at=timezone.now(),
                payout_method=PayoutRequest.METHOD_STRIPE_CONNECT,
                is_automatic=True,
            )

        return payout_request, account

    @BaseService.log_performance
    def process_manual_payout(self, payout_request_id) -> bool:
        """
        Execute a pending payout request.

        Uses the store's connected account when one is linked, otherwise
        records a bank-transfer placeholder when bank details were supplied.
        Any failure marks the request failed and returns the reserved amount
        to the store.

        Raises:
            InvalidPayoutState: the request does not exist or is not pending
        """
        payout_request = self._start_processing(payout_request_id)
        account = StorePayoutAccount.objects.filter(store_id=payout_request.store_id).first()

        try:
            if account is not None and account.stripe_account_id:
                transfer = self.payment_provider.create_transfer(
                    amount=payout_request.amount,
                    currency=payout_request.currency,
                    destination_account=account.stripe_account_id,
                    description=f"Manual payout for {account.display_name}",
                    metadata={"payout_request_id": str(payout_request.id), "store_id": payout_request.store_id},
                )
                transfer_id = transfer.transfer_id
                method = PayoutRequest.METHOD_STRIPE_CONNECT
            elif payout_request.bank_details:
                # Settled outside the platform; only a reference is recorded here
                transfer_id = f"bank_{int(time.time() * 1000)}"
                method = PayoutRequest.METHOD_BANK_TRANSFER
            else:
                raise PayoutProviderError(NO_PAYOUT_METHOD)
        except (PaymentException, PayoutProviderError) as e:
            self.logger.error(f"Manual payout {payout_request.id} failed: {e}")
            self._fail_payout(payout_request.id, str(e))
            return False
        except Exception as e:
            # Timeouts and unexpected client errors count as a failed transfer
            self.logger.error(f"Manual payout {payout_request.id} failed unexpectedly: {e}", exc_info=True)
            self._fail_payout(payout_request.id, str(e) or e.__class__.__name__)
            return False

        try:
            self._complete_payout(payout_request.id, transfer_id, method, schedule_next=False)
        except Exception as e:
            self.logger.critical(
                f"Transfer {transfer_id} succeeded but payout {payout_request.id} could not be marked completed: {e}",
                exc_info=True,
            )
            return False

        self.logger.info(f"Manual payout {payout_request.id} completed via {method} ({transfer_id})")
        return True

    @retry_on_deadlock()
    def _start_processing(self, payout_request_id) -> PayoutRequest:
        try:
            with locked_row(PayoutRequest.objects.filter(pk=payout_request_id)) as payout_request:
                if payout_request is None:
                    raise InvalidPayoutState(f"Payout request {payout_request_id} not found")
                if payout_request.status != PayoutRequest.STATUS_PENDING:
                    raise InvalidPayoutState(
                        f"Payout request {payout_request_id} is {payout_request.status}, expected pending"
                    )

                payout_request.status = PayoutRequest.STATUS_PROCESSING
                payout_request.processed_at = timezone.now()
                payout_request.save(update_fields=["status", "processed_at"])
        except ValidationError as e:
            raise InvalidPayoutState(f"Invalid payout request id {payout_request_id!r}") from e

        return payout_request

    @retry_on_deadlock()
    def _complete_payout(self, payout_request_id, transfer_id, method, schedule_next):
        now = timezone.now()
        with transaction.atomic():
            payout_request = PayoutRequest.objects.select_for_update().get(pk=payout_request_id)
            payout_request.status = PayoutRequest.STATUS_COMPLETED
            payout_request.transfer_id = transfer_id
            payout_request.payout_method = method
            payout_request.processed_at = now
            payout_request.save(update_fields=["status", "transfer_id", "payout_method", "processed_at"])

            with locked_row(StoreEarnings.objects.filter(store_id=payout_request.store_id)) as earnings:
                if earnings is not None:
                    earnings.last_payout_date = now
                    update_fields = ["last_payout_date", "updated_at"]
                    if schedule_next:
                        earnings.next_payout_date = now + self.payout_interval
                        update_fields.append("next_payout_date")
                    earnings.save(update_fields=update_fields)

        payout_volume_total.labels(currency=payout_request.currency, status=PayoutRequest.STATUS_COMPLETED).inc(
            float(payout_request.amount)
        )
        return payout_request

    def _fail_payout(self, payout_request_id, reason):
        try:
            self._fail_and_restore(payout_request_id, reason)
        except Exception as e:
            self.logger.critical(
                f"Could not restore reserved funds for failed payout {payout_request_id}: {e}", exc_info=True
            )

    @retry_on_deadlock()
    def _fail_and_restore(self, payout_request_id, reason):
        with transaction.atomic():
            payout_request = PayoutRequest.objects.select_for_update().get(pk=payout_request_id)
            if payout_request.status != PayoutRequest.STATUS_PROCESSING:
                self.logger.warning(f"Payout {payout_request_id} is {payout_request.status}; not restoring funds")
                return payout_request

            payout_request.status = PayoutRequest.STATUS_FAILED
            payout_request.failure_reason = reason
            payout_request.processed_at = timezone.now()
            payout_request.save(update_fields=["status", "failure_reason", "processed_at"])

            with locked_row(StoreEarnings.objects.filter(store_id=payout_request.store_id)) as earnings:
                if earnings is None:
                    raise LedgerUpdateError(f"No earnings ledger for store {payout_request.store_id}")
                earnings.available_balance += payout_request.amount
                earnings.save(update_fields=["available_balance", "updated_at"])

        payout_volume_total.labels(currency=payout_request.currency, status=PayoutRequest.STATUS_FAILED).inc(
            float(payout_request.amount)
        )
        self.logger.info(f"Restored {payout_request.amount} to store {payout_request.store_id} after failed payout")
        return payout_request

    @BaseService.log_performance
    def run_automatic_payouts(self, now=None) -> BatchResult:
        """
        Attempt an automatic payout for every store that is due.

        Stores that turn out not to be eligible are skipped rather than
        reported; failed attempts carry the reason they failed.
        """
        result = BatchResult()
        store_ids = list(StoreEarnings.objects.due_for_automatic_payout(now).values_list("store_id", flat=True))

        for store_id in store_ids:
            processed, reason = self._attempt_automatic_payout(store_id)
            if processed is None:
                continue
            if processed:
                result.add_success(store_id)
            else:
                result.add_failure(store_id, reason)

        return result

    # ------------------------------------------------------------------
    # Payout accounts
    # ------------------------------------------------------------------

    @BaseService.log_performance
    def setup_external_payout_account(self, store_id: str, email: str, store_name: str = "") -> str:
        """
        Create a connected account for the store and return its onboarding URL.

        Raises:
            PayoutProviderError: the payment provider rejected either call
        """
        try:
            account_id = self.payment_provider.create_connected_account(email)
        except PaymentException as e:
            raise PayoutProviderError(f"Failed to create payout account for store {store_id}: {e}") from e

        StorePayoutAccount.objects.update_or_create(
            store_id=store_id,
            defaults={"email": email, "store_name": store_name, "stripe_account_id": account_id},
        )
        self.logger.info(f"Linked payout account {account_id} to store {store_id}")

        dashboard_url = f"{settings.FRONTEND_URL.rstrip('/')}/store/dashboard"
        try:
            return self.payment_provider.create_onboarding_link(
                account_id,
                refresh_url=f"{dashboard_url}?refresh=true",
                return_url=f"{dashboard_url}?connected=true",
            )
        except PaymentException as e:
            raise PayoutProviderError(f"Failed to create onboarding link for store {store_id}: {e}") from e
