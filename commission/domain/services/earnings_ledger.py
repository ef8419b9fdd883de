"""
Earnings ledger.

Keeps one ``StoreEarnings`` row per store in step with the commission
transactions recorded against it. Every read-modify-write of a ledger row
runs inside ``transaction.atomic()`` holding ``SELECT ... FOR UPDATE`` on
that row, so concurrent order completions, settlements and payouts for the
same store are serialized by the database.
"""

from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Sum

from utils.service_base import BaseService
from utils.transaction_utils import log_transaction_performance, retry_on_deadlock

from ...infra.observability.metrics import commission_fees_total
from ..exceptions import CommissionError, CommissionValidationError, LedgerUpdateError
from ..models import CommissionTransaction, StoreEarnings
from .commission_calculator import ZERO, CommissionCalculator, to_decimal
from .periods import start_of_current_month


class EarningsLedger(BaseService):
    def __init__(self, calculator: CommissionCalculator):
        super().__init__()
        self.calculator = calculator

    # ------------------------------------------------------------------
    # Order completion
    # ------------------------------------------------------------------

    @BaseService.log_performance
    def record_order_commission(
        self,
        store_id: str,
        gross_amount,
        category_id: Optional[str] = None,
        order_id: Optional[str] = None,
        payment_intent_id: Optional[str] = None,
    ) -> CommissionTransaction:
        """
        Calculate the commission for a store's share of a completed order,
        persist the transaction and credit the store's pending balance.

        Both writes commit together or not at all. Any failure is raised as
        LedgerUpdateError; the caller is expected to retry.
        """
        gross = to_decimal(gross_amount)
        if gross < 0:
            raise CommissionValidationError(f"Amount must not be negative: {gross}")

        trailing_sales = self.get_current_month_sales(store_id)
        breakdown = self.calculator.calculate(gross, store_id, category_id, trailing_month_sales=trailing_sales)

        try:
            commission_txn = self._record_order_locked(
                store_id, gross, breakdown, category_id or "", order_id or "", payment_intent_id or ""
            )
        except CommissionError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to record commission for store {store_id}, order {order_id}: {e}", exc_info=True)
            raise LedgerUpdateError(f"Failed to record commission for store {store_id}: {e}") from e

        commission_fees_total.labels(currency=commission_txn.currency).inc(float(breakdown.platform_fee))

        self.logger.info(
            f"Recorded commission {commission_txn.id} for store {store_id}: gross {gross}, "
            f"rate {breakdown.rate}%, fee {breakdown.platform_fee}, net {breakdown.net_amount}"
        )
        return commission_txn

    @retry_on_deadlock()
    def _record_order_locked(self, store_id, gross, breakdown, category_id, order_id, payment_intent_id):
        with transaction.atomic():
            commission_txn = CommissionTransaction.objects.create(
                store_id=store_id,
                category_id=category_id,
                order_id=order_id,
                payment_intent_id=payment_intent_id,
                gross_amount=gross,
                commission_rate=breakdown.rate,
                platform_fee=breakdown.platform_fee,
                net_amount=breakdown.net_amount,
                currency=settings.PAYOUT_CURRENCY.upper(),
                status=CommissionTransaction.STATUS_COMPLETED,
            )
            self._apply_transaction(store_id, gross, breakdown.platform_fee)
        return commission_txn

    # ------------------------------------------------------------------
    # Ledger updates
    # ------------------------------------------------------------------

    def record_transaction(self, store_id: str, gross_amount, platform_fee) -> StoreEarnings:
        """
        Credit a store's ledger with one transaction's net amount.

        Creates the ledger row on the store's first sale. Raises
        LedgerUpdateError when the row cannot be written.
        """
        gross = to_decimal(gross_amount)
        fee = to_decimal(platform_fee, "platform fee")
        if gross < 0 or fee < 0 or fee > gross:
            raise CommissionValidationError(f"Invalid transaction amounts: gross {gross}, fee {fee}")

        try:
            return self._record_transaction_locked(store_id, gross, fee)
        except Exception as e:
            self.logger.error(f"Error updating store earnings for store {store_id}: {e}", exc_info=True)
            raise LedgerUpdateError(f"Failed to update store earnings for store {store_id}: {e}") from e

    @retry_on_deadlock()
    def _record_transaction_locked(self, store_id, gross, fee):
        with transaction.atomic():
            return self._apply_transaction(store_id, gross, fee)

    def _apply_transaction(self, store_id, gross: Decimal, fee: Decimal) -> StoreEarnings:
        """Must run inside transaction.atomic()."""
        net = gross - fee

        earnings = StoreEarnings.objects.select_for_update().filter(store_id=store_id).first()
        if earnings is None:
            earnings, created = StoreEarnings.objects.get_or_create(
                store_id=store_id,
                defaults={
                    "total_sales": gross,
                    "platform_fee_accrued": fee,
                    "net_earnings": net,
                    "pending_balance": net,
                    "available_balance": ZERO,
                    "lifetime_earnings": net,
                    "current_month_sales": gross,
                    "payout_schedule": StoreEarnings.SCHEDULE_MANUAL,
                },
            )
            if created:
                self.logger.info(f"Created earnings ledger for store {store_id}")
                return earnings
            # Lost a creation race; lock the row the other writer created
            earnings = StoreEarnings.objects.select_for_update().get(pk=earnings.pk)

        earnings.total_sales += gross
        earnings.platform_fee_accrued += fee
        earnings.net_earnings += net
        earnings.pending_balance += net
        earnings.lifetime_earnings += net
        earnings.current_month_sales = self.get_current_month_sales(store_id)
        earnings.save(
            update_fields=[
                "total_sales",
                "platform_fee_accrued",
                "net_earnings",
                "pending_balance",
                "lifetime_earnings",
                "current_month_sales",
                "updated_at",
            ]
        )
        return earnings

    def get_current_month_sales(self, store_id: str) -> Decimal:
        """Gross completed sales since the first instant of the current UTC month. 0 on failure."""
        try:
            total = CommissionTransaction.objects.filter(
                store_id=store_id,
                status=CommissionTransaction.STATUS_COMPLETED,
                created_at__gte=start_of_current_month(),
            ).aggregate(total=Sum("gross_amount"))["total"]
        except Exception as e:
            self.logger.error(f"Error fetching monthly sales for store {store_id}: {e}")
            return ZERO
        return total or ZERO

    @log_transaction_performance
    @retry_on_deadlock()
    def refresh_current_month_sales(self, store_id: str) -> Decimal:
        with transaction.atomic():
            earnings = StoreEarnings.objects.select_for_update().get(store_id=store_id)
            earnings.current_month_sales = self.get_current_month_sales(store_id)
            earnings.save(update_fields=["current_month_sales", "updated_at"])
        return earnings.current_month_sales

    @retry_on_deadlock()
    def set_payout_schedule(self, store_id: str, schedule: str) -> StoreEarnings:
        valid = dict(StoreEarnings.PAYOUT_SCHEDULE_CHOICES)
        if schedule not in valid:
            raise CommissionValidationError(f"Invalid payout schedule: {schedule!r}")

        with transaction.atomic():
            earnings, _ = StoreEarnings.objects.get_or_create(store_id=store_id)
            earnings = StoreEarnings.objects.select_for_update().get(pk=earnings.pk)
            earnings.payout_schedule = schedule
            earnings.save(update_fields=["payout_schedule", "updated_at"])

        self.logger.info(f"Store {store_id} payout schedule set to {schedule}")
        return earnings
