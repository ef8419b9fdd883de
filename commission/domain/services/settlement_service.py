from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from utils.service_base import BaseService, BatchResult
from utils.transaction_utils import locked_row, retry_on_deadlock

from ...infra.observability.metrics import settled_funds_total
from ..models import CommissionTransaction, StoreEarnings
from .commission_calculator import ZERO


class SettlementService(BaseService):
    """
    Matures net earnings once the holding period has passed.

    Each transaction settles in its own database transaction, so one failure
    never rolls back the others. A settled transaction is never picked up
    again, which makes repeated sweeps safe.
    """

    def __init__(self, holding_period_days=None):
        super().__init__()
        days = holding_period_days if holding_period_days is not None else settings.COMMISSION_HOLDING_PERIOD_DAYS
        self.holding_period = timedelta(days=days)

    def settlement_cutoff(self, now=None):
        return (now or timezone.now()) - self.holding_period

    @BaseService.log_performance
    def settle_pending_funds(self, now=None) -> BatchResult:
        now = now or timezone.now()
        cutoff = self.settlement_cutoff(now)

        candidate_ids = list(
            CommissionTransaction.objects.filter(
                status=CommissionTransaction.STATUS_COMPLETED,
                settled_at__isnull=True,
                created_at__lte=cutoff,
            )
            .order_by("created_at")
            .values_list("id", flat=True)
        )
        self.logger.info(f"Settling {len(candidate_ids)} transactions created on or before {cutoff.isoformat()}")

        result = BatchResult()
        moved_total = Decimal("0.00")

        for txn_id in candidate_ids:
            try:
                moved = self._settle_transaction(txn_id, now)
            except Exception as e:
                self.logger.error(f"Failed to settle commission transaction {txn_id}: {e}", exc_info=True)
                result.add_failure(txn_id, e)
                continue

            if moved is None:
                self.logger.debug(f"Transaction {txn_id} already settled, skipping")
                continue

            moved_total += moved
            result.add_success(txn_id)

        if moved_total:
            settled_funds_total.labels(currency=settings.PAYOUT_CURRENCY.upper()).inc(float(moved_total))

        self.logger.info(
            f"Settlement sweep finished: {len(result.succeeded)} settled, {len(result.failed)} failed, "
            f"{moved_total} moved to available"
        )
        return result

    @retry_on_deadlock()
    def _settle_transaction(self, txn_id, now):
        """Returns the amount moved, or None if the transaction was settled concurrently."""
        with transaction.atomic():
            txn = CommissionTransaction.objects.select_for_update().filter(pk=txn_id, settled_at__isnull=True).first()
            if txn is None:
                return None

            with locked_row(StoreEarnings.objects.filter(store_id=txn.store_id)) as earnings:
                if earnings is None:
                    self.logger.warning(f"No earnings ledger for store {txn.store_id}; settling {txn_id} without moving funds")
                    moved = ZERO
                else:
                    moved = max(ZERO, min(earnings.pending_balance, txn.net_amount))
                    earnings.pending_balance -= moved
                    earnings.available_balance += moved
                    earnings.save(update_fields=["pending_balance", "available_balance", "updated_at"])

            txn.settled_at = now
            txn.save(update_fields=["settled_at"])

        return moved
