import csv
import io
import json
import logging
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict

from django.core.serializers.json import DjangoJSONEncoder
from django.db.models import Count, Q, Sum
from django.utils import timezone

from ..exceptions import CommissionValidationError
from ..models import CommissionTransaction, PayoutRequest, StorePayoutAccount
from .periods import months_before


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
TOP_STORES_LIMIT = 10
EXPORT_FORMATS = ("csv", "json")

EXPORT_HEADERS = [
    "Transaction ID",
    "Order ID",
    "Amount",
    "Platform Fee",
    "Net Amount",
    "Commission Rate (%)",
    "Status",
    "Store Name",
    "Date",
]


def _store_names(store_ids):
    return dict(
        StorePayoutAccount.objects.filter(store_id__in=set(store_ids))
        .exclude(store_name="")
        .values_list("store_id", "store_name")
    )


class ReportingService:
    @staticmethod
    def generate_commission_report(start, end) -> Dict[str, Any]:
        """
        Platform totals for transactions created between ``start`` and ``end`` (inclusive).
        Returns: { 'period', 'total_revenue', 'total_commissions', 'store_payouts',
                   'pending_payouts', 'transaction_count', 'top_stores' }
        """
        logger.info(f"ReportingService: Generating commission report for {start.isoformat()} - {end.isoformat()}")

        transactions = CommissionTransaction.objects.filter(created_at__gte=start, created_at__lte=end)
        completed = transactions.filter(status=CommissionTransaction.STATUS_COMPLETED)

        totals = completed.aggregate(total_revenue=Sum("gross_amount"), total_commissions=Sum("platform_fee"))

        store_payouts = PayoutRequest.objects.filter(
            status=PayoutRequest.STATUS_COMPLETED, processed_at__gte=start, processed_at__lte=end
        ).aggregate(total=Sum("amount"))["total"]
        pending_payouts = PayoutRequest.objects.filter(status=PayoutRequest.STATUS_PENDING).aggregate(
            total=Sum("amount")
        )["total"]

        top_rows = list(
            completed.values("store_id")
            .annotate(revenue=Sum("gross_amount"), commission=Sum("platform_fee"), transaction_count=Count("id"))
            .order_by("-revenue", "store_id")[:TOP_STORES_LIMIT]
        )
        names = _store_names(row["store_id"] for row in top_rows)

        return {
            "period": {"start": start, "end": end},
            "total_revenue": totals["total_revenue"] or ZERO,
            "total_commissions": totals["total_commissions"] or ZERO,
            "store_payouts": store_payouts or ZERO,
            "pending_payouts": pending_payouts or ZERO,
            "transaction_count": transactions.count(),
            "top_stores": [
                {
                    "store_id": row["store_id"],
                    "store_name": names.get(row["store_id"], "Unknown Store"),
                    "revenue": row["revenue"],
                    "commission": row["commission"],
                    "transaction_count": row["transaction_count"],
                }
                for row in top_rows
            ],
        }

    @staticmethod
    def get_store_performance_report(store_id: str, months: int = 12) -> Dict[str, Any]:
        """
        Completed sales for one store over the last ``months`` months, bucketed by calendar month (YYYY-MM).
        """
        logger.info(f"ReportingService: Store performance report for {store_id} ({months} months)")

        start = months_before(timezone.now(), months)
        transactions = CommissionTransaction.objects.filter(
            store_id=store_id,
            status=CommissionTransaction.STATUS_COMPLETED,
            created_at__gte=start,
        ).order_by("created_at")

        buckets = defaultdict(
            lambda: {"sales": ZERO, "commission": ZERO, "net_earnings": ZERO, "transaction_count": 0}
        )
        total_sales = total_commissions = total_earnings = rate_sum = ZERO
        total_transactions = 0

        for txn in transactions:
            bucket = buckets[txn.created_at.strftime("%Y-%m")]
            bucket["sales"] += txn.gross_amount
            bucket["commission"] += txn.platform_fee
            bucket["net_earnings"] += txn.net_amount
            bucket["transaction_count"] += 1

            total_sales += txn.gross_amount
            total_commissions += txn.platform_fee
            total_earnings += txn.net_amount
            rate_sum += txn.commission_rate
            total_transactions += 1

        average_rate = (rate_sum / total_transactions).quantize(Decimal("0.01")) if total_transactions else ZERO

        return {
            "monthly_data": [{"month": month, **data} for month, data in sorted(buckets.items())],
            "summary": {
                "total_sales": total_sales,
                "total_commissions": total_commissions,
                "total_earnings": total_earnings,
                "average_commission_rate": average_rate,
                "total_transactions": total_transactions,
            },
        }

    @staticmethod
    def get_commission_analytics(trend_days: int = 30) -> Dict[str, Any]:
        """Rate distribution, top categories, payout status counts and daily trends."""
        completed = CommissionTransaction.objects.filter(status=CommissionTransaction.STATUS_COMPLETED)

        rate_distribution = defaultdict(lambda: {"count": 0, "revenue": ZERO})
        for rate, amount in completed.values_list("commission_rate", "gross_amount"):
            bucket = rate_distribution[int(rate.quantize(Decimal("1")))]
            bucket["count"] += 1
            bucket["revenue"] += amount

        top_categories = list(
            completed.exclude(category_id="")
            .values("category_id")
            .annotate(revenue=Sum("gross_amount"), commission=Sum("platform_fee"))
            .order_by("-revenue")[:TOP_STORES_LIMIT]
        )

        payout_status = PayoutRequest.objects.aggregate(
            **{
                status: Count("id", filter=Q(status=status))
                for status, _ in PayoutRequest.STATUS_CHOICES
            }
        )

        trends = defaultdict(lambda: {"revenue": ZERO, "commissions": ZERO})
        since = timezone.now() - timedelta(days=trend_days)
        for created_at, amount, fee in completed.filter(created_at__gte=since).values_list(
            "created_at", "gross_amount", "platform_fee"
        ):
            day = trends[created_at.date().isoformat()]
            day["revenue"] += amount
            day["commissions"] += fee

        return {
            "commission_rate_distribution": [
                {"rate": rate, **data} for rate, data in sorted(rate_distribution.items())
            ],
            "top_categories": top_categories,
            "payout_status": payout_status,
            "recent_trends": [{"date": date, **data} for date, data in sorted(trends.items())],
        }

    @staticmethod
    def export_commission_data(start, end, fmt: str = "csv") -> str:
        """Transactions created in the period, newest first, as CSV or JSON text."""
        if fmt not in EXPORT_FORMATS:
            raise CommissionValidationError(f"Unsupported export format: {fmt}. Use 'csv' or 'json'")

        transactions = list(
            CommissionTransaction.objects.filter(created_at__gte=start, created_at__lte=end).order_by("-created_at")
        )
        names = _store_names(txn.store_id for txn in transactions)
        logger.info(f"ReportingService: Exporting {len(transactions)} transactions as {fmt}")

        if fmt == "json":
            rows = [
                {
                    "id": txn.id,
                    "order_id": txn.order_id,
                    "store_id": txn.store_id,
                    "store_name": names.get(txn.store_id, "Unknown"),
                    "amount": txn.gross_amount,
                    "platform_fee": txn.platform_fee,
                    "net_amount": txn.net_amount,
                    "commission_rate": txn.commission_rate,
                    "status": txn.status,
                    "created_at": txn.created_at,
                }
                for txn in transactions
            ]
            return json.dumps(rows, cls=DjangoJSONEncoder, indent=2)

        if not transactions:
            return "No data available for the selected period"

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(EXPORT_HEADERS)
        for txn in transactions:
            writer.writerow(
                [
                    txn.id,
                    txn.order_id,
                    f"{txn.gross_amount:.2f}",
                    f"{txn.platform_fee:.2f}",
                    f"{txn.net_amount:.2f}",
                    f"{txn.commission_rate:.2f}",
                    txn.status,
                    names.get(txn.store_id, "Unknown"),
                    txn.created_at.date().isoformat(),
                ]
            )
        return buffer.getvalue().rstrip("\n")
