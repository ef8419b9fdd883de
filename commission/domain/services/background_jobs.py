"""
Scheduled commission jobs.

Each entry point runs its full sweep and returns a result object; per-item
failures are collected into ``errors`` and never raised, so one bad store
or transaction cannot abort a run. Celery tasks, the ``run_commission_job``
management command and the cron endpoint all call into this module.
"""

from dataclasses import asdict, dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.db.models import Q, Sum
from django.utils import timezone

from utils.service_base import BaseService

from ...infra.observability.metrics import commission_job_runs_total, pending_balance_value
from ..models import CommissionTransaction, PayoutRequest, StoreEarnings
from .earnings_ledger import EarningsLedger
from .payout_service import PayoutService
from .periods import months_before
from .settings_resolver import SettingsResolver
from .settlement_service import SettlementService


STUCK_TRANSACTION_AGE = timedelta(hours=1)
STUCK_PAYOUT_AGE = timedelta(hours=1)
FAILED_PAYOUT_WINDOW = timedelta(hours=24)
RECENT_PAYOUT_WINDOW = timedelta(days=7)


@dataclass
class DailyJobResult:
    settled: int = 0
    payouts: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


@dataclass
class WeeklyJobResult:
    updated: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


@dataclass
class MonthlyJobResult:
    archived: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


@dataclass
class HealthCheckResult:
    healthy: bool = True
    issues: List[str] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


class BackgroundJobs(BaseService):
    JOB_TYPES = ("daily", "weekly", "monthly", "health")

    def __init__(
        self,
        settings_resolver: SettingsResolver,
        ledger: EarningsLedger,
        settlement: SettlementService,
        payouts: PayoutService,
        archive_after_months: Optional[int] = None,
        high_balance_threshold=None,
    ):
        super().__init__()
        self.settings_resolver = settings_resolver
        self.ledger = ledger
        self.settlement = settlement
        self.payouts = payouts
        self.archive_after_months = (
            archive_after_months if archive_after_months is not None else settings.COMMISSION_ARCHIVE_AFTER_MONTHS
        )
        threshold = high_balance_threshold if high_balance_threshold is not None else settings.HEALTH_HIGH_BALANCE_THRESHOLD
        self.high_balance_threshold = Decimal(str(threshold))

    def run(self, job_type: str):
        """Dispatch by name; raises ValueError for an unknown job type."""
        runners = {
            "daily": self.run_daily_payout_job,
            "weekly": self.run_weekly_maintenance_job,
            "monthly": self.run_monthly_archive_job,
            "health": self.run_health_check,
        }
        if job_type not in runners:
            raise ValueError(f"Invalid job type: {job_type}. Use one of {', '.join(self.JOB_TYPES)}")
        return runners[job_type]()

    def _record_run(self, job, failed):
        outcome = "error" if failed else "success"
        commission_job_runs_total.labels(job=job, outcome=outcome).inc()

    @BaseService.log_performance
    def run_daily_payout_job(self, now=None) -> DailyJobResult:
        """Settle matured funds, then pay out every automatic-schedule store that is due."""
        now = now or timezone.now()
        result = DailyJobResult()

        try:
            self.logger.info("[BackgroundJob] Settling pending funds...")
            settlement = self.settlement.settle_pending_funds(now=now)
            result.settled = len(settlement.succeeded)
            result.errors.extend(
                f"Failed to settle transaction {txn_id}: {message}" for txn_id, message in settlement.failed
            )

            self.logger.info("[BackgroundJob] Processing automatic payouts...")
            payouts = self.payouts.run_automatic_payouts(now=now)
            result.payouts = len(payouts.succeeded)
            result.errors.extend(
                f"Failed to process automatic payout for store {store_id}: {message}"
                for store_id, message in payouts.failed
            )
        except Exception as e:
            self.logger.error(f"[BackgroundJob] Daily payout job failed: {e}", exc_info=True)
            result.errors.append(f"Daily payout job failed: {e}")

        self.logger.info(
            f"[BackgroundJob] Daily payout job completed. Settled: {result.settled}, "
            f"Payouts: {result.payouts}, Errors: {len(result.errors)}"
        )
        self._record_run("daily", result.errors)
        return result

    @BaseService.log_performance
    def run_weekly_maintenance_job(self) -> WeeklyJobResult:
        """Recompute current month sales for every store and drop the cached settings."""
        result = WeeklyJobResult()

        try:
            store_ids = list(StoreEarnings.objects.values_list("store_id", flat=True))
            for store_id in store_ids:
                try:
                    self.ledger.refresh_current_month_sales(store_id)
                    result.updated += 1
                except Exception as e:
                    self.logger.error(f"[BackgroundJob] Failed to update monthly sales for store {store_id}: {e}")
                    result.errors.append(f"Failed to update monthly sales for store {store_id}: {e}")

            self.settings_resolver.invalidate()
        except Exception as e:
            self.logger.error(f"[BackgroundJob] Weekly maintenance job failed: {e}", exc_info=True)
            result.errors.append(f"Weekly maintenance job failed: {e}")

        self.logger.info(
            f"[BackgroundJob] Weekly maintenance completed. Updated: {result.updated}, Errors: {len(result.errors)}"
        )
        self._record_run("weekly", result.errors)
        return result

    @BaseService.log_performance
    def run_monthly_archive_job(self, now=None) -> MonthlyJobResult:
        """Flag completed payouts processed before the archive cutoff. Rows are never deleted."""
        now = now or timezone.now()
        result = MonthlyJobResult()

        try:
            cutoff = months_before(now, self.archive_after_months)
            payout_ids = list(
                PayoutRequest.objects.filter(
                    status=PayoutRequest.STATUS_COMPLETED,
                    archived=False,
                    processed_at__lt=cutoff,
                ).values_list("id", flat=True)
            )

            for payout_id in payout_ids:
                try:
                    PayoutRequest.objects.filter(pk=payout_id).update(archived=True, archived_at=now)
                    result.archived += 1
                except Exception as e:
                    self.logger.error(f"[BackgroundJob] Failed to archive payout {payout_id}: {e}")
                    result.errors.append(f"Failed to archive payout {payout_id}: {e}")
        except Exception as e:
            self.logger.error(f"[BackgroundJob] Monthly archive job failed: {e}", exc_info=True)
            result.errors.append(f"Monthly archive job failed: {e}")

        self.logger.info(
            f"[BackgroundJob] Monthly archive completed. Archived: {result.archived}, Errors: {len(result.errors)}"
        )
        self._record_run("monthly", result.errors)
        return result

    def run_health_check(self, now=None) -> HealthCheckResult:
        now = now or timezone.now()
        issues = []

        try:
            stuck = CommissionTransaction.objects.filter(
                status=CommissionTransaction.STATUS_PENDING,
                created_at__lt=now - STUCK_TRANSACTION_AGE,
            ).count()
            if stuck > 0:
                issues.append(f"{stuck} transactions stuck in pending state for over 1 hour")

            processing_cutoff = now - STUCK_PAYOUT_AGE
            stuck_payouts = (
                PayoutRequest.objects.filter(status=PayoutRequest.STATUS_PROCESSING)
                .filter(
                    Q(processed_at__lt=processing_cutoff)
                    | Q(processed_at__isnull=True, requested_at__lt=processing_cutoff)
                )
                .count()
            )
            if stuck_payouts > 0:
                issues.append(f"{stuck_payouts} payout requests stuck in processing for over 1 hour")

            failed = PayoutRequest.objects.filter(
                status=PayoutRequest.STATUS_FAILED,
                requested_at__gt=now - FAILED_PAYOUT_WINDOW,
            ).count()
            if failed > 0:
                issues.append(f"{failed} payout requests failed in the last 24 hours")

            high_balance = (
                StoreEarnings.objects.filter(available_balance__gt=self.high_balance_threshold)
                .filter(Q(last_payout_date__isnull=True) | Q(last_payout_date__lt=now - RECENT_PAYOUT_WINDOW))
                .count()
            )
            if high_balance > 0:
                issues.append(
                    f"{high_balance} stores have high available balance "
                    f"(>${self.high_balance_threshold:.0f}) with no recent payouts"
                )

            pending_total = StoreEarnings.objects.aggregate(total=Sum("pending_balance"))["total"] or Decimal("0")
            pending_balance_value.labels(currency=settings.PAYOUT_CURRENCY.upper()).set(float(pending_total))
        except Exception as e:
            self.logger.error(f"[BackgroundJob] Health check failed: {e}", exc_info=True)
            issues.append(f"Health check failed: {e}")

        result = HealthCheckResult(healthy=not issues, issues=issues)
        if issues:
            self.logger.warning(f"[BackgroundJob] Health check found {len(issues)} issues: {'; '.join(issues)}")
        self._record_run("health", issues)
        return result
