from decimal import Decimal

from django.db import models
from django.utils import timezone


ZERO = Decimal("0.00")


class StoreEarningsQuerySet(models.QuerySet):
    def due_for_automatic_payout(self, now=None):
        now = now or timezone.now()
        return self.filter(
            payout_schedule=StoreEarnings.SCHEDULE_AUTOMATIC,
            available_balance__gt=ZERO,
        ).filter(models.Q(next_payout_date__isnull=True) | models.Q(next_payout_date__lte=now))


class StoreEarnings(models.Model):
    """
    Authoritative balance ledger, one row per store.

    Net earnings enter pending_balance when an order completes, move to
    available_balance once the holding period passes, and leave
    available_balance when a payout is requested or executed.
    """

    SCHEDULE_MANUAL = "manual"
    SCHEDULE_AUTOMATIC = "automatic"

    PAYOUT_SCHEDULE_CHOICES = [
        (SCHEDULE_MANUAL, "Manual"),
        (SCHEDULE_AUTOMATIC, "Automatic"),
    ]

    store_id = models.CharField(max_length=100, unique=True)

    # Running totals
    total_sales = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    platform_fee_accrued = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    net_earnings = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    lifetime_earnings = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    current_month_sales = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)

    # Balance pools
    pending_balance = models.DecimalField(
        max_digits=14, decimal_places=2, default=ZERO, help_text="Net earnings still inside the holding period"
    )
    available_balance = models.DecimalField(
        max_digits=14, decimal_places=2, default=ZERO, help_text="Matured earnings that can be paid out"
    )

    # Payout scheduling
    payout_schedule = models.CharField(max_length=20, choices=PAYOUT_SCHEDULE_CHOICES, default=SCHEDULE_MANUAL)
    last_payout_date = models.DateTimeField(null=True, blank=True)
    next_payout_date = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StoreEarningsQuerySet.as_manager()

    class Meta:
        db_table = "commission_store_earnings"
        verbose_name_plural = "Store earnings"
        constraints = [
            models.CheckConstraint(condition=models.Q(pending_balance__gte=0), name="store_earnings_pending_non_negative"),
            models.CheckConstraint(
                condition=models.Q(available_balance__gte=0), name="store_earnings_available_non_negative"
            ),
        ]
        indexes = [
            models.Index(fields=["payout_schedule", "next_payout_date"], name="comm_earn_schedule_idx"),
        ]

    @property
    def is_automatic(self):
        return self.payout_schedule == self.SCHEDULE_AUTOMATIC

    def __str__(self):
        return f"Earnings for store {self.store_id}: {self.available_balance} available, {self.pending_balance} pending"
