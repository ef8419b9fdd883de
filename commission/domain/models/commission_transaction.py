import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class CommissionTransaction(models.Model):
    """
    One commission event: the platform's cut of a single store's share of an order.
    Amounts are frozen at calculation time; only status and settled_at ever change.
    """

    STATUS_PENDING = "pending"
    STATUS_COMPLETED = "completed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_COMPLETED, "Completed"),
    ]

    # Identifiers
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store_id = models.CharField(max_length=100, db_index=True)
    category_id = models.CharField(max_length=100, blank=True, default="")
    order_id = models.CharField(max_length=100, blank=True, default="", db_index=True)
    payment_intent_id = models.CharField(max_length=255, blank=True, default="")

    # Amounts
    gross_amount = models.DecimalField(
        max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0.00"))]
    )
    commission_rate = models.DecimalField(
        max_digits=5, decimal_places=2, help_text="Effective commission percentage after discounts"
    )
    platform_fee = models.DecimalField(max_digits=12, decimal_places=2)
    net_amount = models.DecimalField(max_digits=12, decimal_places=2, help_text="Amount owed to the store")
    currency = models.CharField(max_length=3, default="USD")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    # Timestamps
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    settled_at = models.DateTimeField(
        null=True, blank=True, help_text="When the net amount moved from pending to available"
    )

    class Meta:
        db_table = "commission_transactions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["store_id", "status", "created_at"], name="comm_txn_store_status_idx"),
            models.Index(fields=["status", "settled_at", "created_at"], name="comm_txn_settlement_idx"),
        ]

    @property
    def is_settled(self):
        return self.settled_at is not None

    def __str__(self):
        return f"Commission {str(self.id)[:8]} - store {self.store_id} - {self.gross_amount} ({self.status})"
