import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class StorePayoutAccount(models.Model):
    """External (Stripe Connect) account a store is paid out to."""

    store_id = models.CharField(max_length=100, unique=True)
    store_name = models.CharField(max_length=255, blank=True)
    email = models.EmailField()
    stripe_account_id = models.CharField(max_length=255, db_index=True, help_text="Connected account ID")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "commission_store_payout_accounts"

    @property
    def display_name(self):
        return self.store_name or self.store_id

    def __str__(self):
        return f"{self.display_name} -> {self.stripe_account_id}"


class PayoutRequest(models.Model):
    """
    A withdrawal of available earnings to a store.

    Manual requests reserve their amount from StoreEarnings.available_balance
    when created; the reservation is either paid out or handed back on failure.
    """

    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
    ]

    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_FAILED)

    METHOD_STRIPE_CONNECT = "stripe_connect"
    METHOD_BANK_TRANSFER = "bank_transfer"

    PAYOUT_METHOD_CHOICES = [
        (METHOD_STRIPE_CONNECT, "Stripe Connect"),
        (METHOD_BANK_TRANSFER, "Bank Transfer"),
    ]

    # Identifiers
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store_id = models.CharField(max_length=100, db_index=True)

    # Payout Details
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))])
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    payout_method = models.CharField(max_length=20, choices=PAYOUT_METHOD_CHOICES, blank=True)
    is_automatic = models.BooleanField(default=False)
    bank_details = models.JSONField(
        null=True, blank=True, help_text="accountHolderName, accountNumber, routingNumber, bankName"
    )

    # Processing results
    transfer_id = models.CharField(max_length=255, blank=True, db_index=True)
    failure_reason = models.TextField(blank=True)

    # Archiving
    archived = models.BooleanField(default=False)
    archived_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    requested_at = models.DateTimeField(default=timezone.now, db_index=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "commission_payout_requests"
        ordering = ["-requested_at"]
        indexes = [
            models.Index(fields=["store_id", "-requested_at"], name="comm_payout_store_req_idx"),
            models.Index(fields=["status", "processed_at"], name="comm_payout_status_proc_idx"),
        ]

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def amount_formatted(self):
        return f"{self.amount:.2f} {self.currency}"

    def __str__(self):
        return f"Payout {str(self.id)[:8]} - store {self.store_id} - {self.amount_formatted} ({self.status})"
