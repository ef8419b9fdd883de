from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


RATE_VALIDATORS = [MinValueValidator(Decimal("0.00")), MaxValueValidator(Decimal("100.00"))]


class CommissionSettings(models.Model):
    """
    Platform-wide commission configuration.
    Only the first row is read; overrides and volume tiers hang off it.
    """

    global_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("10.00"),
        validators=RATE_VALIDATORS,
        help_text="Default commission percentage applied to every sale",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "commission_settings"
        verbose_name = "Commission settings"
        verbose_name_plural = "Commission settings"

    def __str__(self):
        return f"Commission settings (global {self.global_rate}%)"


class CategoryCommissionRate(models.Model):
    """Commission override for every sale in a product category."""

    settings = models.ForeignKey(CommissionSettings, on_delete=models.CASCADE, related_name="category_rates")
    category_id = models.CharField(max_length=100, db_index=True)
    rate = models.DecimalField(max_digits=5, decimal_places=2, validators=RATE_VALIDATORS)

    class Meta:
        db_table = "commission_category_rates"
        constraints = [
            models.UniqueConstraint(fields=["settings", "category_id"], name="unique_category_rate_per_settings"),
        ]

    def __str__(self):
        return f"Category {self.category_id}: {self.rate}%"


class StoreCommissionRate(models.Model):
    """Commission override negotiated for a single store. Wins over category rates."""

    settings = models.ForeignKey(CommissionSettings, on_delete=models.CASCADE, related_name="store_rates")
    store_id = models.CharField(max_length=100, db_index=True)
    rate = models.DecimalField(max_digits=5, decimal_places=2, validators=RATE_VALIDATORS)

    class Meta:
        db_table = "commission_store_rates"
        constraints = [
            models.UniqueConstraint(fields=["settings", "store_id"], name="unique_store_rate_per_settings"),
        ]

    def __str__(self):
        return f"Store {self.store_id}: {self.rate}%"


class VolumeDiscountTier(models.Model):
    """Percentage points taken off the rate once a store's monthly sales reach the threshold."""

    settings = models.ForeignKey(CommissionSettings, on_delete=models.CASCADE, related_name="volume_discounts")
    threshold_amount = models.DecimalField(
        max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0.00"))]
    )
    discount_rate = models.DecimalField(max_digits=5, decimal_places=2, validators=RATE_VALIDATORS)

    class Meta:
        db_table = "commission_volume_discounts"
        ordering = ["threshold_amount"]

    def __str__(self):
        return f">= {self.threshold_amount}: -{self.discount_rate}%"
