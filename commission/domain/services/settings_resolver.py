"""
Commission settings resolver.

Loads the platform commission configuration from the database once and
hands out an immutable snapshot until ``invalidate()`` is called.
"""

import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional, Tuple

from utils.service_base import BaseService

from ..models import CommissionSettings


DEFAULT_GLOBAL_RATE = Decimal("10.00")


@dataclass(frozen=True)
class VolumeTier:
    threshold_amount: Decimal
    discount_rate: Decimal


@dataclass(frozen=True)
class ResolvedCommissionSettings:
    """Read-only snapshot of commission rates used by the calculator."""

    global_rate: Decimal
    category_rates: Dict[str, Decimal] = field(default_factory=dict)
    store_rates: Dict[str, Decimal] = field(default_factory=dict)
    volume_discounts: Tuple[VolumeTier, ...] = ()

    def tier_for(self, trailing_month_sales: Decimal) -> Optional[VolumeTier]:
        """Highest tier whose threshold has been reached, if any."""
        reached = [tier for tier in self.volume_discounts if tier.threshold_amount <= trailing_month_sales]
        if not reached:
            return None
        return max(reached, key=lambda tier: tier.threshold_amount)


# Used when no settings row exists yet
DEFAULT_SETTINGS = ResolvedCommissionSettings(
    global_rate=DEFAULT_GLOBAL_RATE,
    volume_discounts=(
        VolumeTier(Decimal("10000"), Decimal("1")),
        VolumeTier(Decimal("25000"), Decimal("2")),
        VolumeTier(Decimal("50000"), Decimal("3")),
    ),
)

# Used when the settings row cannot be read
FALLBACK_SETTINGS = ResolvedCommissionSettings(global_rate=DEFAULT_GLOBAL_RATE)


class SettingsResolver(BaseService):
    """
    Owns the cached commission settings.

    One instance is built by the service container and shared by the
    calculator, the ledger and the background jobs. ``get_settings`` never
    raises: order processing must keep working when settings are unreadable.
    """

    def __init__(self):
        super().__init__()
        self._cached: Optional[ResolvedCommissionSettings] = None
        self._lock = threading.Lock()

    def get_settings(self) -> ResolvedCommissionSettings:
        cached = self._cached
        if cached is not None:
            return cached

        with self._lock:
            if self._cached is None:
                try:
                    self._cached = self._load()
                except Exception as e:
                    # Not cached, so the next call retries the load
                    self.logger.error(f"Failed to load commission settings, using fallback defaults: {e}", exc_info=True)
                    return FALLBACK_SETTINGS
            return self._cached

    def invalidate(self):
        with self._lock:
            self._cached = None
        self.logger.info("Commission settings cache invalidated")

    def _load(self) -> ResolvedCommissionSettings:
        record = (
            CommissionSettings.objects.prefetch_related("category_rates", "store_rates", "volume_discounts")
            .order_by("id")
            .first()
        )

        if record is None:
            self.logger.info("No commission settings stored, using defaults")
            return DEFAULT_SETTINGS

        resolved = ResolvedCommissionSettings(
            global_rate=record.global_rate or DEFAULT_GLOBAL_RATE,
            category_rates={rate.category_id: rate.rate for rate in record.category_rates.all()},
            store_rates={rate.store_id: rate.rate for rate in record.store_rates.all()},
            volume_discounts=tuple(
                VolumeTier(tier.threshold_amount, tier.discount_rate)
                for tier in sorted(record.volume_discounts.all(), key=lambda tier: tier.threshold_amount)
            ),
        )
        self.logger.info(
            f"Loaded commission settings: global {resolved.global_rate}%, "
            f"{len(resolved.category_rates)} category and {len(resolved.store_rates)} store overrides, "
            f"{len(resolved.volume_discounts)} volume tiers"
        )
        return resolved
