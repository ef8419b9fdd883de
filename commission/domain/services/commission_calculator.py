from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from utils.service_base import BaseService

from ..exceptions import CommissionValidationError
from .settings_resolver import SettingsResolver


CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value, field_name="amount") -> Decimal:
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise CommissionValidationError(f"Invalid {field_name}: {value!r}") from e
    if not result.is_finite():
        raise CommissionValidationError(f"Invalid {field_name}: {value!r}")
    return result


@dataclass(frozen=True)
class CommissionBreakdown:
    rate: Decimal
    platform_fee: Decimal
    net_amount: Decimal

    def to_dict(self) -> dict:
        return {
            "rate": str(self.rate),
            "platform_fee": str(self.platform_fee),
            "net_amount": str(self.net_amount),
        }


class CommissionCalculator(BaseService):
    """
    Resolves the commission rate for a sale and splits it into platform fee and store net.

    Rate order: store override, then category override, then global rate.
    A volume discount is subtracted only when trailing month sales are given.
    The fee is rounded once (half-up, 2 places); the net is the exact remainder.
    """

    def __init__(self, settings_resolver: SettingsResolver):
        super().__init__()
        self.settings_resolver = settings_resolver

    def resolve_rate(
        self, store_id: str, category_id: Optional[str] = None, trailing_month_sales: Optional[Decimal] = None
    ) -> Decimal:
        settings = self.settings_resolver.get_settings()

        if store_id in settings.store_rates:
            rate = settings.store_rates[store_id]
        elif category_id and category_id in settings.category_rates:
            rate = settings.category_rates[category_id]
        else:
            rate = settings.global_rate

        if trailing_month_sales is not None:
            tier = settings.tier_for(to_decimal(trailing_month_sales, "trailing month sales"))
            if tier is not None:
                rate = max(ZERO, rate - tier.discount_rate)

        return Decimal(rate)

    def calculate(
        self,
        amount,
        store_id: str,
        category_id: Optional[str] = None,
        trailing_month_sales: Optional[Decimal] = None,
    ) -> CommissionBreakdown:
        amount = to_decimal(amount)
        if amount < 0:
            raise CommissionValidationError(f"Amount must not be negative: {amount}")

        rate = self.resolve_rate(store_id, category_id, trailing_month_sales)
        platform_fee = round2(amount * rate / Decimal("100"))
        net_amount = amount - platform_fee

        self.logger.debug(f"Commission for store {store_id}: {amount} at {rate}% -> fee {platform_fee}, net {net_amount}")
        return CommissionBreakdown(rate=rate, platform_fee=platform_fee, net_amount=net_amount)
