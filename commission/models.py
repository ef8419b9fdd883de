from .domain.models import (
    CategoryCommissionRate,
    CommissionSettings,
    CommissionTransaction,
    PayoutRequest,
    StoreCommissionRate,
    StoreEarnings,
    StorePayoutAccount,
    VolumeDiscountTier,
)


__all__ = [
    "CommissionSettings",
    "CategoryCommissionRate",
    "StoreCommissionRate",
    "VolumeDiscountTier",
    "CommissionTransaction",
    "StoreEarnings",
    "StorePayoutAccount",
    "PayoutRequest",
]
