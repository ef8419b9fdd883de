from .commission_settings import CategoryCommissionRate, CommissionSettings, StoreCommissionRate, VolumeDiscountTier
from .commission_transaction import CommissionTransaction
from .payout import PayoutRequest, StorePayoutAccount
from .store_earnings import StoreEarnings


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
