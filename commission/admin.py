from django.contrib import admin

from .models import (
    CategoryCommissionRate,
    CommissionSettings,
    CommissionTransaction,
    PayoutRequest,
    StoreCommissionRate,
    StoreEarnings,
    StorePayoutAccount,
    VolumeDiscountTier,
)


class CategoryCommissionRateInline(admin.TabularInline):
    model = CategoryCommissionRate
    extra = 0


class StoreCommissionRateInline(admin.TabularInline):
    model = StoreCommissionRate
    extra = 0


class VolumeDiscountTierInline(admin.TabularInline):
    model = VolumeDiscountTier
    extra = 0


@admin.register(CommissionSettings)
class CommissionSettingsAdmin(admin.ModelAdmin):
    """Rates are edited here; saving clears the in-memory settings cache."""

    list_display = ["id", "global_rate", "updated_at"]
    readonly_fields = ["created_at", "updated_at"]
    inlines = [CategoryCommissionRateInline, StoreCommissionRateInline, VolumeDiscountTierInline]


@admin.register(CommissionTransaction)
class CommissionTransactionAdmin(admin.ModelAdmin):
    list_display = [
        "id_short",
        "store_id",
        "order_id",
        "gross_amount",
        "commission_rate",
        "platform_fee",
        "net_amount",
        "status",
        "created_at",
        "settled_at",
    ]
    list_filter = ["status", "currency", "created_at", "settled_at"]
    search_fields = ["store_id", "order_id", "payment_intent_id"]
    date_hierarchy = "created_at"

    # Amounts are frozen once recorded
    readonly_fields = [
        "id",
        "store_id",
        "category_id",
        "order_id",
        "payment_intent_id",
        "gross_amount",
        "commission_rate",
        "platform_fee",
        "net_amount",
        "currency",
        "created_at",
        "settled_at",
    ]

    def id_short(self, obj):
        return str(obj.id)[:8] + "..."

    id_short.short_description = "ID"


@admin.register(StoreEarnings)
class StoreEarningsAdmin(admin.ModelAdmin):
    list_display = [
        "store_id",
        "pending_balance",
        "available_balance",
        "lifetime_earnings",
        "current_month_sales",
        "payout_schedule",
        "last_payout_date",
        "next_payout_date",
    ]
    list_filter = ["payout_schedule"]
    search_fields = ["store_id"]

    # Balances only move through the ledger services
    readonly_fields = [
        "store_id",
        "total_sales",
        "platform_fee_accrued",
        "net_earnings",
        "pending_balance",
        "available_balance",
        "lifetime_earnings",
        "current_month_sales",
        "last_payout_date",
        "created_at",
        "updated_at",
    ]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StorePayoutAccount)
class StorePayoutAccountAdmin(admin.ModelAdmin):
    list_display = ["store_id", "store_name", "email", "stripe_account_id", "created_at"]
    search_fields = ["store_id", "store_name", "email", "stripe_account_id"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(PayoutRequest)
class PayoutRequestAdmin(admin.ModelAdmin):
    list_display = [
        "id_short",
        "store_id",
        "amount",
        "currency",
        "status",
        "payout_method",
        "is_automatic",
        "requested_at",
        "processed_at",
        "archived",
    ]
    list_filter = ["status", "payout_method", "is_automatic", "archived", "requested_at"]
    search_fields = ["store_id", "transfer_id"]
    readonly_fields = [
        "id",
        "store_id",
        "amount",
        "currency",
        "status",
        "payout_method",
        "is_automatic",
        "bank_details",
        "transfer_id",
        "failure_reason",
        "requested_at",
        "processed_at",
        "archived",
        "archived_at",
    ]

    fieldsets = (
        ("Basic Information", {"fields": ("id", "store_id", "amount", "currency", "status")}),
        ("Method", {"fields": ("payout_method", "is_automatic", "bank_details")}),
        ("Result", {"fields": ("transfer_id", "failure_reason")}),
        ("Timestamps", {"fields": ("requested_at", "processed_at", "archived", "archived_at")}),
    )

    def id_short(self, obj):
        return str(obj.id)[:8] + "..."

    id_short.short_description = "ID"
