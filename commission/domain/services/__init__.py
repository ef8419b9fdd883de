from .background_jobs import BackgroundJobs, DailyJobResult, HealthCheckResult, MonthlyJobResult, WeeklyJobResult
from .commission_calculator import CommissionBreakdown, CommissionCalculator
from .earnings_ledger import EarningsLedger
from .payout_service import PayoutService
from .reporting_service import ReportingService
from .settings_resolver import DEFAULT_SETTINGS, FALLBACK_SETTINGS, ResolvedCommissionSettings, SettingsResolver
from .settlement_service import SettlementService


__all__ = [
    "SettingsResolver",
    "ResolvedCommissionSettings",
    "DEFAULT_SETTINGS",
    "FALLBACK_SETTINGS",
    "CommissionCalculator",
    "CommissionBreakdown",
    "EarningsLedger",
    "SettlementService",
    "PayoutService",
    "BackgroundJobs",
    "DailyJobResult",
    "WeeklyJobResult",
    "MonthlyJobResult",
    "HealthCheckResult",
    "ReportingService",
]
