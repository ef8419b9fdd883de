"""
Commission Tasks Package

Celery task wrappers around the scheduled commission jobs.
"""

from .commission_tasks import (
    run_daily_payout_job_task,
    run_health_check_task,
    run_monthly_archive_task,
    run_weekly_maintenance_task,
)


__all__ = [
    "run_daily_payout_job_task",
    "run_weekly_maintenance_task",
    "run_monthly_archive_task",
    "run_health_check_task",
]
