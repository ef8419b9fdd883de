"""
Celery Configuration for the Commission Backend

This module configures Celery for the scheduled commission jobs:
daily settlement and automatic payouts, weekly sales maintenance,
monthly payout archiving and the hourly health check.
"""

import os

from celery import Celery
from celery.schedules import crontab


# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "commissionBackend.settings")

# Create Celery app
app = Celery("commissionBackend")

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

# Explicitly import our tasks to ensure they're registered
app.autodiscover_tasks(["commission.Tasks"], related_name="commission_tasks")

# Celery Beat configuration for periodic tasks
app.conf.beat_schedule = {
    # Settle matured funds and pay out automatic stores every day at 02:00 UTC
    "commission-daily-payouts": {
        "task": "commission.Tasks.commission_tasks.run_daily_payout_job_task",
        "schedule": crontab(hour=2, minute=0),
        "options": {"expires": 60.0 * 60.0, "queue": "commission_tasks"},
    },
    # Recompute current month sales every Monday at 03:00 UTC
    "commission-weekly-maintenance": {
        "task": "commission.Tasks.commission_tasks.run_weekly_maintenance_task",
        "schedule": crontab(hour=3, minute=0, day_of_week=1),
        "options": {"expires": 60.0 * 60.0, "queue": "commission_tasks"},
    },
    # Archive old completed payouts on the first day of each month
    "commission-monthly-archive": {
        "task": "commission.Tasks.commission_tasks.run_monthly_archive_task",
        "schedule": crontab(hour=4, minute=0, day_of_month=1),
        "options": {"expires": 60.0 * 60.0, "queue": "commission_tasks"},
    },
    # Ledger health check every hour
    "commission-health-check": {
        "task": "commission.Tasks.commission_tasks.run_health_check_task",
        "schedule": 60.0 * 60.0,
        "options": {"expires": 15.0 * 60.0, "queue": "commission_tasks"},
    },
}

# Celery configuration settings
app.conf.update(
    # Task routing - organize tasks by type
    task_routes={
        "commission.Tasks.commission_tasks.*": {"queue": "commission_tasks"},
    },
    # Task execution settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task result settings
    result_expires=60 * 60 * 24,  # Results expire after 24 hours
    # Worker settings
    worker_max_tasks_per_child=1000,
    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
)
