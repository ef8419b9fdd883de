"""
Commission Celery Tasks

Scheduled by Celery beat (see commissionBackend/celery.py):
- Daily settlement of matured funds followed by automatic payouts
- Weekly recomputation of current month sales
- Monthly archiving of old completed payouts
- Hourly ledger health check

Each task returns the job's result dictionary. The jobs themselves collect
per-item errors; a task only retries when the job raises unexpectedly.
"""

import logging

from celery import shared_task

from infrastructure.container import container


logger = logging.getLogger(__name__)


def _run_job(task, job_type):
    try:
        logger.info(f"Starting commission job: {job_type}")
        result = container.background_jobs().run(job_type).to_dict()
        logger.info(f"Commission job {job_type} finished: {result}")
        return result
    except Exception as exc:
        logger.error(f"Commission job {job_type} crashed: {exc}", exc_info=True)
        raise task.retry(exc=exc, countdown=60 * (task.request.retries + 1))


@shared_task(bind=True, max_retries=3, queue="commission_tasks")
def run_daily_payout_job_task(self):
    """Settle pending funds past the holding period, then process due automatic payouts."""
    return _run_job(self, "daily")


@shared_task(bind=True, max_retries=3, queue="commission_tasks")
def run_weekly_maintenance_task(self):
    """Refresh current month sales for every store and reload commission settings."""
    return _run_job(self, "weekly")


@shared_task(bind=True, max_retries=3, queue="commission_tasks")
def run_monthly_archive_task(self):
    return _run_job(self, "monthly")


@shared_task(bind=True, max_retries=3, queue="commission_tasks")
def run_health_check_task(self):
    result = _run_job(self, "health")
    if not result["healthy"]:
        logger.warning(f"Commission health check reported issues: {result['issues']}")
    return result
