import logging

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from commission.api.permissions import CronSecretAuthentication
from commission.domain.services import BackgroundJobs
from infrastructure.container import container


logger = logging.getLogger(__name__)

DEFAULT_JOB = "weekly"


@api_view(["GET", "POST"])
@authentication_classes([CronSecretAuthentication])
@permission_classes([AllowAny])
def cron_maintenance(request):
    """
    Scheduler entry point: run one commission job selected by ``?job=``.
    Accepts daily, weekly, monthly or health; defaults to weekly.
    """
    job_type = request.query_params.get("job") or DEFAULT_JOB
    if job_type not in BackgroundJobs.JOB_TYPES:
        return Response(
            {"error": "INVALID_JOB", "detail": "Invalid job type. Use: daily, weekly, monthly, or health"},
            status=status.HTTP_400_BAD_REQUEST,
        )

    logger.info(f"Starting {job_type} maintenance job via cron endpoint")
    try:
        result = container.background_jobs().run(job_type)
    except Exception as e:
        logger.error(f"Error in {job_type} maintenance job: {e}", exc_info=True)
        return Response(
            {
                "error": "JOB_FAILED",
                "detail": f"Failed to run {job_type} maintenance job",
                "timestamp": timezone.now().isoformat(),
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return Response(
        {
            "success": True,
            "job_type": job_type,
            "result": result.to_dict(),
            "timestamp": timezone.now().isoformat(),
        },
        status=status.HTTP_200_OK,
    )


@api_view(["GET", "POST"])
@authentication_classes([CronSecretAuthentication])
@permission_classes([AllowAny])
def cron_payouts(request):
    """Scheduler entry point: settle matured funds, then run automatic payouts."""
    logger.info("Starting automated payout process via cron endpoint")
    try:
        result = container.background_jobs().run_daily_payout_job()
    except Exception as e:
        logger.error(f"Error in automated payout process: {e}", exc_info=True)
        return Response(
            {
                "error": "PAYOUTS_FAILED",
                "detail": "Failed to process automated payouts",
                "timestamp": timezone.now().isoformat(),
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return Response(
        {
            "success": True,
            "message": "Automated payouts processed successfully",
            "result": result.to_dict(),
            "timestamp": timezone.now().isoformat(),
        },
        status=status.HTTP_200_OK,
    )
