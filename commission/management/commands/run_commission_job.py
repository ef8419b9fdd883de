"""
Django management command to run a scheduled commission job once.
Usage: python manage.py run_commission_job daily|weekly|monthly|health [--json] [--fail-on-error]
"""

import json
import logging

from django.core.management.base import BaseCommand, CommandError

from commission.domain.services import BackgroundJobs
from infrastructure.container import container


logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Run one commission background job (daily payouts, weekly maintenance, monthly archive or health check)"

    def add_arguments(self, parser):
        parser.add_argument("job", choices=BackgroundJobs.JOB_TYPES, help="Job to run")
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the job result as JSON",
        )
        parser.add_argument(
            "--fail-on-error",
            action="store_true",
            help="Exit with an error status when the job reports errors or health issues",
        )

    def handle(self, *args, **options):
        job_type = options["job"]
        self.stdout.write(f"Running commission job: {job_type}")

        result = container.background_jobs().run(job_type)
        data = result.to_dict()

        if options["json"]:
            self.stdout.write(json.dumps(data, indent=2, default=str))
        else:
            for key, value in data.items():
                if isinstance(value, list):
                    continue
                self.stdout.write(f"  {key}: {value}")

        problems = data.get("errors") or data.get("issues") or []
        for problem in problems:
            self.stdout.write(self.style.WARNING(f"  - {problem}"))

        if problems and options["fail_on_error"]:
            raise CommandError(f"Commission job {job_type} reported {len(problems)} problem(s)")

        if problems:
            self.stdout.write(self.style.WARNING(f"Commission job {job_type} finished with {len(problems)} problem(s)"))
        else:
            self.stdout.write(self.style.SUCCESS(f"Commission job {job_type} completed"))
