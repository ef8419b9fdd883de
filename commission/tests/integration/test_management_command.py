import json
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import CommandError, call_command
from django.test import TestCase
from django.utils import timezone

from commission.models import CommissionTransaction
from commission.tests.factories import CommissionTransactionFactory, StoreEarningsFactory


class RunCommissionJobCommandTest(TestCase):
    def _call(self, *args):
        out = StringIO()
        call_command("run_commission_job", *args, stdout=out)
        return out.getvalue()

    def test_weekly_job(self):
        StoreEarningsFactory(store_id="store_1")

        output = self._call("weekly")

        self.assertIn("Running commission job: weekly", output)
        self.assertIn("updated: 1", output)
        self.assertIn("Commission job weekly completed", output)

    def test_json_output(self):
        output = self._call("health", "--json")

        payload = output[output.index("{") : output.rindex("}") + 1]
        self.assertEqual(json.loads(payload), {"healthy": True, "issues": []})

    def test_problems_listed(self):
        StoreEarningsFactory(available_balance=Decimal("5000.00"))

        output = self._call("health")

        self.assertIn("1 stores have high available balance", output)
        self.assertIn("finished with 1 problem(s)", output)

    def test_fail_on_error(self):
        CommissionTransactionFactory(status=CommissionTransaction.STATUS_PENDING, created_at=timezone.now() - timedelta(hours=2))

        with self.assertRaises(CommandError):
            self._call("health", "--fail-on-error")

    def test_unknown_job_rejected(self):
        with self.assertRaises(CommandError):
            self._call("hourly")
