from prometheus_client import Counter, Gauge


commission_fees_total = Counter("commission_fees_total", "Total platform commission recorded", ["currency"])

payout_volume_total = Counter("payout_volume_total", "Total payout volume processed", ["currency", "status"])

settled_funds_total = Counter("settled_funds_total", "Net earnings moved from pending to available", ["currency"])

commission_job_runs_total = Counter(
    "commission_job_runs_total", "Scheduled commission job runs", ["job", "outcome"]
)

pending_balance_value = Gauge("pending_balance_value", "Sum of store balances still inside the holding period", ["currency"])
