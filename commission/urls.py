from django.urls import path

from .api.views import cron_views


app_name = "commission"

urlpatterns = [
    path("cron/maintenance/", cron_views.cron_maintenance, name="cron-maintenance"),
    path("cron/payouts/", cron_views.cron_payouts, name="cron-payouts"),
]
