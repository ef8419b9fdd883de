import logging

from django.apps import AppConfig


logger = logging.getLogger(__name__)


class CommissionConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "commission"
    verbose_name = "Commission & Payouts"

    def ready(self):
        """Hook settings-cache invalidation into model signals."""
        from .domain.signals import register_settings_listeners

        register_settings_listeners()
        logger.debug("Commission settings listeners registered")
