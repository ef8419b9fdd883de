import logging

from django.db.models.signals import post_delete, post_save

from .models import CategoryCommissionRate, CommissionSettings, StoreCommissionRate, VolumeDiscountTier


logger = logging.getLogger(__name__)

SETTINGS_MODELS = (CommissionSettings, CategoryCommissionRate, StoreCommissionRate, VolumeDiscountTier)


def handle_settings_changed(sender, instance, **kwargs):
    """Drop the cached commission settings so the next read refetches them."""
    from infrastructure.container import container

    logger.info(f"[Commission Listener] {sender.__name__} changed, invalidating settings cache")
    container.settings_resolver().invalidate()


def register_settings_listeners():
    """Connect cache invalidation to every commission settings model."""
    for model in SETTINGS_MODELS:
        post_save.connect(handle_settings_changed, sender=model, dispatch_uid=f"commission_invalidate_save_{model.__name__}")
        post_delete.connect(
            handle_settings_changed, sender=model, dispatch_uid=f"commission_invalidate_delete_{model.__name__}"
        )
