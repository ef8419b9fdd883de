from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase

from commission.domain.services.settings_resolver import (
    DEFAULT_SETTINGS,
    FALLBACK_SETTINGS,
    SettingsResolver,
    VolumeTier,
)
from commission.tests.factories import (
    CategoryCommissionRateFactory,
    CommissionSettingsFactory,
    StoreCommissionRateFactory,
    VolumeDiscountTierFactory,
)
from infrastructure.container import container


class SettingsResolverTest(TestCase):
    def test_defaults_when_no_settings_stored(self):
        settings = SettingsResolver().get_settings()

        self.assertEqual(settings, DEFAULT_SETTINGS)
        self.assertEqual(settings.global_rate, Decimal("10.00"))
        self.assertEqual(
            [tier.threshold_amount for tier in settings.volume_discounts],
            [Decimal("10000"), Decimal("25000"), Decimal("50000")],
        )

    @patch("commission.domain.services.settings_resolver.CommissionSettings.objects")
    def test_fallback_when_settings_unreadable(self, mock_objects):
        mock_objects.prefetch_related.side_effect = Exception("DB Error")

        settings = SettingsResolver().get_settings()

        self.assertEqual(settings, FALLBACK_SETTINGS)
        self.assertEqual(settings.volume_discounts, ())

    def test_failed_load_is_not_cached(self):
        record = CommissionSettingsFactory()
        StoreCommissionRateFactory(settings=record, store_id="store_vip", rate=Decimal("8.00"))
        resolver = SettingsResolver()

        with patch("commission.domain.services.settings_resolver.CommissionSettings.objects") as mock_objects:
            mock_objects.prefetch_related.side_effect = Exception("DB Error")
            self.assertEqual(resolver.get_settings(), FALLBACK_SETTINGS)

        recovered = resolver.get_settings()

        self.assertEqual(recovered.store_rates.get("store_vip"), Decimal("8.00"))

    def test_loads_stored_overrides(self):
        record = CommissionSettingsFactory(global_rate=Decimal("9.50"))
        CategoryCommissionRateFactory(settings=record, category_id="electronics", rate=Decimal("12.00"))
        StoreCommissionRateFactory(settings=record, store_id="store_vip", rate=Decimal("8.00"))
        VolumeDiscountTierFactory(settings=record, threshold_amount=Decimal("25000"), discount_rate=Decimal("2"))
        VolumeDiscountTierFactory(settings=record, threshold_amount=Decimal("10000"), discount_rate=Decimal("1"))

        settings = SettingsResolver().get_settings()

        self.assertEqual(settings.global_rate, Decimal("9.50"))
        self.assertEqual(settings.category_rates, {"electronics": Decimal("12.00")})
        self.assertEqual(settings.store_rates, {"store_vip": Decimal("8.00")})
        self.assertEqual(
            settings.volume_discounts,
            (VolumeTier(Decimal("10000"), Decimal("1")), VolumeTier(Decimal("25000"), Decimal("2"))),
        )

    def test_zero_global_rate_uses_default(self):
        CommissionSettingsFactory(global_rate=Decimal("0"))

        self.assertEqual(SettingsResolver().get_settings().global_rate, Decimal("10.00"))

    def test_settings_cached_until_invalidated(self):
        resolver = SettingsResolver()
        first = resolver.get_settings()

        with self.assertNumQueries(0):
            self.assertIs(resolver.get_settings(), first)

        resolver.invalidate()
        with self.assertNumQueries(1):
            resolver.get_settings()

    def test_saving_settings_invalidates_shared_resolver(self):
        resolver = container.settings_resolver()
        self.assertEqual(resolver.get_settings().global_rate, Decimal("10.00"))

        record = CommissionSettingsFactory(global_rate=Decimal("15.00"))
        self.assertEqual(resolver.get_settings().global_rate, Decimal("15.00"))

        StoreCommissionRateFactory(settings=record, store_id="store_vip", rate=Decimal("5.00"))
        self.assertEqual(resolver.get_settings().store_rates, {"store_vip": Decimal("5.00")})

    def test_deleting_override_invalidates_shared_resolver(self):
        record = CommissionSettingsFactory()
        override = CategoryCommissionRateFactory(settings=record, category_id="books")
        resolver = container.settings_resolver()
        self.assertIn("books", resolver.get_settings().category_rates)

        override.delete()

        self.assertNotIn("books", resolver.get_settings().category_rates)

    def test_tier_for_picks_highest_reached_threshold(self):
        self.assertIsNone(DEFAULT_SETTINGS.tier_for(Decimal("9999.99")))
        self.assertEqual(DEFAULT_SETTINGS.tier_for(Decimal("10000")).discount_rate, Decimal("1"))
        self.assertEqual(DEFAULT_SETTINGS.tier_for(Decimal("49999")).discount_rate, Decimal("2"))
        self.assertEqual(DEFAULT_SETTINGS.tier_for(Decimal("75000")).discount_rate, Decimal("3"))
