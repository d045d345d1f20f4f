import time
from decimal import Decimal
from io import StringIO
from unittest import mock

import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.management import call_command
from django.test import SimpleTestCase
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog, ErrorEvent, ErrorSeverity
from apps.pricing.calculator import order_total, price_item
from apps.pricing.models import PaymentPlanTemplate, StoreSettings
from apps.pricing.rates import RATE_CACHE_KEY, fetch_live_rate, refresh_store_rates

User = get_user_model()


def feed_response(payload):
    response = mock.Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class RateFeedTests(APITestCase):
    def setUp(self):
        cache.clear()

    @mock.patch("apps.pricing.rates.requests.get")
    def test_feed_rate_is_parsed_and_cached(self, get):
        get.return_value = feed_response({"data": [[{"gSell": "7250.50", "gBuy": "7100.00"}]]})
        result = fetch_live_rate()
        self.assertTrue(result.success)
        self.assertEqual(result.rate_24k, Decimal("7250.50"))
        self.assertEqual(result.rate_22k, Decimal("6641"))
        self.assertEqual(result.source, "Augmont")

        cached = fetch_live_rate()
        self.assertEqual(cached.source, "Cache")
        self.assertEqual(get.call_count, 1)

        fetch_live_rate(force_refresh=True)
        self.assertEqual(get.call_count, 2)

    @mock.patch("apps.pricing.rates.requests.get")
    def test_buy_rate_used_when_sell_missing(self, get):
        get.return_value = feed_response({"data": [[{"gBuy": "7000"}]]})
        result = fetch_live_rate()
        self.assertEqual(result.rate_24k, Decimal("7000.00"))
        self.assertEqual(result.rate_22k, Decimal("6412"))

    @mock.patch("apps.pricing.rates.requests.get")
    def test_feed_failure_returns_stale_cache(self, get):
        get.side_effect = requests.exceptions.ConnectionError("feed offline")
        cache.set(
            RATE_CACHE_KEY,
            {
                "rate_24k": Decimal("7300.00"),
                "rate_22k": Decimal("6687"),
                "timestamp": time.time() - settings.GOLD_RATE_CACHE_SECONDS - 60,
            },
            timeout=None,
        )
        result = fetch_live_rate()
        self.assertTrue(result.success)
        self.assertEqual(result.rate_24k, Decimal("7300.00"))
        self.assertEqual(result.source, "Offline Cache (Stale)")
        self.assertEqual(get.call_count, 1)

    @mock.patch("apps.pricing.rates.requests.get")
    def test_feed_failure_without_cache_returns_defaults(self, get):
        get.return_value = feed_response({"data": []})
        result = fetch_live_rate()
        self.assertFalse(result.success)
        self.assertEqual(result.rate_24k, Decimal("7200.00"))
        self.assertEqual(result.rate_22k, Decimal("6600.00"))
        self.assertEqual(result.error, "Data format mismatch")
        event = ErrorEvent.objects.get()
        self.assertEqual(event.severity, ErrorSeverity.LOW)

    @mock.patch("apps.pricing.rates.requests.get")
    def test_refresh_updates_store_only_on_success(self, get):
        get.side_effect = requests.exceptions.Timeout("slow feed")
        refresh_store_rates()
        store = StoreSettings.load()
        self.assertIsNone(store.rate_updated_at)

        get.side_effect = None
        get.return_value = feed_response({"data": [[{"gSell": "7400"}]]})
        refresh_store_rates()
        store = StoreSettings.load()
        self.assertEqual(store.current_gold_rate_24k, Decimal("7400.00"))
        self.assertEqual(store.current_gold_rate_22k, Decimal("6778.00"))
        self.assertIsNotNone(store.rate_updated_at)


class CalculatorTests(SimpleTestCase):
    def test_price_item_breakdown(self):
        pricing = price_item(
            net_weight=Decimal("10.000"),
            purity="22K",
            wastage_percentage=Decimal("8"),
            making_charges_per_gram=Decimal("500"),
            stone_charges=Decimal("1000"),
            rate_24k=Decimal("7200"),
            rate_22k=Decimal("6600"),
            tax_rate=Decimal("3"),
        )
        self.assertEqual(pricing["base_metal_value"], Decimal("66000.00"))
        self.assertEqual(pricing["wastage_value"], Decimal("5280.00"))
        self.assertEqual(pricing["total_labor_value"], Decimal("6000.00"))
        self.assertEqual(pricing["tax_amount"], Decimal("2318.40"))
        self.assertEqual(pricing["final_amount"], Decimal("79598.40"))

    def test_24k_items_use_24k_rate(self):
        pricing = price_item(
            net_weight=Decimal("2"),
            purity="24K",
            wastage_percentage=Decimal("0"),
            making_charges_per_gram=Decimal("0"),
            stone_charges=Decimal("0"),
            rate_24k=Decimal("7200"),
            rate_22k=Decimal("6600"),
            tax_rate=Decimal("0"),
        )
        self.assertEqual(pricing["final_amount"], Decimal("14400.00"))

    def test_order_total_applies_interest_then_charges(self):
        self.assertEqual(order_total([Decimal("1000"), Decimal("2000")], Decimal("5"), Decimal("100")), Decimal("3250.00"))


class StoreSettingsApiTests(APITestCase):
    def setUp(self):
        cache.clear()
        self.admin = User.objects.create_user(username="admin_set", password="admin123", role="ADMIN")
        self.staff = User.objects.create_user(username="staff_set", password="staff123", role="STAFF")

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_settings_read_and_update(self):
        self.auth_as("staff_set", "staff123")
        response = self.client.get("/api/v1/settings/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["current_gold_rate_22k"], "6600.00")
        forbidden = self.client.patch("/api/v1/settings/", {"default_tax_rate": "5.00"}, format="json")
        self.assertEqual(forbidden.status_code, 403)

        self.auth_as("admin_set", "admin123")
        updated = self.client.patch(
            "/api/v1/settings/",
            {"current_gold_rate_22k": "6700.00", "whatsapp_phone_number_id": "123", "whatsapp_business_token": "secret"},
            format="json",
        )
        self.assertEqual(updated.status_code, 200)
        self.assertNotIn("whatsapp_business_token", updated.data)
        self.assertTrue(updated.data["has_whatsapp_credentials"])
        self.assertEqual(StoreSettings.load().current_gold_rate_22k, Decimal("6700.00"))
        log = AuditLog.objects.get(action="settings.update")
        self.assertNotIn("whatsapp_business_token", log.payload["fields"])

        invalid = self.client.patch("/api/v1/settings/", {"current_gold_rate_24k": "0"}, format="json")
        self.assertEqual(invalid.status_code, 400)

    @mock.patch("apps.pricing.rates.requests.get")
    def test_refresh_rate_endpoint(self, get):
        get.return_value = feed_response({"data": [[{"gSell": "7500"}]]})
        self.auth_as("staff_set", "staff123")
        response = self.client.post("/api/v1/settings/refresh-rate/", {}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["success"])
        self.assertEqual(response.data["rate_24k"], "7500.00")
        self.assertEqual(StoreSettings.load().current_gold_rate_24k, Decimal("7500.00"))

    def test_plan_templates(self):
        call_command("seed_plan_templates", stdout=StringIO())
        self.assertEqual(PaymentPlanTemplate.objects.count(), 3)

        self.auth_as("admin_set", "admin123")
        listed = self.client.get("/api/v1/plan-templates/")
        self.assertEqual(listed.data["count"], 3)
        self.assertEqual(listed.data["results"][0]["months"], 3)

        invalid = self.client.post(
            "/api/v1/plan-templates/",
            {"name": "Broken", "months": 0, "advance_percentage": "10"},
            format="json",
        )
        self.assertEqual(invalid.status_code, 400)

        created = self.client.post(
            "/api/v1/plan-templates/",
            {"name": "Festive (9 Months)", "months": 9, "interest_percentage": "6", "advance_percentage": "12"},
            format="json",
        )
        self.assertEqual(created.status_code, 201)
        self.assertTrue(AuditLog.objects.filter(action="plan_template.create").exists())
