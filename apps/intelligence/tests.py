import json
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import override_settings
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog, ErrorEvent, ErrorSeverity
from apps.intelligence import gemini
from apps.messaging.models import MessageDirection, MessageLog
from apps.orders import services
from apps.orders.models import Milestone, Order, OrderStatus

User = get_user_model()


def gemini_response(text):
    response = mock.Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return response


class IntelligenceTestMixin:
    def setUp(self):
        self.admin = User.objects.create_user(username="admin_ai", password="admin123", role="ADMIN")
        self.staff = User.objects.create_user(username="staff_ai", password="staff123", role="STAFF")

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def create_order(self, name="Asha Rao", contact="9876543210"):
        return services.create_order(
            actor=self.admin,
            data={
                "customer_name": name,
                "customer_contact": contact,
                "rate_24k": Decimal("7200.00"),
                "rate_22k": Decimal("6600.00"),
                "tax_rate": Decimal("0"),
                "items": [
                    {
                        "category": "Chain",
                        "gross_weight": Decimal("10.000"),
                        "net_weight": Decimal("10.000"),
                        "purity": "22K",
                    }
                ],
                "plan": {"plan_type": "PRE_CREATED", "months": 3, "advance_percentage": Decimal("10")},
            },
        )

    def load(self, order):
        return Order.objects.select_related("plan").prefetch_related("payments", "plan__milestones").get(pk=order.pk)


class GeminiHelperTests(IntelligenceTestMixin, APITestCase):
    def test_reliability_digest_counts_late_milestones(self):
        order = self.create_order()
        today = timezone.localdate()
        Milestone.objects.filter(plan__order=order, sequence=1).update(due_date=today - timedelta(days=4))
        Milestone.objects.filter(plan__order=order, sequence=2).update(due_date=today - timedelta(days=2))

        digest = gemini.reliability_digest([self.load(order)])
        self.assertEqual(digest["total_milestones"], 4)
        self.assertEqual(digest["late_milestones"], 2)
        self.assertEqual(digest["average_delay_days"], 3)
        self.assertEqual(digest["payment_reliability"], 50.0)
        self.assertEqual(gemini.reliability_digest([])["payment_reliability"], 100.0)

    def test_reminder_kind(self):
        order = self.create_order()
        self.assertEqual(gemini.reminder_kind(self.load(order)), "UPCOMING")
        Milestone.objects.filter(plan__order=order, sequence=1).update(
            due_date=timezone.localdate() - timedelta(days=1)
        )
        self.assertEqual(gemini.reminder_kind(self.load(order)), "OVERDUE")

    def test_missing_key_falls_back(self):
        order = self.load(self.create_order())
        draft = gemini.draft_reminder(order, "UPCOMING", Decimal("6600"))
        self.assertEqual(draft["tone"], "POLITE")
        self.assertEqual(draft["reasoning"], "Fallback due to AI error.")
        self.assertIn("Asha Rao", draft["message"])
        event = ErrorEvent.objects.get()
        self.assertEqual(event.severity, ErrorSeverity.MEDIUM)
        self.assertTrue(event.message.startswith("Strategy Generation Failed"))

    @override_settings(GEMINI_API_KEY="test-key")
    def test_fenced_json_is_accepted(self):
        order = self.load(self.create_order())
        payload = "```json\n" + json.dumps({"tone": "FIRM", "reasoning": "Rate rising", "message": "Please pay."}) + "\n```"
        with mock.patch("apps.intelligence.gemini.requests.post", return_value=gemini_response(payload)) as post:
            draft = gemini.draft_reminder(order, "OVERDUE", Decimal("6800"))
        self.assertEqual(draft, {"tone": "FIRM", "reasoning": "Rate rising", "message": "Please pay."})
        self.assertEqual(post.call_args.kwargs["params"], {"key": "test-key"})
        self.assertTrue(AuditLog.objects.filter(details="AI Strategy generated for Asha Rao").exists())

    @override_settings(GEMINI_API_KEY="test-key")
    def test_analysis_score_is_clamped(self):
        order = self.load(self.create_order())
        customer = {"name": "Asha Rao", "total_spent": Decimal("66000.00")}
        payload = json.dumps({"score": 140, "riskLevel": "LOW", "persona": "The Loyal Patron"})
        with mock.patch("apps.intelligence.gemini.requests.post", return_value=gemini_response(payload)):
            report = gemini.analyze_customer(customer, [order], MessageLog.objects.none())
        self.assertEqual(report["score"], 100)
        self.assertFalse(report["fallback"])
        self.assertEqual(report["recommendedTone"], "POLITE")
        self.assertEqual(report["digest"]["total_milestones"], 4)

    @override_settings(GEMINI_API_KEY="test-key")
    def test_non_object_analysis_falls_back(self):
        customer = {"name": "Asha Rao", "total_spent": Decimal("0")}
        with mock.patch("apps.intelligence.gemini.requests.post", return_value=gemini_response("[1, 2]")):
            report = gemini.analyze_customer(customer, [], [])
        self.assertTrue(report["fallback"])
        self.assertEqual(report["score"], 50)

    def test_collection_risk_without_overdue_orders(self):
        self.assertEqual(gemini.collection_risk([]), gemini.NO_RISK_SUMMARY)


class IntelligenceApiTests(IntelligenceTestMixin, APITestCase):
    def test_reminder_draft_endpoint(self):
        order = self.create_order()
        self.auth_as("staff_ai", "staff123")
        response = self.client.post(f"/api/v1/intelligence/orders/{order.id}/reminder-draft/", {}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["kind"], "UPCOMING")
        self.assertEqual(response.data["tone"], "POLITE")

        invalid = self.client.post(
            f"/api/v1/intelligence/orders/{order.id}/reminder-draft/", {"kind": "LATER"}, format="json"
        )
        self.assertEqual(invalid.status_code, 400)

        missing = self.client.post(
            "/api/v1/intelligence/orders/00000000-0000-0000-0000-000000000000/reminder-draft/", {}, format="json"
        )
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.data["code"], "not_found")

    def test_collection_risk_endpoint(self):
        order = self.create_order()
        Order.objects.filter(pk=order.pk).update(status=OrderStatus.OVERDUE)

        self.auth_as("staff_ai", "staff123")
        self.assertEqual(self.client.get("/api/v1/intelligence/collection-risk/").status_code, 403)

        self.auth_as("admin_ai", "admin123")
        response = self.client.get("/api/v1/intelligence/collection-risk/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["overdue_orders"], 1)
        self.assertEqual(response.data["summary"], gemini.RISK_FALLBACK)

    @override_settings(GEMINI_API_KEY="test-key")
    def test_chat_insight_endpoint(self):
        MessageLog.objects.create(
            customer_name="Asha Rao",
            phone_number="919876543210",
            message="Can I pay next week?",
            direction=MessageDirection.INBOUND,
        )
        payload = json.dumps({"intent": "Extension request", "suggestedReply": "Sure, by Friday.", "tone": "Warm"})
        self.auth_as("staff_ai", "staff123")
        with mock.patch("apps.intelligence.gemini.requests.post", return_value=gemini_response(payload)) as post:
            response = self.client.post(
                "/api/v1/intelligence/chat-insight/", {"phone": "98765 43210", "name": "Asha Rao"}, format="json"
            )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["intent"], "Extension request")
        self.assertIsNone(response.data["recommendedTemplateId"])
        prompt = post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
        self.assertIn("Can I pay next week?", prompt)
