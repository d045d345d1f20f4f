from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APITestCase

from apps.customers.directory import current_version, get_directory
from apps.customers.models import BehavioralTag, Customer
from apps.orders import services
from apps.orders.models import OrderStatus

User = get_user_model()


class CustomerDirectoryTests(APITestCase):
    def setUp(self):
        cache.clear()
        self.admin = User.objects.create_user(username="admin_cust", password="admin123", role="ADMIN")
        self.staff = User.objects.create_user(username="staff_cust", password="staff123", role="STAFF")

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def create_order(self, name, contact, net_weight="10.000"):
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
                        "category": "Bangle",
                        "gross_weight": Decimal(net_weight),
                        "net_weight": Decimal(net_weight),
                        "purity": "22K",
                    }
                ],
                "plan": {"plan_type": "PRE_CREATED", "months": 2, "advance_percentage": Decimal("20")},
            },
        )

    def entry_for(self, contact, results):
        return next(entry for entry in results if entry["contact_normalized"] == contact)

    def test_manual_customer_is_keyed_by_normalized_contact(self):
        self.auth_as("staff_cust", "staff123")
        response = self.client.post("/api/v1/customers/", {"name": "Meera", "contact": "98765 43210"}, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["contact_normalized"], "9876543210")

        again = self.client.post(
            "/api/v1/customers/",
            {"name": "Meera Iyer", "contact": "9876543210", "email": "meera@example.com"},
            format="json",
        )
        self.assertEqual(again.status_code, 201)
        self.assertEqual(Customer.objects.count(), 1)
        self.assertEqual(Customer.objects.get().name, "Meera Iyer")

        invalid = self.client.post("/api/v1/customers/", {"name": "No Phone", "contact": "none"}, format="json")
        self.assertEqual(invalid.status_code, 400)

    def test_directory_merges_manual_and_order_customers(self):
        Customer.objects.create(name="Meera", contact="98765-43210")
        self.create_order("Meera", "9876543210")
        self.create_order("Ravi", "9123456789")

        self.auth_as("staff_cust", "staff123")
        response = self.client.get("/api/v1/customers/")
        self.assertEqual(response.status_code, 200)
        results = response.data["results"]
        self.assertEqual(len(results), 2)

        meera = self.entry_for("9876543210", results)
        self.assertTrue(meera["is_manual"])
        self.assertEqual(len(meera["order_ids"]), 1)
        self.assertEqual(meera["total_spent"], "66000.00")

        ravi = self.entry_for("9123456789", results)
        self.assertFalse(ravi["is_manual"])
        self.assertEqual(ravi["id"], "CUST-9123456789")
        self.assertEqual(ravi["name"], "Ravi")

    def test_directory_reflects_new_order_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            self.create_order("Ravi", "9123456789")
        first = get_directory()
        self.assertEqual(len(first), 1)
        self.assertEqual(len(first[0]["order_ids"]), 1)

        with self.captureOnCommitCallbacks(execute=True):
            self.create_order("Ravi", "9123456789", net_weight="5.000")
        second = get_directory()
        self.assertEqual(len(second[0]["order_ids"]), 2)
        self.assertEqual(second[0]["total_spent"], Decimal("99000.00"))

    def test_directory_version_waits_for_commit(self):
        before = current_version()
        with self.captureOnCommitCallbacks() as callbacks:
            order = self.create_order("Ravi", "9123456789")
            services.record_payment(order_id=order.id, amount=Decimal("1000"), method="CASH")
        self.assertTrue(callbacks)
        self.assertEqual(current_version(), before)

        for callback in callbacks:
            callback()
        self.assertGreater(current_version(), before)

    def test_cancelled_orders_do_not_count_towards_spend(self):
        order = self.create_order("Ravi", "9123456789")
        services.cancel_order(order_id=order.id)
        entry = get_directory()[0]
        self.assertEqual(entry["order_ids"], [str(order.id)])
        self.assertEqual(entry["total_spent"], Decimal("0.00"))
        self.assertEqual(order.__class__.objects.get(pk=order.id).status, OrderStatus.CANCELLED)

    def test_search_and_retrieve(self):
        Customer.objects.create(name="Meera", contact="9876543210")
        self.create_order("Ravi", "9123456789")
        self.auth_as("staff_cust", "staff123")

        by_name = self.client.get("/api/v1/customers/", {"q": "meer"})
        self.assertEqual([entry["name"] for entry in by_name.data["results"]], ["Meera"])
        by_phone = self.client.get("/api/v1/customers/", {"q": "91234"})
        self.assertEqual([entry["name"] for entry in by_phone.data["results"]], ["Ravi"])

        detail = self.client.get("/api/v1/customers/9123456789/")
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.data["name"], "Ravi")

        missing = self.client.get("/api/v1/customers/9000000000/")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.data["code"], "not_found")

    def test_analysis_persists_score_and_tag(self):
        self.create_order("Ravi", "9123456789")
        report = {
            "score": 42,
            "riskLevel": "HIGH",
            "persona": "The Strategic Delayer",
            "communicationStrategy": "Firm weekly follow-ups.",
            "negotiationLeverage": "Gold rate trend.",
            "recommendedTone": "FIRM",
            "nextBestAction": "Call before the next due date",
            "digest": {},
            "fallback": False,
        }
        self.auth_as("staff_cust", "staff123")
        forbidden = self.client.post("/api/v1/customers/9123456789/analysis/", {}, format="json")
        self.assertEqual(forbidden.status_code, 403)

        self.auth_as("admin_cust", "admin123")
        with mock.patch("apps.customers.views.analyze_customer", return_value=report) as analyze:
            response = self.client.post("/api/v1/customers/9123456789/analysis/", {}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(analyze.call_count, 1)

        customer = Customer.objects.get(contact_normalized="9123456789")
        self.assertEqual(customer.reliability_score, 42)
        self.assertEqual(customer.behavioral_tag, BehavioralTag.STRATEGIC_DELAYER)
        self.assertIn("Strategic Delayer", customer.ai_insight)
        self.assertIsNotNone(customer.last_analysis_date)
        self.assertEqual(response.data["customer"]["behavioral_tag"], BehavioralTag.STRATEGIC_DELAYER)

    def test_analysis_fallback_leaves_profile_untouched(self):
        self.create_order("Ravi", "9123456789")
        self.auth_as("admin_cust", "admin123")
        response = self.client.post("/api/v1/customers/9123456789/analysis/", {}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["report"]["fallback"])
        self.assertEqual(response.data["report"]["persona"], "Unknown Entity")
        self.assertFalse(Customer.objects.exists())
