from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock

import requests
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog, ErrorEvent, ErrorSeverity
from apps.messaging.models import MessageLog, MessageTemplate, MessageType, OutboundKind, OutboundMessage, OutboundStatus
from apps.messaging.outbox import drain_outbox, enqueue_template, enqueue_text
from apps.messaging.whatsapp import SendResult, WhatsAppClient, format_phone_number
from apps.orders import services
from apps.orders.models import Milestone, ProtectionStatus
from apps.orders.monitor import ProtectionMonitor

User = get_user_model()


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, *payloads):
        self.payloads = list(payloads)
        self.bodies = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.bodies.append(json)
        payload = self.payloads.pop(0) if self.payloads else {"messages": [{"id": f"wamid.{len(self.bodies)}"}]}
        if isinstance(payload, Exception):
            raise payload
        return FakeResponse(payload)


def missing_template(code=132001):
    return {"error": {"code": code, "message": "Template name does not exist in the translation"}}


class WhatsAppClientTests(APITestCase):
    def client_with(self, *payloads):
        session = FakeSession(*payloads)
        return WhatsAppClient("1234567890", "token", session=session), session

    def test_format_phone_number(self):
        self.assertEqual(format_phone_number("98765 43210"), "919876543210")
        self.assertEqual(format_phone_number("+91 98765-43210"), "919876543210")
        self.assertEqual(format_phone_number("1 (415) 555-0100"), "14155550100")
        self.assertEqual(format_phone_number(None), "")

    def test_missing_credentials_never_calls_api(self):
        session = FakeSession()
        client = WhatsAppClient("", "", session=session)
        template = client.send_template_message("9876543210", "auragold_rate_warning", variables=["Asha"])
        self.assertFalse(template.success)
        self.assertEqual(template.error, "Missing Credentials")
        text = client.send_message("9876543210", "Hello")
        self.assertFalse(text.success)
        self.assertEqual(text.error, "Credentials not configured")
        self.assertEqual(session.bodies, [])

    def test_template_body_carries_variables_as_text(self):
        client, session = self.client_with({"messages": [{"id": "wamid.A"}]})
        result = client.send_template_message(
            "9876543210", "auragold_rate_warning", variables=["Asha", 7200, None], name="Asha"
        )
        self.assertTrue(result.success)
        self.assertEqual(result.message_id, "wamid.A")
        body = session.bodies[0]
        self.assertEqual(body["to"], "919876543210")
        self.assertEqual(body["template"]["language"], {"code": "en_US"})
        parameters = body["template"]["components"][0]["parameters"]
        self.assertEqual([p["text"] for p in parameters], ["Asha", "7200", ""])
        self.assertEqual(result.log_entry.message_type, MessageType.TEMPLATE)
        self.assertFalse(MessageLog.objects.exists())
        self.assertTrue(AuditLog.objects.filter(action="TEMPLATE_SENT").exists())

    def test_missing_template_falls_back_to_v2(self):
        client, session = self.client_with(missing_template(), {"messages": [{"id": "wamid.B"}]})
        result = client.send_template_message("9876543210", "order_milestones_payment_terms", variables=["Asha"])
        self.assertTrue(result.success)
        self.assertEqual(
            [body["template"]["name"] for body in session.bodies],
            ["order_milestones_payment_terms", "order_milestones_payment_terms_v2"],
        )

    def test_not_found_then_missing_falls_back_to_v3(self):
        client, session = self.client_with(missing_template(404), missing_template(), {"messages": [{"id": "wamid.C"}]})
        result = client.send_template_message("9876543210", "auragold_protection_lapsed", variables=["Asha"])
        self.assertTrue(result.success)
        self.assertEqual(session.bodies[-1]["template"]["name"], "auragold_protection_lapsed_v3")

    def test_rejected_template_is_captured_as_critical(self):
        client, _ = self.client_with({"error": {"code": 131000, "message": "Something went wrong"}})
        result = client.send_template_message("9876543210", "auragold_rate_warning", variables=["Asha"])
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Something went wrong")
        event = ErrorEvent.objects.get()
        self.assertEqual(event.severity, ErrorSeverity.CRITICAL)
        self.assertIn("Send Failed (131000)", event.message)

    def test_network_failure_is_captured_as_medium(self):
        client, _ = self.client_with(requests.exceptions.ConnectionError("connection refused"))
        result = client.send_message("9876543210", "Hello", name="Asha")
        self.assertFalse(result.success)
        self.assertEqual(ErrorEvent.objects.get().severity, ErrorSeverity.MEDIUM)

    def test_non_object_body_is_a_failed_send(self):
        client, _ = self.client_with(["unexpected"])
        result = client.send_template_message("9876543210", "auragold_rate_warning", variables=["Asha"])
        self.assertFalse(result.success)
        self.assertIn("Unexpected response body", result.error)


class OutboxTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin_msg", password="admin123", role="ADMIN")

    def create_order(self):
        return services.create_order(
            actor=self.admin,
            data={
                "customer_name": "Asha Rao",
                "customer_contact": "9876543210",
                "rate_24k": Decimal("7200.00"),
                "rate_22k": Decimal("6600.00"),
                "tax_rate": Decimal("0"),
                "items": [{"category": "Ring", "gross_weight": Decimal("10"), "net_weight": Decimal("10"), "purity": "22K"}],
                "plan": {
                    "plan_type": "PRE_CREATED",
                    "months": 3,
                    "advance_percentage": Decimal("10"),
                    "protection_rate_booked": Decimal("6600.00"),
                    "protection_limit": Decimal("500.00"),
                },
            },
        )

    def test_drain_sends_each_row_once(self):
        enqueue_template(
            kind=OutboundKind.PROTECTION_WARNING,
            phone="9876543210",
            name="Asha",
            template_name="auragold_rate_warning",
            variables=["Asha", "7,200", "6,600", "7"],
            context="Protection warning",
        )
        enqueue_text(
            kind=OutboundKind.PAYMENT_RECEIPT,
            phone="9876543210",
            name="Asha",
            text="Payment Received",
            context="Payment Receipt",
        )
        session = FakeSession()
        client = WhatsAppClient("1234567890", "token", session=session)

        result = drain_outbox(client=client)
        self.assertEqual((result.claimed, result.sent, result.failed), (2, 2, 0))
        self.assertEqual(OutboundMessage.objects.filter(status=OutboundStatus.SENT).count(), 2)
        self.assertEqual(MessageLog.objects.count(), 2)
        template_row = OutboundMessage.objects.get(kind=OutboundKind.PROTECTION_WARNING)
        self.assertEqual(template_row.message_log.context, "Protection warning")
        self.assertIsNotNone(template_row.dispatched_at)

        again = drain_outbox(client=client)
        self.assertEqual(again.claimed, 0)
        self.assertEqual(len(session.bodies), 2)

    def test_rows_claimed_elsewhere_are_skipped(self):
        message = enqueue_text(kind=OutboundKind.PAYMENT_RECEIPT, phone="9876543210", name="Asha", text="Hi")
        OutboundMessage.objects.filter(pk=message.pk).update(status=OutboundStatus.DISPATCHING)
        session = FakeSession()
        result = drain_outbox(client=WhatsAppClient("1234567890", "token", session=session))
        self.assertEqual(result.claimed, 0)
        self.assertEqual(session.bodies, [])

    def test_failed_send_is_recorded_and_not_retried(self):
        enqueue_text(kind=OutboundKind.PAYMENT_RECEIPT, phone="9876543210", name="Asha", text="Hi")
        unconfigured = WhatsAppClient("", "", session=FakeSession())
        result = drain_outbox(client=unconfigured)
        self.assertEqual(result.failed, 1)
        row = OutboundMessage.objects.get()
        self.assertEqual(row.status, OutboundStatus.FAILED)
        self.assertEqual(row.error, "Credentials not configured")

        session = FakeSession()
        retry = drain_outbox(client=WhatsAppClient("1234567890", "token", session=session))
        self.assertEqual(retry.claimed, 0)
        self.assertEqual(session.bodies, [])

    def test_unexpected_reply_fails_row_and_drain_continues(self):
        enqueue_text(kind=OutboundKind.PAYMENT_RECEIPT, phone="9876543210", name="Asha", text="First")
        enqueue_text(kind=OutboundKind.PAYMENT_RECEIPT, phone="9123456789", name="Ravi", text="Second")
        session = FakeSession(["unexpected"])
        result = drain_outbox(client=WhatsAppClient("1234567890", "token", session=session))
        self.assertEqual((result.claimed, result.sent, result.failed), (2, 1, 1))
        self.assertFalse(OutboundMessage.objects.filter(status=OutboundStatus.DISPATCHING).exists())
        failed = OutboundMessage.objects.get(status=OutboundStatus.FAILED)
        self.assertIn("Unexpected response body", failed.error)

    def test_client_error_marks_row_failed(self):
        enqueue_text(kind=OutboundKind.PAYMENT_RECEIPT, phone="9876543210", name="Asha", text="First")
        enqueue_text(kind=OutboundKind.PAYMENT_RECEIPT, phone="9123456789", name="Ravi", text="Second")
        client = mock.Mock()
        client.send_message.side_effect = [RuntimeError("boom"), SendResult(success=True, message_id="wamid.X")]
        result = drain_outbox(client=client)
        self.assertEqual((result.sent, result.failed), (1, 1))
        self.assertEqual(
            sorted(OutboundMessage.objects.values_list("status", flat=True)),
            [OutboundStatus.FAILED, OutboundStatus.SENT],
        )
        self.assertEqual(OutboundMessage.objects.get(status=OutboundStatus.FAILED).error, "Unexpected send error: boom")

    def test_failed_warning_leaves_protection_transition_intact(self):
        order = self.create_order()
        Milestone.objects.filter(plan__order=order, sequence=1).update(
            due_date=timezone.localdate() - timedelta(days=1)
        )
        ProtectionMonitor().tick(market_rate=Decimal("7200.00"))

        rejected = {"error": {"code": 131000, "message": "Something went wrong"}}
        failing = WhatsAppClient("1234567890", "token", session=FakeSession(rejected, rejected))
        result = drain_outbox(client=failing)
        self.assertEqual(result.failed, 2)

        order.plan.refresh_from_db()
        self.assertEqual(order.plan.protection_status, ProtectionStatus.WARNING)
        self.assertIsNotNone(order.plan.grace_period_end_at)
        warning = OutboundMessage.objects.get(order=order, kind=OutboundKind.PROTECTION_WARNING)
        self.assertEqual(warning.status, OutboundStatus.FAILED)
        self.assertEqual(Milestone.objects.get(plan__order=order, sequence=1).warning_count, 1)

    def test_drain_command(self):
        enqueue_text(kind=OutboundKind.PAYMENT_RECEIPT, phone="9876543210", name="Asha", text="Hi")
        out = StringIO()
        call_command("drain_outbox", stdout=out)
        self.assertIn("claimed=1 sent=0 failed=1", out.getvalue())


class MessagingApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin_api", password="admin123", role="ADMIN")
        self.staff = User.objects.create_user(username="staff_api", password="staff123", role="STAFF")

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_manual_send_logs_message(self):
        self.auth_as("staff_api", "staff123")
        client = WhatsAppClient("1234567890", "token", session=FakeSession({"messages": [{"id": "wamid.M"}]}))
        with mock.patch.object(WhatsAppClient, "from_store_settings", return_value=client):
            response = self.client.post(
                "/api/v1/messages/send/",
                {"phone": "9876543210", "message": "Your ring is ready", "name": "Asha"},
                format="json",
            )
        self.assertEqual(response.status_code, 201)
        log = MessageLog.objects.get()
        self.assertEqual(log.provider_message_id, "wamid.M")
        self.assertEqual(log.context, "Manual Chat")

        listed = self.client.get("/api/v1/messages/", {"phone": "98765 43210"})
        self.assertEqual(listed.data["count"], 1)

    def test_manual_send_without_credentials(self):
        self.auth_as("staff_api", "staff123")
        response = self.client.post("/api/v1/messages/send/", {"phone": "9876543210", "message": "Hi"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "send_failed")
        self.assertEqual(response.data["detail"], "Credentials not configured")

    def test_outbox_drain_requires_manage_capability(self):
        enqueue_text(kind=OutboundKind.PAYMENT_RECEIPT, phone="9876543210", name="Asha", text="Hi")
        self.auth_as("staff_api", "staff123")
        self.assertEqual(self.client.post("/api/v1/outbox/drain/", {}, format="json").status_code, 403)

        self.auth_as("admin_api", "admin123")
        client = WhatsAppClient("1234567890", "token", session=FakeSession())
        with mock.patch.object(WhatsAppClient, "from_store_settings", return_value=client):
            response = self.client.post("/api/v1/outbox/drain/", {}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, {"claimed": 1, "sent": 1, "failed": 0})
        pending = self.client.get("/api/v1/outbox/", {"status": OutboundStatus.PENDING})
        self.assertEqual(pending.data["count"], 0)

    def test_template_crud(self):
        self.auth_as("admin_api", "admin123")
        created = self.client.post(
            "/api/v1/message-templates/",
            {"name": "gentle_reminder", "content": "Hello {{1}}, your payment of {{2}} is due.", "app_group": "PAYMENT_COLLECTION"},
            format="json",
        )
        self.assertEqual(created.status_code, 201)
        listed = self.client.get("/api/v1/message-templates/", {"app_group": "PAYMENT_COLLECTION"})
        self.assertEqual(listed.data["count"], 1)

    def test_seed_templates_is_idempotent(self):
        call_command("seed_message_templates", stdout=StringIO())
        count = MessageTemplate.objects.count()
        self.assertGreater(count, 0)
        call_command("seed_message_templates", stdout=StringIO())
        self.assertEqual(MessageTemplate.objects.count(), count)
