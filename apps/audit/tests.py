import json
from unittest import mock

import requests
from django.contrib.auth import get_user_model
from django.test import override_settings
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog, ErrorEvent, ErrorSeverity, ErrorStatus
from apps.audit.services import FORBIDDEN_DIAGNOSIS, record_audit, record_error

User = get_user_model()


def gemini_response(data):
    response = mock.Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"candidates": [{"content": {"parts": [{"text": json.dumps(data)}]}}]}
    return response


class RecordErrorTests(APITestCase):
    def test_repeated_message_is_deduplicated(self):
        first = record_error("WhatsApp", "Send Failed (131000)", ErrorSeverity.LOW)
        second = record_error("WhatsApp", "Send Failed (131000)", ErrorSeverity.LOW)
        self.assertIsNotNone(first)
        self.assertIsNone(second)
        self.assertEqual(ErrorEvent.objects.count(), 1)

        record_error("WhatsApp", "Send Failed (131026)", ErrorSeverity.LOW)
        self.assertEqual(ErrorEvent.objects.count(), 2)

    @override_settings(ERROR_LOG_MAX_ENTRIES=3)
    def test_log_is_pruned_to_max_entries(self):
        for index in range(5):
            record_error("Gold Rate Feed", f"sync failed {index}", ErrorSeverity.LOW)
        self.assertEqual(ErrorEvent.objects.count(), 3)

    def test_forbidden_errors_skip_ai_diagnosis(self):
        with mock.patch("apps.intelligence.gemini.requests.post") as post:
            event = record_error("GeminiService", "403 Client Error: Forbidden", ErrorSeverity.MEDIUM)
        post.assert_not_called()
        event.refresh_from_db()
        self.assertEqual(event.status, ErrorStatus.UNRESOLVABLE)
        self.assertEqual(event.ai_diagnosis, FORBIDDEN_DIAGNOSIS)
        self.assertEqual(event.resolution_path, "settings")

    def test_low_severity_is_not_diagnosed(self):
        event = record_error("Gold Rate Feed", "timeout", ErrorSeverity.LOW)
        self.assertEqual(event.status, ErrorStatus.NEW)
        self.assertEqual(event.ai_diagnosis, "")

    @override_settings(GEMINI_API_KEY="test-key", ERROR_AUTO_DIAGNOSIS=True)
    def test_diagnosis_is_stored_on_event(self):
        diagnosis = {
            "explanation": "Template name is not approved.",
            "action": "REPAIR_TEMPLATE",
            "path": "templates",
            "cta": "Open Templates",
            "suggestedFixData": {"name": "auragold_payment_due"},
        }
        with mock.patch("apps.intelligence.gemini.requests.post", return_value=gemini_response(diagnosis)):
            event = record_error("WhatsApp", "Template missing (132001)", ErrorSeverity.CRITICAL)
        event.refresh_from_db()
        self.assertEqual(event.ai_diagnosis, "Template name is not approved.")
        self.assertEqual(event.resolution_path, "templates")
        self.assertEqual(event.suggested_fix_data, {"name": "auragold_payment_due"})
        self.assertEqual(event.ai_fix_applied, "Manual review required.")
        self.assertEqual(event.status, ErrorStatus.UNRESOLVABLE)

    @override_settings(GEMINI_API_KEY="test-key", ERROR_AUTO_DIAGNOSIS=True)
    def test_failed_diagnosis_does_not_recurse(self):
        with mock.patch(
            "apps.intelligence.gemini.requests.post",
            side_effect=requests.exceptions.ConnectionError("offline"),
        ):
            event = record_error("WhatsApp", "Send Failed (131000)", ErrorSeverity.CRITICAL)
        event.refresh_from_db()
        self.assertEqual(ErrorEvent.objects.count(), 1)
        self.assertEqual(event.resolution_cta, "Verify API Key")
        self.assertTrue(AuditLog.objects.filter(details__startswith="Gemini Diagnosis Failed").exists())


class SystemLogApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin_sys", password="admin123", role="ADMIN")
        self.manager = User.objects.create_user(username="manager_sys", password="manager123", role="MANAGER")
        self.staff = User.objects.create_user(username="staff_sys", password="staff123", role="STAFF")

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_error_log_visibility_and_resolution(self):
        record_error("Gold Rate Feed", "timeout", ErrorSeverity.LOW)
        event = record_error("WhatsApp", "Send Failed (131000)", ErrorSeverity.CRITICAL)

        self.auth_as("staff_sys", "staff123")
        self.assertEqual(self.client.get("/api/v1/system-errors/").status_code, 403)

        self.auth_as("manager_sys", "manager123")
        listed = self.client.get("/api/v1/system-errors/", {"severity": "CRITICAL"})
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.data["count"], 1)
        self.assertEqual(listed.data["results"][0]["source"], "WhatsApp")
        self.assertEqual(self.client.post(f"/api/v1/system-errors/{event.id}/resolve/").status_code, 403)

        self.auth_as("admin_sys", "admin123")
        resolved = self.client.post(f"/api/v1/system-errors/{event.id}/resolve/")
        self.assertEqual(resolved.status_code, 200)
        self.assertEqual(resolved.data["status"], ErrorStatus.RESOLVED)

        cleared = self.client.post("/api/v1/system-errors/clear/")
        self.assertEqual(cleared.data["deleted"], 2)
        self.assertFalse(ErrorEvent.objects.exists())

    def test_activity_feed_filters_and_clear(self):
        record_audit(actor=self.admin, action="STATUS_UPDATE", entity_type="order", entity_id="ord-1", details="Order ord-1 updated")
        record_audit(action="settings.update", entity_type="store_settings", entity_id=1)

        self.auth_as("manager_sys", "manager123")
        listed = self.client.get("/api/v1/activity/", {"entity_id": "ord-1"})
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.data["count"], 1)
        self.assertEqual(listed.data["results"][0]["actor_username"], "admin_sys")
        self.assertEqual(self.client.post("/api/v1/activity/clear/").status_code, 403)

        self.auth_as("admin_sys", "admin123")
        cleared = self.client.post("/api/v1/activity/clear/")
        self.assertEqual(cleared.status_code, 200)
        self.assertFalse(AuditLog.objects.exists())
