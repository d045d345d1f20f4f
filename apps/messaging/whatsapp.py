"""
WhatsApp Business (Graph API) client.
Sends free-form text and approved template messages on behalf of the store.
Credentials come from the StoreSettings row.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

import requests
from django.conf import settings

from apps.audit.models import ErrorSeverity
from apps.audit.services import record_audit, record_error
from apps.messaging.models import MessageDirection, MessageLog, MessageStatus, MessageType

logger = logging.getLogger(__name__)

ERROR_SOURCE = "WhatsApp API"
TEMPLATE_MISSING_CODES = {132001, 404}


@dataclass
class SendResult:
    success: bool
    message_id: str = ""
    error: str = ""
    log_entry: Optional[MessageLog] = None
    raw_response: Optional[dict] = None


def format_phone_number(phone):
    """Digits only; 10-digit local numbers get the default country code."""
    cleaned = re.sub(r"\D", "", str(phone or ""))
    if len(cleaned) == 10:
        return f"{settings.WHATSAPP_DEFAULT_COUNTRY_CODE}{cleaned}"
    return cleaned


class WhatsAppClient:
    def __init__(self, phone_number_id, token, session=None):
        self.phone_number_id = phone_number_id
        self.token = token
        self.session = session or requests.Session()

    @classmethod
    def from_store_settings(cls):
        from apps.pricing.models import StoreSettings

        store = StoreSettings.load()
        return cls(store.whatsapp_phone_number_id, store.whatsapp_business_token)

    @property
    def configured(self):
        return bool(self.phone_number_id and self.token)

    @property
    def messages_url(self):
        return f"{settings.WHATSAPP_GRAPH_URL}/{settings.WHATSAPP_API_VERSION}/{self.phone_number_id}/messages"

    def _post(self, body):
        response = self.session.post(
            self.messages_url,
            json=body,
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=settings.WHATSAPP_REQUEST_TIMEOUT_SECONDS,
        )
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected response body: {data!r}")
        return data

    @staticmethod
    def _message_id(data):
        messages = data.get("messages") or []
        if messages and messages[0].get("id"):
            return messages[0]["id"]
        return ""

    def send_message(self, phone, text, name="", context="General"):
        recipient = format_phone_number(phone)
        if not self.configured:
            return SendResult(success=False, error="Credentials not configured")

        body = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": recipient,
            "type": "text",
            "text": {"body": text},
        }
        try:
            data = self._post(body)
        except (requests.exceptions.RequestException, ValueError) as exc:
            logger.warning("WhatsApp text send to %s failed: %s", recipient, exc)
            record_error(ERROR_SOURCE, f"Direct Send Exception: {exc}", ErrorSeverity.MEDIUM)
            return SendResult(success=False, error=str(exc))

        if data.get("error"):
            message = data["error"].get("message", "Unknown error")
            logger.warning("WhatsApp text send to %s rejected: %s", recipient, message)
            record_error(ERROR_SOURCE, f"Direct Message Failed: {message}", ErrorSeverity.MEDIUM)
            return SendResult(success=False, error=message, raw_response=data)

        message_id = self._message_id(data)
        record_audit(
            action="MANUAL_MESSAGE_SENT",
            entity_type="message",
            entity_id=recipient,
            details=f"Message sent to {name}",
            payload={"context": context},
        )
        log_entry = MessageLog(
            provider_message_id=message_id,
            customer_name=name,
            phone_number=recipient,
            message=text,
            status=MessageStatus.SENT,
            message_type=MessageType.CUSTOM,
            context=context,
            direction=MessageDirection.OUTBOUND,
        )
        return SendResult(success=True, message_id=message_id, log_entry=log_entry, raw_response=data)

    def _template_body(self, recipient, template_name, language, variables):
        body = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": recipient,
            "type": "template",
            "template": {"name": template_name, "language": {"code": language or "en_US"}, "components": []},
        }
        if variables:
            body["template"]["components"].append(
                {
                    "type": "body",
                    "parameters": [{"type": "text", "text": "" if value is None else str(value)} for value in variables],
                }
            )
        return body

    def send_template_message(self, phone, template_name, language="en_US", variables=(), name="", structure=None):
        """Send an approved template, falling back to its ``_v2``/``_v3`` renames.

        ``structure`` is accepted for parity with locally stored templates; the
        body parameters are always built from ``variables``.
        """
        recipient = format_phone_number(phone)
        if not self.configured:
            return SendResult(success=False, error="Missing Credentials")

        variables = list(variables or [])
        try:
            data = self._post(self._template_body(recipient, template_name, language, variables))
            if self._error_code(data) in TEMPLATE_MISSING_CODES:
                data = self._post(self._template_body(recipient, f"{template_name}_v2", language, variables))
                if self._error_code(data) == 132001:
                    data = self._post(self._template_body(recipient, f"{template_name}_v3", language, variables))
        except (requests.exceptions.RequestException, ValueError) as exc:
            logger.warning("WhatsApp template %s to %s failed: %s", template_name, recipient, exc)
            record_error(ERROR_SOURCE, f"Send Exception: {exc}", ErrorSeverity.MEDIUM)
            return SendResult(success=False, error=str(exc))

        if data.get("error"):
            error = data["error"]
            message = error.get("message", "Unknown error")
            logger.warning("WhatsApp template %s to %s rejected: %s", template_name, recipient, message)
            record_error(ERROR_SOURCE, f"Send Failed ({error.get('code')}): {message}", ErrorSeverity.CRITICAL)
            return SendResult(success=False, error=message, raw_response=data)

        message_id = self._message_id(data)
        record_audit(
            action="TEMPLATE_SENT",
            entity_type="message",
            entity_id=recipient,
            details=f"Template {template_name} sent to {name}",
            payload={"template": template_name},
        )
        log_entry = MessageLog(
            provider_message_id=message_id,
            customer_name=name,
            phone_number=recipient,
            message=f"[Template: {template_name}]",
            status=MessageStatus.SENT,
            message_type=MessageType.TEMPLATE,
            direction=MessageDirection.OUTBOUND,
        )
        return SendResult(success=True, message_id=message_id, log_entry=log_entry, raw_response=data)

    @staticmethod
    def _error_code(data):
        error = data.get("error")
        if not error:
            return None
        return error.get("code")
