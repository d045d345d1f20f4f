import logging
from dataclasses import dataclass

from django.utils import timezone

from apps.messaging.models import OutboundChannel, OutboundMessage, OutboundStatus
from apps.messaging.whatsapp import SendResult, WhatsAppClient

logger = logging.getLogger(__name__)


@dataclass
class DrainResult:
    claimed: int = 0
    sent: int = 0
    failed: int = 0


def enqueue_template(*, kind, phone, name, template_name, variables, order=None, language="en_US", context=""):
    return OutboundMessage.objects.create(
        order=order,
        kind=kind,
        channel=OutboundChannel.TEMPLATE,
        phone_number=phone,
        customer_name=name,
        template_name=template_name,
        language=language,
        variables=[str(value) for value in variables],
        context=context,
    )


def enqueue_text(*, kind, phone, name, text, order=None, context=""):
    return OutboundMessage.objects.create(
        order=order,
        kind=kind,
        channel=OutboundChannel.TEXT,
        phone_number=phone,
        customer_name=name,
        text=text,
        context=context,
    )


def _claim(message_id):
    return OutboundMessage.objects.filter(pk=message_id, status=OutboundStatus.PENDING).update(
        status=OutboundStatus.DISPATCHING
    )


def _send(client, message):
    if message.channel == OutboundChannel.TEMPLATE:
        return client.send_template_message(
            message.phone_number,
            message.template_name,
            language=message.language,
            variables=message.variables,
            name=message.customer_name,
        )
    return client.send_message(message.phone_number, message.text, name=message.customer_name, context=message.context)


def drain_outbox(client=None, limit=None):
    """Send every pending intent once.

    A row is claimed with a conditional update before sending, so two
    drains never deliver the same row. Failures are recorded on the row
    and never retried.
    """
    result = DrainResult()
    pending_ids = OutboundMessage.objects.filter(status=OutboundStatus.PENDING).values_list("id", flat=True)
    if limit:
        pending_ids = pending_ids[:limit]
    pending_ids = list(pending_ids)
    if not pending_ids:
        return result

    client = client or WhatsAppClient.from_store_settings()
    for message_id in pending_ids:
        if not _claim(message_id):
            continue
        result.claimed += 1
        message = OutboundMessage.objects.get(pk=message_id)
        try:
            send_result = _send(client, message)
        except Exception as exc:
            logger.exception("Outbound %s %s raised during send", message.kind, message.id)
            send_result = SendResult(success=False, error=f"Unexpected send error: {exc}")
        message.dispatched_at = timezone.now()
        if send_result.success:
            log_entry = send_result.log_entry
            if log_entry is not None:
                if message.context and not log_entry.context:
                    log_entry.context = message.context
                log_entry.save()
            message.status = OutboundStatus.SENT
            message.message_log = log_entry
            message.save(update_fields=["status", "message_log", "dispatched_at"])
            result.sent += 1
        else:
            logger.warning("Outbound %s %s to %s failed: %s", message.kind, message.id, message.phone_number, send_result.error)
            message.status = OutboundStatus.FAILED
            message.error = send_result.error
            message.save(update_fields=["status", "error", "dispatched_at"])
            result.failed += 1
    return result
