import logging
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from apps.audit.models import AuditLog, ErrorEvent, ErrorSeverity, ErrorStatus

logger = logging.getLogger(__name__)

FORBIDDEN_DIAGNOSIS = (
    "API Access Forbidden. Your API Key is likely invalid, expired, or doesn't have permissions."
)


def record_audit(*, actor=None, action, entity_type, entity_id, details="", payload=None):
    return AuditLog.objects.create(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        details=details[:255],
        payload=payload or {},
    )


def record_error(source, message, severity=ErrorSeverity.MEDIUM, stack=""):
    """Capture a background failure.

    Repeats of the same message inside ``ERROR_DEDUP_WINDOW_SECONDS`` are
    dropped and ``None`` is returned. Non-LOW errors are handed to the
    diagnosis step, which never raises.
    """
    message = str(message)
    window = timedelta(seconds=settings.ERROR_DEDUP_WINDOW_SECONDS)
    latest = ErrorEvent.objects.order_by("-created_at").first()
    if latest and latest.message == message and timezone.now() - latest.created_at < window:
        return None

    logger.warning("Captured %s error from %s: %s", severity, source, message)
    event = ErrorEvent.objects.create(source=source, message=message, severity=severity, stack=stack or "")
    _prune_errors()

    if severity != ErrorSeverity.LOW:
        diagnose(event)
    return event


def _prune_errors():
    keep = settings.ERROR_LOG_MAX_ENTRIES
    stale_ids = list(ErrorEvent.objects.order_by("-created_at").values_list("id", flat=True)[keep:])
    if stale_ids:
        ErrorEvent.objects.filter(id__in=stale_ids).delete()


def diagnose(event):
    if "403" in event.message:
        event.ai_diagnosis = FORBIDDEN_DIAGNOSIS
        event.status = ErrorStatus.UNRESOLVABLE
        event.resolution_path = "settings"
        event.resolution_cta = "Update API Key"
        event.save(update_fields=["ai_diagnosis", "status", "resolution_path", "resolution_cta"])
        return event

    if not settings.ERROR_AUTO_DIAGNOSIS or not settings.GEMINI_API_KEY:
        return event

    from apps.intelligence.gemini import diagnose_error

    event.status = ErrorStatus.ANALYZING
    event.save(update_fields=["status"])

    result = diagnose_error(event.message, event.source)
    event.ai_diagnosis = result["explanation"]
    event.resolution_path = result["path"]
    event.resolution_cta = result["cta"]
    event.suggested_fix_data = result.get("suggestedFixData")
    # Template repair and API replay are operator actions here.
    event.ai_fix_applied = "Manual review required."
    event.status = ErrorStatus.UNRESOLVABLE
    event.save(
        update_fields=[
            "ai_diagnosis",
            "resolution_path",
            "resolution_cta",
            "suggested_fix_data",
            "ai_fix_applied",
            "status",
        ]
    )
    return event
