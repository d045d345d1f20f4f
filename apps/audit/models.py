import uuid

from django.db import models


class ErrorSeverity(models.TextChoices):
    LOW = "LOW", "Low"
    MEDIUM = "MEDIUM", "Medium"
    CRITICAL = "CRITICAL", "Critical"


class ErrorStatus(models.TextChoices):
    NEW = "NEW", "New"
    ANALYZING = "ANALYZING", "Analyzing"
    RESOLVED = "RESOLVED", "Resolved"
    UNRESOLVABLE = "UNRESOLVABLE", "Unresolvable"


class AuditLog(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    actor = models.ForeignKey("accounts.User", null=True, blank=True, on_delete=models.SET_NULL)
    action = models.CharField(max_length=80)
    entity_type = models.CharField(max_length=80)
    entity_id = models.CharField(max_length=80)
    details = models.CharField(max_length=255, blank=True)
    payload = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["action", "created_at"], name="audit_action_created_idx"),
            models.Index(fields=["entity_type", "entity_id"], name="audit_entity_lookup_idx"),
        ]


class ErrorEvent(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    source = models.CharField(max_length=80)
    message = models.TextField()
    stack = models.TextField(blank=True)
    severity = models.CharField(max_length=16, choices=ErrorSeverity.choices, default=ErrorSeverity.MEDIUM)
    status = models.CharField(max_length=16, choices=ErrorStatus.choices, default=ErrorStatus.NEW)
    ai_diagnosis = models.TextField(blank=True)
    ai_fix_applied = models.CharField(max_length=255, blank=True)
    resolution_path = models.CharField(max_length=32, blank=True)
    resolution_cta = models.CharField(max_length=80, blank=True)
    suggested_fix_data = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["severity", "created_at"], name="error_severity_created_idx"),
        ]
