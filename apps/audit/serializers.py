from rest_framework import serializers

from apps.audit.models import AuditLog, ErrorEvent


class AuditLogSerializer(serializers.ModelSerializer):
    actor_username = serializers.CharField(source="actor.username", read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ["id", "actor", "actor_username", "action", "entity_type", "entity_id", "details", "payload", "created_at"]
        read_only_fields = fields


class ErrorEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = ErrorEvent
        fields = [
            "id",
            "source",
            "message",
            "stack",
            "severity",
            "status",
            "ai_diagnosis",
            "ai_fix_applied",
            "resolution_path",
            "resolution_cta",
            "suggested_fix_data",
            "created_at",
        ]
        read_only_fields = fields
