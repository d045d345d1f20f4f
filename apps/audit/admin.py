from django.contrib import admin

from apps.audit.models import AuditLog, ErrorEvent


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("action", "entity_type", "entity_id", "details", "actor", "created_at")
    list_filter = ("action", "entity_type")
    search_fields = ("entity_id", "details")


@admin.register(ErrorEvent)
class ErrorEventAdmin(admin.ModelAdmin):
    list_display = ("source", "severity", "status", "message", "created_at")
    list_filter = ("severity", "status", "source")
    search_fields = ("message", "source")
