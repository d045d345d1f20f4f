from django.contrib import admin

from apps.messaging.models import MessageLog, MessageTemplate, OutboundMessage


@admin.register(MessageLog)
class MessageLogAdmin(admin.ModelAdmin):
    list_display = ("phone_number", "customer_name", "message_type", "status", "direction", "created_at")
    list_filter = ("message_type", "status", "direction")
    search_fields = ("phone_number", "customer_name", "message")


@admin.register(MessageTemplate)
class MessageTemplateAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "app_group", "target_profile", "status", "updated_at")
    list_filter = ("category", "app_group", "status")
    search_fields = ("name", "content")


@admin.register(OutboundMessage)
class OutboundMessageAdmin(admin.ModelAdmin):
    list_display = ("kind", "channel", "phone_number", "status", "created_at", "dispatched_at")
    list_filter = ("kind", "status", "channel")
    search_fields = ("phone_number", "customer_name", "template_name")
