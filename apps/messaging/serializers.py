from rest_framework import serializers

from apps.messaging.models import MessageLog, MessageTemplate, OutboundMessage


class MessageLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = MessageLog
        fields = [
            "id",
            "provider_message_id",
            "customer_name",
            "phone_number",
            "message",
            "status",
            "message_type",
            "context",
            "direction",
            "created_at",
        ]
        read_only_fields = fields


class MessageSendSerializer(serializers.Serializer):
    phone = serializers.CharField()
    message = serializers.CharField()
    name = serializers.CharField(required=False, allow_blank=True, default="")
    context = serializers.CharField(required=False, allow_blank=True, default="Manual Chat")


class MessageTemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = MessageTemplate
        fields = [
            "id",
            "name",
            "content",
            "tactic",
            "target_profile",
            "is_ai_generated",
            "performance_rating",
            "category",
            "app_group",
            "status",
            "variable_examples",
            "structure",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Template name is required.")
        return value

    def validate_performance_rating(self, value):
        if value is not None and value > 100:
            raise serializers.ValidationError("Rating must be between 0 and 100.")
        return value


class OutboundMessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = OutboundMessage
        fields = [
            "id",
            "order",
            "kind",
            "channel",
            "phone_number",
            "customer_name",
            "template_name",
            "language",
            "variables",
            "text",
            "context",
            "status",
            "error",
            "message_log",
            "created_at",
            "dispatched_at",
        ]
        read_only_fields = fields
