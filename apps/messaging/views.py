from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.common.exceptions import error_response
from apps.common.permissions import RolePermission
from apps.messaging.models import MessageLog, MessageTemplate, OutboundMessage
from apps.messaging.outbox import drain_outbox
from apps.messaging.serializers import (
    MessageLogSerializer,
    MessageSendSerializer,
    MessageTemplateSerializer,
    OutboundMessageSerializer,
)
from apps.messaging.whatsapp import WhatsAppClient, format_phone_number


class MessageLogViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = MessageLog.objects.all()
    serializer_class = MessageLogSerializer
    permission_classes = [RolePermission]
    capability_map = {"list": ["messaging.view"], "retrieve": ["messaging.view"], "send": ["messaging.send"]}

    def get_queryset(self):
        queryset = super().get_queryset()
        phone = self.request.query_params.get("phone")
        message_type = self.request.query_params.get("type")
        if phone:
            queryset = queryset.filter(phone_number=format_phone_number(phone))
        if message_type:
            queryset = queryset.filter(message_type=message_type)
        return queryset

    @action(detail=False, methods=["post"])
    def send(self, request):
        serializer = MessageSendSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = WhatsAppClient.from_store_settings().send_message(
            data["phone"], data["message"], name=data["name"], context=data["context"]
        )
        if not result.success:
            return error_response("send_failed", result.error)
        result.log_entry.save()
        return Response(MessageLogSerializer(result.log_entry).data, status=status.HTTP_201_CREATED)


class MessageTemplateViewSet(viewsets.ModelViewSet):
    queryset = MessageTemplate.objects.all()
    serializer_class = MessageTemplateSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["messaging.view"],
        "retrieve": ["messaging.view"],
        "create": ["messaging.manage"],
        "update": ["messaging.manage"],
        "partial_update": ["messaging.manage"],
        "destroy": ["messaging.manage"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        app_group = self.request.query_params.get("app_group")
        target_profile = self.request.query_params.get("target_profile")
        if app_group:
            queryset = queryset.filter(app_group=app_group)
        if target_profile:
            queryset = queryset.filter(target_profile=target_profile)
        return queryset


class OutboundMessageViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = OutboundMessage.objects.all()
    serializer_class = OutboundMessageSerializer
    permission_classes = [RolePermission]
    capability_map = {"list": ["messaging.view"], "retrieve": ["messaging.view"], "drain": ["messaging.manage"]}

    def get_queryset(self):
        queryset = super().get_queryset()
        status_param = self.request.query_params.get("status")
        order_id = self.request.query_params.get("order")
        kind = self.request.query_params.get("kind")
        if status_param:
            queryset = queryset.filter(status=status_param)
        if order_id:
            queryset = queryset.filter(order_id=order_id)
        if kind:
            queryset = queryset.filter(kind=kind)
        return queryset

    @action(detail=False, methods=["post"])
    def drain(self, request):
        result = drain_outbox()
        return Response(
            {"claimed": result.claimed, "sent": result.sent, "failed": result.failed},
            status=status.HTTP_200_OK,
        )
