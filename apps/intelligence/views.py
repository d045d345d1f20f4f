from rest_framework import serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.exceptions import error_response
from apps.common.permissions import RolePermission
from apps.intelligence import gemini
from apps.messaging.models import MessageLog
from apps.messaging.whatsapp import format_phone_number
from apps.orders.models import Order, OrderStatus
from apps.pricing.models import StoreSettings


class ReminderDraftSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=gemini.REMINDER_KINDS, required=False)


class ChatInsightSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class OrderReminderDraftView(APIView):
    permission_classes = [RolePermission]
    capability_map = {"post": ["messaging.send"]}

    def post(self, request, order_id):
        order = Order.objects.select_related("plan").prefetch_related("payments", "plan__milestones").filter(pk=order_id).first()
        if order is None:
            return error_response("not_found", "Order not found.", status=404)
        serializer = ReminderDraftSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        kind = serializer.validated_data.get("kind") or gemini.reminder_kind(order)
        draft = gemini.draft_reminder(order, kind, StoreSettings.load().current_gold_rate_22k)
        return Response({"kind": kind, **draft}, status=status.HTTP_200_OK)


class CollectionRiskView(APIView):
    permission_classes = [RolePermission]
    capability_map = {"get": ["insights.view"]}

    def get(self, request):
        overdue = list(
            Order.objects.filter(status=OrderStatus.OVERDUE).prefetch_related("payments").order_by("created_at")
        )
        return Response({"overdue_orders": len(overdue), "summary": gemini.collection_risk(overdue)})


class ChatInsightView(APIView):
    permission_classes = [RolePermission]
    capability_map = {"post": ["messaging.view"]}

    def post(self, request):
        serializer = ChatInsightSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        phone = format_phone_number(serializer.validated_data["phone"])
        history = MessageLog.objects.filter(phone_number=phone).order_by("-created_at")
        insight = gemini.chat_insight(history, serializer.validated_data["name"] or phone)
        return Response(insight, status=status.HTTP_200_OK)
