from datetime import timedelta

from django.db.models import Q
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.exceptions import error_response
from apps.common.permissions import RolePermission
from apps.orders import services
from apps.orders.models import JewelryItem, Milestone, MilestoneStatus, Order, OrderStatus, PaymentRecord
from apps.orders.serializers import (
    CancelOrderSerializer,
    CollectionEntrySerializer,
    ContactUpdateSerializer,
    ItemStatusSerializer,
    OrderCreateSerializer,
    OrderSerializer,
    PaymentCreateSerializer,
    PublicOrderSerializer,
)
from apps.orders.throttles import PublicOrderAnonThrottle

UPCOMING_WINDOW_DAYS = 3
COLLECTION_TABS = {"PLANNED", "UPCOMING", "OVERDUE", "RECEIVED"}


def order_queryset():
    return Order.objects.select_related("plan", "plan__template").prefetch_related(
        "items", "payments", "plan__milestones"
    )


class OrderViewSet(viewsets.ModelViewSet):
    serializer_class = OrderSerializer
    permission_classes = [RolePermission]
    http_method_names = ["get", "post", "head", "options"]
    capability_map = {
        "list": ["orders.view"],
        "retrieve": ["orders.view"],
        "create": ["orders.manage"],
        "payments": ["payments.record"],
        "item_status": ["orders.manage"],
        "contact": ["orders.manage"],
        "cancel": ["orders.cancel"],
    }

    def get_queryset(self):
        queryset = order_queryset()
        status_param = self.request.query_params.get("status")
        protection_status = self.request.query_params.get("protection_status")
        contact = self.request.query_params.get("contact")
        query = self.request.query_params.get("q")
        if status_param:
            queryset = queryset.filter(status=status_param)
        if protection_status:
            queryset = queryset.filter(plan__protection_status=protection_status)
        if contact:
            queryset = queryset.filter(customer_contact=contact.strip())
        if query:
            queryset = queryset.filter(
                Q(customer_name__icontains=query) | Q(customer_contact__icontains=query) | Q(customer_email__icontains=query)
            )
        return queryset.order_by("-created_at")

    def get_serializer_class(self):
        if self.action == "create":
            return OrderCreateSerializer
        return OrderSerializer

    def _render(self, order_id, status_code=200):
        order = order_queryset().get(pk=order_id)
        return Response(OrderSerializer(order, context=self.get_serializer_context()).data, status=status_code)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = services.create_order(actor=request.user, data=serializer.validated_data)
        except ValueError as exc:
            return error_response("invalid_plan", str(exc))
        return self._render(order.id, status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def payments(self, request, pk=None):
        order = self.get_object()
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            services.record_payment(
                order_id=order.id,
                amount=data["amount"],
                method=data["method"],
                paid_at=data.get("paid_at"),
                note=data.get("note", ""),
                actor=request.user,
            )
        except ValueError as exc:
            return error_response("invalid_payment", str(exc))
        return self._render(order.id)

    @action(detail=True, methods=["post"], url_path="item-status")
    def item_status(self, request, pk=None):
        order = self.get_object()
        serializer = ItemStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item_id = serializer.validated_data["item"]
        if not JewelryItem.objects.filter(pk=item_id, order=order).exists():
            return error_response("not_found", "Item does not belong to this order.", status=404)
        services.update_item_status(
            item_id=item_id,
            production_status=serializer.validated_data["production_status"],
            actor=request.user,
        )
        return self._render(order.id)

    @action(detail=True, methods=["post"])
    def contact(self, request, pk=None):
        order = self.get_object()
        serializer = ContactUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.update_contact(order_id=order.id, actor=request.user, **serializer.validated_data)
        except ValueError as exc:
            return error_response("invalid_contact", str(exc))
        return self._render(order.id)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        order = self.get_object()
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.cancel_order(order_id=order.id, actor=request.user, reason=serializer.validated_data["reason"])
        except ValueError as exc:
            return error_response("invalid_state", str(exc))
        return self._render(order.id)


class PublicOrderView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicOrderAnonThrottle]

    def get(self, request):
        token = str(request.query_params.get("view", "")).strip()
        order = order_queryset().filter(share_token=token).first() if token else None
        if order is None:
            return error_response("not_found", "Invalid link", status=404)
        return Response(PublicOrderSerializer(order).data, status=status.HTTP_200_OK)


class CollectionsView(APIView):
    permission_classes = [RolePermission]
    capability_map = {"get": ["orders.view"]}

    def get(self, request):
        tab = str(request.query_params.get("tab", "OVERDUE")).upper()
        if tab not in COLLECTION_TABS:
            return error_response("invalid_tab", f"tab must be one of {', '.join(sorted(COLLECTION_TABS))}.")
        query = str(request.query_params.get("q", "")).strip()

        if tab == "RECEIVED":
            entries = self._payments(query)
        else:
            entries = self._milestones(tab, query)
        return Response({"tab": tab, "results": CollectionEntrySerializer(entries, many=True).data})

    @staticmethod
    def _customer_filter(prefix, query):
        return Q(**{f"{prefix}customer_name__icontains": query}) | Q(**{f"{prefix}customer_contact__icontains": query})

    def _milestones(self, tab, query):
        today = timezone.localdate()
        queryset = (
            Milestone.objects.select_related("plan__order")
            .exclude(plan__order__status=OrderStatus.CANCELLED)
            .order_by("due_date", "sequence")
        )
        if tab == "UPCOMING":
            queryset = queryset.exclude(status=MilestoneStatus.PAID).filter(
                due_date__gte=today, due_date__lte=today + timedelta(days=UPCOMING_WINDOW_DAYS)
            )
        elif tab == "OVERDUE":
            queryset = queryset.exclude(status=MilestoneStatus.PAID).filter(due_date__lt=today)
        if query:
            queryset = queryset.filter(self._customer_filter("plan__order__", query))
        return [
            {
                "order_id": milestone.plan.order.id,
                "customer_name": milestone.plan.order.customer_name,
                "customer_contact": milestone.plan.order.customer_contact,
                "sequence": milestone.sequence,
                "due_date": milestone.due_date,
                "amount": milestone.target_amount,
                "status": milestone.status,
                "paid_at": None,
                "method": "",
            }
            for milestone in queryset
        ]

    def _payments(self, query):
        queryset = PaymentRecord.objects.select_related("order").order_by("-paid_at", "-created_at")
        if query:
            queryset = queryset.filter(self._customer_filter("order__", query))
        return [
            {
                "order_id": payment.order.id,
                "customer_name": payment.order.customer_name,
                "customer_contact": payment.order.customer_contact,
                "sequence": None,
                "due_date": None,
                "amount": payment.amount,
                "status": "RECEIVED",
                "paid_at": payment.paid_at,
                "method": payment.method,
            }
            for payment in queryset
        ]
