from django.db import transaction
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.audit.services import record_audit
from apps.common.exceptions import error_response
from apps.common.permissions import RolePermission
from apps.customers.directory import find_customer, search_directory
from apps.customers.models import BehavioralTag, Customer
from apps.customers.serializers import CustomerSerializer, CustomerUpsertSerializer, DirectoryEntrySerializer
from apps.intelligence.gemini import analyze_customer
from apps.messaging.models import MessageLog
from apps.messaging.whatsapp import format_phone_number
from apps.orders.models import Order

RISK_LEVEL_TAGS = {
    "LOW": BehavioralTag.VIP_RELIABLE,
    "MODERATE": BehavioralTag.FORGETFUL,
    "HIGH": BehavioralTag.STRATEGIC_DELAYER,
    "CRITICAL": BehavioralTag.HIGH_RISK,
}


class CustomerViewSet(viewsets.GenericViewSet):
    """Directory of manual and order-derived customers, addressed by contact number."""

    serializer_class = DirectoryEntrySerializer
    permission_classes = [RolePermission]
    lookup_value_regex = r"[^/]+"
    capability_map = {
        "list": ["customers.view"],
        "retrieve": ["customers.view"],
        "create": ["customers.manage"],
        "analysis": ["customers.manage", "insights.view"],
    }

    def list(self, request):
        entries = search_directory(request.query_params.get("q"))
        page = self.paginate_queryset(entries)
        if page is not None:
            return self.get_paginated_response(DirectoryEntrySerializer(page, many=True).data)
        return Response(DirectoryEntrySerializer(entries, many=True).data)

    def retrieve(self, request, pk=None):
        entry = find_customer(pk)
        if entry is None:
            return error_response("not_found", "Customer not found.", status=404)
        return Response(DirectoryEntrySerializer(entry).data)

    def create(self, request):
        serializer = CustomerUpsertSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        customer = Customer.get_or_create_by_phone(
            data["contact"],
            name=data["name"],
            email=data["email"],
            secondary_contact=data["secondary_contact"],
        )
        record_audit(
            actor=request.user,
            action="STATUS_UPDATE",
            entity_type="customer",
            entity_id=customer.id,
            details=f"New Customer Added: {customer.name}",
        )
        return Response(CustomerSerializer(customer).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def analysis(self, request, pk=None):
        entry = find_customer(pk)
        if entry is None:
            return error_response("not_found", "Customer not found.", status=404)

        orders = (
            Order.objects.filter(id__in=entry["order_ids"])
            .select_related("plan")
            .prefetch_related("plan__milestones")
        )
        logs = MessageLog.objects.filter(phone_number=format_phone_number(entry["contact"])).order_by("-created_at")
        report = analyze_customer(entry, orders, logs)
        if report["fallback"]:
            return Response({"customer": DirectoryEntrySerializer(entry).data, "report": report})

        with transaction.atomic():
            customer = Customer.get_or_create_by_phone(
                entry["contact"],
                name=entry["name"],
                email=entry["email"],
                secondary_contact=entry["secondary_contact"],
            )
            customer.reliability_score = report["score"]
            customer.behavioral_tag = RISK_LEVEL_TAGS.get(report.get("riskLevel"), BehavioralTag.UNKNOWN)
            customer.ai_insight = f"{report.get('persona', '')}: {report.get('communicationStrategy', '')}".strip(": ")
            customer.last_analysis_date = timezone.now()
            customer.save(
                update_fields=["reliability_score", "behavioral_tag", "ai_insight", "last_analysis_date", "updated_at"]
            )
        return Response({"customer": CustomerSerializer(customer).data, "report": report})
