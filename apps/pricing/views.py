from rest_framework import generics, status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.audit.services import record_audit
from apps.common.permissions import RolePermission
from apps.pricing.models import PaymentPlanTemplate, StoreSettings
from apps.pricing.rates import refresh_store_rates
from apps.pricing.serializers import PaymentPlanTemplateSerializer, RateRefreshSerializer, StoreSettingsSerializer


class StoreSettingsView(generics.RetrieveUpdateAPIView):
    serializer_class = StoreSettingsSerializer
    permission_classes = [RolePermission]
    capability_map = {"get": ["settings.view"], "put": ["settings.manage"], "patch": ["settings.manage"]}

    def get_object(self):
        return StoreSettings.load()

    def perform_update(self, serializer):
        store = serializer.save()
        changed = sorted(k for k in serializer.validated_data if k != "whatsapp_business_token")
        record_audit(
            actor=self.request.user,
            action="settings.update",
            entity_type="store_settings",
            entity_id=store.pk,
            details="Store settings updated",
            payload={"fields": changed},
        )


class RateRefreshView(APIView):
    permission_classes = [RolePermission]
    capability_map = {"post": ["settings.view"]}

    def post(self, request):
        force = str(request.data.get("force", "true")).lower() in {"1", "true", "yes"}
        result = refresh_store_rates(force_refresh=force)
        serializer = RateRefreshSerializer(
            {
                "rate_24k": result.rate_24k,
                "rate_22k": result.rate_22k,
                "success": result.success,
                "error": result.error,
                "source": result.source,
            }
        )
        return Response(serializer.data, status=status.HTTP_200_OK)


class PaymentPlanTemplateViewSet(viewsets.ModelViewSet):
    queryset = PaymentPlanTemplate.objects.all()
    serializer_class = PaymentPlanTemplateSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["settings.view"],
        "retrieve": ["settings.view"],
        "create": ["settings.manage"],
        "update": ["settings.manage"],
        "partial_update": ["settings.manage"],
        "destroy": ["settings.manage"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        enabled = self.request.query_params.get("enabled")
        if str(enabled).lower() in {"1", "true", "yes"}:
            queryset = queryset.filter(enabled=True)
        return queryset

    def perform_create(self, serializer):
        plan = serializer.save()
        record_audit(
            actor=self.request.user,
            action="plan_template.create",
            entity_type="plan_template",
            entity_id=plan.id,
            details=f"Plan template {plan.name} created",
        )

    def perform_update(self, serializer):
        plan = serializer.save()
        record_audit(
            actor=self.request.user,
            action="plan_template.update",
            entity_type="plan_template",
            entity_id=plan.id,
            details=f"Plan template {plan.name} updated",
        )
