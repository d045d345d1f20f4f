from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.audit.models import AuditLog, ErrorEvent, ErrorStatus
from apps.audit.serializers import AuditLogSerializer, ErrorEventSerializer
from apps.common.permissions import RolePermission


class ActivityViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = AuditLog.objects.select_related("actor")
    serializer_class = AuditLogSerializer
    permission_classes = [RolePermission]
    capability_map = {"list": ["system.view"], "retrieve": ["system.view"], "clear": ["system.manage"]}

    def get_queryset(self):
        queryset = super().get_queryset()
        action_param = self.request.query_params.get("action")
        entity_id = self.request.query_params.get("entity_id")
        if action_param:
            queryset = queryset.filter(action=action_param)
        if entity_id:
            queryset = queryset.filter(entity_id=entity_id)
        return queryset

    @action(detail=False, methods=["post"])
    def clear(self, request):
        deleted, _ = AuditLog.objects.all().delete()
        return Response({"deleted": deleted}, status=status.HTTP_200_OK)


class ErrorEventViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = ErrorEvent.objects.all()
    serializer_class = ErrorEventSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["system.view"],
        "retrieve": ["system.view"],
        "resolve": ["system.manage"],
        "clear": ["system.manage"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        severity = self.request.query_params.get("severity")
        status_param = self.request.query_params.get("status")
        if severity:
            queryset = queryset.filter(severity=severity)
        if status_param:
            queryset = queryset.filter(status=status_param)
        return queryset

    @action(detail=True, methods=["post"])
    def resolve(self, request, pk=None):
        event = self.get_object()
        event.status = ErrorStatus.RESOLVED
        event.save(update_fields=["status"])
        return Response(self.get_serializer(event).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"])
    def clear(self, request):
        deleted, _ = ErrorEvent.objects.all().delete()
        return Response({"deleted": deleted}, status=status.HTTP_200_OK)
