from __future__ import annotations

from django_filters import rest_framework as filters
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ReadOnlyModelViewSet, ViewSet

from backend.exceptions import Forbidden
from organizations.services import super_admin_org_ids

from .models import ActivityLog, ApiAccessLog
from .serializers import ActivityWithActorSerializer, ApiAccessLogSerializer

ORG_ACTIVITY_LIMIT = 500


class ActivityViewSet(ViewSet):
    """Activity across every organization where the caller is a super admin."""

    permission_classes = [IsAuthenticated]

    def list(self, request):
        org_ids = super_admin_org_ids(request.user)
        if not org_ids:
            raise Forbidden("Super admin access required.")
        entries = (
            ActivityLog.objects.filter(org_id__in=org_ids)
            .select_related("actor")
            .order_by("-created_at")[:ORG_ACTIVITY_LIMIT]
        )
        return Response({"data": ActivityWithActorSerializer(entries, many=True).data})


class ApiAccessLogFilter(filters.FilterSet):
    start = filters.IsoDateTimeFilter(field_name="timestamp", lookup_expr="gte")
    end = filters.IsoDateTimeFilter(field_name="timestamp", lookup_expr="lte")
    method = filters.CharFilter(field_name="method", lookup_expr="iexact")
    action = filters.CharFilter(field_name="action", lookup_expr="icontains")

    class Meta:
        model = ApiAccessLog
        fields = ["method", "status_code", "action", "org_id", "user"]


class ApiAccessLogViewSet(ReadOnlyModelViewSet):
    """API access logs of the caller; staff users see every row."""

    serializer_class = ApiAccessLogSerializer
    permission_classes = [IsAuthenticated]
    queryset = ApiAccessLog.objects.select_related("user").order_by("-timestamp")
    filterset_class = ApiAccessLogFilter
    filter_backends = [filters.DjangoFilterBackend]

    def get_queryset(self):
        qs = super().get_queryset()
        if not self.request.user.is_staff:
            qs = qs.filter(user=self.request.user)
        return qs
