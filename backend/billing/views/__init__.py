"""Billing summary for members of the active organization."""
from __future__ import annotations

import logging

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.services import require_active_org_id
from billing.observability.metrics import BILLING_REQUEST_COUNT, BILLING_REQUEST_LATENCY
from billing.serializers import OrgInvoiceSerializer
from billing.services import get_org_billing_snapshot, list_org_invoices
from organizations.models import OrgMember
from organizations.services import assert_org_membership

logger = logging.getLogger(__name__)


class BillingMetricsMixin:
    endpoint_label: str = "billing"

    def _record_request(self, method: str, status: int) -> None:
        BILLING_REQUEST_COUNT.labels(endpoint=self.endpoint_label, method=method, status=str(status)).inc()


class BillingSummaryView(BillingMetricsMixin, APIView):
    """
    Subscription, entitlements and usage of the caller's active org.

    Invoices are only listed for super admins; plain members get an empty list.
    """

    permission_classes = [IsAuthenticated]
    endpoint_label = "summary"

    def get(self, request):
        with BILLING_REQUEST_LATENCY.labels(endpoint=self.endpoint_label, method="GET").time():
            org_id = require_active_org_id(request)
            membership = assert_org_membership(org_id, request.user)
            snapshot = get_org_billing_snapshot(org_id)
            invoices = []
            if membership.system_role == OrgMember.ROLE_SUPER_ADMIN:
                invoices = OrgInvoiceSerializer(list_org_invoices(org_id), many=True).data

        self._record_request("GET", 200)
        return Response(
            {
                "data": {
                    "org_id": str(org_id),
                    "role": membership.system_role,
                    **snapshot,
                    "invoices": invoices,
                }
            }
        )
