"""Super admin billing console: invoices and subscription management."""
from __future__ import annotations

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.services import require_active_super_admin
from backend.payload import body_dict
from billing.observability.metrics import BILLING_REQUEST_LATENCY
from billing.serializers import OrgInvoiceSerializer
from billing.services import get_org_billing_snapshot, list_org_invoices, update_org_invoice, update_org_subscription

from . import BillingMetricsMixin


class AdminInvoiceListView(BillingMetricsMixin, APIView):
    permission_classes = [IsAuthenticated]
    endpoint_label = "admin.invoices"

    def get(self, request):
        membership = require_active_super_admin(request)
        invoices = OrgInvoiceSerializer(list_org_invoices(membership.org_id), many=True).data
        self._record_request("GET", 200)
        return Response({"data": {"org_id": str(membership.org_id), "invoices": invoices}})


class AdminInvoiceDetailView(BillingMetricsMixin, APIView):
    permission_classes = [IsAuthenticated]
    endpoint_label = "admin.invoice"

    def patch(self, request, invoice_id):
        with BILLING_REQUEST_LATENCY.labels(endpoint=self.endpoint_label, method="PATCH").time():
            membership = require_active_super_admin(request)
            invoice = update_org_invoice(membership.org_id, invoice_id, body_dict(request), actor=request.user)
        self._record_request("PATCH", 200)
        return Response({"data": OrgInvoiceSerializer(invoice).data})


class AdminSubscriptionView(BillingMetricsMixin, APIView):
    """
    Change plan, interval, seats or status of the active org's subscription.

    ``action`` accepts ``activate``/``resume``, ``pause``, ``mark_past_due``,
    ``cancel_now`` and ``cancel_end_of_period``. ``issue_invoice`` opens an
    invoice for the current period in the same request.
    """

    permission_classes = [IsAuthenticated]
    endpoint_label = "admin.subscription"

    def patch(self, request):
        with BILLING_REQUEST_LATENCY.labels(endpoint=self.endpoint_label, method="PATCH").time():
            membership = require_active_super_admin(request)
            result = update_org_subscription(membership.org_id, body_dict(request), actor=request.user)
            snapshot = get_org_billing_snapshot(membership.org_id)
        self._record_request("PATCH", 200)
        return Response(
            {
                "data": {
                    "org_id": str(membership.org_id),
                    "subscription": snapshot["subscription"],
                    "entitlements": snapshot["entitlements"],
                    "usage": snapshot["usage"],
                    "invoice": OrgInvoiceSerializer(result.invoice).data if result.invoice else None,
                }
            }
        )
