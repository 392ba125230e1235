"""URL routes for billing endpoints."""
from django.urls import path

from .views import BillingSummaryView
from .views.admin import AdminInvoiceDetailView, AdminInvoiceListView, AdminSubscriptionView

app_name = "billing"

urlpatterns = [
    path("billing/summary/", BillingSummaryView.as_view(), name="billing-summary"),
    path("admin/billing/invoices/", AdminInvoiceListView.as_view(), name="admin-billing-invoices"),
    path(
        "admin/billing/invoices/<str:invoice_id>/",
        AdminInvoiceDetailView.as_view(),
        name="admin-billing-invoice",
    ),
    path("admin/billing/subscription/", AdminSubscriptionView.as_view(), name="admin-billing-subscription"),
]
