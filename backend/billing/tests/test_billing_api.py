import uuid

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from billing.models import OrgInvoice, OrgSubscription
from billing.services import ensure_org_subscription
from organizations.models import OrgMember, Organization


def _user(email):
    return get_user_model().objects.create_user(username=email, email=email, password="pass1234")


@pytest.fixture
def org():
    return Organization.objects.create(name="Acme", slug="acme")


@pytest.fixture
def admin_client(org):
    user = _user("admin@example.com")
    OrgMember.objects.create(org=org, user=user, system_role=OrgMember.ROLE_SUPER_ADMIN)
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def member_client(org):
    user = _user("member@example.com")
    OrgMember.objects.create(org=org, user=user, system_role=OrgMember.ROLE_MEMBER)
    client = APIClient()
    client.force_authenticate(user=user)
    return client


def _invoice(org, **fields):
    subscription = ensure_org_subscription(org.pk)
    now = timezone.now()
    defaults = {
        "org": org,
        "subscription": subscription,
        "status": OrgInvoice.Status.OPEN,
        "amount_cents": 4900,
        "period_start": now,
        "period_end": now,
    }
    defaults.update(fields)
    return OrgInvoice.objects.create(**defaults)


@pytest.mark.django_db
def test_summary_for_member_hides_invoices(org, member_client):
    _invoice(org)

    response = member_client.get("/api/billing/summary/")

    assert response.status_code == 200
    payload = response.json()["data"]
    assert payload["org_id"] == str(org.pk)
    assert payload["role"] == "member"
    assert payload["subscription"]["status"] == "trialing"
    assert payload["usage"]["members"] == 1
    assert payload["invoices"] == []


@pytest.mark.django_db
def test_summary_for_super_admin_lists_invoices(org, admin_client):
    invoice = _invoice(org)

    response = admin_client.get("/api/billing/summary/")

    assert response.status_code == 200
    invoices = response.json()["data"]["invoices"]
    assert [row["id"] for row in invoices] == [str(invoice.pk)]
    assert invoices[0]["currency"] == "usd"


@pytest.mark.django_db
def test_summary_without_org():
    client = APIClient()
    client.force_authenticate(user=_user("lonely@example.com"))

    response = client.get("/api/billing/summary/")

    assert response.status_code == 400
    assert response.json()["message"] == "No active organization."


@pytest.mark.django_db
def test_member_cannot_manage_subscription(member_client):
    response = member_client.patch("/api/admin/billing/subscription/", {"plan_id": "growth"}, format="json")

    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


@pytest.mark.django_db
def test_change_plan_and_seats(org, admin_client):
    response = admin_client.patch(
        "/api/admin/billing/subscription/",
        {"plan_id": "growth", "seat_count": 12, "billing_interval": "yearly"},
        format="json",
    )

    assert response.status_code == 200
    payload = response.json()["data"]
    assert payload["subscription"]["plan_id"] == "growth"
    assert payload["subscription"]["billing_interval"] == "yearly"
    assert payload["entitlements"]["seat_limit"] == 12
    assert payload["entitlements"]["ai_enabled"] is True
    assert payload["invoice"] is None


@pytest.mark.django_db
@pytest.mark.parametrize(
    "body, message",
    [
        ({"plan_id": "platinum"}, "Invalid plan_id."),
        ({"seat_count": 0}, "seat_count must be a positive integer."),
        ({"seat_count": 2.5}, "seat_count must be a positive integer."),
        ({"action": "explode"}, "Invalid action."),
        ({}, "No updates provided."),
    ],
)
def test_invalid_subscription_updates(admin_client, body, message):
    response = admin_client.patch("/api/admin/billing/subscription/", body, format="json")

    assert response.status_code == 400
    assert response.json()["message"] == message


@pytest.mark.django_db
def test_subscription_lifecycle_actions(org, admin_client):
    url = "/api/admin/billing/subscription/"

    assert admin_client.patch(url, {"action": "pause"}, format="json").json()["data"]["subscription"]["status"] == "paused"

    response = admin_client.patch(url, {"action": "cancel_now"}, format="json")
    subscription = response.json()["data"]["subscription"]
    assert subscription["status"] == "canceled"
    assert subscription["canceled_at"] is not None

    response = admin_client.patch(url, {"action": "cancel_end_of_period"}, format="json")
    subscription = response.json()["data"]["subscription"]
    assert subscription["status"] == "active"
    assert subscription["cancel_at_period_end"] is True

    response = admin_client.patch(url, {"action": "resume"}, format="json")
    subscription = response.json()["data"]["subscription"]
    assert subscription["cancel_at_period_end"] is False
    assert subscription["canceled_at"] is None
    assert OrgSubscription.objects.filter(org=org).count() == 1


@pytest.mark.django_db
def test_issue_invoice_with_subscription_update(org, admin_client):
    response = admin_client.patch(
        "/api/admin/billing/subscription/",
        {"action": "activate", "issue_invoice": {"amount_cents": 1999.6, "currency": "EUR"}},
        format="json",
    )

    assert response.status_code == 200
    invoice = response.json()["data"]["invoice"]
    assert invoice["status"] == "open"
    assert invoice["amount_cents"] == 2000
    assert invoice["currency"] == "eur"
    assert OrgInvoice.objects.get(pk=invoice["id"]).org_id == org.pk


@pytest.mark.django_db
def test_issue_invoice_requires_amount(admin_client):
    response = admin_client.patch(
        "/api/admin/billing/subscription/", {"issue_invoice": {"amount_cents": -5}}, format="json"
    )

    assert response.status_code == 400
    assert response.json()["message"] == "issue_invoice.amount_cents must be a non-negative number."


@pytest.mark.django_db
@pytest.mark.parametrize("currency", ["dollars", 978, "€€€"])
def test_issue_invoice_rejects_bad_currency(admin_client, currency):
    response = admin_client.patch(
        "/api/admin/billing/subscription/",
        {"issue_invoice": {"amount_cents": 100, "currency": currency}},
        format="json",
    )

    assert response.status_code == 400
    assert response.json()["message"] == "issue_invoice.currency must be a 3-letter currency code."
    assert not OrgInvoice.objects.exists()


@pytest.mark.django_db
def test_mark_invoice_paid_sets_paid_at(org, admin_client):
    invoice = _invoice(org)

    response = admin_client.patch(f"/api/admin/billing/invoices/{invoice.pk}/", {"status": "paid"}, format="json")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "paid"
    invoice.refresh_from_db()
    assert invoice.paid_at is not None


@pytest.mark.django_db
def test_invoice_of_other_org_is_not_found(admin_client):
    other = Organization.objects.create(name="Other", slug="other")
    invoice = _invoice(other)

    response = admin_client.patch(f"/api/admin/billing/invoices/{invoice.pk}/", {"status": "void"}, format="json")

    assert response.status_code == 404
    assert response.json()["message"] == "Invoice not found."


@pytest.mark.django_db
def test_invoice_update_validation(org, admin_client):
    url = f"/api/admin/billing/invoices/{uuid.uuid4()}/"

    assert admin_client.patch(url, {}, format="json").json()["message"] == "No updates provided."
    assert admin_client.patch(url, {"status": "lost"}, format="json").json()["message"] == "Invalid status."


@pytest.mark.django_db
def test_admin_invoice_list(org, admin_client):
    _invoice(org)
    _invoice(org, status=OrgInvoice.Status.PAID)

    response = admin_client.get("/api/admin/billing/invoices/")

    assert response.status_code == 200
    assert len(response.json()["data"]["invoices"]) == 2
