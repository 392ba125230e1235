"""
Admin-side subscription and invoice management.

Super admins change the plan, interval, seat count or status of their org's
subscription directly (there is no payment processor); lifecycle *actions*
are shorthands for the common status transitions. Invoices are issued and
settled by hand.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from backend.exceptions import BadRequest, NotFoundError
from backend.payload import parse_datetime_value, parse_uuid
from billing.models import OrgInvoice, OrgSubscription
from billing.observability.logging import log_billing_event

from .entitlements import ensure_org_subscription

logger = logging.getLogger(__name__)

SUBSCRIPTION_ACTIONS = frozenset(
    {"activate", "resume", "pause", "mark_past_due", "cancel_now", "cancel_end_of_period"}
)
CURRENCY_PATTERN = re.compile(r"[A-Za-z]{3}")


@dataclass(frozen=True)
class SubscriptionUpdateResult:
    subscription: OrgSubscription
    invoice: Optional[OrgInvoice]


def _action_updates(action: str, subscription: OrgSubscription) -> Dict[str, Any]:
    if not isinstance(action, str) or action not in SUBSCRIPTION_ACTIONS:
        raise BadRequest("Invalid action.")
    Status = OrgSubscription.Status
    if action in ("activate", "resume"):
        return {"status": Status.ACTIVE, "cancel_at_period_end": False, "canceled_at": None}
    if action == "pause":
        return {"status": Status.PAUSED}
    if action == "mark_past_due":
        return {"status": Status.PAST_DUE}
    if action == "cancel_now":
        return {"status": Status.CANCELED, "cancel_at_period_end": False, "canceled_at": timezone.now()}
    updates: Dict[str, Any] = {"cancel_at_period_end": True}
    if subscription.status == Status.CANCELED:
        updates["status"] = Status.ACTIVE
    return updates


def _parse_seat_count(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value or value < 1:
        raise BadRequest("seat_count must be a positive integer.")
    return int(value)


@transaction.atomic
def update_org_subscription(org_id, body: Dict[str, Any], *, actor=None) -> SubscriptionUpdateResult:
    subscription = ensure_org_subscription(org_id)
    updates: Dict[str, Any] = {}

    plan_id = body.get("plan_id")
    if plan_id:
        if plan_id not in OrgSubscription.Plan.values:
            raise BadRequest("Invalid plan_id.")
        updates["plan_id"] = plan_id

    interval = body.get("billing_interval")
    if interval:
        if interval not in OrgSubscription.Interval.values:
            raise BadRequest("Invalid billing_interval.")
        updates["billing_interval"] = interval

    if body.get("seat_count") is not None:
        updates["seat_count"] = _parse_seat_count(body["seat_count"])

    status = body.get("status")
    if status:
        if status not in OrgSubscription.Status.values:
            raise BadRequest("Invalid status.")
        updates["status"] = status

    action = body.get("action")
    if action:
        updates.update(_action_updates(action, subscription))

    issue_invoice = body.get("issue_invoice")
    if not updates and not issue_invoice:
        raise BadRequest("No updates provided.")

    if updates:
        for field, value in updates.items():
            setattr(subscription, field, value)
        subscription.save()

    invoice = None
    if issue_invoice:
        invoice = _issue_invoice(subscription, issue_invoice, actor=actor)

    log_billing_event(
        message="subscription_updated",
        org_id=str(org_id),
        actor=str(actor.pk) if actor is not None else None,
        extra={
            "changes": sorted(updates),
            "status": subscription.status,
            "plan_id": subscription.plan_id,
            "invoice_id": str(invoice.pk) if invoice else None,
        },
    )
    return SubscriptionUpdateResult(subscription=subscription, invoice=invoice)


def _issue_invoice(subscription: OrgSubscription, payload, *, actor=None) -> OrgInvoice:
    if not isinstance(payload, dict):
        payload = {}
    amount = payload.get("amount_cents")
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount < 0:
        raise BadRequest("issue_invoice.amount_cents must be a non-negative number.")
    currency = payload.get("currency") or "usd"
    if not isinstance(currency, str) or not CURRENCY_PATTERN.fullmatch(currency):
        raise BadRequest("issue_invoice.currency must be a 3-letter currency code.")

    return OrgInvoice.objects.create(
        org_id=subscription.org_id,
        subscription=subscription,
        status=OrgInvoice.Status.OPEN,
        amount_cents=int(round(amount)),
        currency=currency.lower(),
        due_at=parse_datetime_value(payload.get("due_at")),
        period_start=subscription.current_period_start,
        period_end=subscription.current_period_end,
        metadata={"created_by_admin": str(actor.pk) if actor is not None else None},
    )


def list_org_invoices(org_id):
    return OrgInvoice.objects.filter(org_id=org_id).order_by("-created_at")


@transaction.atomic
def update_org_invoice(org_id, invoice_id, body: Dict[str, Any], *, actor=None) -> OrgInvoice:
    updates: Dict[str, Any] = {}

    status = body.get("status")
    if status:
        if status not in OrgInvoice.Status.values:
            raise BadRequest("Invalid status.")
        updates["status"] = status
    if "due_at" in body:
        updates["due_at"] = parse_datetime_value(body.get("due_at"))
    if "paid_at" in body:
        updates["paid_at"] = parse_datetime_value(body.get("paid_at"))
    if "metadata" in body:
        updates["metadata"] = body.get("metadata") or {}
    if updates.get("status") == OrgInvoice.Status.PAID and "paid_at" not in updates:
        updates["paid_at"] = timezone.now()

    if not updates:
        raise BadRequest("No updates provided.")

    pk = parse_uuid(invoice_id)
    invoice = OrgInvoice.objects.select_for_update().filter(pk=pk, org_id=org_id).first() if pk else None
    if invoice is None:
        raise NotFoundError("Invoice not found.")

    for field, value in updates.items():
        setattr(invoice, field, value)
    invoice.save()
    log_billing_event(
        message="invoice_updated",
        org_id=str(org_id),
        actor=str(actor.pk) if actor is not None else None,
        extra={"invoice_id": str(invoice.pk), "changes": sorted(updates)},
    )
    return invoice
