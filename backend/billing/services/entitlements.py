"""
Plan entitlements, org usage snapshots, and the guards every write goes through.

Each guard first checks that the subscription still allows writes (trial not
expired, not past due, paused or canceled) and then compares the relevant
usage counter with the plan limit. Violations raise ``BillingError`` (HTTP
402) with a machine readable code and the numbers involved.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from backend.exceptions import BillingError
from billing.models import OrgSubscription, OrgUsageCounter
from billing.observability.logging import log_billing_event
from billing.observability.metrics import ENTITLEMENT_DENIED_COUNT, UPLOAD_BYTES_RECORDED

logger = logging.getLogger(__name__)

MB = 1024 * 1024


@dataclass(frozen=True)
class PlanEntitlements:
    max_projects: Optional[int]
    max_tasks_per_project: Optional[int]
    max_documents_per_project: Optional[int]
    max_members: Optional[int]
    max_upload_mb: int
    ai_enabled: bool


PLAN_ENTITLEMENTS: Dict[str, PlanEntitlements] = {
    OrgSubscription.Plan.STARTER: PlanEntitlements(
        max_projects=3,
        max_tasks_per_project=200,
        max_documents_per_project=100,
        max_members=3,
        max_upload_mb=256,
        ai_enabled=False,
    ),
    OrgSubscription.Plan.GROWTH: PlanEntitlements(
        max_projects=25,
        max_tasks_per_project=5000,
        max_documents_per_project=1500,
        max_members=50,
        max_upload_mb=4096,
        ai_enabled=True,
    ),
    OrgSubscription.Plan.ENTERPRISE: PlanEntitlements(
        max_projects=None,
        max_tasks_per_project=None,
        max_documents_per_project=None,
        max_members=None,
        max_upload_mb=51200,
        ai_enabled=True,
    ),
}


def resolve_plan_entitlements(plan_id: str) -> PlanEntitlements:
    return PLAN_ENTITLEMENTS.get(plan_id) or PLAN_ENTITLEMENTS[OrgSubscription.Plan.STARTER]


def seat_limit_for(subscription: OrgSubscription, entitlements: PlanEntitlements) -> int:
    if entitlements.max_members is None:
        return subscription.seat_count
    return min(subscription.seat_count, entitlements.max_members)


def _deny(message: str, code: str, org_id, **details: Any) -> None:
    ENTITLEMENT_DENIED_COUNT.labels(code=code).inc()
    log_billing_event(
        message="entitlement_denied",
        org_id=str(org_id),
        extra={"code": code, **details},
    )
    raise BillingError(message, code=code, details=details)


def ensure_org_subscription(org_id) -> OrgSubscription:
    """
    Newest non-canceled subscription of the org, seeding a starter trial when missing.

    An org whose only subscriptions are canceled keeps the newest canceled one
    so the write gate can report it instead of handing out a fresh trial.
    """
    subscriptions = OrgSubscription.objects.filter(org_id=org_id).order_by("-updated_at")
    existing = subscriptions.exclude(status=OrgSubscription.Status.CANCELED).first() or subscriptions.first()
    if existing is not None:
        return existing

    now = timezone.now()
    subscription = OrgSubscription.objects.create(
        org_id=org_id,
        plan_id=OrgSubscription.Plan.STARTER,
        status=OrgSubscription.Status.TRIALING,
        billing_interval=OrgSubscription.Interval.MONTHLY,
        seat_count=settings.BILLING_DEFAULT_SEATS,
        trial_ends_at=now + timedelta(days=settings.BILLING_TRIAL_DAYS),
        current_period_start=now,
        current_period_end=now + timedelta(days=settings.BILLING_PERIOD_DAYS),
    )
    log_billing_event(message="subscription_seeded", org_id=str(org_id), extra={"plan_id": subscription.plan_id})
    return subscription


def assert_subscription_allows_writes(subscription: OrgSubscription) -> None:
    status = subscription.status
    if status == OrgSubscription.Status.ACTIVE:
        return
    if status == OrgSubscription.Status.TRIALING:
        if subscription.trial_ends_at is None or subscription.trial_ends_at >= timezone.now():
            return
        _deny(
            "Trial period has ended. Update your subscription to continue.",
            "TRIAL_EXPIRED",
            subscription.org_id,
            trial_ends_at=subscription.trial_ends_at.isoformat(),
        )
    if status == OrgSubscription.Status.PAST_DUE:
        _deny(
            "Subscription is past due. Resolve billing before creating new data.",
            "SUBSCRIPTION_PAST_DUE",
            subscription.org_id,
        )
    if status == OrgSubscription.Status.PAUSED:
        _deny("Subscription is paused. Resume billing to continue.", "SUBSCRIPTION_PAUSED", subscription.org_id)
    _deny("Subscription is canceled. Reactivate billing to continue.", "SUBSCRIPTION_CANCELED", subscription.org_id)


# Usage counters ---------------------------------------------------------------

def count_projects(org_id) -> int:
    from projects.models import Project

    return Project.objects.filter(org_id=org_id, archived_at__isnull=True).count()


def count_members(org_id) -> int:
    from organizations.models import OrgMember

    return OrgMember.objects.filter(org_id=org_id).count()


def count_pending_invites(org_id) -> int:
    """Distinct emails holding a live magic link or an unaccepted project invitation."""
    from organizations.models import MagicLink
    from projects.models import Invitation

    emails = set(
        email.strip().lower()
        for email in MagicLink.objects.pending().filter(org_id=org_id).values_list("email", flat=True)
    )
    emails.update(
        email.strip().lower()
        for email in Invitation.objects.filter(org_id=org_id, accepted_at__isnull=True).values_list("email", flat=True)
    )
    return len(emails)


def upload_bytes_used(org_id) -> int:
    counter = OrgUsageCounter.objects.filter(org_id=org_id, metric=OrgUsageCounter.METRIC_UPLOAD_BYTES).first()
    return int(counter.value) if counter else 0


def get_org_billing_snapshot(org_id) -> Dict[str, Any]:
    from billing.serializers import OrgSubscriptionSerializer

    subscription = ensure_org_subscription(org_id)
    entitlements = resolve_plan_entitlements(subscription.plan_id)
    return {
        "subscription": OrgSubscriptionSerializer(subscription).data,
        "entitlements": {**asdict(entitlements), "seat_limit": seat_limit_for(subscription, entitlements)},
        "usage": {
            "projects": count_projects(org_id),
            "members": count_members(org_id),
            "pending_invites": count_pending_invites(org_id),
            "upload_bytes": upload_bytes_used(org_id),
        },
    }


# Guards -----------------------------------------------------------------------

def assert_can_create_project(org_id) -> None:
    subscription = ensure_org_subscription(org_id)
    assert_subscription_allows_writes(subscription)
    entitlements = resolve_plan_entitlements(subscription.plan_id)
    if entitlements.max_projects is None:
        return
    current = count_projects(org_id)
    if current >= entitlements.max_projects:
        _deny(
            "Project limit reached for current plan.",
            "PROJECT_LIMIT_REACHED",
            org_id,
            limit=entitlements.max_projects,
            current=current,
        )


def assert_can_create_task(org_id, project_id) -> None:
    from taskboard.models import Task

    subscription = ensure_org_subscription(org_id)
    assert_subscription_allows_writes(subscription)
    entitlements = resolve_plan_entitlements(subscription.plan_id)
    if entitlements.max_tasks_per_project is None:
        return
    current = Task.objects.filter(project_id=project_id).count()
    if current >= entitlements.max_tasks_per_project:
        _deny(
            "Task limit reached for this project on current plan.",
            "TASK_LIMIT_REACHED",
            org_id,
            limit=entitlements.max_tasks_per_project,
            current=current,
        )


def assert_can_create_document(org_id, project_id) -> None:
    from documents.models import Document

    subscription = ensure_org_subscription(org_id)
    assert_subscription_allows_writes(subscription)
    entitlements = resolve_plan_entitlements(subscription.plan_id)
    if entitlements.max_documents_per_project is None:
        return
    current = Document.objects.filter(project_id=project_id, is_archived=False).count()
    if current >= entitlements.max_documents_per_project:
        _deny(
            "Document limit reached for this project on current plan.",
            "DOCUMENT_LIMIT_REACHED",
            org_id,
            limit=entitlements.max_documents_per_project,
            current=current,
        )


def assert_can_invite_org_member(org_id) -> None:
    subscription = ensure_org_subscription(org_id)
    assert_subscription_allows_writes(subscription)
    seat_limit = seat_limit_for(subscription, resolve_plan_entitlements(subscription.plan_id))
    members = count_members(org_id)
    pending = count_pending_invites(org_id)
    if members + pending >= seat_limit:
        _deny(
            "No available seats on current subscription.",
            "SEAT_LIMIT_REACHED",
            org_id,
            seat_limit=seat_limit,
            members=members,
            pending_invites=pending,
        )


def assert_can_redeem_org_member(org_id) -> None:
    subscription = ensure_org_subscription(org_id)
    assert_subscription_allows_writes(subscription)
    seat_limit = seat_limit_for(subscription, resolve_plan_entitlements(subscription.plan_id))
    members = count_members(org_id)
    if members >= seat_limit:
        _deny(
            "No available seats on current subscription.",
            "SEAT_LIMIT_REACHED",
            org_id,
            seat_limit=seat_limit,
            members=members,
        )


def assert_can_upload_file(org_id, size_bytes: int) -> None:
    subscription = ensure_org_subscription(org_id)
    assert_subscription_allows_writes(subscription)
    entitlements = resolve_plan_entitlements(subscription.plan_id)
    used = upload_bytes_used(org_id)
    limit_bytes = entitlements.max_upload_mb * MB
    if used + size_bytes > limit_bytes:
        _deny(
            "Storage upload quota exceeded for current plan.",
            "UPLOAD_QUOTA_EXCEEDED",
            org_id,
            limit_mb=entitlements.max_upload_mb,
            used_mb=round(used / MB, 2),
            requested_mb=round(size_bytes / MB, 2),
        )


@transaction.atomic
def record_upload_usage(org_id, size_bytes: int) -> None:
    if size_bytes <= 0:
        return
    counter, created = OrgUsageCounter.objects.select_for_update().get_or_create(
        org_id=org_id,
        metric=OrgUsageCounter.METRIC_UPLOAD_BYTES,
        defaults={"value": size_bytes},
    )
    if not created:
        OrgUsageCounter.objects.filter(pk=counter.pk).update(value=F("value") + size_bytes)
    UPLOAD_BYTES_RECORDED.inc(size_bytes)
