"""Expose commonly used billing services."""

from .entitlements import (
    PLAN_ENTITLEMENTS,
    PlanEntitlements,
    assert_can_create_document,
    assert_can_create_project,
    assert_can_create_task,
    assert_can_invite_org_member,
    assert_can_redeem_org_member,
    assert_can_upload_file,
    assert_subscription_allows_writes,
    ensure_org_subscription,
    get_org_billing_snapshot,
    record_upload_usage,
    resolve_plan_entitlements,
)
from .subscriptions import (
    SubscriptionUpdateResult,
    list_org_invoices,
    update_org_invoice,
    update_org_subscription,
)
