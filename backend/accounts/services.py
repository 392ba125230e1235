"""
Session handling and tenancy resolution for signed-in users.

A request's *active organization* is resolved in this order: the org named
by the ``X-Workbench-Org-Id`` header or the ``wb_active_org`` cookie, the
org stored on the session, the user's first super-admin membership, and
finally the user's first membership.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from organizations.models import OrgMember
from organizations.services import (
    assert_org_super_admin,
    create_organization_for_user,
    memberships_for,
    personal_org_name,
)
from projects.models import Invitation, ProjectMember
from backend.exceptions import BadRequest, Forbidden
from backend.payload import parse_uuid

from .models import AuthSession

logger = logging.getLogger(__name__)

AUTH_MODE = "local"


def normalize_email(email) -> str:
    return (email or "").strip().lower() if isinstance(email, str) else ""


def get_session_token(request) -> Optional[str]:
    token = request.COOKIES.get(settings.WORKBENCH_SESSION_COOKIE)
    if token:
        return token
    header = request.META.get("HTTP_AUTHORIZATION", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return None


def get_live_session(token: Optional[str]) -> Optional[AuthSession]:
    if not token:
        return None
    return (
        AuthSession.objects.select_related("user", "active_org")
        .filter(token=token, expires_at__gt=timezone.now())
        .first()
    )


def default_org_id(memberships) -> Optional[str]:
    if not memberships:
        return None
    for membership in memberships:
        if membership.system_role == OrgMember.ROLE_SUPER_ADMIN:
            return membership.org_id
    return memberships[0].org_id


@transaction.atomic
def accept_pending_invitations(user) -> int:
    """Turn project invitations addressed to the user's email into memberships."""
    pending = Invitation.objects.select_for_update().filter(
        accepted_at__isnull=True, email=normalize_email(user.email)
    )
    accepted = 0
    now = timezone.now()
    for invite in pending:
        OrgMember.objects.get_or_create(
            org_id=invite.org_id,
            user=user,
            defaults={"system_role": OrgMember.ROLE_MEMBER},
        )
        ProjectMember.objects.get_or_create(
            project_id=invite.project_id,
            user=user,
            defaults={"role": invite.role, "invited_by_id": invite.invited_by_id},
        )
        invite.accepted_at = now
        invite.save(update_fields=["accepted_at"])
        accepted += 1
    if accepted:
        logger.info("Accepted %s pending invitation(s) for user %s", accepted, user.pk)
    return accepted


def ensure_user_memberships(user) -> None:
    """Accept invitations, then give an org-less user a personal workspace."""
    accept_pending_invitations(user)
    if OrgMember.objects.filter(user=user).exists():
        return
    create_organization_for_user(user, personal_org_name(user))


def create_session(user, preferred_org_id=None) -> AuthSession:
    memberships = memberships_for(user)
    member_org_ids = {str(m.org_id) for m in memberships}
    if preferred_org_id and str(preferred_org_id) in member_org_ids:
        active_org_id = preferred_org_id
    else:
        active_org_id = default_org_id(memberships)

    # One live session per user; expired rows are left to the purge task
    AuthSession.objects.filter(user=user, expires_at__gt=timezone.now()).delete()
    return AuthSession.objects.create(user=user, active_org_id=active_org_id)


def _set_cookie(response, name, value):
    response.set_cookie(
        name,
        value,
        max_age=settings.WORKBENCH_SESSION_DAYS * 24 * 60 * 60,
        httponly=True,
        samesite="Lax",
        secure=settings.WORKBENCH_COOKIE_SECURE,
        path="/",
    )


def set_active_org_cookie(response, org_id) -> None:
    if org_id:
        _set_cookie(response, settings.WORKBENCH_ACTIVE_ORG_COOKIE, str(org_id))
    else:
        response.delete_cookie(settings.WORKBENCH_ACTIVE_ORG_COOKIE, path="/", samesite="Lax")


def attach_session_cookies(response, session: AuthSession) -> None:
    _set_cookie(response, settings.WORKBENCH_SESSION_COOKIE, session.token)
    set_active_org_cookie(response, session.active_org_id)


def clear_session_cookies(response) -> None:
    response.delete_cookie(settings.WORKBENCH_SESSION_COOKIE, path="/", samesite="Lax")
    set_active_org_cookie(response, None)


def end_session(token: Optional[str]) -> None:
    if token:
        AuthSession.objects.filter(token=token).delete()


def get_active_org_id(request, user=None):
    """Resolve the active org id for the request's user (``None`` without memberships)."""
    user = user or request.user
    if user is None or not user.is_authenticated:
        return None
    memberships = memberships_for(user)
    if not memberships:
        return None
    member_org_ids = {str(m.org_id): m.org_id for m in memberships}

    requested = request.META.get("HTTP_X_WORKBENCH_ORG_ID") or request.COOKIES.get(
        settings.WORKBENCH_ACTIVE_ORG_COOKIE
    )
    if requested and str(requested) in member_org_ids:
        return member_org_ids[str(requested)]

    session = getattr(request, "auth", None)
    if isinstance(session, AuthSession) and session.active_org_id and str(session.active_org_id) in member_org_ids:
        return session.active_org_id

    return default_org_id(memberships)


def switch_active_org(request, user, org_id):
    org_id = parse_uuid(org_id)
    if org_id is None or not OrgMember.objects.filter(user=user, org_id=org_id).exists():
        raise Forbidden("You do not have access to this organization.")
    session = getattr(request, "auth", None)
    if isinstance(session, AuthSession) and session.user_id == user.pk:
        session.active_org_id = org_id
        session.save(update_fields=["active_org"])
    return org_id


def purge_expired_sessions() -> int:
    deleted, _ = AuthSession.objects.filter(expires_at__lte=timezone.now()).delete()
    return deleted


def require_active_org_id(request, message: str = "No active organization."):
    org_id = get_active_org_id(request)
    if org_id is None:
        raise BadRequest(message)
    return org_id


def require_active_super_admin(request) -> OrgMember:
    """Membership of the caller in the active org, which must be a super admin one."""
    org_id = require_active_org_id(request)
    return assert_org_super_admin(org_id, request.user)
