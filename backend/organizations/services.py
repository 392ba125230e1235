"""
Organization lifecycle and org-level access checks.
"""
from __future__ import annotations

import logging
import re
import secrets
import string
from typing import List, Optional

from django.db import transaction

from backend.exceptions import BadRequest, Forbidden

from .models import MagicLink, OrgMember, Organization

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 48
_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")
_SLUG_ALPHABET = string.ascii_lowercase + string.digits


def slugify_name(name: str) -> str:
    slug = _NON_SLUG_CHARS.sub("-", (name or "").lower()).strip("-")[:SLUG_MAX_LENGTH].strip("-")
    if slug:
        return slug
    return "workspace-" + "".join(secrets.choice(_SLUG_ALPHABET) for _ in range(8))


def unique_slug(name: str) -> str:
    base = slugify_name(name)
    candidate = base
    suffix = 2
    while Organization.objects.filter(slug=candidate).exists():
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


def personal_org_name(user) -> str:
    return f"{user.display_name}'s Workspace"


@transaction.atomic
def create_organization_for_user(user, name: str, *, as_super_admin: bool = True) -> Organization:
    """Create an org and make ``user`` its first member."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise BadRequest("Organization name is required.")

    org = Organization.objects.create(name=trimmed, slug=unique_slug(trimmed))
    OrgMember.objects.create(
        org=org,
        user=user,
        system_role=OrgMember.ROLE_SUPER_ADMIN if as_super_admin else OrgMember.ROLE_MEMBER,
    )
    logger.info("Created organization %s for user %s", org.slug, user.pk)
    return org


def memberships_for(user) -> List[OrgMember]:
    return list(OrgMember.objects.filter(user=user).select_related("org").order_by("created_at", "id"))


def get_membership(org_id, user) -> Optional[OrgMember]:
    if not org_id or user is None or not user.is_authenticated:
        return None
    return OrgMember.objects.filter(org_id=org_id, user=user).first()


def get_system_role(org_id, user) -> Optional[str]:
    membership = get_membership(org_id, user)
    return membership.system_role if membership else None


def super_admin_org_ids(user) -> List:
    return list(
        OrgMember.objects.filter(user=user, system_role=OrgMember.ROLE_SUPER_ADMIN).values_list("org_id", flat=True)
    )


def assert_org_membership(org_id, user) -> OrgMember:
    membership = get_membership(org_id, user)
    if membership is None:
        raise Forbidden("Organization membership required.")
    return membership


def assert_org_super_admin(org_id, user) -> OrgMember:
    membership = get_membership(org_id, user)
    if membership is None or not membership.is_super_admin:
        raise Forbidden("Super admin access required.")
    return membership


def create_magic_link(org: Organization, email: str, system_role: str, invited_by) -> MagicLink:
    return MagicLink.objects.create(
        org=org,
        email=email.strip().lower(),
        system_role=system_role,
        invited_by=invited_by,
    )


def get_redeemable_magic_link(token: str) -> Optional[MagicLink]:
    if not token:
        return None
    return MagicLink.objects.pending().select_related("org").filter(token=token).first()
