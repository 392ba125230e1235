from rest_framework import permissions

from backend.exceptions import NotFoundError
from backend.payload import parse_uuid

from .services import assert_org_membership, assert_org_super_admin


class OrgMemberPermissions(permissions.BasePermission):
    """
    Permission class for the members of one organization.

    The org comes from the ``org_pk`` URL kwarg. Reading the member list
    needs any membership in the org; inviting, changing system roles and
    removing members need ``super_admin``. Failures raise the API's own
    403 errors so the client receives the exact reason.
    """
    super_admin_actions = {'invite', 'update', 'partial_update', 'destroy'}

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        org_id = parse_uuid(view.kwargs.get('org_pk'))
        if org_id is None:
            raise NotFoundError('Organization not found.')
        if view.action in self.super_admin_actions:
            view.org_membership = assert_org_super_admin(org_id, request.user)
        else:
            view.org_membership = assert_org_membership(org_id, request.user)
        return True
