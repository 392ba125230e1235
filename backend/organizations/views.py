import logging
import re

from django.conf import settings
from django.db import transaction
from rest_framework import mixins, permissions as drf_permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.services import get_active_org_id, set_active_org_cookie, switch_active_org
from audit.activity import log_activity
from backend.exceptions import BadRequest, NotFoundError
from backend.payload import body_dict, ensure_string
from billing.services import assert_can_invite_org_member
from projects.models import ProjectMember

from .models import OrgMember, Organization
from .permissions import OrgMemberPermissions
from .serializers import MagicLinkInviteSerializer, OrganizationSerializer, OrgMemberSerializer
from .services import create_magic_link, create_organization_for_user

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
SYSTEM_ROLES = {OrgMember.ROLE_SUPER_ADMIN, OrgMember.ROLE_MEMBER}


class OrganizationViewSet(mixins.ListModelMixin, mixins.CreateModelMixin, viewsets.GenericViewSet):
    """
    Organizations the caller belongs to.

    Listing returns every org with the caller's ``system_role`` and an
    ``is_active`` flag, sorted by name. Creating an org makes the caller its
    ``super_admin`` and switches the session to it.
    """

    serializer_class = OrganizationSerializer
    permission_classes = [drf_permissions.IsAuthenticated]

    def get_queryset(self):
        return Organization.objects.filter(members__user=self.request.user).order_by('name')

    def list(self, request, *args, **kwargs):
        roles = dict(OrgMember.objects.filter(user=request.user).values_list('org_id', 'system_role'))
        serializer = self.get_serializer(
            self.get_queryset(),
            many=True,
            context={**self.get_serializer_context(), 'roles': roles, 'active_org_id': get_active_org_id(request)},
        )
        return Response({'data': serializer.data})

    def create(self, request, *args, **kwargs):
        name = ensure_string(body_dict(request).get('name'), 'name')
        org = create_organization_for_user(request.user, name, as_super_admin=True)
        switch_active_org(request, request.user, str(org.pk))

        serializer = self.get_serializer(
            org,
            context={
                **self.get_serializer_context(),
                'roles': {org.pk: OrgMember.ROLE_SUPER_ADMIN},
                'active_org_id': org.pk,
            },
        )
        response = Response({'data': serializer.data}, status=status.HTTP_201_CREATED)
        set_active_org_cookie(response, org.pk)
        return response


class OrgMemberViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Members of an organization, nested under ``/api/orgs/{org_pk}/members/``.

    Members are addressed by user id. Every org keeps at least one
    ``super_admin``: the last one can be neither demoted nor removed, and
    nobody can remove themselves. Removing a member also drops their
    project memberships inside the org.
    """

    serializer_class = OrgMemberSerializer
    permission_classes = [drf_permissions.IsAuthenticated, OrgMemberPermissions]
    lookup_field = 'user_id'
    lookup_value_regex = r'\d+'
    pagination_class = None

    def get_queryset(self):
        return (
            OrgMember.objects.filter(org_id=self.kwargs['org_pk'])
            .select_related('user')
            .order_by('created_at', 'id')
        )

    def list(self, request, *args, **kwargs):
        return Response({'data': self.get_serializer(self.get_queryset(), many=True).data})

    def _get_member(self):
        member = self.get_queryset().filter(user_id=self.kwargs['user_id']).first()
        if member is None:
            raise NotFoundError('Organization member not found.')
        return member

    def _super_admin_count(self):
        return OrgMember.objects.filter(org_id=self.kwargs['org_pk'], system_role=OrgMember.ROLE_SUPER_ADMIN).count()

    def partial_update(self, request, *args, **kwargs):
        system_role = body_dict(request).get('system_role')
        if not isinstance(system_role, str) or system_role not in SYSTEM_ROLES:
            raise BadRequest('Invalid system_role.')

        with transaction.atomic():
            member = self._get_member()
            if (
                member.system_role == OrgMember.ROLE_SUPER_ADMIN
                and system_role != OrgMember.ROLE_SUPER_ADMIN
                and self._super_admin_count() <= 1
            ):
                raise BadRequest('Organization must keep at least one super admin.')
            previous_role = member.system_role
            member.system_role = system_role
            member.save(update_fields=['system_role'])

        log_activity(
            org=member.org_id,
            actor=request.user,
            action='role_updated',
            target_type='org_member',
            target_id=member.user_id,
            metadata={'previous_role': previous_role, 'system_role': system_role},
        )
        return Response({'data': self.get_serializer(member).data})

    def update(self, request, *args, **kwargs):
        return self.partial_update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        if str(request.user.pk) == str(self.kwargs['user_id']):
            raise BadRequest('You cannot remove yourself from the organization.')

        with transaction.atomic():
            member = self._get_member()
            if member.system_role == OrgMember.ROLE_SUPER_ADMIN and self._super_admin_count() <= 1:
                raise BadRequest('Cannot remove the last super admin. Promote another member first.')
            member.delete()
            ProjectMember.objects.filter(project__org_id=member.org_id, user_id=member.user_id).delete()

        log_activity(
            org=member.org_id,
            actor=request.user,
            action='removed_member',
            target_type='org_member',
            target_id=member.user_id,
            metadata={'removed_user_id': member.user_id},
        )
        return Response({'data': {'success': True}})

    @action(detail=False, methods=['post'])
    def invite(self, request, org_pk=None):
        """
        Issue a magic link inviting an email address into the organization.

        The link is valid for ``WORKBENCH_MAGIC_LINK_HOURS`` and counts as a
        pending seat until it is redeemed or expires.
        """
        body = body_dict(request)
        email = ensure_string(body.get('email'), 'email').lower()
        if not EMAIL_PATTERN.match(email):
            raise BadRequest('Invalid email address.')
        system_role = body.get('system_role') or OrgMember.ROLE_MEMBER
        if not isinstance(system_role, str) or system_role not in SYSTEM_ROLES:
            raise BadRequest('Invalid system_role.')

        org = self.org_membership.org
        assert_can_invite_org_member(org.pk)
        magic_link = create_magic_link(org, email, system_role, request.user)

        log_activity(
            org=org,
            actor=request.user,
            action='invited_member',
            target_type='magic_link',
            target_id=magic_link.pk,
            metadata={'email': email, 'system_role': system_role},
        )
        serializer = MagicLinkInviteSerializer(magic_link, context={'base_url': settings.WORKBENCH_BASE_URL})
        return Response({'data': serializer.data}, status=status.HTTP_201_CREATED)
