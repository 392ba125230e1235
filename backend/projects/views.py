import logging

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone
from rest_framework import mixins, permissions as drf_permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.models import User
from accounts.services import get_active_org_id
from audit.activity import log_activity
from audit.models import ActivityLog
from audit.serializers import ActivityLogSerializer
from backend.exceptions import BadRequest, Forbidden, NotFoundError
from backend.payload import as_string_array, body_dict, ensure_string, is_truthy_flag, optional_string, parse_uuid
from billing.services import assert_can_create_project, assert_can_invite_org_member
from notifications.models import Notification
from notifications.services import notify
from organizations.models import OrgMember
from organizations.services import memberships_for, super_admin_org_ids

from .access import ADMIN, VIEWER, ProjectRolePermission, visible_projects
from .models import Invitation, Project, ProjectMember
from .serializers import (
    InvitationSerializer,
    ProjectListSerializer,
    ProjectMemberSerializer,
    ProjectSerializer,
)

logger = logging.getLogger(__name__)

PROJECT_ACTIVITY_LIMIT = 200
PROJECT_ROLES = {ProjectMember.ROLE_ADMIN, ProjectMember.ROLE_EDITOR, ProjectMember.ROLE_VIEWER}
DONE = 'done'


def _normalized_settings(current, incoming):
    merged = {**(current or {}), **incoming}
    merged['tags'] = as_string_array(incoming.get('tags'))
    return merged


class ProjectViewSet(viewsets.GenericViewSet):
    """
    Projects the caller can see.

    Listing is scoped to the active organization unless ``include_all`` is
    ``1``/``true`` and only shows non-archived projects where the caller is
    an org super admin or a project member. Deleting archives the project.

    Role requirements:
    - list / create: any signed-in user
    - retrieve / activity / invitations: viewer
    - partial_update / destroy: admin
    """

    serializer_class = ProjectSerializer
    permission_classes = [drf_permissions.IsAuthenticated, ProjectRolePermission]
    project_kwarg = 'pk'
    action_permission_map = {
        'retrieve': VIEWER,
        'activity': VIEWER,
        'invitations': VIEWER,
        'update': ADMIN,
        'partial_update': ADMIN,
        'destroy': ADMIN,
    }
    pagination_class = None

    def get_queryset(self):
        return Project.objects.all()

    def _roles_for(self, projects):
        user = self.request.user
        admin_orgs = set(super_admin_org_ids(user))
        member_roles = dict(
            ProjectMember.objects.filter(user=user, project__in=[p.pk for p in projects])
            .values_list('project_id', 'role')
        )
        return {p.pk: ADMIN if p.org_id in admin_orgs else member_roles.get(p.pk) for p in projects}

    def list(self, request, *args, **kwargs):
        include_all = is_truthy_flag(request.query_params.get('include_all'))
        org_id = None
        if not include_all:
            org_id = get_active_org_id(request)
            if org_id is None:
                return Response({'data': []})

        visible = visible_projects(request.user, org_id).values('pk')
        projects = list(
            Project.objects.filter(pk__in=visible)
            .annotate(
                open_tasks=Count('tasks', filter=~Q(tasks__status=DONE), distinct=True),
                document_count=Count('documents', filter=Q(documents__is_archived=False), distinct=True),
            )
            .order_by('name')
        )
        serializer = ProjectListSerializer(projects, many=True, context={'roles': self._roles_for(projects)})
        return Response({'data': serializer.data})

    def create(self, request, *args, **kwargs):
        body = body_dict(request)
        name = ensure_string(body.get('name'), 'name')

        memberships = memberships_for(request.user)
        if not memberships:
            raise Forbidden('User must belong to an organization.')

        requested_org = body.get('org_id')
        if requested_org:
            org_id = parse_uuid(str(requested_org))
            if org_id is None or org_id not in {m.org_id for m in memberships}:
                raise Forbidden('You do not have access to the requested organization.')
        else:
            org_id = get_active_org_id(request) or memberships[0].org_id

        assert_can_create_project(org_id)

        settings = body.get('settings')
        with transaction.atomic():
            project = Project.objects.create(
                org_id=org_id,
                name=name,
                description=optional_string(body.get('description')),
                icon=optional_string(body.get('icon')) or 'WB',
                color=optional_string(body.get('color')) or '#0f766e',
                settings=_normalized_settings({}, settings) if isinstance(settings, dict) else {},
                created_by=request.user,
            )
            ProjectMember.objects.create(
                project=project,
                user=request.user,
                role=ProjectMember.ROLE_ADMIN,
                invited_by=request.user,
            )
            log_activity(
                org=org_id,
                project=project,
                actor=request.user,
                action='created',
                target_type='project',
                target_id=project.pk,
                metadata={'name': project.name},
            )

        logger.info("Project %s created in org %s by user %s", project.pk, org_id, request.user.pk)
        serializer = self.get_serializer(project, context={'role': ADMIN})
        return Response({'data': serializer.data}, status=status.HTTP_201_CREATED)

    def retrieve(self, request, *args, **kwargs):
        project = self.project
        tasks = project.tasks.all()
        today = timezone.localdate()
        data = dict(self.get_serializer(project, context={'role': self.project_role}).data)
        data['metrics'] = {
            'documents': project.documents.filter(is_archived=False).count(),
            'tasks': tasks.count(),
            'open_tasks': tasks.exclude(status=DONE).count(),
            'overdue_tasks': tasks.filter(due_date__lt=today).exclude(status=DONE).count(),
        }
        return Response({'data': data})

    def partial_update(self, request, *args, **kwargs):
        project = self.project
        body = body_dict(request)
        updated = []

        name = optional_string(body.get('name'))
        if name:
            project.name = name
            updated.append('name')
        for field in ('description', 'icon', 'color'):
            if field in body:
                setattr(project, field, optional_string(body.get(field)))
                updated.append(field)
        if isinstance(body.get('settings'), dict):
            project.settings = _normalized_settings(project.settings, body['settings'])
            updated.append('settings')

        if updated:
            project.save(update_fields=updated)
        log_activity(
            org=project.org_id,
            project=project,
            actor=request.user,
            action='updated',
            target_type='project',
            target_id=project.pk,
            metadata={'fields': updated},
        )
        return Response({'data': self.get_serializer(project, context={'role': self.project_role}).data})

    def update(self, request, *args, **kwargs):
        return self.partial_update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        project = self.project
        if project.archived_at is None:
            project.archived_at = timezone.now()
            project.save(update_fields=['archived_at'])
        log_activity(
            org=project.org_id,
            project=project,
            actor=request.user,
            action='archived',
            target_type='project',
            target_id=project.pk,
        )
        return Response({'data': self.get_serializer(project, context={'role': self.project_role}).data})

    @action(detail=True, methods=['get'])
    def activity(self, request, pk=None):
        """Newest activity entries of the project."""
        entries = ActivityLog.objects.filter(project=self.project).order_by('-created_at')[:PROJECT_ACTIVITY_LIMIT]
        return Response({'data': ActivityLogSerializer(entries, many=True).data})

    @action(detail=True, methods=['get'])
    def invitations(self, request, pk=None):
        """Invitations of the project that were not accepted yet."""
        pending = Invitation.objects.filter(project=self.project, accepted_at__isnull=True).order_by('-created_at')
        return Response({'data': InvitationSerializer(pending, many=True).data})


class ProjectMemberViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Members of a project, nested under ``/api/projects/{project_pk}/members/``.

    Listing needs viewer access; adding, changing roles and removing members
    need project admin. Every project keeps at least one admin.

    Adding an email with an account puts that user into the project's org
    (as ``member`` when new) and upserts the project membership. Adding an
    unknown email creates a pending invitation that is accepted at that
    person's first sign-in.
    """

    serializer_class = ProjectMemberSerializer
    permission_classes = [drf_permissions.IsAuthenticated, ProjectRolePermission]
    action_permission_map = {
        'list': VIEWER,
        'create': ADMIN,
        'update': ADMIN,
        'partial_update': ADMIN,
        'destroy': ADMIN,
    }
    lookup_field = 'user_id'
    lookup_value_regex = r'\d+'
    pagination_class = None

    def get_queryset(self):
        return ProjectMember.objects.filter(project=self.project).select_related('user').order_by('joined_at', 'id')

    def list(self, request, *args, **kwargs):
        return Response({'data': self.get_serializer(self.get_queryset(), many=True).data})

    def _get_member(self):
        member = self.get_queryset().filter(user_id=self.kwargs['user_id']).first()
        if member is None:
            raise NotFoundError('Member not found.')
        return member

    def _is_last_admin(self, member):
        if member.role != ProjectMember.ROLE_ADMIN:
            return False
        return ProjectMember.objects.filter(project=self.project, role=ProjectMember.ROLE_ADMIN).count() <= 1

    def create(self, request, *args, **kwargs):
        project = self.project
        body = body_dict(request)
        email = ensure_string(body.get('email'), 'email').lower()
        role = body.get('role') or ProjectMember.ROLE_VIEWER
        if not isinstance(role, str) or role not in PROJECT_ROLES:
            raise BadRequest('Invalid role.')

        user = User.objects.filter(email=email).first()
        if user is not None:
            with transaction.atomic():
                OrgMember.objects.get_or_create(
                    org_id=project.org_id,
                    user=user,
                    defaults={'system_role': OrgMember.ROLE_MEMBER},
                )
                membership, _ = ProjectMember.objects.update_or_create(
                    project=project,
                    user=user,
                    defaults={'role': role},
                )
                if membership.invited_by_id is None:
                    membership.invited_by = request.user
                    membership.save(update_fields=['invited_by'])
                log_activity(
                    org=project.org_id,
                    project=project,
                    actor=request.user,
                    action='added',
                    target_type='member',
                    target_id=user.pk,
                    metadata={'role': role},
                )
            notify(
                user.pk,
                Notification.TYPE_PROJECT_INVITE,
                f"Added to {project.name}",
                body=f"You were added as {role}.",
                link=f"/projects/{project.pk}",
            )
            return Response({'data': self.get_serializer(membership).data}, status=status.HTTP_201_CREATED)

        existing = Invitation.objects.filter(project=project, email=email, accepted_at__isnull=True).first()
        if existing is not None:
            return Response({'data': InvitationSerializer(existing).data}, status=status.HTTP_201_CREATED)

        assert_can_invite_org_member(project.org_id)
        invitation = Invitation.objects.create(
            org_id=project.org_id,
            project=project,
            email=email,
            role=role,
            invited_by=request.user,
        )
        log_activity(
            org=project.org_id,
            project=project,
            actor=request.user,
            action='invited',
            target_type='member',
            target_id=email,
            metadata={'role': role},
        )
        return Response({'data': InvitationSerializer(invitation).data}, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        role = body_dict(request).get('role')
        if not isinstance(role, str) or role not in PROJECT_ROLES:
            raise BadRequest('Invalid role.')

        with transaction.atomic():
            member = self._get_member()
            if role != ProjectMember.ROLE_ADMIN and self._is_last_admin(member):
                raise BadRequest('Project must keep at least one admin.')
            previous_role = member.role
            member.role = role
            member.save(update_fields=['role'])

        log_activity(
            org=self.project.org_id,
            project=self.project,
            actor=request.user,
            action='role_updated',
            target_type='member',
            target_id=member.user_id,
            metadata={'previous_role': previous_role, 'role': role},
        )
        return Response({'data': self.get_serializer(member).data})

    def update(self, request, *args, **kwargs):
        return self.partial_update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        with transaction.atomic():
            member = self._get_member()
            if self._is_last_admin(member):
                raise BadRequest('Project must keep at least one admin.')
            user_id = member.user_id
            member.delete()

        log_activity(
            org=self.project.org_id,
            project=self.project,
            actor=request.user,
            action='removed',
            target_type='member',
            target_id=user_id,
        )
        return Response({'data': {'removed': True, 'user_id': user_id}})
