"""Admin console for super admins of the active organization."""
import logging
import re

from django.db import IntegrityError, transaction
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.services import require_active_super_admin
from audit.activity import log_activity
from audit.models import ActivityLog
from audit.serializers import ActivityWithActorSerializer
from backend.exceptions import BadRequest, Conflict
from backend.payload import body_dict, optional_string, parse_uuid

from .models import OrgMember, Organization
from .serializers import OrganizationDetailSerializer

logger = logging.getLogger(__name__)

_INVALID_SLUG_CHARS = re.compile(r'[^a-z0-9-]')

ACTIVITY_DEFAULT_LIMIT = 50
ACTIVITY_MAX_LIMIT = 200


def _int_param(value, default, *, minimum=0, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    number = max(number, minimum)
    if maximum is not None:
        number = min(number, maximum)
    return number


class AdminOrgView(APIView):
    """
    Read and rename the active organization.

    A new slug is lowercased with anything outside ``[a-z0-9-]`` replaced by
    a dash; slugs stay unique across organizations.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        membership = require_active_super_admin(request)
        return Response({'data': OrganizationDetailSerializer(membership.org).data})

    def patch(self, request):
        membership = require_active_super_admin(request)
        org = membership.org
        body = body_dict(request)
        updates = {}

        name = optional_string(body.get('name'))
        if name:
            updates['name'] = name

        slug = optional_string(body.get('slug'))
        if slug:
            slug = _INVALID_SLUG_CHARS.sub('-', slug.lower())
            if Organization.objects.filter(slug=slug).exclude(pk=org.pk).exists():
                raise Conflict('This slug is already in use.')
            updates['slug'] = slug

        if not updates:
            raise BadRequest('No valid updates provided.')

        for field, value in updates.items():
            setattr(org, field, value)
        try:
            with transaction.atomic():
                org.save(update_fields=list(updates))
        except IntegrityError:
            raise Conflict('This slug is already in use.')

        log_activity(
            org=org,
            actor=request.user,
            action='updated',
            target_type='organization',
            target_id=org.pk,
            metadata=updates,
        )
        return Response({'data': OrganizationDetailSerializer(org).data})


class AdminStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        from documents.models import Document
        from projects.models import Project
        from taskboard.models import Task

        org_id = require_active_super_admin(request).org_id
        return Response({
            'data': {
                'org_id': str(org_id),
                'user_count': OrgMember.objects.filter(org_id=org_id).count(),
                'project_count': Project.objects.filter(org_id=org_id, archived_at__isnull=True).count(),
                'task_count': Task.objects.filter(project__org_id=org_id).count(),
                'document_count': Document.objects.filter(project__org_id=org_id, is_archived=False).count(),
            }
        })


class AdminActivityView(APIView):
    """Paginated activity of the active org, filterable by action, target type and project."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        org_id = require_active_super_admin(request).org_id
        params = request.query_params
        limit = _int_param(params.get('limit'), ACTIVITY_DEFAULT_LIMIT, minimum=1, maximum=ACTIVITY_MAX_LIMIT)
        offset = _int_param(params.get('offset'), 0)

        entries = ActivityLog.objects.filter(org_id=org_id).select_related('actor').order_by('-created_at')
        if params.get('action'):
            entries = entries.filter(action=params['action'])
        if params.get('target_type'):
            entries = entries.filter(target_type=params['target_type'])
        if params.get('project_id'):
            project_id = parse_uuid(params['project_id'])
            entries = entries.filter(project_id=project_id) if project_id else entries.none()

        # One extra row tells whether another page exists
        window = list(entries[offset:offset + limit + 1])
        return Response({
            'data': ActivityWithActorSerializer(window[:limit], many=True).data,
            'pagination': {'limit': limit, 'offset': offset, 'has_more': len(window) > limit},
        })
