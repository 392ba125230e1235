"""
Project-level access checks.

Project roles rank ``viewer`` < ``editor`` < ``admin``. A super admin of the
project's organization passes every check with the effective role
``admin``; everyone else needs a project membership whose role reaches the
required minimum.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

from django.db.models import Q
from rest_framework import permissions

from backend.exceptions import Forbidden, NotFoundError
from backend.payload import parse_uuid
from organizations.models import OrgMember

from .models import Project, ProjectMember

logger = logging.getLogger(__name__)

VIEWER = ProjectMember.ROLE_VIEWER
EDITOR = ProjectMember.ROLE_EDITOR
ADMIN = ProjectMember.ROLE_ADMIN


def get_project_or_404(project_id) -> Project:
    pk = parse_uuid(project_id)
    project = Project.objects.filter(pk=pk).select_related("org").first() if pk else None
    if project is None:
        raise NotFoundError("Project not found.")
    return project


def get_effective_role(project: Project, user) -> Optional[str]:
    """Project role of ``user``, ``admin`` for org super admins, ``None`` without access."""
    if user is None or not user.is_authenticated:
        return None
    if OrgMember.objects.filter(
        org_id=project.org_id, user=user, system_role=OrgMember.ROLE_SUPER_ADMIN
    ).exists():
        return ADMIN
    return (
        ProjectMember.objects.filter(project=project, user=user).values_list("role", flat=True).first()
    )


def assert_project_access(project_id, user, minimum_role: str = VIEWER) -> Tuple[Project, str]:
    """Return the project and the caller's effective role, or raise 404/403."""
    project = project_id if isinstance(project_id, Project) else get_project_or_404(project_id)
    role = get_effective_role(project, user)
    if role is None or ProjectMember.rank(role) < ProjectMember.rank(minimum_role):
        raise Forbidden("Insufficient project permissions.")
    return project, role


def assert_project_admin(project_id, user) -> Tuple[Project, str]:
    return assert_project_access(project_id, user, ADMIN)


def visible_projects(user, org_id=None):
    """Non-archived projects the user administers through the org or is a member of."""
    super_admin_orgs = OrgMember.objects.filter(
        user=user, system_role=OrgMember.ROLE_SUPER_ADMIN
    ).values("org_id")
    projects = Project.objects.filter(archived_at__isnull=True).filter(
        Q(org_id__in=super_admin_orgs) | Q(members__user=user)
    )
    if org_id is not None:
        projects = projects.filter(org_id=org_id)
    return projects.distinct()


class ProjectRolePermission(permissions.BasePermission):
    """
    Permission class for endpoints scoped to one project.

    The project id is read from ``project_kwarg`` of the view's URL kwargs
    (``project_pk`` for nested routes). ``action_permission_map`` maps view
    actions to the minimum project role; unmapped safe actions need
    ``viewer`` and unmapped unsafe ones ``editor``. On success the project
    and the caller's role are attached to the view as ``view.project`` and
    ``view.project_role``.
    """
    project_kwarg = "project_pk"
    action_permission_map = {}

    def get_project_id(self, request, view):
        """Project the request targets; subclasses resolve it from other objects."""
        return view.kwargs.get(getattr(view, "project_kwarg", self.project_kwarg))

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        project_id = self.get_project_id(request, view)
        if project_id is None:
            return True

        action_map = getattr(view, "action_permission_map", self.action_permission_map)
        minimum = action_map.get(getattr(view, "action", None))
        if minimum is None:
            minimum = VIEWER if request.method in permissions.SAFE_METHODS else EDITOR
        view.project, view.project_role = assert_project_access(project_id, request.user, minimum)
        return True
