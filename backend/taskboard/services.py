"""
Validation and creation of tasks.

The same rules apply to the create, update, bulk and comment conversion
endpoints. Unknown status and priority values are ignored and
``completed_at`` is kept set exactly while the status is ``done``.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from audit.activity import log_activity
from audit.models import ActivityLog
from backend.exceptions import BadRequest
from backend.payload import as_string_array, ensure_string, optional_string, parse_date_value
from billing.services import assert_can_create_task
from documents.services import active_project_document
from notifications.models import Notification
from notifications.services import notify
from projects.models import ProjectMember

from .models import Task

logger = logging.getLogger(__name__)

TASK_STATUSES = {choice for choice, _ in Task.STATUS_CHOICES}
TASK_PRIORITIES = {choice for choice, _ in Task.PRIORITY_CHOICES}


def is_task_status(value) -> bool:
    return isinstance(value, str) and value in TASK_STATUSES


def is_task_priority(value) -> bool:
    return isinstance(value, str) and value in TASK_PRIORITIES


def parse_due_date(value):
    """``None`` for an empty value, a ``date`` otherwise; 400 when unparseable."""
    if value is None or value == "":
        return None
    parsed = parse_date_value(value)
    if parsed is None:
        raise BadRequest("due_date must be a valid date.")
    return parsed


def resolve_source_document(project_id, value):
    if not value:
        return None
    document = active_project_document(project_id, str(value))
    if document is None:
        raise BadRequest("source_document_id must belong to this active project.")
    return document


def resolve_assignee_id(project_id, value) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        user_id = int(value)
    except (TypeError, ValueError):
        user_id = None
    if user_id is None or not ProjectMember.objects.filter(project_id=project_id, user_id=user_id).exists():
        raise BadRequest("assignee_id must be a member of this project.")
    return user_id


def set_status(task: Task, status: str) -> None:
    task.status = status
    task.completed_at = timezone.now() if status == Task.STATUS_DONE else None


def notify_assignee(task: Task, actor) -> None:
    if not task.assignee_id or task.assignee_id == getattr(actor, "pk", None):
        return
    notify(
        task.assignee_id,
        Notification.TYPE_TASK_ASSIGNED,
        f"Assigned: {task.title}",
        body=task.description,
        link=f"/projects/{task.project_id}/tasks/list",
    )


def create_task(project, body: Dict[str, Any], actor, *, actor_type: str = ActivityLog.ACTOR_USER,
                source_document=None, extra_metadata: Optional[Dict[str, Any]] = None) -> Task:
    """
    Validate ``body`` and create a task in ``project``.

    ``source_document`` overrides ``body["source_document_id"]`` when the
    caller already resolved it (comment conversion).
    """
    title = ensure_string(body.get("title"), "title")
    assert_can_create_task(project.org_id, project.pk)

    due_date = parse_due_date(body.get("due_date"))
    if source_document is None:
        source_document = resolve_source_document(project.pk, body.get("source_document_id"))
    assignee_id = resolve_assignee_id(project.pk, body.get("assignee_id"))
    status = body.get("status") if is_task_status(body.get("status")) else Task.STATUS_TODO
    priority = body.get("priority") if is_task_priority(body.get("priority")) else Task.PRIORITY_NONE

    with transaction.atomic():
        task = Task(
            project=project,
            source_document=source_document,
            source_block_id=optional_string(body.get("source_block_id")),
            title=title,
            description=optional_string(body.get("description")),
            priority=priority,
            assignee_id=assignee_id,
            due_date=due_date,
            tags=as_string_array(body.get("tags")),
            created_by=actor,
        )
        set_status(task, status)
        task.save()
        log_activity(
            org=project.org_id,
            project=project,
            actor=actor,
            actor_type=actor_type,
            action="created",
            target_type="task",
            target_id=task.pk,
            metadata={"title": task.title, "status": task.status, **(extra_metadata or {})},
        )

    notify_assignee(task, actor)
    return task
