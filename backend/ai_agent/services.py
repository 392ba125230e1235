"""
Context building and built-in actions of the Workbench assistant.

The assistant answers within a scope: ``inline`` and ``project`` are bound
to one project, ``system`` covers every organization the caller
administers. A message of the form ``create task <title>`` is executed
directly as a task creation before the model is asked.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from django.utils import timezone

from audit.models import ActivityLog
from documents.models import Document
from projects.models import Project, ProjectMember
from taskboard.models import Task
from taskboard.services import create_task

logger = logging.getLogger(__name__)

SCOPES = ("inline", "project", "system")
MUTATION_INTENT = re.compile(r"\b(create|update|delete|remove|archive|move|assign|set|bulk|edit)\b", re.IGNORECASE)
CREATE_TASK_INTENT = re.compile(r"create task", re.IGNORECASE)
CREATE_TASK_TITLE = re.compile(r"create task\s*[:\-]?\s*(.+)", re.IGNORECASE)
DEFAULT_AI_TASK_TITLE = "New task created by AI"

CONTEXT_DOCUMENTS = 20
CONTEXT_TASKS = 100
CONTEXT_ACTIVITY = 40

NOT_CONFIGURED_REPLY = (
    "Workbench AI is connected. Add OPENAI_API_KEY to enable model-backed responses and tool planning."
)


def has_mutation_intent(message: str) -> bool:
    return bool(MUTATION_INTENT.search(message))


def project_context(project: Project) -> Dict[str, Any]:
    documents = Document.objects.filter(project=project, is_archived=False).order_by("sort_order", "title")
    tasks = Task.objects.filter(project=project).order_by("-updated_at")
    activity = ActivityLog.objects.filter(project=project).order_by("-created_at")
    return {
        "project_id": str(project.pk),
        "documents": [
            {"id": str(doc.pk), "title": doc.title, "updated_at": doc.updated_at.isoformat()}
            for doc in documents[:CONTEXT_DOCUMENTS]
        ],
        "tasks": [
            {
                "id": str(task.pk),
                "title": task.title,
                "status": task.status,
                "priority": task.priority,
                "due_date": task.due_date.isoformat() if task.due_date else None,
                "assignee_id": task.assignee_id,
            }
            for task in tasks[:CONTEXT_TASKS]
        ],
        "recent_activity": [
            {
                "action": entry.action,
                "target_type": entry.target_type,
                "target_id": entry.target_id,
                "created_at": entry.created_at.isoformat(),
            }
            for entry in activity[:CONTEXT_ACTIVITY]
        ],
    }


def system_context(org_ids: List) -> Dict[str, Any]:
    projects = Project.objects.filter(org_id__in=org_ids, archived_at__isnull=True)
    return {
        "org_ids": [str(org_id) for org_id in org_ids],
        "project_count": projects.count(),
        "task_count": Task.objects.filter(project__in=projects).count(),
    }


def run_create_task_action(project: Project, user, message: str, document_id=None) -> Dict[str, Any]:
    """Create the task a ``create task`` message asks for and describe the action taken."""
    match = CREATE_TASK_TITLE.search(message)
    title = (match.group(1).strip() if match else "") or DEFAULT_AI_TASK_TITLE
    is_member = ProjectMember.objects.filter(project=project, user=user).exists()
    body = {
        "title": title,
        "description": "Created by AI assistant action.",
        "status": Task.STATUS_TODO,
        "priority": Task.PRIORITY_MEDIUM,
        "assignee_id": user.pk if is_member else None,
        "source_document_id": document_id,
        "tags": ["ai"],
    }
    task = create_task(
        project,
        body,
        user,
        actor_type=ActivityLog.ACTOR_AI,
        extra_metadata={"source": "ai_chat", "prompt": message},
    )
    return {
        "endpoint": f"/api/projects/{project.pk}/tasks",
        "method": "POST",
        "params": {"title": task.title, "source_document_id": str(task.source_document_id) if task.source_document_id else None},
        "result": {"task_id": str(task.pk), "status": task.status},
    }


def fallback_reply(message: str, actions: List[Dict[str, Any]], project: Optional[Project]) -> str:
    if actions:
        return f"Completed {len(actions)} action(s). Review actions_taken for details."
    if project is not None and re.search(r"overdue", message, re.IGNORECASE):
        overdue = list(
            Task.objects.filter(project=project, due_date__lt=timezone.localdate())
            .exclude(status__in=[Task.STATUS_DONE, Task.STATUS_CANCELLED])
            .order_by("due_date")
            .values_list("title", flat=True)
        )
        if not overdue:
            return "No overdue tasks in this project."
        return f"Overdue tasks ({len(overdue)}): {', '.join(overdue)}"
    return NOT_CONFIGURED_REPLY
