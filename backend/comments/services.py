"""Comment targets and thread assembly."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from backend.exceptions import BadRequest, NotFoundError
from backend.payload import parse_uuid
from documents.models import Document
from projects.models import ProjectMember
from taskboard.models import Task

from .models import Comment

logger = logging.getLogger(__name__)

TARGET_TYPES = {Comment.TARGET_DOCUMENT, Comment.TARGET_TASK, Comment.TARGET_BLOCK}
# Written by the server only; serializers resolve them to users and tasks
RESERVED_METADATA_KEYS = ('mentioned_user_ids', 'converted_to_task_id')


def block_document_id(target_id: str) -> str:
    """Document part of a block target (``<document id>:<block id>``)."""
    return str(target_id).split(':', 1)[0]


def resolve_target_project(target_type: str, target_id):
    """Project owning the commented object; 404 when it does not exist."""
    if target_type == Comment.TARGET_DOCUMENT:
        pk = parse_uuid(str(target_id))
        document = Document.objects.filter(pk=pk).select_related('project').first() if pk else None
        if document is None:
            raise NotFoundError('Document target not found.')
        return document.project
    if target_type == Comment.TARGET_TASK:
        pk = parse_uuid(str(target_id))
        task = Task.objects.filter(pk=pk).select_related('project').first() if pk else None
        if task is None:
            raise NotFoundError('Task target not found.')
        return task.project
    if target_type == Comment.TARGET_BLOCK:
        pk = parse_uuid(block_document_id(target_id))
        document = Document.objects.filter(pk=pk).select_related('project').first() if pk else None
        if document is None:
            raise NotFoundError('Block target document not found.')
        return document.project
    raise BadRequest('Invalid target type.')


def source_document_for(comment: Comment):
    """Document a task converted from ``comment`` should link to, if any."""
    if comment.target_type == Comment.TARGET_DOCUMENT:
        document_id = comment.target_id
    elif comment.target_type == Comment.TARGET_BLOCK:
        document_id = block_document_id(comment.target_id)
    else:
        return None
    pk = parse_uuid(document_id)
    return Document.objects.filter(pk=pk, is_archived=False).first() if pk else None


def project_member_ids(project_id, user_ids: Iterable[int]) -> List[int]:
    """``user_ids`` restricted to members of the project, order kept."""
    user_ids = list(user_ids)
    if not user_ids:
        return []
    members = set(
        ProjectMember.objects.filter(project_id=project_id, user_id__in=user_ids).values_list('user_id', flat=True)
    )
    return [user_id for user_id in user_ids if user_id in members]


def truncate_preview(body: str, limit: int = 100) -> str:
    return body[:limit] + '...' if len(body) > limit else body


def nest_replies(nodes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Nest serialized comments under their parents; replies whose parent is missing stay at the root."""
    by_id = {}
    for node in nodes:
        by_id[str(node['id'])] = dict(node, replies=[])
    roots = []
    for node in nodes:
        current = by_id[str(node['id'])]
        parent_id = node.get('parent_comment_id')
        parent = by_id.get(str(parent_id)) if parent_id else None
        if parent is not None and parent is not current:
            parent['replies'].append(current)
        else:
            roots.append(current)
    return roots


def client_metadata(value) -> Dict[str, Any]:
    """Metadata supplied by a client, minus the keys the server maintains."""
    if not isinstance(value, dict):
        return {}
    return {key: item for key, item in value.items() if key not in RESERVED_METADATA_KEYS}
