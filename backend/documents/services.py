"""Document tree helpers shared by the document endpoints and the exporters."""
from __future__ import annotations

import logging
from collections import deque
from typing import Any, Dict, Iterable, List, Optional

from backend.exceptions import BadRequest, NotFoundError
from backend.payload import parse_uuid

from .models import Document

logger = logging.getLogger(__name__)


def get_document_or_404(document_id) -> Document:
    pk = parse_uuid(document_id)
    document = Document.objects.filter(pk=pk).select_related("project").first() if pk else None
    if document is None:
        raise NotFoundError("Document not found.")
    return document


def active_project_document(project_id, document_id) -> Optional[Document]:
    pk = parse_uuid(document_id)
    if pk is None:
        return None
    return Document.objects.filter(pk=pk, project_id=project_id, is_archived=False).first()


def require_parent(project_id, parent_id, message: str) -> Document:
    parent = active_project_document(project_id, parent_id)
    if parent is None:
        raise BadRequest(message)
    return parent


def creates_cycle(document: Document, new_parent: Document) -> bool:
    """True when ``new_parent`` is ``document`` itself or one of its descendants."""
    seen = set()
    current = new_parent
    while current is not None and current.pk not in seen:
        if current.pk == document.pk:
            return True
        seen.add(current.pk)
        current = Document.objects.filter(pk=current.parent_id).first() if current.parent_id else None
    return False


def descendant_ids(document: Document) -> List:
    """Ids of every non-archived descendant, breadth first."""
    found = []
    seen = {document.pk}
    queue = deque([document.pk])
    while queue:
        parent_id = queue.popleft()
        for child_id in Document.objects.filter(parent_id=parent_id, is_archived=False).values_list("pk", flat=True):
            if child_id in seen:
                continue
            seen.add(child_id)
            found.append(child_id)
            queue.append(child_id)
    return found


def build_document_tree(nodes: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Nest serialized documents by ``parent_document_id``.

    Documents without a parent, or whose parent is not part of ``nodes``,
    become roots. Every node is placed once; a parent chain that loops back
    on itself is cut where it repeats.
    """
    nodes = [dict(node, children=[]) for node in nodes]
    by_id = {str(node["id"]): node for node in nodes}
    children: Dict[str, List[Dict[str, Any]]] = {}
    roots = []
    for node in nodes:
        parent_id = node.get("parent_document_id")
        parent_key = str(parent_id) if parent_id else None
        if parent_key and parent_key in by_id and parent_key != str(node["id"]):
            children.setdefault(parent_key, []).append(node)
        else:
            roots.append(node)

    visited = set()

    def attach(node):
        key = str(node["id"])
        visited.add(key)
        for child in children.get(key, []):
            if str(child["id"]) in visited:
                continue
            node["children"].append(child)
            attach(child)

    for root in roots:
        attach(root)

    # Members of a parent cycle never reach a root; surface them as roots
    for node in nodes:
        if str(node["id"]) not in visited:
            roots.append(node)
            attach(node)
    return roots
