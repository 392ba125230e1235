"""Helpers for writing the org activity feed."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .models import ActivityLog

logger = logging.getLogger("audit")


def log_activity(*, org, action: str, target_type: str, target_id: Any, actor=None, project=None,
                 actor_type: str = ActivityLog.ACTOR_USER, metadata: Optional[Dict[str, Any]] = None) -> ActivityLog:
    """Append one entry to the activity feed of ``org``."""
    entry = ActivityLog.objects.create(
        org_id=getattr(org, "pk", org),
        project_id=getattr(project, "pk", project),
        actor=actor if actor is not None and getattr(actor, "is_authenticated", False) else None,
        actor_type=actor_type,
        action=action,
        target_type=target_type,
        target_id=str(target_id),
        metadata=metadata or {},
    )
    logger.info(
        "activity %s %s:%s",
        action,
        target_type,
        target_id,
        extra={"org_id": str(entry.org_id), "actor_type": actor_type},
    )
    return entry
