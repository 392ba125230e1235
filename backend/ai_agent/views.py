import logging

from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from audit.activity import log_activity
from audit.models import ActivityLog
from backend.exceptions import BadRequest, Forbidden
from backend.payload import body_dict, ensure_string
from billing.observability.metrics import AI_REQUEST_COUNT
from organizations.services import super_admin_org_ids
from projects.access import EDITOR, VIEWER, assert_project_access

from . import provider
from .services import (
    CREATE_TASK_INTENT,
    SCOPES,
    fallback_reply,
    has_mutation_intent,
    project_context,
    run_create_task_action,
    system_context,
)

logger = logging.getLogger(__name__)


class AssistantChatView(APIView):
    """
    POST /api/ai/chat/

    Body: ``{message, scope: inline|project|system, project_id?, document_id?}``.
    Messages that look like mutations need editor access to the project,
    others viewer. The reply comes from the configured model, or from a
    built-in fallback when the model is not configured or fails.
    """

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        body = body_dict(request)
        message = ensure_string(body.get("message"), "message")
        scope = body.get("scope")
        if scope not in SCOPES:
            raise BadRequest("scope must be inline, project, or system.")

        project = None
        org_ids = []
        if scope in ("project", "inline"):
            if not body.get("project_id"):
                raise BadRequest("project_id is required for project or inline scope.")
            minimum = EDITOR if has_mutation_intent(message) else VIEWER
            project, _ = assert_project_access(body["project_id"], request.user, minimum)
        else:
            org_ids = super_admin_org_ids(request.user)
            if not org_ids:
                raise Forbidden("Organization membership required.")

        actions = []
        if project is not None and CREATE_TASK_INTENT.search(message):
            actions.append(run_create_task_action(project, request.user, message, body.get("document_id")))

        context = {"scope": scope}
        context.update(project_context(project) if project is not None else system_context(org_ids))

        reply = None
        if provider.is_configured():
            try:
                reply = provider.request_completion(message, scope, {**context, "actions": actions})
                AI_REQUEST_COUNT.labels(outcome="success").inc()
            except provider.AssistantProviderError as e:
                AI_REQUEST_COUNT.labels(outcome="failure").inc()
                logger.warning("Assistant provider call failed: %s", e)
        else:
            AI_REQUEST_COUNT.labels(outcome="not_configured").inc()

        if project is not None:
            log_activity(
                org=project.org_id,
                project=project,
                actor=request.user,
                actor_type=ActivityLog.ACTOR_AI,
                action="ai_chat",
                target_type="project",
                target_id=project.pk,
                metadata={
                    "scope": scope,
                    "prompt": message,
                    "actions_taken": [{"endpoint": a["endpoint"], "method": a["method"]} for a in actions],
                },
            )

        return Response({
            "response": reply or fallback_reply(message, actions, project),
            "actions_taken": actions,
            "context": context,
        })
