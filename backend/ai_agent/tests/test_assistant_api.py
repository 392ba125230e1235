from datetime import timedelta
from unittest.mock import MagicMock, patch

from django.test import override_settings
from django.utils import timezone
from requests.exceptions import ConnectionError, HTTPError, Timeout
from rest_framework.test import APIClient, APITestCase

from accounts.models import User
from ai_agent import provider
from ai_agent.services import NOT_CONFIGURED_REPLY
from audit.models import ActivityLog
from documents.models import Document
from organizations.models import OrgMember, Organization
from projects.models import Project, ProjectMember
from taskboard.models import Task

URL = "/api/ai/chat/"


def make_user(email):
    return User.objects.create_user(username=email, email=email, password="password123")


@override_settings(OPENAI_API_KEY="")
class AssistantChatViewTests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.org = Organization.objects.create(name="Acme", slug="acme")
        self.editor = make_user("editor@example.com")
        self.viewer = make_user("viewer@example.com")
        for user in (self.editor, self.viewer):
            OrgMember.objects.create(org=self.org, user=user)
        self.project = Project.objects.create(org=self.org, name="Roadmap", created_by=self.editor)
        ProjectMember.objects.create(project=self.project, user=self.editor, role="editor")
        ProjectMember.objects.create(project=self.project, user=self.viewer, role="viewer")

    def chat(self, user, message, scope="project", **extra):
        self.client.force_authenticate(user)
        body = {"message": message, "scope": scope, **extra}
        if scope != "system":
            body.setdefault("project_id", str(self.project.pk))
        return self.client.post(URL, body, format="json")

    def test_reply_without_model_configured(self):
        Document.objects.create(project=self.project, title="Spec")

        response = self.chat(self.viewer, "Summarize the project")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["response"], NOT_CONFIGURED_REPLY)
        self.assertEqual(response.data["actions_taken"], [])
        context = response.data["context"]
        self.assertEqual(context["scope"], "project")
        self.assertEqual([doc["title"] for doc in context["documents"]], ["Spec"])
        entry = ActivityLog.objects.get(action="ai_chat")
        self.assertEqual(entry.actor_type, "ai")
        self.assertEqual(entry.metadata["prompt"], "Summarize the project")

    def test_create_task_action(self):
        document = Document.objects.create(project=self.project, title="Spec")

        response = self.chat(self.editor, "Create task: Ship beta", document_id=str(document.pk))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["response"], "Completed 1 action(s). Review actions_taken for details.")
        action = response.data["actions_taken"][0]
        self.assertEqual(action["method"], "POST")
        self.assertEqual(action["endpoint"], f"/api/projects/{self.project.pk}/tasks")
        task = Task.objects.get(pk=action["result"]["task_id"])
        self.assertEqual(task.title, "Ship beta")
        self.assertEqual(task.priority, "medium")
        self.assertEqual(task.tags, ["ai"])
        self.assertEqual(task.assignee, self.editor)
        self.assertEqual(task.source_document, document)
        created = ActivityLog.objects.get(action="created", target_type="task")
        self.assertEqual(created.actor_type, "ai")
        self.assertEqual(created.metadata["source"], "ai_chat")

    def test_create_task_without_title_uses_default(self):
        self.chat(self.editor, "please create task")

        self.assertEqual(Task.objects.get().title, "New task created by AI")

    def test_org_super_admin_task_is_unassigned(self):
        boss = make_user("boss@example.com")
        OrgMember.objects.create(org=self.org, user=boss, system_role=OrgMember.ROLE_SUPER_ADMIN)

        self.chat(boss, "create task Audit access")

        self.assertIsNone(Task.objects.get().assignee)

    def test_mutation_intent_needs_editor(self):
        response = self.chat(self.viewer, "delete the old docs")

        self.assertEqual(response.status_code, 403)

    def test_overdue_fallback(self):
        yesterday = timezone.localdate() - timedelta(days=1)
        Task.objects.create(project=self.project, title="Late", due_date=yesterday)
        Task.objects.create(project=self.project, title="Finished", due_date=yesterday, status="done")
        Task.objects.create(project=self.project, title="Future", due_date=yesterday + timedelta(days=10))

        response = self.chat(self.viewer, "What is overdue?")

        self.assertEqual(response.data["response"], "Overdue tasks (1): Late")

    def test_overdue_fallback_when_nothing_is_late(self):
        response = self.chat(self.viewer, "anything overdue")

        self.assertEqual(response.data["response"], "No overdue tasks in this project.")

    def test_scope_validation(self):
        bad_scope = self.chat(self.viewer, "hi", scope="galaxy")
        self.client.force_authenticate(self.viewer)
        no_project = self.client.post(URL, {"message": "hi", "scope": "inline"}, format="json")
        no_message = self.client.post(URL, {"scope": "system"}, format="json")

        self.assertEqual(bad_scope.data["message"], "scope must be inline, project, or system.")
        self.assertEqual(no_project.data["message"], "project_id is required for project or inline scope.")
        self.assertEqual(no_message.data["message"], "message is required.")

    def test_system_scope_requires_super_admin(self):
        response = self.chat(self.viewer, "overview", scope="system")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["message"], "Organization membership required.")

    def test_system_scope_context(self):
        boss = make_user("boss@example.com")
        OrgMember.objects.create(org=self.org, user=boss, system_role=OrgMember.ROLE_SUPER_ADMIN)
        Task.objects.create(project=self.project, title="One")

        response = self.chat(boss, "overview", scope="system")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.data["context"],
            {"scope": "system", "org_ids": [str(self.org.pk)], "project_count": 1, "task_count": 1},
        )
        self.assertFalse(ActivityLog.objects.filter(action="ai_chat").exists())

    @override_settings(OPENAI_API_KEY="sk-test")
    def test_model_reply_is_returned(self):
        with patch("ai_agent.views.provider.request_completion", return_value="Here is the plan.") as completion:
            response = self.chat(self.viewer, "Plan next week")

        self.assertEqual(response.data["response"], "Here is the plan.")
        message, scope, context = completion.call_args.args
        self.assertEqual((message, scope), ("Plan next week", "project"))
        self.assertEqual(context["actions"], [])

    @override_settings(OPENAI_API_KEY="sk-test")
    def test_provider_failure_falls_back(self):
        with patch(
            "ai_agent.views.provider.request_completion",
            side_effect=provider.AssistantProviderError("boom"),
        ):
            response = self.chat(self.viewer, "Plan next week")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["response"], NOT_CONFIGURED_REPLY)


@override_settings(
    OPENAI_API_KEY="sk-test",
    OPENAI_BASE_URL="https://llm.example.com/v1/",
    OPENAI_MODEL="test-model",
    OPENAI_TIMEOUT_SECONDS=5,
)
class ProviderTests(APITestCase):
    def _response(self, status_code=200, payload=None):
        response = MagicMock()
        response.status_code = status_code
        response.text = "error body"
        response.json.return_value = payload
        if status_code >= 400:
            response.raise_for_status.side_effect = HTTPError(response=response)
        return response

    @patch("ai_agent.provider.requests.post")
    def test_request_completion(self, mock_post):
        mock_post.return_value = self._response(payload={"choices": [{"message": {"content": "Hello"}}]})

        reply = provider.request_completion("Hi", "project", {"project_id": "p1"})

        self.assertEqual(reply, "Hello")
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://llm.example.com/v1/chat/completions")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer sk-test")
        self.assertEqual(kwargs["timeout"], 5)
        self.assertEqual(kwargs["json"]["model"], "test-model")
        self.assertIn('"project_id": "p1"', kwargs["json"]["messages"][1]["content"])

    @patch("ai_agent.provider.requests.post")
    def test_empty_content_is_none(self, mock_post):
        mock_post.return_value = self._response(payload={"choices": [{"message": {"content": ""}}]})

        self.assertIsNone(provider.request_completion("Hi", "project", {}))

    @patch("ai_agent.provider.requests.post")
    def test_errors_become_provider_errors(self, mock_post):
        cases = [
            (Timeout(), "Request timed out after 5 seconds."),
            (ConnectionError(), "Failed to connect to the model provider."),
        ]
        for side_effect, message in cases:
            mock_post.side_effect = side_effect
            with self.assertRaisesMessage(provider.AssistantProviderError, message):
                provider.request_completion("Hi", "project", {})

        mock_post.side_effect = None
        for status_code, message in [
            (401, "Authentication failed. Please check OPENAI_API_KEY."),
            (429, "Rate limit exceeded."),
            (503, "Provider error (503)."),
        ]:
            mock_post.return_value = self._response(status_code=status_code)
            with self.assertRaisesMessage(provider.AssistantProviderError, message):
                provider.request_completion("Hi", "project", {})

    @patch("ai_agent.provider.requests.post")
    def test_malformed_response(self, mock_post):
        mock_post.return_value = self._response(payload={"unexpected": True})

        with self.assertRaises(provider.AssistantProviderError):
            provider.request_completion("Hi", "project", {})

    def test_is_configured_follows_settings(self):
        self.assertTrue(provider.is_configured())
        with override_settings(OPENAI_API_KEY=""):
            self.assertFalse(provider.is_configured())
