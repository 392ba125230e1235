from rest_framework.test import APIClient, APITestCase

from accounts.models import User
from audit.models import ActivityLog
from comments.models import Comment
from documents.models import Document
from notifications.models import Notification
from organizations.models import OrgMember, Organization
from projects.models import Project, ProjectMember
from taskboard.models import Task


def make_user(email):
    return User.objects.create_user(username=email, email=email, password="password123")


class TaskTestCase(APITestCase):
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
        self.url = f"/api/projects/{self.project.pk}/tasks/"

    def task(self, title="Task", **fields):
        return Task.objects.create(project=self.project, title=title, created_by=self.editor, **fields)


class ProjectTaskTests(TaskTestCase):
    def test_create_task_with_defaults(self):
        self.client.force_authenticate(self.editor)

        response = self.client.post(self.url, {"title": "  Write brief  ", "status": "nope"}, format="json")

        self.assertEqual(response.status_code, 201)
        data = response.data["data"]
        self.assertEqual(data["title"], "Write brief")
        self.assertEqual(data["status"], "todo")
        self.assertEqual(data["priority"], "none")
        self.assertIsNone(data["assignee"])
        self.assertIsNone(data["completed_at"])
        self.assertTrue(ActivityLog.objects.filter(action="created", target_type="task").exists())

    def test_non_string_status_and_priority_fall_back_to_defaults(self):
        self.client.force_authenticate(self.editor)

        response = self.client.post(
            self.url, {"title": "T", "status": ["done"], "priority": {"level": "high"}}, format="json"
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["data"]["status"], "todo")
        self.assertEqual(response.data["data"]["priority"], "none")

    def test_create_done_task_sets_completed_at(self):
        self.client.force_authenticate(self.editor)

        response = self.client.post(self.url, {"title": "Done", "status": "done"}, format="json")

        self.assertIsNotNone(response.data["data"]["completed_at"])

    def test_create_requires_title(self):
        self.client.force_authenticate(self.editor)

        response = self.client.post(self.url, {"title": "   "}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "title is required.")

    def test_create_validates_references(self):
        outsider = make_user("outsider@example.com")
        self.client.force_authenticate(self.editor)

        bad_date = self.client.post(self.url, {"title": "T", "due_date": "soon"}, format="json")
        bad_assignee = self.client.post(self.url, {"title": "T", "assignee_id": outsider.pk}, format="json")
        bad_document = self.client.post(
            self.url, {"title": "T", "source_document_id": "00000000-0000-0000-0000-000000000000"}, format="json"
        )

        self.assertEqual(bad_date.data["message"], "due_date must be a valid date.")
        self.assertEqual(bad_assignee.data["message"], "assignee_id must be a member of this project.")
        self.assertEqual(bad_document.data["message"], "source_document_id must belong to this active project.")
        self.assertFalse(Task.objects.exists())

    def test_assigning_someone_else_notifies_them(self):
        self.client.force_authenticate(self.editor)

        response = self.client.post(
            self.url,
            {"title": "Review", "assignee_id": self.viewer.pk, "due_date": "2026-03-01T10:00:00Z"},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["data"]["due_date"], "2026-03-01")
        self.assertEqual(response.data["data"]["assignee"]["id"], self.viewer.pk)
        notification = Notification.objects.get(user=self.viewer)
        self.assertEqual(notification.type, Notification.TYPE_TASK_ASSIGNED)
        self.assertEqual(notification.title, "Assigned: Review")

    def test_self_assignment_does_not_notify(self):
        self.client.force_authenticate(self.editor)

        self.client.post(self.url, {"title": "Mine", "assignee_id": self.editor.pk}, format="json")

        self.assertFalse(Notification.objects.exists())

    def test_viewer_cannot_create(self):
        self.client.force_authenticate(self.viewer)

        response = self.client.post(self.url, {"title": "T"}, format="json")

        self.assertEqual(response.status_code, 403)

    def test_list_sorts_undated_tasks_last(self):
        self.task("Undated")
        self.task("Later", due_date="2026-05-01")
        self.task("Sooner", due_date="2026-01-01")
        self.client.force_authenticate(self.viewer)

        response = self.client.get(self.url)

        self.assertEqual([row["title"] for row in response.data["data"]], ["Sooner", "Later", "Undated"])

    def test_list_filters(self):
        self.task("Alpha", status="done", priority="high", tags=["ui", "web"], assignee=self.viewer)
        self.task("Beta", description="alpha notes", tags=["ui"])
        self.task("Gamma", due_date="2026-02-02")
        self.client.force_authenticate(self.viewer)

        def titles(**params):
            return sorted(row["title"] for row in self.client.get(self.url, params).data["data"])

        self.assertEqual(titles(status="done"), ["Alpha"])
        self.assertEqual(titles(priority="high"), ["Alpha"])
        self.assertEqual(titles(assignee_id=self.viewer.pk), ["Alpha"])
        self.assertEqual(titles(assignee_id="abc"), [])
        self.assertEqual(titles(tags="ui"), ["Alpha", "Beta"])
        self.assertEqual(titles(tags="ui, web"), ["Alpha"])
        self.assertEqual(titles(q="ALPHA"), ["Alpha", "Beta"])
        self.assertEqual(titles(due_date="2026-02-02"), ["Gamma"])
        self.assertEqual(titles(due_date="whenever"), [])
        self.assertEqual(titles(source_document_id="junk"), [])

    def test_bulk_update(self):
        first = self.task("One")
        second = self.task("Two")
        other_project = Project.objects.create(org=self.org, name="Other")
        foreign = Task.objects.create(project=other_project, title="Foreign")
        self.client.force_authenticate(self.editor)

        response = self.client.post(
            self.url + "bulk/",
            {"task_ids": [str(first.pk), str(second.pk), str(foreign.pk)], "status": "done", "priority": "low"},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data["data"]["updated"]), 2)
        first.refresh_from_db()
        foreign.refresh_from_db()
        self.assertEqual(first.status, "done")
        self.assertIsNotNone(first.completed_at)
        self.assertEqual(first.priority, "low")
        self.assertEqual(foreign.status, "todo")
        self.assertEqual(ActivityLog.objects.get(action="bulk_updated").metadata["task_count"], 2)

    def test_bulk_requires_task_ids(self):
        self.client.force_authenticate(self.editor)

        response = self.client.post(self.url + "bulk/", {"status": "done"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "task_ids is required.")


class TaskDetailTests(TaskTestCase):
    def setUp(self):
        super().setUp()
        self.document = Document.objects.create(project=self.project, title="Spec")
        self.item = self.task("Linked", source_document=self.document, source_block_id="block-1")
        self.detail_url = f"/api/tasks/{self.item.pk}/"

    def test_retrieve_embeds_comments_and_source(self):
        Comment.objects.create(
            target_type=Comment.TARGET_TASK,
            target_id=str(self.item.pk),
            author=self.editor,
            body="Looks good",
        )
        self.client.force_authenticate(self.viewer)

        response = self.client.get(self.detail_url)

        self.assertEqual(response.status_code, 200)
        data = response.data["data"]
        self.assertEqual(data["source_document"]["title"], "Spec")
        self.assertEqual([comment["body"] for comment in data["comments"]], ["Looks good"])

    def test_unknown_task(self):
        self.client.force_authenticate(self.viewer)

        response = self.client.get("/api/tasks/not-a-uuid/")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["message"], "Task not found.")

    def test_update_status_round_trip_clears_completed_at(self):
        self.client.force_authenticate(self.editor)

        done = self.client.patch(self.detail_url, {"status": "done"}, format="json")
        reopened = self.client.patch(self.detail_url, {"status": "in_progress"}, format="json")

        self.assertIsNotNone(done.data["data"]["completed_at"])
        self.assertIsNone(reopened.data["data"]["completed_at"])
        self.assertEqual(reopened.data["data"]["status"], "in_progress")

    def test_update_detach_clears_source(self):
        self.client.force_authenticate(self.editor)

        response = self.client.patch(self.detail_url, {"is_detached": True, "description": "Notes"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.item.refresh_from_db()
        self.assertTrue(self.item.is_detached)
        self.assertIsNone(self.item.source_document)
        self.assertIsNone(self.item.source_block_id)
        self.assertEqual(self.item.description, "Notes")

    def test_viewer_cannot_update(self):
        self.client.force_authenticate(self.viewer)

        response = self.client.patch(self.detail_url, {"title": "X"}, format="json")

        self.assertEqual(response.status_code, 403)

    def test_delete_linked_task_only_detaches(self):
        self.client.force_authenticate(self.editor)

        response = self.client.delete(self.detail_url)

        self.assertEqual(response.data["data"], {"detached": True, "deleted": False, "id": str(self.item.pk)})
        self.item.refresh_from_db()
        self.assertTrue(self.item.is_detached)

    def test_hard_delete_removes_linked_task(self):
        self.client.force_authenticate(self.editor)

        response = self.client.delete(self.detail_url + "?hard=true")

        self.assertTrue(response.data["data"]["deleted"])
        self.assertFalse(Task.objects.filter(pk=self.item.pk).exists())
        self.assertEqual(ActivityLog.objects.get(action="deleted").metadata["title"], "Linked")

    def test_delete_unlinked_task(self):
        loose = self.task("Loose")
        self.client.force_authenticate(self.editor)

        response = self.client.delete(f"/api/tasks/{loose.pk}/")

        self.assertTrue(response.data["data"]["deleted"])
        self.assertFalse(Task.objects.filter(pk=loose.pk).exists())
