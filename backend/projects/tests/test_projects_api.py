from datetime import timedelta

from django.utils import timezone
from rest_framework.test import APIClient, APITestCase

from accounts.models import User
from audit.models import ActivityLog
from billing.models import OrgSubscription
from billing.services import ensure_org_subscription
from backend.exceptions import Forbidden, NotFoundError
from documents.models import Document
from notifications.models import Notification
from organizations.models import OrgMember, Organization
from projects.access import assert_project_access, assert_project_admin, get_effective_role
from projects.models import Invitation, Project, ProjectMember
from taskboard.models import Task


def make_user(email, name=""):
    return User.objects.create_user(username=email, email=email, password="password123", name=name)


class ProjectTestCase(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.org = Organization.objects.create(name="Acme", slug="acme")
        self.owner = make_user("owner@example.com", "Owner")
        self.editor = make_user("editor@example.com", "Editor")
        self.viewer = make_user("viewer@example.com", "Viewer")
        self.outsider = make_user("outsider@example.com")
        OrgMember.objects.create(org=self.org, user=self.owner, system_role=OrgMember.ROLE_MEMBER)
        OrgMember.objects.create(org=self.org, user=self.editor, system_role=OrgMember.ROLE_MEMBER)
        OrgMember.objects.create(org=self.org, user=self.viewer, system_role=OrgMember.ROLE_MEMBER)
        self.project = Project.objects.create(org=self.org, name="Roadmap", created_by=self.owner)
        ProjectMember.objects.create(project=self.project, user=self.owner, role=ProjectMember.ROLE_ADMIN)
        ProjectMember.objects.create(project=self.project, user=self.editor, role=ProjectMember.ROLE_EDITOR)
        ProjectMember.objects.create(project=self.project, user=self.viewer, role=ProjectMember.ROLE_VIEWER)

    def url(self, suffix=""):
        return f"/api/projects/{self.project.pk}/{suffix}"


class ProjectViewSetTests(ProjectTestCase):
    def test_list_shows_member_projects_with_counts(self):
        Project.objects.create(org=self.org, name="Hidden", created_by=self.owner)
        Project.objects.create(
            org=self.org, name="Archived", created_by=self.owner, archived_at=timezone.now()
        )
        Task.objects.create(project=self.project, title="Open")
        Task.objects.create(project=self.project, title="Closed", status=Task.STATUS_DONE)
        Document.objects.create(project=self.project, title="Spec")
        self.client.force_authenticate(self.viewer)

        response = self.client.get("/api/projects/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["name"] for row in response.data["data"]], ["Roadmap"])
        row = response.data["data"][0]
        self.assertEqual(row["role"], "viewer")
        self.assertEqual(row["open_tasks"], 1)
        self.assertEqual(row["document_count"], 1)

    def test_super_admin_sees_every_org_project(self):
        boss = make_user("boss@example.com")
        OrgMember.objects.create(org=self.org, user=boss, system_role=OrgMember.ROLE_SUPER_ADMIN)
        Project.objects.create(org=self.org, name="Another", created_by=self.owner)
        self.client.force_authenticate(boss)

        response = self.client.get("/api/projects/")

        self.assertEqual([row["name"] for row in response.data["data"]], ["Another", "Roadmap"])
        self.assertTrue(all(row["role"] == "admin" for row in response.data["data"]))

    def test_list_is_scoped_to_active_org_unless_include_all(self):
        other_org = Organization.objects.create(name="Other", slug="other")
        OrgMember.objects.create(org=other_org, user=self.viewer)
        elsewhere = Project.objects.create(org=other_org, name="Elsewhere")
        ProjectMember.objects.create(project=elsewhere, user=self.viewer, role="viewer")
        self.client.force_authenticate(self.viewer)

        scoped = self.client.get("/api/projects/")
        everything = self.client.get("/api/projects/", {"include_all": "true"})

        self.assertEqual([row["name"] for row in scoped.data["data"]], ["Roadmap"])
        self.assertEqual([row["name"] for row in everything.data["data"]], ["Elsewhere", "Roadmap"])

    def test_create_project_makes_caller_admin(self):
        self.client.force_authenticate(self.editor)

        response = self.client.post(
            "/api/projects/",
            {"name": "Launch", "settings": {"tags": ["q3", 7, " "], "theme": "dark"}},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        data = response.data["data"]
        self.assertEqual(data["role"], "admin")
        self.assertEqual(data["icon"], "WB")
        self.assertEqual(data["settings"], {"tags": ["q3"], "theme": "dark"})
        project = Project.objects.get(pk=data["id"])
        self.assertEqual(ProjectMember.objects.get(project=project, user=self.editor).role, "admin")
        self.assertTrue(ActivityLog.objects.filter(project=project, action="created").exists())

    def test_create_requires_org_membership(self):
        self.client.force_authenticate(self.outsider)

        response = self.client.post("/api/projects/", {"name": "Nope"}, format="json")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["message"], "User must belong to an organization.")

    def test_create_in_foreign_org_is_forbidden(self):
        foreign = Organization.objects.create(name="Foreign", slug="foreign")
        self.client.force_authenticate(self.editor)

        response = self.client.post("/api/projects/", {"name": "Nope", "org_id": str(foreign.pk)}, format="json")

        self.assertEqual(response.status_code, 403)

    def test_create_respects_project_limit(self):
        Project.objects.create(org=self.org, name="Two")
        Project.objects.create(org=self.org, name="Three")
        self.client.force_authenticate(self.editor)

        response = self.client.post("/api/projects/", {"name": "Four"}, format="json")

        self.assertEqual(response.status_code, 402)
        self.assertEqual(response.data["code"], "PROJECT_LIMIT_REACHED")

    def test_retrieve_includes_metrics(self):
        yesterday = timezone.localdate() - timedelta(days=1)
        Task.objects.create(project=self.project, title="Late", due_date=yesterday)
        Task.objects.create(project=self.project, title="Late but done", due_date=yesterday, status="done")
        self.client.force_authenticate(self.viewer)

        response = self.client.get(self.url())

        self.assertEqual(response.status_code, 200)
        metrics = response.data["data"]["metrics"]
        self.assertEqual(metrics, {"documents": 0, "tasks": 2, "open_tasks": 1, "overdue_tasks": 1})
        self.assertEqual(response.data["data"]["role"], "viewer")

    def test_outsider_cannot_retrieve(self):
        self.client.force_authenticate(self.outsider)

        response = self.client.get(self.url())

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["message"], "Insufficient project permissions.")

    def test_unknown_project_is_404(self):
        self.client.force_authenticate(self.owner)

        response = self.client.get("/api/projects/00000000-0000-0000-0000-000000000000/")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["message"], "Project not found.")

    def test_editor_cannot_update(self):
        self.client.force_authenticate(self.editor)

        response = self.client.patch(self.url(), {"name": "Renamed"}, format="json")

        self.assertEqual(response.status_code, 403)

    def test_admin_updates_project(self):
        self.client.force_authenticate(self.owner)

        response = self.client.patch(
            self.url(), {"name": "Renamed", "description": "", "settings": {"tags": ["a"]}}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        self.project.refresh_from_db()
        self.assertEqual(self.project.name, "Renamed")
        self.assertIsNone(self.project.description)
        self.assertEqual(self.project.settings["tags"], ["a"])

    def test_delete_archives(self):
        self.client.force_authenticate(self.owner)

        response = self.client.delete(self.url())

        self.assertEqual(response.status_code, 200)
        self.project.refresh_from_db()
        self.assertIsNotNone(self.project.archived_at)
        self.assertIsNotNone(response.data["data"]["archived_at"])

    def test_activity_and_invitations(self):
        ActivityLog.objects.create(
            org=self.org, project=self.project, action="created", target_type="task", target_id="1"
        )
        Invitation.objects.create(org=self.org, project=self.project, email="pending@example.com")
        Invitation.objects.create(
            org=self.org, project=self.project, email="done@example.com", accepted_at=timezone.now()
        )
        self.client.force_authenticate(self.viewer)

        activity = self.client.get(self.url("activity/"))
        invitations = self.client.get(self.url("invitations/"))

        self.assertEqual([row["action"] for row in activity.data["data"]], ["created"])
        self.assertEqual([row["email"] for row in invitations.data["data"]], ["pending@example.com"])


class ProjectMemberViewSetTests(ProjectTestCase):
    def test_list_members(self):
        self.client.force_authenticate(self.viewer)

        response = self.client.get(self.url("members/"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [(row["user"]["email"], row["role"]) for row in response.data["data"]],
            [("owner@example.com", "admin"), ("editor@example.com", "editor"), ("viewer@example.com", "viewer")],
        )

    def test_add_existing_user_joins_org_and_is_notified(self):
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            self.url("members/"), {"email": "OUTSIDER@example.com", "role": "editor"}, format="json"
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["data"]["role"], "editor")
        self.assertEqual(response.data["data"]["invited_by"], self.owner.pk)
        self.assertTrue(OrgMember.objects.filter(org=self.org, user=self.outsider, system_role="member").exists())
        notification = Notification.objects.get(user=self.outsider)
        self.assertEqual(notification.type, Notification.TYPE_PROJECT_INVITE)
        self.assertEqual(notification.link, f"/projects/{self.project.pk}")

    def test_add_unknown_email_creates_invitation_once(self):
        OrgSubscription.objects.filter(pk=ensure_org_subscription(self.org.pk).pk).update(
            plan_id=OrgSubscription.Plan.GROWTH, seat_count=10
        )
        self.client.force_authenticate(self.owner)

        first = self.client.post(self.url("members/"), {"email": "new@example.com"}, format="json")
        second = self.client.post(self.url("members/"), {"email": "new@example.com"}, format="json")

        self.assertEqual(first.status_code, 201)
        self.assertEqual(first.data["data"]["role"], "viewer")
        self.assertEqual(second.data["data"]["id"], first.data["data"]["id"])
        self.assertEqual(Invitation.objects.filter(email="new@example.com").count(), 1)

    def test_add_unknown_email_needs_a_free_seat(self):
        self.client.force_authenticate(self.owner)

        response = self.client.post(self.url("members/"), {"email": "new@example.com"}, format="json")

        self.assertEqual(response.status_code, 402)
        self.assertEqual(response.data["code"], "SEAT_LIMIT_REACHED")
        self.assertFalse(Invitation.objects.exists())

    def test_add_with_invalid_role(self):
        self.client.force_authenticate(self.owner)

        response = self.client.post(self.url("members/"), {"email": "x@example.com", "role": "owner"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "Invalid role.")

    def test_non_string_role_is_rejected(self):
        self.client.force_authenticate(self.owner)

        add = self.client.post(self.url("members/"), {"email": "x@example.com", "role": ["admin"]}, format="json")
        change = self.client.patch(self.url(f"members/{self.viewer.pk}/"), {"role": {"name": "editor"}}, format="json")

        self.assertEqual(add.status_code, 400)
        self.assertEqual(add.data["message"], "Invalid role.")
        self.assertEqual(change.status_code, 400)
        self.assertEqual(change.data["message"], "Invalid role.")
        self.assertEqual(ProjectMember.objects.get(project=self.project, user=self.viewer).role, "viewer")

    def test_editor_cannot_add_members(self):
        self.client.force_authenticate(self.editor)

        response = self.client.post(self.url("members/"), {"email": "x@example.com"}, format="json")

        self.assertEqual(response.status_code, 403)

    def test_change_role(self):
        self.client.force_authenticate(self.owner)

        response = self.client.patch(self.url(f"members/{self.viewer.pk}/"), {"role": "editor"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(ProjectMember.objects.get(project=self.project, user=self.viewer).role, "editor")

    def test_last_admin_cannot_be_demoted_or_removed(self):
        self.client.force_authenticate(self.owner)

        demote = self.client.patch(self.url(f"members/{self.owner.pk}/"), {"role": "viewer"}, format="json")
        remove = self.client.delete(self.url(f"members/{self.owner.pk}/"))

        self.assertEqual(demote.status_code, 400)
        self.assertEqual(demote.data["message"], "Project must keep at least one admin.")
        self.assertEqual(remove.status_code, 400)

    def test_remove_member(self):
        self.client.force_authenticate(self.owner)

        response = self.client.delete(self.url(f"members/{self.viewer.pk}/"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["data"], {"removed": True, "user_id": self.viewer.pk})
        self.assertFalse(ProjectMember.objects.filter(project=self.project, user=self.viewer).exists())

    def test_remove_unknown_member(self):
        self.client.force_authenticate(self.owner)

        response = self.client.delete(self.url(f"members/{self.outsider.pk}/"))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["message"], "Member not found.")


class ProjectAccessTests(ProjectTestCase):
    def test_effective_roles(self):
        boss = make_user("boss@example.com")
        OrgMember.objects.create(org=self.org, user=boss, system_role=OrgMember.ROLE_SUPER_ADMIN)

        self.assertEqual(get_effective_role(self.project, boss), "admin")
        self.assertEqual(get_effective_role(self.project, self.editor), "editor")
        self.assertIsNone(get_effective_role(self.project, self.outsider))

    def test_assert_project_access_ranks_roles(self):
        project, role = assert_project_access(str(self.project.pk), self.editor, "viewer")

        self.assertEqual(project, self.project)
        self.assertEqual(role, "editor")
        with self.assertRaises(Forbidden):
            assert_project_access(self.project, self.viewer, "editor")
        with self.assertRaises(NotFoundError):
            assert_project_access("not-a-uuid", self.owner)

    def test_assert_project_admin(self):
        self.assertEqual(assert_project_admin(self.project.pk, self.owner)[1], "admin")
        with self.assertRaises(Forbidden):
            assert_project_admin(self.project.pk, self.editor)
