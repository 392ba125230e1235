from django.contrib.auth import get_user_model
from rest_framework.test import APIClient, APITestCase

from audit.activity import log_activity
from audit.models import ActivityLog, ApiAccessLog
from organizations.models import OrgMember, Organization


class ApiAccessLogViewSetTests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        User = get_user_model()
        self.user = User.objects.create_user(
            username="alice@example.com",
            email="alice@example.com",
            password="password123",
            name="Alice",
        )
        self.other_user = User.objects.create_user(
            username="bob@example.com",
            email="bob@example.com",
            password="password123",
        )
        ApiAccessLog.objects.create(
            user=self.user,
            method="get",
            path="/api/projects/5b0c7a52-3f4d-4e31-9a43-1d1b3c2f1a10/documents/",
            action="project-document-list",
            status_code=200,
        )
        ApiAccessLog.objects.create(
            user=self.other_user,
            method="POST",
            path="/api/orgs/",
            action="organization-list",
            status_code=201,
        )

    def test_user_sees_only_their_logs(self):
        self.client.force_authenticate(self.user)
        response = self.client.get("/api/audit/logs/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        entry = response.data[0]
        self.assertEqual(entry["user"], {"id": self.user.pk, "email": "alice@example.com", "name": "Alice"})
        self.assertEqual(entry["location_label"], "Projects › Documents")
        self.assertEqual(entry["request_summary"], "GET • Projects › Documents")
        self.assertEqual(entry["status_code"], 200)

    def test_staff_user_sees_all_logs(self):
        self.user.is_staff = True
        self.user.save(update_fields=["is_staff"])

        self.client.force_authenticate(self.user)
        response = self.client.get("/api/audit/logs/")

        self.assertEqual(response.status_code, 200)
        self.assertSetEqual({item["user"]["email"] for item in response.data}, {"alice@example.com", "bob@example.com"})

    def test_filters(self):
        self.user.is_staff = True
        self.user.save(update_fields=["is_staff"])
        ApiAccessLog.objects.create(user=self.user, method="GET", path="/api/documents/missing/", status_code=404)
        self.client.force_authenticate(self.user)

        by_method = self.client.get("/api/audit/logs/", {"method": "post"})
        by_status = self.client.get("/api/audit/logs/", {"status_code": 404})

        self.assertEqual([item["user"]["email"] for item in by_method.data], ["bob@example.com"])
        self.assertEqual([item["user"]["email"] for item in by_status.data], ["alice@example.com"])

    def test_root_path_label(self):
        log = ApiAccessLog.objects.create(user=self.user, method="GET", path="/api/", status_code=200)
        self.client.force_authenticate(self.user)

        response = self.client.get(f"/api/audit/logs/{log.pk}/")

        self.assertEqual(response.data["location_label"], "Home")


class ApiAuditMiddlewareTests(APITestCase):
    def test_failed_login_is_logged_with_redacted_password(self):
        response = self.client.post(
            "/api/auth/login/",
            {"email": "ghost@example.com", "password": "hunter22", "extra": {"nested": True}},
            format="json",
            HTTP_X_REQUEST_ID="req-1",
        )

        self.assertEqual(response.status_code, 401)
        log = ApiAccessLog.objects.get()
        self.assertIsNone(log.user)
        self.assertEqual(log.method, "POST")
        self.assertEqual(log.path, "/api/auth/login/")
        self.assertEqual(log.status_code, 401)
        self.assertEqual(log.request_id, "req-1")
        self.assertEqual(log.payload, {"email": "ghost@example.com", "password": "[redacted]", "extra": "<dict>"})
        self.assertEqual(log.response, {"code": "invalid_credentials", "message": "Invalid email or password."})

    def test_session_and_notification_polls_are_skipped(self):
        user = get_user_model().objects.create_user(username="a@example.com", email="a@example.com", password="x")
        self.client.force_authenticate(user)

        self.client.get("/api/auth/session/")
        self.client.get("/api/notifications/")

        self.assertFalse(ApiAccessLog.objects.exists())

    def test_authenticated_request_records_user(self):
        user = get_user_model().objects.create_user(username="a@example.com", email="a@example.com", password="x")
        self.client.force_authenticate(user)

        self.client.get("/api/orgs/")

        log = ApiAccessLog.objects.get()
        self.assertEqual(log.user, user)
        self.assertEqual(log.status_code, 200)


class ActivityViewSetTests(APITestCase):
    def setUp(self):
        User = get_user_model()
        self.admin = User.objects.create_user(username="boss@example.com", email="boss@example.com", password="x")
        self.member = User.objects.create_user(username="m@example.com", email="m@example.com", password="x")
        self.org = Organization.objects.create(name="Acme", slug="acme")
        self.other_org = Organization.objects.create(name="Other", slug="other")
        OrgMember.objects.create(org=self.org, user=self.admin, system_role=OrgMember.ROLE_SUPER_ADMIN)
        OrgMember.objects.create(org=self.org, user=self.member)

    def test_requires_super_admin(self):
        self.client.force_authenticate(self.member)

        response = self.client.get("/api/activity/")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["message"], "Super admin access required.")

    def test_lists_activity_of_administered_orgs(self):
        log_activity(org=self.org, actor=self.member, action="created", target_type="project", target_id="p1")
        log_activity(org=self.other_org, action="created", target_type="project", target_id="p2")
        self.client.force_authenticate(self.admin)

        response = self.client.get("/api/activity/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual([entry["target_id"] for entry in response.data["data"]], ["p1"])
        self.assertEqual(response.data["data"][0]["actor"]["email"], "m@example.com")

    def test_log_activity_accepts_ids_and_stringifies_target(self):
        entry = log_activity(
            org=self.org.pk,
            actor=None,
            actor_type=ActivityLog.ACTOR_SYSTEM,
            action="purged",
            target_type="session",
            target_id=42,
            metadata={"count": 3},
        )

        entry = ActivityLog.objects.get(pk=entry.pk)
        self.assertEqual(entry.org, self.org)
        self.assertEqual(entry.target_id, "42")
        self.assertEqual(entry.actor_type, "system")
        self.assertEqual(entry.metadata, {"count": 3})
