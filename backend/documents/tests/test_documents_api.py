import io
import zipfile

from rest_framework.test import APIClient, APITestCase

from accounts.models import User
from audit.models import ActivityLog
from documents.models import Document, DocumentContent
from organizations.models import OrgMember, Organization
from projects.models import Project, ProjectMember

SNAPSHOT = {
    "type": "doc",
    "content": [
        {"type": "heading", "attrs": {"level": 1}, "content": [{"type": "text", "text": "Launch"}]},
        {"type": "paragraph", "content": [{"type": "text", "text": "Checklist"}]},
    ],
}


def make_user(email):
    return User.objects.create_user(username=email, email=email, password="password123")


class DocumentTestCase(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.org = Organization.objects.create(name="Acme", slug="acme")
        self.editor = make_user("editor@example.com")
        self.viewer = make_user("viewer@example.com")
        OrgMember.objects.create(org=self.org, user=self.editor)
        OrgMember.objects.create(org=self.org, user=self.viewer)
        self.project = Project.objects.create(org=self.org, name="Roadmap", created_by=self.editor)
        ProjectMember.objects.create(project=self.project, user=self.editor, role="editor")
        ProjectMember.objects.create(project=self.project, user=self.viewer, role="viewer")

    def project_url(self, suffix=""):
        return f"/api/projects/{self.project.pk}/documents/{suffix}"

    def doc_url(self, document, suffix=""):
        return f"/api/documents/{document.pk}/{suffix}"


class ProjectDocumentTests(DocumentTestCase):
    def test_list_returns_tree_and_flat(self):
        root = Document.objects.create(project=self.project, title="Root", sort_order=0)
        Document.objects.create(project=self.project, title="Child", parent=root)
        Document.objects.create(project=self.project, title="Archived", is_archived=True)
        self.client.force_authenticate(self.viewer)

        response = self.client.get(self.project_url())

        self.assertEqual(response.status_code, 200)
        data = response.data["data"]
        self.assertEqual(sorted(row["title"] for row in data["flat"]), ["Child", "Root"])
        self.assertEqual(len(data["tree"]), 1)
        self.assertEqual(data["tree"][0]["title"], "Root")
        self.assertEqual([child["title"] for child in data["tree"][0]["children"]], ["Child"])

    def test_create_document_with_empty_content(self):
        self.client.force_authenticate(self.editor)

        response = self.client.post(self.project_url(), {"tags": ["spec", 3]}, format="json")

        self.assertEqual(response.status_code, 201)
        data = response.data["data"]
        self.assertEqual(data["title"], "Untitled")
        self.assertEqual(data["tags"], ["spec"])
        self.assertEqual(data["sort_order"], 0)
        content = DocumentContent.objects.get(document_id=data["id"])
        self.assertEqual(content.last_snapshot["type"], "doc")
        self.assertTrue(ActivityLog.objects.filter(action="created", target_type="document").exists())

    def test_create_appends_to_siblings(self):
        parent = Document.objects.create(project=self.project, title="Parent")
        Document.objects.create(project=self.project, title="A", parent=parent)
        self.client.force_authenticate(self.editor)

        response = self.client.post(
            self.project_url(), {"title": "B", "parent_document_id": str(parent.pk)}, format="json"
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["data"]["sort_order"], 1)
        self.assertEqual(response.data["data"]["parent_document_id"], str(parent.pk))

    def test_create_rejects_parent_from_other_project(self):
        other = Project.objects.create(org=self.org, name="Other")
        foreign = Document.objects.create(project=other, title="Foreign")
        self.client.force_authenticate(self.editor)

        response = self.client.post(self.project_url(), {"parent_document_id": str(foreign.pk)}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.data["message"], "parent_document_id must reference an active document in this project."
        )

    def test_viewer_cannot_create(self):
        self.client.force_authenticate(self.viewer)

        response = self.client.post(self.project_url(), {"title": "Nope"}, format="json")

        self.assertEqual(response.status_code, 403)

    def test_batch_export_zips_documents(self):
        first = Document.objects.create(project=self.project, title="Plan")
        DocumentContent.objects.create(document=first, last_snapshot=SNAPSHOT)
        second = Document.objects.create(project=self.project, title="Plan")
        foreign = Document.objects.create(project=Project.objects.create(org=self.org, name="Other"), title="X")
        self.client.force_authenticate(self.viewer)

        response = self.client.post(
            self.project_url("export/"),
            {"documentIds": [str(first.pk), str(second.pk), str(foreign.pk), "junk"], "format": "markdown"},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "application/zip")
        with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
            self.assertEqual(archive.namelist(), ["Plan.md", "Plan_1.md"])
            self.assertEqual(archive.read("Plan.md"), b"# Launch\n\nChecklist")
        entry = ActivityLog.objects.get(action="documents_batch_exported")
        self.assertEqual(entry.metadata["exported"], 2)
        self.assertEqual(entry.metadata["requested"], 4)

    def test_batch_export_validation(self):
        self.client.force_authenticate(self.viewer)

        missing = self.client.post(self.project_url("export/"), {"format": "pdf"}, format="json")
        too_many = self.client.post(
            self.project_url("export/"), {"documentIds": ["x"] * 51, "format": "pdf"}, format="json"
        )
        bad_format = self.client.post(
            self.project_url("export/"), {"documentIds": ["x"], "format": "odt"}, format="json"
        )

        self.assertEqual(missing.data["message"], "Document IDs array is required.")
        self.assertEqual(too_many.data["message"], "Cannot export more than 50 documents at once.")
        self.assertEqual(bad_format.data["message"], "Invalid export format. Must be pdf, docx, or markdown.")


class DocumentDetailTests(DocumentTestCase):
    def setUp(self):
        super().setUp()
        self.document = Document.objects.create(project=self.project, title="Spec", created_by=self.editor)

    def test_retrieve(self):
        self.client.force_authenticate(self.viewer)

        response = self.client.get(self.doc_url(self.document))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["data"]["title"], "Spec")
        self.assertFalse(response.data["data"]["has_content"])

    def test_unknown_document(self):
        self.client.force_authenticate(self.viewer)

        response = self.client.get("/api/documents/00000000-0000-0000-0000-000000000000/")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["message"], "Document not found.")

    def test_outsider_is_forbidden(self):
        self.client.force_authenticate(make_user("outsider@example.com"))

        response = self.client.get(self.doc_url(self.document))

        self.assertEqual(response.status_code, 403)

    def test_update_fields(self):
        parent = Document.objects.create(project=self.project, title="Parent")
        self.client.force_authenticate(self.editor)

        response = self.client.patch(
            self.doc_url(self.document),
            {"title": "Spec v2", "parent_document_id": str(parent.pk), "sort_order": 4, "tags": ["x"]},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.document.refresh_from_db()
        self.assertEqual(self.document.title, "Spec v2")
        self.assertEqual(self.document.parent, parent)
        self.assertEqual(self.document.sort_order, 4)
        self.assertEqual(self.document.tags, ["x"])

    def test_update_rejects_self_parent_and_cycles(self):
        child = Document.objects.create(project=self.project, title="Child", parent=self.document)
        self.client.force_authenticate(self.editor)

        own = self.client.patch(self.doc_url(self.document), {"parent_document_id": str(self.document.pk)}, format="json")
        cycle = self.client.patch(self.doc_url(self.document), {"parent_document_id": str(child.pk)}, format="json")

        self.assertEqual(own.data["message"], "A document cannot be its own parent.")
        self.assertEqual(cycle.data["message"], "parent_document_id would create a cycle.")

    def test_update_can_clear_parent(self):
        parent = Document.objects.create(project=self.project, title="Parent")
        self.document.parent = parent
        self.document.save()
        self.client.force_authenticate(self.editor)

        self.client.patch(self.doc_url(self.document), {"parent_document_id": None}, format="json")

        self.document.refresh_from_db()
        self.assertIsNone(self.document.parent)

    def test_viewer_cannot_update(self):
        self.client.force_authenticate(self.viewer)

        response = self.client.patch(self.doc_url(self.document), {"title": "Nope"}, format="json")

        self.assertEqual(response.status_code, 403)

    def test_delete_archives_subtree(self):
        child = Document.objects.create(project=self.project, title="Child", parent=self.document)
        grandchild = Document.objects.create(project=self.project, title="Grandchild", parent=child)
        self.client.force_authenticate(self.editor)

        response = self.client.delete(self.doc_url(self.document))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.data["data"]["archived_ids"], [str(self.document.pk), str(child.pk), str(grandchild.pk)]
        )
        self.assertEqual(Document.objects.filter(is_archived=True).count(), 3)

    def test_content_defaults_to_empty_snapshot(self):
        self.client.force_authenticate(self.viewer)

        response = self.client.get(self.doc_url(self.document, "content/"))

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.data["data"]["yjs_state"])
        self.assertEqual(response.data["data"]["last_snapshot"]["content"][0]["type"], "paragraph")

    def test_put_content(self):
        self.client.force_authenticate(self.editor)

        response = self.client.put(
            self.doc_url(self.document, "content/"), {"yjs_state": "AQID", "last_snapshot": SNAPSHOT}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        content = DocumentContent.objects.get(document=self.document)
        self.assertEqual(content.yjs_state, "AQID")
        self.assertEqual(content.last_snapshot, SNAPSHOT)
        self.assertTrue(ActivityLog.objects.get(action="content_updated").metadata["has_yjs"])

    def test_viewer_cannot_put_content(self):
        self.client.force_authenticate(self.viewer)

        response = self.client.put(self.doc_url(self.document, "content/"), {"yjs_state": "AQID"}, format="json")

        self.assertEqual(response.status_code, 403)

    def test_export_markdown(self):
        DocumentContent.objects.create(document=self.document, last_snapshot=SNAPSHOT)
        self.client.force_authenticate(self.viewer)

        response = self.client.post(self.doc_url(self.document, "export/"), {"format": "markdown"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Disposition"], 'attachment; filename="Spec.md"')
        self.assertEqual(response.content, b"# Launch\n\nChecklist")
        self.assertEqual(ActivityLog.objects.get(action="document_exported").metadata["format"], "markdown")

    def test_export_docx(self):
        self.client.force_authenticate(self.viewer)

        response = self.client.post(self.doc_url(self.document, "export/"), {"format": "docx"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.content.startswith(b"PK"))

    def test_export_invalid_format(self):
        self.client.force_authenticate(self.viewer)

        response = self.client.post(self.doc_url(self.document, "export/"), {"format": "rtf"}, format="json")

        self.assertEqual(response.status_code, 400)
