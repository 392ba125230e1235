import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from comments.models import Comment
from documents.models import Document
from organizations.models import OrgMember, Organization
from projects.models import Project, ProjectMember
from taskboard.models import Task


def _user(email):
    return get_user_model().objects.create_user(username=email, email=email, password="pass1234")


@pytest.fixture
def user():
    return _user("ada@example.com")


@pytest.fixture
def client(user):
    api_client = APIClient()
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def org(user):
    org = Organization.objects.create(name="Acme", slug="acme")
    OrgMember.objects.create(org=org, user=user)
    return org


@pytest.fixture
def project(org, user):
    project = Project.objects.create(org=org, name="Roadmap", created_by=user)
    ProjectMember.objects.create(project=project, user=user, role="viewer")
    return project


def _titles(rows, key="title"):
    return sorted(row[key] for row in rows)


@pytest.mark.django_db
def test_search_requires_query(client):
    response = client.get("/api/search/", {"q": "   "})

    assert response.status_code == 400
    assert response.json()["message"] == "q is required."


@pytest.mark.django_db
def test_search_matches_documents_tasks_and_comments(client, user, org, project):
    document = Document.objects.create(project=project, title="Launch plan")
    Document.objects.create(project=project, title="Launch archive", is_archived=True)
    task = Task.objects.create(project=project, title="Prepare", description="launch checklist")
    Comment.objects.create(target_type="document", target_id=str(document.pk), author=user, body="LAUNCH date?")
    Comment.objects.create(target_type="task", target_id=str(task.pk), author=user, body="launch copy")
    Comment.objects.create(target_type="block", target_id=f"{document.pk}:b1", author=user, body="launch block")
    Comment.objects.create(target_type="block", target_id="unrelated:b1", author=user, body="launch elsewhere")

    response = client.get("/api/search/", {"q": "launch"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert _titles(data["documents"]) == ["Launch plan"]
    assert _titles(data["tasks"]) == ["Prepare"]
    assert _titles(data["comments"], "body") == ["LAUNCH date?", "launch block", "launch copy"]


@pytest.mark.django_db
def test_search_skips_projects_the_user_cannot_see(client, org, project):
    hidden = Project.objects.create(org=org, name="Secret")
    Document.objects.create(project=hidden, title="Launch secret")
    Document.objects.create(project=project, title="Launch public")

    response = client.get("/api/search/", {"q": "launch"})

    assert _titles(response.json()["data"]["documents"]) == ["Launch public"]


@pytest.mark.django_db
def test_search_scoped_to_project(client, org, project):
    other = Project.objects.create(org=org, name="Other")
    outsider = _user("outsider@example.com")
    ProjectMember.objects.create(project=other, user=outsider, role="admin")
    Document.objects.create(project=project, title="Launch")

    allowed = client.get("/api/search/", {"q": "launch", "project_id": str(project.pk)})
    denied = client.get("/api/search/", {"q": "launch", "project_id": str(other.pk)})

    assert _titles(allowed.json()["data"]["documents"]) == ["Launch"]
    assert denied.status_code == 403


@pytest.mark.django_db
def test_include_all_spans_organizations(client, user, org, project):
    second_org = Organization.objects.create(name="Beta", slug="beta")
    OrgMember.objects.create(org=second_org, user=user, system_role=OrgMember.ROLE_SUPER_ADMIN)
    second_project = Project.objects.create(org=second_org, name="Beta roadmap")
    Document.objects.create(project=project, title="Launch A")
    Document.objects.create(project=second_project, title="Launch B")

    scoped = client.get("/api/search/", {"q": "launch"}, HTTP_X_WORKBENCH_ORG_ID=str(org.pk))
    everything = client.get("/api/search/", {"q": "launch", "include_all": "true"})

    assert _titles(scoped.json()["data"]["documents"]) == ["Launch A"]
    assert _titles(everything.json()["data"]["documents"]) == ["Launch A", "Launch B"]
