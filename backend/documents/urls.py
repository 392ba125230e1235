from django.urls import path, include
from rest_framework.routers import SimpleRouter
from rest_framework_nested import routers

from projects.views import ProjectViewSet

from .views import DocumentViewSet, ProjectDocumentViewSet

router = SimpleRouter()
router.register(r'documents', DocumentViewSet, basename='document')

# Parent router only provides the ``projects/{project_pk}/`` prefix
project_router = SimpleRouter()
project_router.register(r'projects', ProjectViewSet, basename='project')
documents_router = routers.NestedSimpleRouter(project_router, r'projects', lookup='project')
documents_router.register(
    r'documents',
    ProjectDocumentViewSet,
    basename='project-documents'
)

urlpatterns = [
    path('', include(router.urls)),
    path('', include(documents_router.urls)),
]

# Complete list of generated API endpoints:
#
# PROJECT DOCUMENTS:
# - GET    /api/projects/{project_id}/documents/          → {tree, flat} of non-archived documents (viewer)
# - POST   /api/projects/{project_id}/documents/          → Create document (editor)
# - POST   /api/projects/{project_id}/documents/export/   → ZIP export of up to 50 documents (viewer)
#
# DOCUMENTS:
# - GET    /api/documents/{id}/                 → Document with has_content (viewer)
# - PATCH  /api/documents/{id}/                 → Update title, parent, order, archive flag, tags (editor)
# - DELETE /api/documents/{id}/                 → Archive document and descendants (editor)
# - GET    /api/documents/{id}/content/         → Editor state or the empty default (viewer)
# - PUT    /api/documents/{id}/content/         → Upsert editor state (editor)
# - POST   /api/documents/{id}/export/          → Download as pdf, docx or markdown (viewer)
