"""
URL configuration for the assets app.

All routes are exposed under '/api/' as configured in backend/urls.py.
Project files are nested under their project; inline uploads are scoped to
the caller's active organization.
"""

from django.urls import path, include
from rest_framework.routers import SimpleRouter
from rest_framework_nested import routers

from projects.views import ProjectViewSet

from .views import InlineUploadView, ProjectFileViewSet

project_router = SimpleRouter()
project_router.register(r'projects', ProjectViewSet, basename='project')
files_router = routers.NestedSimpleRouter(project_router, r'projects', lookup='project')
files_router.register(r'files', ProjectFileViewSet, basename='project-files')

urlpatterns = [
    path('', include(files_router.urls)),
    path('uploads/', InlineUploadView.as_view(), name='inline-upload'),
]

# Complete list of generated API endpoints:
#
# PROJECT FILES:
# - GET    /api/projects/{project_id}/files/                        → Files, newest first, ?attachment_type&attachment_id (viewer)
# - POST   /api/projects/{project_id}/files/                        → Multipart upload, 25MB max (editor)
# - PATCH  /api/projects/{project_id}/files/{id}/                   → Update description or attachment (editor)
# - DELETE /api/projects/{project_id}/files/{id}/                   → Soft delete, returns {success: true} (editor)
# - GET    /api/projects/{project_id}/files/{id}/download-url/      → Signed download link valid for one hour (viewer)
# - GET    /api/projects/{project_id}/files/{id}/download/?token=   → Stream the file for a valid token
#
# INLINE UPLOADS:
# - POST   /api/uploads/                → Multipart upload for the active organization, 10MB max
