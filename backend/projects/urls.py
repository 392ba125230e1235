from django.urls import path, include
from rest_framework.routers import SimpleRouter
from rest_framework_nested import routers

from .views import ProjectMemberViewSet, ProjectViewSet

router = SimpleRouter()
router.register(
    r'projects',
    ProjectViewSet,
    basename='project'
)
project_router = routers.NestedSimpleRouter(router, r'projects', lookup='project')
project_router.register(
    r'members',
    ProjectMemberViewSet,
    basename='project-members'
)

urlpatterns = [
    path('', include(router.urls)),
    path('', include(project_router.urls)),
]

# Complete list of generated API endpoints:
#
# PROJECTS:
# - GET    /api/projects/                             → Visible projects of the active org (?include_all=1 for every org)
# - POST   /api/projects/                             → Create project (creator becomes admin)
# - GET    /api/projects/{id}/                        → Project with role and metrics (viewer)
# - PATCH  /api/projects/{id}/                        → Update project (admin)
# - DELETE /api/projects/{id}/                        → Archive project (admin)
# - GET    /api/projects/{id}/activity/               → Newest 200 activity entries (viewer)
# - GET    /api/projects/{id}/invitations/            → Pending invitations (viewer)
#
# MEMBERS (Project-scoped):
# - GET    /api/projects/{project_id}/members/            → Members with nested user (viewer)
# - POST   /api/projects/{project_id}/members/            → Add member by email or invite unknown email (admin)
# - PATCH  /api/projects/{project_id}/members/{user_id}/  → Change project role (admin)
# - DELETE /api/projects/{project_id}/members/{user_id}/  → Remove member (admin)
