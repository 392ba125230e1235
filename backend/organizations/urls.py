from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_nested import routers

from .views import OrganizationViewSet, OrgMemberViewSet
from .views_admin import AdminActivityView, AdminOrgView, AdminStatsView

router = DefaultRouter()
router.register(
    r'orgs',
    OrganizationViewSet,
    basename='org'
)
org_router = routers.NestedDefaultRouter(router, r'orgs', lookup='org')
org_router.register(
    r'members',
    OrgMemberViewSet,
    basename='org-members'
)

urlpatterns = [
    path('', include(router.urls)),
    path('', include(org_router.urls)),

    # Admin console, always scoped to the caller's active organization
    path('admin/org/', AdminOrgView.as_view(), name='admin-org'),
    path('admin/stats/', AdminStatsView.as_view(), name='admin-stats'),
    path('admin/activity/', AdminActivityView.as_view(), name='admin-activity'),
]

# Complete list of generated API endpoints:
#
# ORGANIZATIONS:
# - GET    /api/orgs/                                → Caller's organizations with system_role and is_active
# - POST   /api/orgs/                                → Create organization (caller becomes super_admin)
#
# MEMBERS (Organization-scoped):
# - GET    /api/orgs/{org_id}/members/               → List members with nested user (any member)
# - POST   /api/orgs/{org_id}/members/invite/        → Issue magic link invitation (super_admin)
# - PATCH  /api/orgs/{org_id}/members/{user_id}/     → Change system role (super_admin)
# - DELETE /api/orgs/{org_id}/members/{user_id}/     → Remove member and their project memberships (super_admin)
#
# ADMIN CONSOLE (super_admin of the active organization):
# - GET    /api/admin/org/                           → Organization details
# - PATCH  /api/admin/org/                           → Rename organization or change slug
# - GET    /api/admin/stats/                         → Member, project, task and document counts
# - GET    /api/admin/activity/                      → Paginated activity (?limit&offset&action&target_type&project_id)
