from rest_framework.routers import DefaultRouter

from .views import ActivityViewSet, ApiAccessLogViewSet

router = DefaultRouter()
router.register(r"activity", ActivityViewSet, basename="activity")
router.register(r"audit/logs", ApiAccessLogViewSet, basename="audit-log")

urlpatterns = router.urls

# Complete list of generated API endpoints:
#
# - GET /api/activity/          → Activity of the caller's super admin orgs, newest 500
# - GET /api/audit/logs/        → API access log (own rows, staff see all)
# - GET /api/audit/logs/{id}/   → Single access log row
