from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import NotificationViewSet

router = DefaultRouter()
router.register(r'notifications', NotificationViewSet, basename='notification')

urlpatterns = [
    path('', include(router.urls)),
]

# Complete list of generated API endpoints:
#
# - GET    /api/notifications/               → Caller's notifications, newest first, with unread_count
# - PATCH  /api/notifications/{id}/read/     → Mark one notification read
# - POST   /api/notifications/read-all/      → Mark every unread notification read
