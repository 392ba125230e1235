from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import CommentViewSet

router = SimpleRouter()
router.register(r'comments', CommentViewSet, basename='comment')

urlpatterns = [
    path('', include(router.urls)),
]

# Complete list of generated API endpoints:
#
# - GET    /api/comments/?target_type=&target_id=    → Thread on a document, task or block (viewer)
# - POST   /api/comments/                            → Create comment, notify mentions and parent author (viewer)
# - PATCH  /api/comments/{id}/                       → Edit body or metadata (author only)
# - DELETE /api/comments/{id}/                       → Delete (author, project admin or org super admin; editor)
# - POST   /api/comments/{id}/resolve/               → Mark resolved (viewer)
# - POST   /api/comments/{id}/convert-to-task/       → Create a task from the comment (editor)
