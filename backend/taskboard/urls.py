from django.urls import path, include
from rest_framework.routers import SimpleRouter
from rest_framework_nested import routers

from projects.views import ProjectViewSet

from .views import ProjectTaskViewSet, TaskViewSet

router = SimpleRouter()
router.register(r'tasks', TaskViewSet, basename='task')

project_router = SimpleRouter()
project_router.register(r'projects', ProjectViewSet, basename='project')
tasks_router = routers.NestedSimpleRouter(project_router, r'projects', lookup='project')
tasks_router.register(
    r'tasks',
    ProjectTaskViewSet,
    basename='project-tasks'
)

urlpatterns = [
    path('', include(router.urls)),
    path('', include(tasks_router.urls)),
]

# Complete list of generated API endpoints:
#
# PROJECT TASKS:
# - GET    /api/projects/{project_id}/tasks/        → Filtered task list (viewer)
# - POST   /api/projects/{project_id}/tasks/        → Create task (editor)
# - POST   /api/projects/{project_id}/tasks/bulk/   → Update several tasks at once (editor)
#
# TASKS:
# - GET    /api/tasks/{id}/             → Task with its comment thread (viewer)
# - PATCH  /api/tasks/{id}/             → Update task (editor)
# - DELETE /api/tasks/{id}/             → Detach from its document, or delete with ?hard=true (editor)
