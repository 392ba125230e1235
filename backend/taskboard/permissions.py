from backend.exceptions import NotFoundError
from backend.payload import parse_uuid
from projects.access import ProjectRolePermission

from .models import Task


class TaskPermission(ProjectRolePermission):
    """Project role check for endpoints addressed by task id; sets ``view.task``."""

    def get_project_id(self, request, view):
        task_id = view.kwargs.get('pk')
        if task_id is None:
            return None
        pk = parse_uuid(task_id)
        task = Task.objects.filter(pk=pk).select_related('project').first() if pk else None
        if task is None:
            raise NotFoundError('Task not found.')
        view.task = task
        return task.project
