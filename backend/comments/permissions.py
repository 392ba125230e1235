from backend.exceptions import NotFoundError
from backend.payload import parse_uuid
from projects.access import ProjectRolePermission

from .models import Comment
from .services import resolve_target_project


class CommentPermission(ProjectRolePermission):
    """
    Project role check for endpoints addressed by comment id.

    The comment is attached to the view as ``view.comment``. Collection
    endpoints carry their target in the query string or body and are
    checked inside the view.
    """

    def get_project_id(self, request, view):
        comment_id = view.kwargs.get('pk')
        if comment_id is None:
            return None
        pk = parse_uuid(comment_id)
        comment = Comment.objects.filter(pk=pk).select_related('author').first() if pk else None
        if comment is None:
            raise NotFoundError('Comment not found.')
        view.comment = comment
        return resolve_target_project(comment.target_type, comment.target_id)
