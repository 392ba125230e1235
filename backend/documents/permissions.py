from projects.access import ProjectRolePermission

from .services import get_document_or_404


class DocumentPermission(ProjectRolePermission):
    """
    Project role check for endpoints addressed by document id.

    The document is loaded from the ``pk`` URL kwarg (404 "Document not
    found.") and attached to the view as ``view.document``; access is then
    checked on its project.
    """

    def get_project_id(self, request, view):
        document_id = view.kwargs.get('pk')
        if document_id is None:
            return None
        view.document = get_document_or_404(document_id)
        return view.document.project
