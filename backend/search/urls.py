from django.urls import path

from .views import SearchView

urlpatterns = [
    path('search/', SearchView.as_view(), name='search'),
]

# Complete list of generated API endpoints:
#
# - GET /api/search/?q=&project_id=&include_all=   → {documents, tasks, comments}, up to 20 each
