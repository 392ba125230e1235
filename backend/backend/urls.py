"""
URL configuration for backend project.

Routes include administration, the Workbench API modules, health checks,
and the metrics endpoint.
"""
import os
from prometheus_client import CollectorRegistry, multiprocess, generate_latest, REGISTRY
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from django.http import HttpResponse

# Initialize Prometheus registry
# Use multiprocess collector only if PROMETHEUS_MULTIPROC_DIR is set (production)
# Otherwise use default registry (development)
if os.environ.get('PROMETHEUS_MULTIPROC_DIR'):
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY


def health_check(request):
    return HttpResponse("OK", content_type="text/plain")


def metrics(request):
    payload = generate_latest(registry)
    return HttpResponse(payload, content_type="text/plain; version=0.0.4")


urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health_check, name='health_check'),
    path('metrics/', metrics, name='metrics'),

    path('api/auth/', include('accounts.urls')),
    path('api/', include('organizations.urls')),
    path('api/', include('billing.urls', namespace='billing')),
    path('api/', include('projects.urls')),
    path('api/', include('documents.urls')),
    path('api/', include('taskboard.urls')),
    path('api/', include('comments.urls')),
    path('api/', include('notifications.urls')),
    path('api/', include('audit.urls')),
    path('api/', include('assets.urls')),
    path('api/', include('search.urls')),
    path('api/', include('ai_agent.urls')),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
