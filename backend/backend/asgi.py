import os

from django.core.asgi import get_asgi_application

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.settings')

# Initialise Django before importing consumers that touch the ORM
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.auth import AuthMiddlewareStack  # noqa: E402

import notifications.routing  # noqa: E402

# Main ASGI application for Channels
application = ProtocolTypeRouter({
    # Handle normal HTTP requests
    "http": django_asgi_app,

    # Notification push over WebSocket
    "websocket": AuthMiddlewareStack(
        URLRouter(
            notifications.routing.websocket_urlpatterns
        )
    ),
})
