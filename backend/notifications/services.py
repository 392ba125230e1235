import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from .models import Notification

logger = logging.getLogger(__name__)


def user_group_name(user_id):
    return f"notifications_{user_id}"


def push_notification(notification):
    """
    Send a new notification to the WebSocket group of its recipient.

    Failures are logged and ignored; the row is already stored.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    from .serializers import NotificationSerializer

    try:
        async_to_sync(channel_layer.group_send)(
            user_group_name(notification.user_id),
            {"type": "notification_created", "notification": NotificationSerializer(notification).data},
        )
    except Exception:
        logger.warning("Failed to push notification %s to user %s", notification.pk, notification.user_id,
                       exc_info=True)


def notify(user_id, type, title, body=None, link=None):
    notification = Notification.objects.create(
        user_id=user_id,
        type=type,
        title=title,
        body=body,
        link=link,
    )
    push_notification(notification)
    return notification
