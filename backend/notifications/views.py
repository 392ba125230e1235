import logging

from django.utils import timezone
from rest_framework import mixins, permissions, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from backend.exceptions import NotFoundError
from backend.payload import parse_uuid

from .models import Notification
from .serializers import NotificationSerializer

logger = logging.getLogger(__name__)


class NotificationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    In-app notifications of the caller.

    Listing returns every notification newest first with the unread count
    beside the data.
    """
    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user).order_by('-created_at')

    def list(self, request, *args, **kwargs):
        queryset = self.get_queryset()
        return Response({
            'data': self.get_serializer(queryset, many=True).data,
            'unread_count': queryset.filter(read_at__isnull=True).count(),
        })

    @action(detail=True, methods=['patch', 'post'])
    def read(self, request, pk=None):
        notification_id = parse_uuid(pk)
        notification = self.get_queryset().filter(pk=notification_id).first() if notification_id else None
        if notification is None:
            raise NotFoundError('Notification not found.')
        if notification.read_at is None:
            notification.read_at = timezone.now()
            notification.save(update_fields=['read_at'])
        return Response({'data': self.get_serializer(notification).data})

    @action(detail=False, methods=['post'], url_path='read-all')
    def read_all(self, request):
        updated = self.get_queryset().filter(read_at__isnull=True).update(read_at=timezone.now())
        return Response({'data': {'updated': updated}})
