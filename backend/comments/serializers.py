from rest_framework import serializers

from accounts.models import User
from accounts.serializers import UserSummarySerializer
from backend.payload import parse_uuid
from taskboard.models import Task

from .mentions import render_mention_html
from .models import Comment


def mentioned_pks(comment):
    """Mentioned user ids stored on the comment; entries that are not integers are skipped."""
    values = (comment.metadata or {}).get('mentioned_user_ids')
    if not isinstance(values, list):
        return []
    pks = []
    for value in values:
        if isinstance(value, bool):
            continue
        try:
            pks.append(int(value))
        except (TypeError, ValueError):
            continue
    return pks


def converted_task_pk(comment):
    return parse_uuid(comment.converted_to_task_id)


def enrichment_context(comments):
    """Users and tasks referenced by the comments' metadata, fetched in two queries."""
    user_ids = set()
    task_ids = set()
    for comment in comments:
        user_ids.update(mentioned_pks(comment))
        task_pk = converted_task_pk(comment)
        if task_pk:
            task_ids.add(task_pk)
    return {
        'users': {user.pk: user for user in User.objects.filter(pk__in=user_ids)},
        'tasks': {str(task.pk): task for task in Task.objects.filter(pk__in=task_ids)},
    }


class CommentSerializer(serializers.ModelSerializer):
    """
    Serializer for Comment model.

    ``mentioned_users`` and ``converted_to_task`` are resolved from the
    ``users`` and ``tasks`` context mappings built by
    ``enrichment_context``; without them they are looked up per comment.
    ``body_html`` is the escaped body with mentions rendered as chips.
    """
    parent_comment_id = serializers.UUIDField(read_only=True, allow_null=True)
    author_id = serializers.IntegerField(read_only=True)
    author = UserSummarySerializer(read_only=True)
    mentioned_users = serializers.SerializerMethodField()
    converted_to_task = serializers.SerializerMethodField()
    body_html = serializers.SerializerMethodField()

    class Meta:
        model = Comment
        fields = [
            'id', 'target_type', 'target_id', 'parent_comment_id', 'author_id', 'body',
            'body_html', 'created_at', 'resolved_at', 'metadata', 'author', 'mentioned_users', 'converted_to_task',
        ]
        read_only_fields = fields

    def _lookup(self, obj):
        if 'users' in self.context and 'tasks' in self.context:
            return self.context
        return enrichment_context([obj])

    def get_mentioned_users(self, obj):
        user_ids = mentioned_pks(obj)
        if not user_ids:
            return []
        users = self._lookup(obj)['users']
        return UserSummarySerializer([users[pk] for pk in user_ids if pk in users], many=True).data

    def get_body_html(self, obj):
        users = self._lookup(obj)['users'] if mentioned_pks(obj) else {}
        return render_mention_html(obj.body, users.values())

    def get_converted_to_task(self, obj):
        task_id = converted_task_pk(obj)
        if task_id is None:
            return None
        task = self._lookup(obj)['tasks'].get(str(task_id))
        if task is None:
            return None
        return {'id': str(task.pk), 'title': task.title}
