"""
Mention markup inside comment bodies.

Mentions are written as ``@[Display Name](user_id)``.
"""
import html
import re

MENTION_PATTERN = re.compile(r'@\[([^\]]+)\]\(([^)]+)\)')


def extract_mentioned_user_ids(body):
    """Unique user ids in order of first appearance; non-numeric ids are skipped."""
    user_ids = []
    for match in MENTION_PATTERN.finditer(body or ''):
        try:
            user_id = int(match.group(2).strip())
        except ValueError:
            continue
        if user_id not in user_ids:
            user_ids.append(user_id)
    return user_ids


def extract_plain_mentions(body):
    """Replace mention markup by ``@Display Name``."""
    return MENTION_PATTERN.sub(r'@\1', body or '')


def render_mention_html(body, users):
    """Escape ``body`` and render each mention as a ``span.mention`` chip."""
    names = {str(user.pk): user.display_name for user in users}
    parts = []
    position = 0
    text = body or ''
    for match in MENTION_PATTERN.finditer(text):
        parts.append(html.escape(text[position:match.start()]))
        user_id = match.group(2).strip()
        name = html.escape(names.get(user_id, match.group(1)))
        parts.append(
            f'<span class="mention" data-user-id="{html.escape(user_id)}" title="{name}">{name}</span>'
        )
        position = match.end()
    parts.append(html.escape(text[position:]))
    return ''.join(parts)
