from django.apps import AppConfig


class AiAgentConfig(AppConfig):
    """
    Django app configuration for the Workbench assistant.

    The assistant answers questions about a project or about every
    organization the caller administers, and can create tasks on request.
    It stores nothing of its own; chats are recorded in the activity feed.
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'ai_agent'
    verbose_name = 'Workbench Assistant'
