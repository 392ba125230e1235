import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.settings')

app = Celery('backend')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

# Task routing configuration – one queue per concern
app.conf.task_routes = {
    # Session and invitation housekeeping
    'accounts.tasks.purge_expired_sessions': {'queue': 'maintenance'},
    'organizations.tasks.purge_expired_magic_links': {'queue': 'maintenance'},

    # Project file storage
    'assets.tasks.cleanup_soft_deleted_files': {'queue': 'assets'},

    # Default queue
    '*': {'queue': 'default'},
}

app.conf.task_default_queue = 'default'

app.conf.update(
    # Serialization settings
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',

    # Timezone settings
    timezone='UTC',
    enable_utc=True,

    # Task execution settings
    task_track_started=True,
    task_time_limit=30 * 60,
    task_soft_time_limit=25 * 60,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Retry settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Queue settings
    task_queues={
        'default': {
            'exchange': 'default',
            'routing_key': 'default',
        },
        'assets': {
            'exchange': 'assets',
            'routing_key': 'assets',
        },
        'maintenance': {
            'exchange': 'maintenance',
            'routing_key': 'maintenance',
        },
    },
)

app.conf.task_annotations = {
    'assets.tasks.cleanup_soft_deleted_files': {
        'rate_limit': '1/h',
        'time_limit': 1800,
        'soft_time_limit': 1500,
    },
}

# Celery Beat schedule configuration
app.conf.beat_schedule = {
    "accounts_purge_expired_sessions_hourly": {
        "task": "accounts.tasks.purge_expired_sessions",
        "schedule": crontab(minute=0),
        "options": {"queue": "maintenance"},
    },
    "organizations_purge_expired_magic_links_daily": {
        "task": "organizations.tasks.purge_expired_magic_links",
        "schedule": crontab(hour=1, minute=30),
        "options": {"queue": "maintenance"},
    },
    "assets_cleanup_soft_deleted_daily": {
        "task": "assets.tasks.cleanup_soft_deleted_files",
        "schedule": crontab(hour=2, minute=0),
        "options": {"queue": "assets"},
    },
}
