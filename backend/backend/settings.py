"""
Django settings for the Workbench backend.

Values are read from the environment; a ``.env`` file next to the
repository root is loaded first so local development needs no exports.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR.parent / '.env')


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {'1', 'true', 'yes', 'on'}


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'workbench-dev-secret-key-change-me')
DEBUG = _env_bool('DJANGO_DEBUG', True)
ALLOWED_HOSTS = [host.strip() for host in os.getenv('DJANGO_ALLOWED_HOSTS', '*').split(',') if host.strip()]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third party
    'rest_framework',
    'django_filters',
    'channels',

    # Workbench apps
    'accounts',
    'organizations',
    'projects',
    'documents',
    'taskboard',
    'comments',
    'notifications',
    'audit',
    'billing',
    'assets',
    'search',
    'ai_agent',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'audit.middleware.ApiAuditMiddleware',
]

ROOT_URLCONF = 'backend.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'backend.wsgi.application'
ASGI_APPLICATION = 'backend.asgi.application'

# Database: SQLite unless an engine is configured explicitly
DATABASE_ENGINE = os.getenv('DATABASE_ENGINE', 'django.db.backends.sqlite3')
if DATABASE_ENGINE.endswith('sqlite3'):
    DATABASES = {
        'default': {
            'ENGINE': DATABASE_ENGINE,
            'NAME': os.getenv('DATABASE_NAME', str(BASE_DIR / 'db.sqlite3')),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': DATABASE_ENGINE,
            'NAME': os.getenv('DATABASE_NAME', 'workbench'),
            'USER': os.getenv('DATABASE_USER', ''),
            'PASSWORD': os.getenv('DATABASE_PASSWORD', ''),
            'HOST': os.getenv('DATABASE_HOST', 'localhost'),
            'PORT': os.getenv('DATABASE_PORT', ''),
        }
    }

AUTH_USER_MODEL = 'accounts.User'

AUTH_PASSWORD_VALIDATORS = []

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
MEDIA_URL = '/uploads/'
MEDIA_ROOT = os.getenv('MEDIA_ROOT', str(BASE_DIR / 'uploads'))

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Django REST framework
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'accounts.authentication.WorkbenchSessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
        'rest_framework.parsers.FormParser',
        'rest_framework.parsers.MultiPartParser',
    ],
    'EXCEPTION_HANDLER': 'backend.exceptions.workbench_exception_handler',
    'TEST_REQUEST_DEFAULT_FORMAT': 'json',
}

# Workbench behaviour
WORKBENCH_BASE_URL = os.getenv('WORKBENCH_BASE_URL', 'http://localhost:3000')
WORKBENCH_SESSION_COOKIE = 'wb_session'
WORKBENCH_ACTIVE_ORG_COOKIE = 'wb_active_org'
WORKBENCH_ORG_HEADER = 'X-Workbench-Org-Id'
WORKBENCH_SESSION_DAYS = int(os.getenv('WORKBENCH_SESSION_DAYS', '7'))
WORKBENCH_MAGIC_LINK_HOURS = int(os.getenv('WORKBENCH_MAGIC_LINK_HOURS', '24'))
WORKBENCH_COOKIE_SECURE = _env_bool('WORKBENCH_COOKIE_SECURE', not DEBUG)

# Billing defaults
BILLING_TRIAL_DAYS = int(os.getenv('BILLING_TRIAL_DAYS', '14'))
BILLING_PERIOD_DAYS = int(os.getenv('BILLING_PERIOD_DAYS', '30'))
BILLING_DEFAULT_SEATS = int(os.getenv('BILLING_DEFAULT_SEATS', '3'))

# AI assistant (OpenAI-compatible chat completions endpoint)
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', '')
OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')
OPENAI_BASE_URL = os.getenv('OPENAI_BASE_URL', 'https://api.openai.com/v1')
OPENAI_TIMEOUT_SECONDS = int(os.getenv('OPENAI_TIMEOUT_SECONDS', '30'))

# Celery
CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/1')
CELERY_TASK_ALWAYS_EAGER = _env_bool('CELERY_TASK_ALWAYS_EAGER', False)

# Channels: redis in deployments, in-memory for development and tests
REDIS_URL = os.getenv('REDIS_URL')
if REDIS_URL:
    CHANNEL_LAYERS = {
        'default': {
            'BACKEND': 'channels_redis.core.RedisChannelLayer',
            'CONFIG': {'hosts': [REDIS_URL]},
        }
    }
else:
    CHANNEL_LAYERS = {
        'default': {'BACKEND': 'channels.layers.InMemoryChannelLayer'},
    }

LOG_LEVEL = os.getenv('DJANGO_LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {'handlers': ['console'], 'level': 'WARNING', 'propagate': False},
        'billing': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'audit': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'accounts': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'organizations': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'projects': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'documents': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'taskboard': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'comments': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'notifications': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'assets': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'ai_agent': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
    },
}
