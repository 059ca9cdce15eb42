"""
Django settings for the storefront operations backend.

All values are environment driven so the same module serves local
development, the test suite, traditional servers and AWS Lambda.
"""
import os
from pathlib import Path

from .database import get_database_config
from .storage import get_storage_settings

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-dev-key-change-me')
DEBUG = os.getenv('DEBUG', 'true').lower() == 'true'
ALLOWED_HOSTS = [h for h in os.getenv('ALLOWED_HOSTS', '*').split(',') if h]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    # Local apps
    'apps.core',
    'apps.identity',
    'apps.audit',
    'apps.site_settings',
    'apps.orders',
    'apps.notifications',
    'apps.payments',
    'apps.address',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'apps.identity.middleware.JWTAuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

ASGI_APPLICATION = 'config.asgi.application'

DATABASES = {
    'default': get_database_config(BASE_DIR),
}

AUTH_USER_MODEL = 'identity.User'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('TIME_ZONE', 'Asia/Dhaka')
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Storage (local filesystem or S3)
_storage = get_storage_settings(BASE_DIR)
STORAGES = _storage['STORAGES']
MEDIA_URL = _storage.get('MEDIA_URL', '/media/')
MEDIA_ROOT = _storage.get('MEDIA_ROOT', BASE_DIR / 'media')
USE_S3_STORAGE = _storage['USE_S3_STORAGE']
for _key, _value in _storage.get('AWS', {}).items():
    globals()[_key] = _value

# =============================================================================
# Background tasks
# =============================================================================
TASK_BACKEND = os.getenv('TASK_BACKEND', 'local')
TASK_QUEUE_URL = os.getenv('TASK_QUEUE_URL', '')
TASK_QUEUE_NAME = os.getenv('TASK_QUEUE_NAME', 'nextecom_tasks')
TASK_MAX_RETRIES = int(os.getenv('TASK_MAX_RETRIES', '3'))
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
CRON_SECRET = os.getenv('CRON_SECRET', '')

CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', REDIS_URL)
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', REDIS_URL)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE

# =============================================================================
# Outbound integrations
# =============================================================================
SITE_URL = os.getenv('SITE_URL', 'http://localhost:8000')
API_BASE_URL = os.getenv('API_BASE_URL', SITE_URL)
RESEND_API_KEY = os.getenv('RESEND_API_KEY', '')
RESEND_FROM_EMAIL = os.getenv('RESEND_FROM_EMAIL', 'noreply@example.com')
FROM_NAME = os.getenv('FROM_NAME', 'Storefront')
ADMIN_EMAIL = os.getenv('ADMIN_EMAIL', '')

NOMINATIM_URL = os.getenv('NOMINATIM_URL', 'https://nominatim.openstreetmap.org')
GEONAMES_URL = os.getenv('GEONAMES_URL', 'http://api.geonames.org')
GEONAMES_USERNAME = os.getenv('GEONAMES_USERNAME', '')
ADDRESS_LOOKUP_TIMEOUT = int(os.getenv('ADDRESS_LOOKUP_TIMEOUT', '10'))

SSLCOMMERZ_TIMEOUT = int(os.getenv('SSLCOMMERZ_TIMEOUT', '30'))
PAYMENT_AMOUNT_TOLERANCE = os.getenv('PAYMENT_AMOUNT_TOLERANCE', '1.00')
PAYMENT_CURRENCY = os.getenv('PAYMENT_CURRENCY', 'BDT')

# =============================================================================
# Logging
# =============================================================================
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
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
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'django.request': {
            'handlers': ['console'],
            'level': 'ERROR',
            'propagate': False,
        },
    },
}
