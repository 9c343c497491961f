"""
PetPOS — Production Settings

Activated by:
  DJANGO_SETTINGS_MODULE=config.settings.production

Stock rows are serialized with SELECT ... FOR UPDATE, so only PostgreSQL
is accepted here.

@file config/settings/production.py
"""

from django.core.exceptions import ImproperlyConfigured

from .base import *  # noqa: F401, F403

DEBUG = False
SECRET_KEY = env('SECRET_KEY')  # noqa: F405

if DATABASES['default']['ENGINE'] != 'django.db.backends.postgresql':  # noqa: F405
    raise ImproperlyConfigured('PetPOS requires PostgreSQL in production (DATABASE_URL).')

DATABASES['default']['CONN_MAX_AGE'] = env.int('DB_CONN_MAX_AGE', default=600)  # noqa: F405
DATABASES['default']['CONN_HEALTH_CHECKS'] = True  # noqa: F405

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SECURE_SSL_REDIRECT = True
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True

LOGGING['loggers']['petpos']['level'] = 'INFO'  # noqa: F405
