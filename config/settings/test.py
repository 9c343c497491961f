"""
PetPOS — Test Settings

SQLite unless DATABASE_URL points elsewhere (the threaded concurrency
tests only run against PostgreSQL). Celery tasks run eagerly.

@file config/settings/test.py
"""

from .base import *  # noqa: F401, F403

DATABASES = {
    'default': env.db('DATABASE_URL', default='sqlite:///' + str(BASE_DIR / 'test.sqlite3')),  # noqa: F405
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

LOGGING['loggers']['petpos']['level'] = 'WARNING'  # noqa: F405
