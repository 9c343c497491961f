"""
PetPOS — Development Settings

Local overrides. Activated by:
  DJANGO_SETTINGS_MODULE=config.settings.development

Set CELERY_EAGER=1 to run the expiry write-off inline without a worker.

@file config/settings/development.py
"""

from .base import *  # noqa: F401, F403

DEBUG = True
ALLOWED_HOSTS = ['localhost', '127.0.0.1', '[::1]']

INSTALLED_APPS += ['django_extensions']  # noqa: F405

CELERY_TASK_ALWAYS_EAGER = env.bool('CELERY_EAGER', default=False)  # noqa: F405

LOGGING['loggers']['petpos']['level'] = 'DEBUG'  # noqa: F405
LOGGING['loggers']['django.db.backends'] = {  # noqa: F405
    'handlers': ['console'],
    'level': env('SQL_LOG_LEVEL', default='WARNING'),  # noqa: F405
    'propagate': False,
}
