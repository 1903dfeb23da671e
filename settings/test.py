# settings/test.py
"""
Test settings: in-memory database and cache, no outbound credentials.
"""
from .base import *

DEBUG = False
SECRET_KEY = 'test-secret-key'
ALLOWED_HOSTS = ['testserver', 'localhost']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'academy-tests',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

APP_BASE_URL = 'http://testserver'
YAPPY_MERCHANT_ID = ''
YAPPY_SECRET_KEY = ''
PAGUELOFACIL_CCLW = ''
BREVO_API_KEY = ''
BREVO_WEBHOOK_SECRET = ''
CRON_SECRET = 'test-cron-secret'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'null': {'class': 'logging.NullHandler'},
    },
    'root': {
        'handlers': ['null'],
        'level': 'WARNING',
    },
}
