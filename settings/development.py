# settings/development.py
"""
Development settings.
"""
from .base import *

# Debug settings
DEBUG = True
ALLOWED_HOSTS = ['localhost', '127.0.0.1', '0.0.0.0', '.ngrok-free.app']

INTERNAL_IPS = [
    '127.0.0.1',
    'localhost',
]

DATABASES['default'].update({
    'ATOMIC_REQUESTS': True,
})

# Logging: also write to files under logs/
(BASE_DIR / 'logs').mkdir(exist_ok=True)

LOGGING['handlers']['file'] = {
    'level': 'DEBUG',
    'class': 'logging.FileHandler',
    'filename': BASE_DIR / 'logs' / 'development.log',
    'formatter': 'verbose',
}

LOGGING['handlers']['billing_file'] = {
    'level': 'DEBUG',
    'class': 'logging.FileHandler',
    'filename': BASE_DIR / 'logs' / 'billing_development.log',
    'formatter': 'verbose',
}

LOGGING['loggers']['django']['handlers'] = ['console', 'file']

LOGGING['loggers']['billing'] = {
    'handlers': ['console', 'billing_file'],
    'level': 'DEBUG',
    'propagate': False,
}

for name in ('core', 'communications', 'enrollment', 'approvals'):
    LOGGING['loggers'][name] = {
        'handlers': ['console', 'file'],
        'level': 'DEBUG',
        'propagate': False,
    }

# Disable security settings for development
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False
SECURE_SSL_REDIRECT = False

# Allow all origins in development
CORS_ALLOW_ALL_ORIGINS = True

# Allauth development settings
ACCOUNT_EMAIL_VERIFICATION = 'none'
