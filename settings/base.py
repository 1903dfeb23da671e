# settings/base.py
"""
Base settings for the academy backend.
"""

import os
from pathlib import Path

from django.core.management.utils import get_random_secret_key

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', get_random_secret_key())

DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'

# Application definition
INSTALLED_APPS = [
    'django.contrib.sites',  # Required by allauth
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third party apps
    'allauth',
    'allauth.account',
    'corsheaders',
    'rest_framework',

    # Local apps
    'core',
    'users',
    'players',
    'enrollment',
    'billing',
    'approvals',
    'tournaments',
    'reports',
    'communications',
    'shared',
]

SITE_ID = 1

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',

    # Must come after AuthenticationMiddleware
    'core.middleware.AcademyMiddleware',

    # Allauth (must be after authentication middleware)
    'allauth.account.middleware.AccountMiddleware',

    # Security and logging (end of chain)
    'core.middleware.SecurityHeadersMiddleware',
    'core.middleware.RequestLoggingMiddleware',
    'core.middleware.ExceptionHandlingMiddleware',
]

AUTHENTICATION_BACKENDS = [
    'django.contrib.auth.backends.ModelBackend',
    'allauth.account.auth_backends.AuthenticationBackend',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',  # Required by allauth
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'

# Database
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]

# Internationalization
LANGUAGE_CODE = 'es'
TIME_ZONE = 'America/Panama'
USE_I18N = True
USE_TZ = True

# Static files
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

MEDIA_URL = '/media/'
MEDIA_ROOT = BASE_DIR / 'media'

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Custom user model
AUTH_USER_MODEL = 'users.User'

# Allauth Configuration
ACCOUNT_LOGIN_METHODS = {'email'}
ACCOUNT_SIGNUP_FIELDS = ['email*', 'password1*', 'password2*']
ACCOUNT_EMAIL_VERIFICATION = 'optional'
ACCOUNT_USER_MODEL_USERNAME_FIELD = None
ACCOUNT_SESSION_REMEMBER = True
ACCOUNT_ADAPTER = 'users.adapters.AcademyAccountAdapter'
ACCOUNT_ALLOW_REGISTRATION = os.getenv('ACCOUNT_ALLOW_REGISTRATION', 'False').lower() == 'true'

# Login URLs
LOGIN_URL = '/accounts/login/'
LOGIN_REDIRECT_URL = '/'
LOGOUT_REDIRECT_URL = '/'

# REST Framework (serializers validate request bodies in the JSON views)
REST_FRAMEWORK = {
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'COERCE_DECIMAL_TO_STRING': False,
}

# CORS: the enrollment form is posted from the public site
CORS_ALLOWED_ORIGINS = [
    origin.strip() for origin in os.getenv('CORS_ALLOWED_ORIGINS', '').split(',') if origin.strip()
]
CORS_URLS_REGEX = r'^/(enrollment|tournaments|billing)/.*$'

ALLOWED_HOSTS = [h.strip() for h in os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h.strip()]

# Public URL of the site, used to build gateway return URLs
APP_BASE_URL = os.getenv('APP_BASE_URL', 'http://localhost:8000')

# Yappy
YAPPY_MERCHANT_ID = os.getenv('YAPPY_MERCHANT_ID', '')
YAPPY_SECRET_KEY = os.getenv('YAPPY_SECRET_KEY', '')
YAPPY_DOMAIN_URL = os.getenv('YAPPY_DOMAIN_URL', '')
YAPPY_ENVIRONMENT = os.getenv('YAPPY_ENVIRONMENT', 'testing')

# Paguelo Fácil
PAGUELOFACIL_ACCESS_TOKEN = os.getenv('PAGUELOFACIL_ACCESS_TOKEN', '')
PAGUELOFACIL_CCLW = os.getenv('PAGUELOFACIL_CCLW', '')
PAGUELOFACIL_SANDBOX = os.getenv('PAGUELOFACIL_SANDBOX', 'True').lower() == 'true'

# Brevo (transactional email)
BREVO_API_KEY = os.getenv('BREVO_API_KEY', '')
BREVO_FROM_EMAIL = os.getenv('BREVO_FROM_EMAIL', '')
BREVO_FROM_NAME = os.getenv('BREVO_FROM_NAME', 'Academia')
BREVO_WEBHOOK_SECRET = os.getenv('BREVO_WEBHOOK_SECRET', '')
EMAIL_DAILY_LIMIT = int(os.getenv('EMAIL_DAILY_LIMIT', 300))
EMAIL_LOGO_URL = os.getenv('EMAIL_LOGO_URL', '')

# Bearer token for scheduled jobs (email queue processing)
CRON_SECRET = os.getenv('CRON_SECRET', '')

# Cache configuration (idempotency locks, enrollment data)
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'academy-backend',
    }
}

# Session configuration
SESSION_ENGINE = 'django.contrib.sessions.backends.db'
SESSION_COOKIE_AGE = 1209600  # 2 weeks in seconds
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_NAME = 'academy_session'

# Security settings (base - will be overridden in production)
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = 'DENY'

# Logging configuration
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'level': 'DEBUG',
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'billing': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'communications': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'core': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
