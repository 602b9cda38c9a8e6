"""Base settings for all environments.

This configuration file defines the common settings of the car rental
booking backend: the payment endpoints (PayMongo GCash), the realtime
channel (Redis pub/sub) and the Celery worker relaying payment verdicts.
Environment-specific overrides live in `dev.py`, `prod.py` and `test.py`.
"""

from pathlib import Path

import structlog
from dotenv import load_dotenv

from config.env_helper import get_env

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent

load_dotenv(BASE_DIR / '.env')

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = get_env('DJANGO_SECRET_KEY', 'replace-me-in-production')

# Encryption key for persisted billing details (payment retry payload)
# Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
ENCRYPTION_KEY = get_env('ENCRYPTION_KEY', 'dev-encryption-key-replace-in-production')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = False

ALLOWED_HOSTS: list[str] = get_env('DJANGO_ALLOWED_HOSTS', '*').split(',')

# Application definition

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    # Third‑party apps
    'rest_framework',
    'corsheaders',
    # Domain apps
    'apps.bookings',
    'apps.payments',
    'apps.realtime',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

WSGI_APPLICATION = 'config.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': get_env('DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': get_env('DB_NAME', BASE_DIR / 'db.sqlite3'),
        'USER': get_env('DB_USER', ''),
        'PASSWORD': get_env('DB_PASSWORD', ''),
        'HOST': get_env('DB_HOST', ''),
        'PORT': get_env('DB_PORT', ''),
    }
}

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'Asia/Manila'

USE_I18N = True

USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Public URL of the web app; the gateway sends customers back here
SITE_URL = get_env('SITE_URL', 'http://localhost:3000')

# Django Rest Framework
# Guest checkout: no authentication on the payment endpoints
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'UNAUTHENTICATED_USER': None,
}

# Redis (realtime channel + cache)
REDIS_URL = get_env('REDIS_URL', 'redis://localhost:6379/1')

CACHES = {
    'default': {
        'BACKEND': 'django_redis.cache.RedisCache',
        'LOCATION': REDIS_URL,
        'OPTIONS': {
            'CLIENT_CLASS': 'django_redis.client.DefaultClient',
        },
    }
}

# Realtime channel
REALTIME_COMMAND_CHANNEL = get_env('REALTIME_COMMAND_CHANNEL', 'realtime:commands')
REALTIME_BROADCAST_ROOM = get_env('REALTIME_BROADCAST_ROOM', 'broadcast')

# Booking lifecycle
RESERVATION_API_BASE_URL = get_env('RESERVATION_API_BASE_URL', 'http://localhost:5000')
BOOKING_API_BASE_URL = get_env('BOOKING_API_BASE_URL', 'http://localhost:8000')
HOLD_WARNING_DEFAULT_SECONDS = int(get_env('HOLD_WARNING_DEFAULT_SECONDS', '30'))
BOOKING_SESSION_TTL = int(get_env('BOOKING_SESSION_TTL', str(60 * 60 * 24 * 7)))

# Payments
PAYMONGO_SECRET_KEY = get_env('PAYMONGO_SECRET_KEY', '')
PAYMONGO_WEBHOOK_SECRET = get_env('PAYMONGO_WEBHOOK_SECRET', '')
PAYMONGO_API_BASE_URL = get_env('PAYMONGO_API_BASE_URL', 'https://api.paymongo.com/v1')
DOWN_PAYMENT_RATE = get_env('DOWN_PAYMENT_RATE', '0.20')
# Seconds on the waiting page before falling back to status polling; empty disables
PAYMENT_WAITING_TIMEOUT = float(get_env('PAYMENT_WAITING_TIMEOUT', '120') or 0) or None
PAYMENT_STATUS_POLL_INTERVAL = float(get_env('PAYMENT_STATUS_POLL_INTERVAL', '5'))
PAYMENT_STATUS_TTL = int(get_env('PAYMENT_STATUS_TTL', str(60 * 60 * 24)))

# Celery configuration (Broker and Result backend handled in environment)
CELERY_BROKER_URL = get_env('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = get_env('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0')
CELERY_TASK_SERIALIZER = 'json'
CELERY_ACCEPT_CONTENT = ['json']

# CORS settings
CORS_ALLOWED_ORIGINS = get_env(
    'CORS_ALLOWED_ORIGINS',
    'http://localhost:3000,http://127.0.0.1:3000'
).split(',')
CORS_ALLOW_CREDENTIALS = True

# Logging: JSON lines through structlog
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

LOG_LEVEL = get_env('LOG_LEVEL', 'INFO')

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "structlog.stdlib.ProcessorFormatter",
            "processor": structlog.processors.JSONRenderer(),
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "level": LOG_LEVEL,
        }
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "apps": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "shared": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "apps.payments": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
