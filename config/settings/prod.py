"""Production settings for the car rental booking backend.

This module extends the base settings with production specific
configuration. Secrets (Django, PayMongo, encryption) must come from
environment variables.
"""

from config.env_helper import get_env

from .base import *  # noqa: F401,F403

# Never run with debug enabled in production
DEBUG = False

SECRET_KEY = get_env('DJANGO_SECRET_KEY', required=True)
ENCRYPTION_KEY = get_env('ENCRYPTION_KEY', required=True)
PAYMONGO_SECRET_KEY = get_env('PAYMONGO_SECRET_KEY', required=True)
PAYMONGO_WEBHOOK_SECRET = get_env('PAYMONGO_WEBHOOK_SECRET', required=True)

# Allowed hosts should be defined explicitly via environment variable
ALLOWED_HOSTS = get_env('DJANGO_ALLOWED_HOSTS', '').split(',')

# Configure secure proxies and cookies
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
CSRF_COOKIE_SECURE = True
SESSION_COOKIE_SECURE = True
