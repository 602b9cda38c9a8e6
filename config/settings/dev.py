"""Development settings for the car rental booking backend.

This module extends the base settings with development specific
configuration: debug on (PayMongo runs in stub mode), all hosts allowed
and an in-process cache so Redis is only needed for the realtime channel.
Do not use these settings in production!
"""

from .base import *  # noqa: F401,F403

# Enable debug mode for development
DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ['*']

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}
