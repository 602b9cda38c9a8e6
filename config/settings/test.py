"""Test settings.

In-memory database and cache, Celery tasks run eagerly, PayMongo keys
set so the real (mocked) code paths run instead of the stub.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'
ENCRYPTION_KEY = 'test-encryption-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

SITE_URL = 'https://rentals.test'
BOOKING_API_BASE_URL = 'https://api.rentals.test'
RESERVATION_API_BASE_URL = 'https://reservations.test'
REDIS_URL = 'redis://localhost:6379/15'

PAYMONGO_SECRET_KEY = 'sk_test_123'
PAYMONGO_WEBHOOK_SECRET = 'whsk_test_123'

PAYMENT_WAITING_TIMEOUT = None

LOGGING['root']['level'] = 'CRITICAL'  # noqa: F405
LOGGING['handlers']['console']['level'] = 'CRITICAL'  # noqa: F405
