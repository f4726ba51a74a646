"""
Settings for the test suite: in-memory SQLite, quiet logging.

Usage:
    python manage.py test --settings=kitapos.settings.test
    pytest
"""

from .base import *

DEPLOYMENT_MODE = 'test'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'kitapos-test',
    }
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

STOCK_CLAMP_MANUAL_DECREASE = True

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'loggers': {
        'stock': {'handlers': ['null'], 'level': 'DEBUG', 'propagate': False},
        'main': {'handlers': ['null'], 'level': 'DEBUG', 'propagate': False},
    },
}
