"""
Minimal Django settings for running the Pharmstock test suite.

The test database is a file so threads get their own connections, and
every transaction starts with BEGIN IMMEDIATE so SQLite writers queue up
on the database lock the way row locks queue them elsewhere.
"""

import os
import tempfile

SECRET_KEY = 'pharmstock-tests'

DEBUG = False

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'pharmstock',
]

MIDDLEWARE = [
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.path.join(tempfile.gettempdir(), 'pharmstock.sqlite3'),
        'OPTIONS': {
            'transaction_mode': 'IMMEDIATE',
            'timeout': 20,
        },
        'TEST': {
            'NAME': os.path.join(tempfile.gettempdir(), 'test_pharmstock.sqlite3'),
        },
    }
}

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

ROOT_URLCONF = 'pharmstock.tests.urls'

USE_TZ = True
TIME_ZONE = 'UTC'
LANGUAGE_CODE = 'pt-br'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

PHARMSTOCK = {
    'RETRY_BACKOFF_MS': 0,
}
