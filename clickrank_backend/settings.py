"""
Django settings for clickrank_backend project.
"""

from pathlib import Path
import os
from dotenv import load_dotenv

# Load .env from the project root so it works when run from the repo root or from clickrank_backend
_project_root = Path(__file__).resolve().parent.parent
load_dotenv(_project_root / ".env")

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = _project_root


# Quick-start development settings - unsuitable for production
# See https://docs.djangoproject.com/en/5.0/howto/deployment/checklist/

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-change-this-in-production')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DEBUG', 'True').lower() in ('true', '1', 'yes')

_default_hosts = 'localhost,127.0.0.1,testserver'
_app_domain = os.getenv('APP_DOMAIN', '')
if _app_domain:
    _default_hosts = _default_hosts + ',' + _app_domain
ALLOWED_HOSTS = [h.strip() for h in os.getenv('ALLOWED_HOSTS', _default_hosts).split(',') if h.strip()]


# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'content',
    'seo',
    'integrations',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'clickrank_backend.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'clickrank_backend.wsgi.application'


# Database
# https://docs.djangoproject.com/en/5.0/ref/settings/#databases
# DATABASE_URL wins when set; DB_NAME selects PostgreSQL; otherwise a local SQLite file.

import dj_database_url

DATABASES = {}
if os.getenv('DATABASE_URL'):
    DATABASES['default'] = dj_database_url.config(
        conn_max_age=600,
        conn_health_checks=True,
    )
elif os.getenv('DB_NAME'):
    DATABASES['default'] = {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.getenv('DB_NAME'),
        'USER': os.getenv('DB_USER', ''),
        'PASSWORD': os.getenv('DB_PASSWORD', ''),
        'HOST': os.getenv('DB_HOST', 'localhost'),
        'PORT': os.getenv('DB_PORT', '5432'),
        'OPTIONS': {'sslmode': 'require'} if os.getenv('DB_SSL') else {},
    }
else:
    DATABASES['default'] = {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }

# Rate-limit counters live here; point at Redis/Memcached in multi-process deployments.
CACHES = {
    'default': {
        'BACKEND': os.getenv('CACHE_BACKEND', 'django.core.cache.backends.locmem.LocMemCache'),
        'LOCATION': os.getenv('CACHE_LOCATION', 'clickrank'),
    }
}

# Password validation
# https://docs.djangoproject.com/en/5.0/ref/settings/#auth-password-validators

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
# https://docs.djangoproject.com/en/5.0/topics/i18n/

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True


# Static files (CSS, JavaScript, Images)
# https://docs.djangoproject.com/en/5.0/howto/static-files/
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage',
    },
}

# Default primary key field type
# https://docs.djangoproject.com/en/5.0/ref/settings/#default-auto-field

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# REST Framework configuration
# The webhook authenticates with the ClickRank API key in its own permission classes.
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.AllowAny',
    ),
    'DEFAULT_RENDERER_CLASSES': (
        'rest_framework.renderers.JSONRenderer',
    ),
    'DEFAULT_PARSER_CLASSES': (
        'rest_framework.parsers.JSONParser',
    ),
    'EXCEPTION_HANDLER': 'integrations.exceptions.clickrank_exception_handler',
    'TEST_REQUEST_DEFAULT_FORMAT': 'json',
}

# ClickRank integration
CLICKRANK = {
    # Public URL of this site; its path is the home path used for homepage detection.
    'SITE_URL': os.getenv('CLICKRANK_SITE_URL', 'http://localhost:8000/'),
    'API_BASE_URL': os.getenv('CLICKRANK_API_BASE_URL', 'https://app.clickrank.ai/api/v2/'),
    'REQUEST_TIMEOUT': int(os.getenv('CLICKRANK_REQUEST_TIMEOUT', '30')),
    'SYNC_TIMEOUT': int(os.getenv('CLICKRANK_SYNC_TIMEOUT', '45')),
    'RETRY_DELAY': float(os.getenv('CLICKRANK_RETRY_DELAY', '2')),
    'RATE_LIMIT_ENABLED': os.getenv('CLICKRANK_RATE_LIMIT_ENABLED', 'True').lower() in ('true', '1', 'yes'),
    'RATE_LIMIT_REQUESTS': int(os.getenv('CLICKRANK_RATE_LIMIT_REQUESTS', '1000')),
    'RATE_LIMIT_WINDOW': int(os.getenv('CLICKRANK_RATE_LIMIT_WINDOW', '3600')),
    # none | yoast | rank_math | aioseo
    'SEO_COMPAT_MODE': os.getenv('CLICKRANK_SEO_COMPAT_MODE', 'none'),
    'PUBLIC_TAXONOMIES': [
        t.strip() for t in os.getenv('CLICKRANK_PUBLIC_TAXONOMIES', 'category,post_tag').split(',') if t.strip()
    ],
    'RETENTION_DAYS': int(os.getenv('CLICKRANK_RETENTION_DAYS', '90')),
    'MAX_LOG_ENTRIES': int(os.getenv('CLICKRANK_MAX_LOG_ENTRIES', '1000')),
}

# Logging: console plus the clickrank_logs table for the app loggers
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '[{asctime}] {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
        'database': {
            'class': 'integrations.logging_handlers.DatabaseLogHandler',
            'level': 'DEBUG' if DEBUG else 'INFO',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'seo': {
            'handlers': ['database'],
            'level': 'DEBUG' if DEBUG else 'INFO',
        },
        'integrations': {
            'handlers': ['database'],
            'level': 'DEBUG' if DEBUG else 'INFO',
        },
        'content': {
            'handlers': ['database'],
            'level': 'INFO',
        },
    },
}
