"""
Django settings for DEV/PROD for the Terracotta cooperative ledger:
Postgres via DATABASE_URL, CSP (django-csp), WhiteNoise, optional Redis,
Celery beat for valuation refreshes, and optional Debug Toolbar.
"""

from __future__ import annotations
import os
import warnings
from pathlib import Path

import dj_database_url
import sentry_sdk
from celery.schedules import crontab
from csp.constants import NONCE
from dotenv import load_dotenv
from sentry_sdk.integrations.django import DjangoIntegration

# ────────────────────────────────────────────────────
# Paths & .env
# ────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")
ENV = os.getenv

def env_bool(key: str, default: str = "false") -> bool:
    return ENV(key, default).lower() in {"1", "true", "yes", "on"}

# ────────────────────────────────────────────────────
# Core flags & secret
# ────────────────────────────────────────────────────
DEBUG: bool = env_bool("DEBUG")

SECRET_KEY = ENV("SECRET_KEY")
if not SECRET_KEY:
    raise RuntimeError("SECRET_KEY environment variable is required")

if not DEBUG:
    warnings.filterwarnings("ignore")

# ────────────────────────────────────────────────────
# Sentry (error monitoring)
# ────────────────────────────────────────────────────
SENTRY_DSN = ENV("SENTRY_DSN", "")
if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration()],
        traces_sample_rate=float(ENV("SENTRY_TRACES_SAMPLE_RATE", "0.0")),
        sample_rate=float(ENV("SENTRY_SAMPLE_RATE", "0.1")),
        send_default_pii=False,
    )

# ────────────────────────────────────────────────────
# Hosts & CSRF trusted origins
# ────────────────────────────────────────────────────
ALLOWED_HOSTS = ["localhost", "127.0.0.1"]

CSRF_TRUSTED_ORIGINS = [
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]

def _extend_from_env_list(env_key: str, target_list: list[str], require_scheme: bool = False) -> None:
    raw = ENV(env_key, "") or ""
    if not raw:
        return
    for item in [x.strip() for x in raw.split(",") if x.strip()]:
        if require_scheme and not (item.startswith("http://") or item.startswith("https://")):
            continue
        target_list.append(item)

_extend_from_env_list("EXTRA_ALLOWED_HOSTS", ALLOWED_HOSTS, require_scheme=False)
_extend_from_env_list("EXTRA_CSRF_TRUSTED_ORIGINS", CSRF_TRUSTED_ORIGINS, require_scheme=True)

# ────────────────────────────────────────────────────
# Apps & Middleware
# ────────────────────────────────────────────────────
INSTALLED_APPS = [
    # Django
    "django.contrib.admin", "django.contrib.auth", "django.contrib.contenttypes",
    "django.contrib.sessions", "django.contrib.messages", "django.contrib.staticfiles",
    # Third-party
    "whitenoise.runserver_nostatic",
    "csp",
    # Project
    "ledger",
]

SHOW_DEBUG_TOOLBAR = env_bool("SHOW_DEBUG_TOOLBAR")
if DEBUG and SHOW_DEBUG_TOOLBAR:
    INSTALLED_APPS += ["debug_toolbar"]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "csp.middleware.CSPMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "ledger.middleware.log_filter.QuietPollingMiddleware",
]

if DEBUG and SHOW_DEBUG_TOOLBAR:
    MIDDLEWARE.insert(0, "debug_toolbar.middleware.DebugToolbarMiddleware")
    INTERNAL_IPS = ["127.0.0.1"]

ROOT_URLCONF = "terracotta_site.urls"
WSGI_APPLICATION = "terracotta_site.wsgi.application"

# ────────────────────────────────────────────────────
# Templates (admin only)
# ────────────────────────────────────────────────────
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

# ────────────────────────────────────────────────────
# Database (DATABASE_URL preferred; fallback SQLite)
# ────────────────────────────────────────────────────
DB_URL = ENV("DATABASE_URL")
if not DB_URL and ENV("DB_HOST"):
    DB_URL = (
        f"postgresql://{ENV('DB_USER')}:{ENV('DB_PASSWORD')}"
        f"@{ENV('DB_HOST')}:{ENV('DB_PORT','5432')}/{ENV('DB_NAME')}"
    )

if DB_URL:
    DATABASES = {
        "default": dj_database_url.parse(
            DB_URL,
            conn_max_age=int(ENV("DB_CONN_MAX_AGE", "600")),
            ssl_require=not DEBUG,
        )
    }
else:
    DATABASES = {
        "default": {"ENGINE": "django.db.backends.sqlite3", "NAME": BASE_DIR / "db.sqlite3"}
    }

# ────────────────────────────────────────────────────
# Cache (optional Redis)
# ────────────────────────────────────────────────────
if ENV("REDIS_URL"):
    CACHES = {
        "default": {
            "BACKEND": "django_redis.cache.RedisCache",
            "LOCATION": ENV("REDIS_URL"),
            "OPTIONS": {"CLIENT_CLASS": "django_redis.client.DefaultClient"},
            "KEY_PREFIX": "terracotta",
            "TIMEOUT": 300,
        }
    }
else:
    CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache", "LOCATION": "terracotta-cache"}}

# ────────────────────────────────────────────────────
# I18N
# ────────────────────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = ENV("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

# ────────────────────────────────────────────────────
# Static (WhiteNoise)
# ────────────────────────────────────────────────────
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {
        "BACKEND": (
            "django.contrib.staticfiles.storage.StaticFilesStorage" if DEBUG
            else "whitenoise.storage.CompressedManifestStaticFilesStorage"
        )
    },
}
WHITENOISE_AUTOREFRESH = DEBUG

# ────────────────────────────────────────────────────
# Auth / misc
# ────────────────────────────────────────────────────
LOGIN_URL = "/site-admin/login/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.Argon2PasswordHasher",
    "django.contrib.auth.hashers.PBKDF2PasswordHasher",
    "django.contrib.auth.hashers.PBKDF2SHA1PasswordHasher",
]
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator", "OPTIONS": {"min_length": 12}},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# ────────────────────────────────────────────────────
# Security profiles (DEV/PROD): HTTPS, Cookies/CSRF, and CSP
# ────────────────────────────────────────────────────
CONTENT_SECURITY_POLICY = {
    "DIRECTIVES": {
        "default-src": ("'self'",),
        "script-src": ("'self'", NONCE),
        "style-src": ("'self'", NONCE),
        "img-src": ("'self'", "data:"),
        "connect-src": ("'self'", "https://*.ingest.sentry.io"),
        "object-src": ("'none'",),
        "base-uri": ("'self'",),
    }
}

if not DEBUG:
    CONTENT_SECURITY_POLICY["DIRECTIVES"]["upgrade-insecure-requests"] = True

SESSION_COOKIE_SAMESITE = ENV("SESSION_COOKIE_SAMESITE", "Strict")
CSRF_COOKIE_SAMESITE = ENV("CSRF_COOKIE_SAMESITE", "Strict")

if DEBUG:
    # Dev: no forced HTTPS
    SECURE_SSL_REDIRECT = False
    SECURE_PROXY_SSL_HEADER = None
    SESSION_COOKIE_SECURE = False
    CSRF_COOKIE_SECURE = False
    SECURE_HSTS_SECONDS = 0
    CONTENT_SECURITY_POLICY["DIRECTIVES"].pop("upgrade-insecure-requests", None)
else:
    # Prod: enforce HTTPS and strong headers
    SECURE_SSL_REDIRECT = True
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
    SECURE_HSTS_SECONDS = 31536000
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_CONTENT_TYPE_NOSNIFF = True
    SECURE_REFERRER_POLICY = "strict-origin-when-cross-origin"
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True

# ────────────────────────────────────────────────────
# Logging (simple and sufficient)
# ────────────────────────────────────────────────────
LOG_LEVEL = ENV("LOG_LEVEL", "DEBUG" if DEBUG else "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "level": "DEBUG", "formatter": "simple"},
        "null": {"class": "logging.NullHandler"},
    },
    "root": {"handlers": ["console"] if DEBUG else ["null"], "level": LOG_LEVEL},
    "loggers": {
        "ledger": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "django.server": {
            "handlers": ["console"] if DEBUG else ["null"],
            "level": "WARNING",
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console"] if DEBUG else ["null"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}

# ────────────────────────────────────────────────────
# Valuation engine
# ────────────────────────────────────────────────────
TERRACOTTA_VALUATION = {
    # Leave non-member share purchases out of the price denominator
    "EXCLUDE_NON_MEMBER_SHARES": env_bool("VALUATION_EXCLUDE_NON_MEMBER_SHARES"),
    # Seconds a computed share price payload stays cached
    "CACHE_TIMEOUT": int(ENV("VALUATION_CACHE_TIMEOUT", "300")),
}

# Celery
CELERY_BROKER_URL = ENV("CELERY_BROKER_URL", "memory://")
CELERY_RESULT_BACKEND = ENV("CELERY_RESULT_BACKEND", "cache+memory://")
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_BEAT_SCHEDULE = {
    "recompute-valuations-nightly": {
        "task": "ledger.tasks.recompute_valuations_task",
        "schedule": crontab(hour=2, minute=15),
    },
}
