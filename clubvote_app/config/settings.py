import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = str(os.environ.get(name) or "").strip()
    if not raw:
        return default
    return int(raw)


DEBUG = _env_bool("DEBUG", default=True)

SECRET_KEY = os.environ.get("SECRET_KEY", "")
if not SECRET_KEY:
    if not DEBUG:
        raise RuntimeError("SECRET_KEY must be set when DEBUG is off")
    SECRET_KEY = "dev-only-insecure-secret-key-do-not-deploy"

ALLOWED_HOSTS = [h.strip() for h in os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "post_office",
    "voting",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {"context_processors": []},
    },
]

# PostgreSQL is the production ledger store. SQLite is only for local runs and
# the test suite; it has no row locks and no deferred unique constraints.
if os.environ.get("DATABASE_HOST"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "HOST": os.environ["DATABASE_HOST"],
            "PORT": os.environ.get("DATABASE_PORT", "5432"),
            "NAME": os.environ.get("DATABASE_NAME", "clubvote"),
            "USER": os.environ.get("DATABASE_USER", "clubvote"),
            "PASSWORD": os.environ.get("DATABASE_PASSWORD", ""),
            "CONN_MAX_AGE": _env_int("DATABASE_CONN_MAX_AGE", 60),
            "OPTIONS": {
                # Fail fast on row-lock waits; callers retry as a fresh attempt.
                "options": f"-c lock_timeout={_env_int('DATABASE_LOCK_TIMEOUT_MS', 5000)}",
            },
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }
    # Deferred ballot-number uniqueness is Postgres-only; the post-write density
    # check still runs everywhere.
    SILENCED_SYSTEM_CHECKS = ["models.W038"]

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "http://localhost:8000")

EMAIL_BACKEND = "post_office.EmailBackend"
DEFAULT_FROM_EMAIL = os.environ.get("DEFAULT_FROM_EMAIL", "elections@localhost")
POST_OFFICE = {
    "BACKENDS": {
        "default": os.environ.get("POST_OFFICE_DELIVERY_BACKEND", "django.core.mail.backends.smtp.EmailBackend"),
    },
    "DEFAULT_PRIORITY": "medium",
}

# Store-level conflicts (serialization failures, lock timeouts) are retried
# this many times before surfacing as a ConsistencyError.
VOTING_TRANSACTION_RETRIES = _env_int("VOTING_TRANSACTION_RETRIES", 1)
# Editable post_office EmailTemplate, seeded by voting migration 0002.
VOTING_RECEIPT_EMAIL_TEMPLATE_NAME = os.environ.get("VOTING_RECEIPT_EMAIL_TEMPLATE_NAME", "vote-receipt")

VOTING_RATE_LIMIT_RECEIPT_VERIFY_LIMIT = _env_int("VOTING_RATE_LIMIT_RECEIPT_VERIFY_LIMIT", 30)
VOTING_RATE_LIMIT_RECEIPT_VERIFY_WINDOW_SECONDS = _env_int("VOTING_RATE_LIMIT_RECEIPT_VERIFY_WINDOW_SECONDS", 60)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "health_endpoint": {
            "()": "config.logging_filters.HealthEndpointFilter",
        },
    },
    "formatters": {
        "default": {
            "format": "[{asctime}] {levelname} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "loggers": {
        "django.server": {
            "handlers": ["console"],
            "level": "INFO",
            "filters": ["health_endpoint"],
            "propagate": False,
        },
        "voting": {
            "handlers": ["console"],
            "level": os.environ.get("VOTING_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}

SENTRY_DSN = os.environ.get("SENTRY_DSN", "").strip()
if SENTRY_DSN:
    import logging

    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[
            DjangoIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=0.0,
        send_default_pii=False,
        send_client_reports=False,
        auto_session_tracking=False,
    )
