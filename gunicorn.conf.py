from __future__ import annotations

import os

wsgi_app = "config.wsgi:application"
chdir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "clubvote_app")
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "3"))
# Vote casting holds row locks briefly; a stuck worker should not pin them.
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))

accesslog = "-"
errorlog = "-"
capture_output = True
loglevel = os.environ.get("GUNICORN_LOG_LEVEL", "info")
forwarded_allow_ips = "*"
access_log_format = '%({x-forwarded-for}i)s %(t)s "%(r)s" %(s)s %(b)s %(L)ss'

logconfig_dict = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "probe_requests": {
            "()": "config.logging_filters.HealthEndpointFilter",
        },
    },
    "formatters": {
        "access": {"format": "%(message)s"},
        "error": {
            "format": "[{asctime}] {levelname} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "access_stdout": {"class": "logging.StreamHandler", "formatter": "access"},
        "error_stderr": {"class": "logging.StreamHandler", "formatter": "error"},
    },
    "loggers": {
        "gunicorn.access": {
            "handlers": ["access_stdout"],
            "level": "INFO",
            "filters": ["probe_requests"],
            "propagate": False,
        },
        "gunicorn.error": {
            "handlers": ["error_stderr"],
            "level": "INFO",
            "propagate": False,
        },
    },
    "root": {"handlers": ["error_stderr"], "level": "INFO"},
}
