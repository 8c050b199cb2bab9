# celery_app.py  ─────────────────────────────────────────────────────────
from celery import Celery
from celery.schedules import crontab
import os
import logging
import logging.config

# ── 1.  Broker / backend  ────────────────────────────────────
CELERY_BROKER_URL     = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/0")

celery_app = Celery(
    "tokenscout_tasks",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# ── 2.  Core config, Beat & routing ─────────────────────────
celery_app.conf.update(
    task_serializer       ='json',
    result_serializer     ='json',
    accept_content        =['json'],
    timezone              ='UTC',
    enable_utc            =True,

    # --- RedBeat keeps the schedule in Redis so restarts don't double-fire
    beat_scheduler        ="redbeat.RedBeatScheduler",
    redbeat_redis_url     =CELERY_BROKER_URL,

    # --- a discovery batch is short; anything longer is stuck
    task_time_limit       =120,
    worker_max_tasks_per_child = 50,
)

# ── 3.  Beat schedule ───────────────────────────────────────
celery_app.conf.beat_schedule = {
    "discover-every-5-min": {
        "task": "discover_tokens",
        "schedule": crontab(minute="*/5"),
        "options": {"queue": "discovery"},
    },
    "refresh-every-15-min": {
        "task": "refresh_tokens",
        "schedule": crontab(minute="*/15"),
        "options": {"queue": "refresh"},
    },
}

# ── 4.  Logging ────────────────────────────────────────────
LOGGING_CONFIG = {
    "version": 1,
    "filters": {
        "shortname": {"()": "tokenscout.utils.shortname.ShortNameFilter"},
    },
    "formatters": {
        "custom": {
            "format": "[%(asctime)s] [%(levelname)s] %(shortname)s: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        }
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "custom", "filters": ["shortname"]},
    },
    "root": {"level": "INFO", "handlers": ["console"]},
}
celery_app.conf.worker_hijack_root_logger = False
logging.config.dictConfig(LOGGING_CONFIG)

# ── 5.  Task modules, imported so Celery registers them ────
import tokenscout.scheduler.dispatcher  # noqa: E402,F401
