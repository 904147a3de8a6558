"""
Celery configuration for the policy rules batch workers.

Loaded by `celery_app.config_from_object("celeryconfig")` in app/tasks/__init__.py.
All broker/result-backend URLs come from environment variables,
defaulting to localhost for local dev.
"""

import os

from celery.schedules import crontab

# ═══════════════════════════════════════════════════════════
#  Broker & Result Backend
# ═══════════════════════════════════════════════════════════

broker_url = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
result_backend = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

# ═══════════════════════════════════════════════════════════
#  Serialization: JSON only
# ═══════════════════════════════════════════════════════════

task_serializer = "json"
result_serializer = "json"
accept_content = ["json"]

# ═══════════════════════════════════════════════════════════
#  Timezone: beat fires on the business calendar
# ═══════════════════════════════════════════════════════════

timezone = os.getenv("BUSINESS_TIMEZONE", "UTC")
enable_utc = True

# ═══════════════════════════════════════════════════════════
#  Task Execution
# ═══════════════════════════════════════════════════════════

# Acknowledge after completion; a lost worker re-queues the run,
# and the jobs skip whatever the first attempt already committed
task_acks_late = True
task_reject_on_worker_lost = True

worker_prefetch_multiplier = 1

task_soft_time_limit = 3600   # 60 min: raises SoftTimeLimitExceeded
task_time_limit = 3660        # 61 min: hard kill

# ═══════════════════════════════════════════════════════════
#  Retry Policy
# ═══════════════════════════════════════════════════════════

task_default_retry_delay = 60
task_max_retries = 3

# ═══════════════════════════════════════════════════════════
#  Result Expiry: auto-clean after 24h
# ═══════════════════════════════════════════════════════════

result_expires = 86400

# ═══════════════════════════════════════════════════════════
#  Worker Settings
# ═══════════════════════════════════════════════════════════

worker_max_tasks_per_child = 50

worker_send_task_events = False
task_send_sent_event = False

# ═══════════════════════════════════════════════════════════
#  Task Routes
# ═══════════════════════════════════════════════════════════
#   celery -A app.tasks worker -Q batch
#   celery -A app.tasks beat

task_routes = {
    "app.tasks.batch_tasks.*": {"queue": "batch"},
}

task_default_queue = "default"

# ═══════════════════════════════════════════════════════════
#  Beat Schedule (daily batch jobs)
# ═══════════════════════════════════════════════════════════

beat_schedule = {
    "daily-policy-renewal": {
        "task": "app.tasks.batch_tasks.run_renewals",
        "schedule": crontab(minute=0, hour=int(os.getenv("RENEWAL_CRON_HOUR", "1"))),
    },
    "daily-recurring-billing": {
        "task": "app.tasks.batch_tasks.run_recurring_billing",
        "schedule": crontab(minute=0, hour=int(os.getenv("BILLING_CRON_HOUR", "2"))),
    },
}
