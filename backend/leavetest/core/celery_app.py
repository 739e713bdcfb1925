import logging

from celery import Celery

from leavetest.core.config import settings

logging.getLogger('celery.backends.redis').setLevel(logging.ERROR)

celery_app = Celery(
    "leavetest_worker",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        'leavetest.tasks.notifications',
        'leavetest.tasks.maintenance',
    ]
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    task_routes={
        'leavetest.tasks.notifications.*': {'queue': 'notifications'},
        'leavetest.tasks.maintenance.*': {'queue': 'maintenance'},
    },

    worker_prefetch_multiplier=1,
    task_acks_late=True,
    worker_max_tasks_per_child=1000,

    task_soft_time_limit=120,
    task_time_limit=300,

    result_expires=3600,
    broker_connection_retry_on_startup=True,

    task_default_retry_delay=60,
    task_max_retries=3,

    beat_schedule={
        'finalize-expired-attempts': {
            'task': 'finalize_expired_attempts',
            'schedule': settings.expiry_sweep_interval,
        },
    },
)

if __name__ == '__main__':
    celery_app.start()
