from celery import current_task
from leavetest.core.celery_app import celery_app
from leavetest.core.cache import cache
from leavetest.core.config import settings
from leavetest.utils.timezone import get_local_now
import asyncio
import logging

logger = logging.getLogger(__name__)

MAX_STORED_NOTIFICATIONS = 10


@celery_app.task(bind=True, name="notify_test_result")
def notify_test_result(self, student_id: int, leave_id: int, attempt_id: int, percentage: float, result: str, status: str):
    """Task to deliver the qualification test outcome to the student"""
    try:
        current_task.update_state(
            state='PROGRESS',
            meta={'current': 0, 'total': 1, 'status': 'Storing notification...'}
        )

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        try:
            return loop.run_until_complete(_store_result_notification(
                student_id, leave_id, attempt_id, percentage, result, status
            ))
        finally:
            loop.close()

    except Exception as exc:
        current_task.update_state(
            state='FAILURE',
            meta={'error': str(exc), 'student_id': student_id, 'attempt_id': attempt_id}
        )
        raise exc


async def _store_result_notification(student_id: int, leave_id: int, attempt_id: int, percentage: float, result: str, status: str):
    notification = {
        'type': 'test_result',
        'data': {
            'leave_id': leave_id,
            'attempt_id': attempt_id,
            'percentage': round(percentage, 2),
            'result': result,
            'status': status,
        },
        'timestamp': get_local_now().isoformat(),
        'read': False,
    }

    cache_key = f"user_notifications:{student_id}"
    notifications = await cache.aget(cache_key) or []
    notifications.append(notification)
    stored = await cache.aset(cache_key, notifications[-MAX_STORED_NOTIFICATIONS:], ttl=settings.notification_ttl)

    logger.info(f"Result notification for attempt {attempt_id} ({result}) stored for student {student_id}")
    return {'student_id': student_id, 'attempt_id': attempt_id, 'stored': stored}


def dispatch_result_notification(**payload):
    """Queue the result notification. Broker failures are logged, never raised."""
    if not settings.notifications_enabled:
        return None
    try:
        return notify_test_result.delay(**payload)
    except Exception as e:
        logger.error(f"Failed to queue result notification for attempt {payload.get('attempt_id')}: {e}")
        return None
