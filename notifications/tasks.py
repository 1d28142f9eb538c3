# notifications/tasks.py
import logging

from celery import shared_task
from django.conf import settings

from .utils import purge_expired, cleanup_read

logger = logging.getLogger(__name__)


@shared_task
def purge_expired_notifications():
    customer_deleted, rider_deleted = purge_expired()
    if customer_deleted or rider_deleted:
        logger.info(
            "Purged %s expired customer and %s expired rider notifications",
            customer_deleted, rider_deleted
        )
    return customer_deleted + rider_deleted


@shared_task
def cleanup_read_notifications(days_old=None):
    days_old = days_old or getattr(settings, 'READ_NOTIFICATION_RETENTION_DAYS', 30)
    customer_deleted, rider_deleted = cleanup_read(days_old)
    logger.info(
        "Cleaned up %s customer and %s rider notifications read more than %s days ago",
        customer_deleted, rider_deleted, days_old
    )
    return customer_deleted + rider_deleted
