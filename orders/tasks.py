# orders/tasks.py
import logging

from celery import shared_task

from .services import ProposalService

logger = logging.getLogger(__name__)


@shared_task
def expire_stale_proposals():
    expired_count = ProposalService.expire_stale()
    if expired_count:
        logger.info("Expired %s stale change requests", expired_count)
    return expired_count
