"""
Inventory — Celery Tasks

Periodic tasks for batch lifecycle automation.

@file inventory/tasks.py
"""

import logging

from celery import shared_task

logger = logging.getLogger('petpos')


@shared_task(name='inventory.write_off_expired_batches')
def write_off_expired_batches_task():
    """
    Daily task: write off the remaining quantity of every expired batch.
    Registered with Celery Beat to run once per day after midnight.
    """
    from .services import StockLedger

    count = StockLedger.write_off_expired()
    logger.info('write_off_expired_batches_task completed: %d batches written off.', count)
    return {'written_off_count': count}
