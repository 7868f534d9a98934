"""
Background Tasks

Request handlers queue work through ``enqueue`` so that a broker outage
never fails the request that triggered it.
"""
from celery import Task

from notevault.core.logging import get_logger

logger = get_logger(__name__)


def enqueue(task: Task, *args, **kwargs) -> bool:
    """Queue a Celery task; failures are logged and reported as False."""
    try:
        task.delay(*args, **kwargs)
        return True
    except Exception as e:
        logger.warning("Failed to queue background task", task=task.name, error=str(e))
        return False
