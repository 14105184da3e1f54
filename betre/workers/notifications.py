"""Celery tasks for push notifications."""
import logging

from betre.core.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task
def send_push_notification(user_id: str, title: str, body: str) -> None:
    # Placeholder: FCM/APNs delivery. The notification row is already stored.
    logger.info("Push to %s: %s - %s", user_id, title, body)
