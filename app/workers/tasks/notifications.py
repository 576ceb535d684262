from __future__ import annotations

import logging
from typing import Any

from app.services.notifications import notify_request_status_change
from app.workers.celery_app import celery_app

_LOG = logging.getLogger("app.notifications")


@celery_app.task(name="app.workers.tasks.notifications.deliver_status_notification", max_retries=0)
def deliver_status_notification(message: dict[str, Any]):
    return notify_request_status_change(
        request_id=str(message.get("request_id") or ""),
        type_name=str(message.get("type_name") or ""),
        status=str(message.get("status") or ""),
        notes=message.get("notes"),
        payload=message.get("payload") or {},
        fields=message.get("fields") or [],
    )


def publish_status_notification(message: dict[str, Any]) -> None:
    """Hand a status notification to the worker queue; broker errors are logged and dropped."""
    try:
        deliver_status_notification.delay(message)
    except Exception:
        _LOG.exception(
            "status_notification_publish_failed request_id=%s status=%s",
            message.get("request_id"),
            message.get("status"),
        )
