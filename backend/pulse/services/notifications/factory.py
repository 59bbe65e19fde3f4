"""Notification service factory."""
from __future__ import annotations

import logging
from functools import lru_cache

from pulse.core.config import settings
from pulse.services.notifications.base import NotificationService
from pulse.services.notifications.noop import NoopNotificationService


logger = logging.getLogger(__name__)


@lru_cache
def get_notification_service() -> NotificationService:
    provider = settings.notifications_provider.lower()
    if provider != "noop":
        logger.warning("Unknown notification provider %s; falling back to noop", provider)
    return NoopNotificationService()
