from __future__ import annotations

import logging

from django.db import DatabaseError, transaction

from .models import Notification

logger = logging.getLogger(__name__)


def notify(*, user_id: int, type: str, title: str, message: str, booking_id: int | None = None) -> Notification | None:
    """
    Create a user-facing notification.

    Fire-and-forget: a failed insert is logged and ``None`` is returned so the
    caller's own state change is never rolled back because of it.
    """

    try:
        with transaction.atomic():
            return Notification.objects.create(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                booking_id=booking_id,
            )
    except DatabaseError as exc:
        logger.exception("Failed to create %s notification for user %s: %s", type, user_id, exc)
        return None
