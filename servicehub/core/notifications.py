"""
Short-lived status messages.

Every user action that succeeds or fails leaves a notification for the
acting user. Each one expires on its own after ``duration_ms`` unless it is
dismissed earlier. Expiry is checked when notifications are read; nothing
runs in the background.
"""

import logging
import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Callable, Deque, Dict, List, Optional
from uuid import uuid4

from fastapi import HTTPException, Request, status

from servicehub.models.schemas import Notification

logger = logging.getLogger(__name__)

KINDS = ("success", "error", "info")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationCenter:
    def __init__(self, limit: int = 5, duration_ms: int = 3000, clock: Callable[[], datetime] = _utcnow):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self.duration_ms = duration_ms
        self._clock = clock
        self._queues: Dict[str, Deque[Notification]] = {}
        self._lock = threading.Lock()

    def push(self, user_id: str, message: str, kind: str = "info", duration_ms: Optional[int] = None) -> Notification:
        if kind not in KINDS:
            raise ValueError(f"Unknown notification kind: {kind}")
        now = self._clock()
        lifetime = self.duration_ms if duration_ms is None else duration_ms
        notification = Notification(
            id=str(uuid4()),
            message=message,
            kind=kind,
            created_at=now,
            expires_at=now + timedelta(milliseconds=lifetime),
        )
        with self._lock:
            # A full deque drops its oldest entry on append.
            queue = self._queues.setdefault(user_id, deque(maxlen=self.limit))
            queue.append(notification)
        logger.debug("Notification %s (%s) for %s: %s", notification.id, kind, user_id, message)
        return notification

    def active(self, user_id: str) -> List[Notification]:
        """Live notifications for a user, oldest first. Expired ones are dropped."""
        now = self._clock()
        with self._lock:
            queue = self._queues.get(user_id)
            if queue is None:
                return []
            live = [n for n in queue if n.expires_at > now]
            if not live:
                del self._queues[user_id]
            elif len(live) != len(queue):
                queue.clear()
                queue.extend(live)
            return list(live)

    def dismiss(self, user_id: str, notification_id: str) -> bool:
        with self._lock:
            queue = self._queues.get(user_id)
            if not queue:
                return False
            for notification in queue:
                if notification.id == notification_id:
                    queue.remove(notification)
                    if not queue:
                        del self._queues[user_id]
                    return True
        return False


def action_failed(
    notifications: NotificationCenter,
    user_id: str,
    message: str,
    status_code: int = status.HTTP_502_BAD_GATEWAY,
) -> HTTPException:
    """Record an error notification for an abandoned action and build the matching HTTP error."""
    notifications.push(user_id, message, "error")
    return HTTPException(status_code=status_code, detail=message)


def get_notification_center(request: Request) -> NotificationCenter:
    return request.app.state.notifications
