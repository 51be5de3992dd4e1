"""In-process notification bus.

The workflow engine never emits notifications itself; the service layer
publishes them once a transition has been stored.
"""
from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List

from .domain import Role, SubmissionStatus, new_id, utcnow
from .progress import get_status_info

logger = logging.getLogger(__name__)

# Outcomes the author hears about even when someone else now owns the submission.
_AUTHOR_OUTCOMES = frozenset({
    SubmissionStatus.MOSPI_APPROVED,
    SubmissionStatus.APPROVED,
    SubmissionStatus.REJECTED_FINAL,
})


@dataclass(frozen=True)
class Notification:
    id: str
    recipient_role: Role
    submission_id: str
    submission_ref: str
    new_status: SubmissionStatus
    title: str
    message: str
    timestamp: object
    read: bool = False

    def to_dict(self):
        return {
            "id": self.id,
            "recipient_role": self.recipient_role.value,
            "submission_id": self.submission_id,
            "submission_ref": self.submission_ref,
            "new_status": self.new_status.value,
            "title": self.title,
            "message": self.message,
            "timestamp": self.timestamp.isoformat() + "Z",
            "read": self.read,
        }


def notifications_for(transition) -> List[Notification]:
    submission = transition.submission
    if submission.status == transition.previous_status:
        return []

    recipients = []
    if submission.current_owner_role is not None:
        recipients.append(submission.current_owner_role)
    if submission.status in _AUTHOR_OUTCOMES and Role.NODAL_OFFICER not in recipients:
        recipients.append(Role.NODAL_OFFICER)

    info = get_status_info(submission.status)
    now = utcnow()
    return [
        Notification(
            id=new_id(),
            recipient_role=role,
            submission_id=submission.id,
            submission_ref=submission.submission_id,
            new_status=submission.status,
            title=info.label,
            message=f"{submission.submission_id}: {info.description}",
            timestamp=now,
        )
        for role in recipients
    ]


class NotificationBus:
    def __init__(self):
        self._lock = threading.Lock()
        self._notifications: List[Notification] = []
        self._listeners: List[Callable[[Notification], None]] = []

    def subscribe(self, listener):
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, notification: Notification):
        with self._lock:
            self._notifications.append(notification)
            listeners = list(self._listeners)
        # listeners run after the transition is stored; their failures are logged, not raised
        for listener in listeners:
            try:
                listener(notification)
            except Exception:
                logger.exception("listener %r failed on notification %s", listener, notification.id)
        logger.info("notify %s: %s -> %s", notification.recipient_role.value,
                    notification.submission_ref, notification.new_status.value)
        return notification

    def publish_transition(self, transition):
        return [self.publish(n) for n in notifications_for(transition)]

    def inbox(self, role, unread_only=False) -> List[Notification]:
        role = Role(role)
        with self._lock:
            items = [n for n in self._notifications if n.recipient_role == role]
        if unread_only:
            items = [n for n in items if not n.read]
        # newest first, like the portal's bell menu
        return list(reversed(items))

    def unread_count(self, role) -> int:
        return len(self.inbox(role, unread_only=True))

    def mark_read(self, notification_id) -> bool:
        with self._lock:
            for index, n in enumerate(self._notifications):
                if n.id == notification_id:
                    self._notifications[index] = dataclasses.replace(n, read=True)
                    return True
        return False

    def summary(self) -> Dict[str, int]:
        return {role.value: self.unread_count(role) for role in Role}

    def clear(self):
        with self._lock:
            self._notifications.clear()
            self._listeners.clear()


notification_bus = NotificationBus()
