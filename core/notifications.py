"""Notification services for core app.

Lifecycle transitions write in-app notifications to the affected user's
mailbox. Delivery is best effort: a failure is logged and never undoes the
transition that triggered it.
"""

import logging
from typing import Optional

from django.db import DatabaseError, transaction

from .models import Notification

logger = logging.getLogger(__name__)


class NotificationSink:
    """Writes ``Notification`` rows for profiles."""

    def enqueue(
        self,
        user_id,
        title: str,
        message: str,
        type: str = Notification.TYPE_INFO,
        issue_id=None,
    ) -> Optional[Notification]:
        """Store a notification for ``user_id``.

        The insert runs in its own savepoint so a failure cannot poison an
        enclosing transaction.

        Returns:
            Optional[Notification]: The stored notification, or None if it
            could not be written
        """
        try:
            with transaction.atomic():
                notification = Notification.objects.create(
                    user_id=user_id,
                    title=title,
                    message=message,
                    type=type,
                    issue_id=issue_id,
                )
        except DatabaseError as e:
            logger.error(f'Failed to enqueue notification "{title}" for profile {user_id}: {str(e)}')
            return None

        logger.info(f'Queued {type} notification {notification.id} for profile {user_id}')
        return notification

    def mark_read(self, notification: Notification) -> Notification:
        if not notification.read:
            notification.read = True
            notification.save(update_fields=['read'])
        return notification

    def mark_all_read(self, profile) -> int:
        """Mark every unread notification of ``profile`` as read.

        Returns:
            int: Number of notifications updated
        """
        return Notification.objects.filter(user=profile, read=False).update(read=True)

    def unread_count(self, profile) -> int:
        return Notification.objects.filter(user=profile, read=False).count()


class IssueNotificationService:
    """Composes the messages sent on issue lifecycle transitions."""

    def __init__(self, sink: Optional[NotificationSink] = None):
        self.sink = sink or NotificationSink()

    def notify_issue_claimed(self, issue) -> Optional[Notification]:
        department = issue.assigned_department or 'a government department'
        return self.sink.enqueue(
            user_id=issue.reporter_id,
            title=f'Issue in progress: {issue.title}',
            message=f'Your report "{issue.title}" has been picked up by {department}.',
            type=Notification.TYPE_ISSUE_CLAIMED,
            issue_id=issue.pk,
        )

    def notify_issue_resolved(self, issue) -> Optional[Notification]:
        return self.sink.enqueue(
            user_id=issue.reporter_id,
            title=f'Issue resolved: {issue.title}',
            message=(
                f'Your report "{issue.title}" has been resolved. '
                f'You earned {issue.coins_awarded} Civic Coins!'
            ),
            type=Notification.TYPE_ISSUE_RESOLVED,
            issue_id=issue.pk,
        )
