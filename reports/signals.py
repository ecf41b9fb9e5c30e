"""Signal handlers for the reports app."""

import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from accounts.services import ProfileStore
from .models import AuditLog, Issue

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Issue)
def handle_issue_created(sender, instance, created, raw=False, **kwargs):
    """Count the new issue against its reporter and start its audit trail."""
    if not created or raw:
        return

    ProfileStore().increment_total_reports(instance.reporter_id)
    AuditLog.objects.create(
        issue=instance,
        actor_id=instance.reporter_id,
        action=AuditLog.ACTION_CREATED,
        new_value={
            'title': instance.title,
            'category': instance.category,
            'priority': instance.priority,
            'status': instance.status,
        }
    )
    logger.info(f'Issue {instance.id} reported by profile {instance.reporter_id}')
