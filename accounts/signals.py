"""Signal handlers for the accounts app."""

import logging
from django.core.exceptions import ValidationError
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import Profile, User

logger = logging.getLogger(__name__)


@receiver(post_save, sender=User)
def create_profile_for_new_user(sender, instance, created, raw=False, **kwargs):
    """Give every new user a profile.

    Registration passes the profile fields through ``profile_defaults`` on
    the unsaved user; anything else gets a citizen profile.
    """
    if not created or raw:
        return
    defaults = getattr(instance, 'profile_defaults', None) or {'full_name': instance.get_full_name()}
    profile, profile_created = Profile.objects.get_or_create(user=instance, defaults=defaults)
    if profile_created:
        logger.info(f'Created {profile.user_type} profile {profile.id} for user {instance.id}')


@receiver(pre_save, sender=Profile)
def prevent_user_type_change(sender, instance, raw=False, **kwargs):
    """Reject any save that would change an existing profile's user_type."""
    if raw or instance._state.adding:
        return
    stored = Profile.objects.filter(pk=instance.pk).values_list('user_type', flat=True).first()
    if stored is not None and stored != instance.user_type:
        logger.warning(f'Blocked user_type change on profile {instance.pk}: {stored} -> {instance.user_type}')
        raise ValidationError({'user_type': 'User type cannot be changed.'})
