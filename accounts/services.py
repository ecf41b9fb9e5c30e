"""Profile persistence used by the reward ledger and issue lifecycle."""

import logging

from django.db.models import F
from django.utils import timezone

from core.exceptions import NotFound
from core.utils import rank_for_balance
from .models import Profile

logger = logging.getLogger(__name__)


class ProfileStore:
    """Reads and atomic counter updates on ``Profile`` rows."""

    def read_profile(self, profile_id) -> Profile:
        try:
            return Profile.objects.select_related('user').get(pk=profile_id)
        except Profile.DoesNotExist:
            raise NotFound(f'Profile {profile_id} does not exist.')

    def increment_balance(self, profile_id, amount: int) -> int:
        """Add ``amount`` to the profile's balance and refresh its rank.

        Must run inside the caller's transaction; the first UPDATE locks the
        row until commit so the balance read back is the one just written.

        Returns:
            int: The new balance.
        """
        updated = Profile.objects.filter(pk=profile_id).update(
            civic_coins=F('civic_coins') + amount,
            updated_at=timezone.now(),
        )
        if not updated:
            raise NotFound(f'Profile {profile_id} does not exist.')

        balance = Profile.objects.values_list('civic_coins', flat=True).get(pk=profile_id)
        Profile.objects.filter(pk=profile_id).update(rank=rank_for_balance(balance))
        logger.debug(f'Profile {profile_id} balance is now {balance}')
        return balance

    def increment_total_reports(self, profile_id) -> None:
        Profile.objects.filter(pk=profile_id).update(total_reports=F('total_reports') + 1)

    def increment_resolved_reports(self, profile_id) -> None:
        Profile.objects.filter(pk=profile_id).update(resolved_reports=F('resolved_reports') + 1)
