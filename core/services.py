"""Services for core app functionality.

This module provides the Civic Coin reward ledger: an append-only record of
coin credits that is the only writer of ``Profile.civic_coins``.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Sum

from accounts.models import Profile
from accounts.services import ProfileStore
from .exceptions import DuplicateReward, InvalidRewardAmount
from .models import CivicCoinTransaction
from .utils import rank_for_balance

logger = logging.getLogger(__name__)


class LedgerStore:
    """Persistence for ``CivicCoinTransaction`` rows."""

    def append_entry(self, **fields) -> CivicCoinTransaction:
        return CivicCoinTransaction.objects.create(**fields)

    def has_entry_for_issue(self, issue_id, transaction_type: str = CivicCoinTransaction.TYPE_ISSUE_RESOLVED) -> bool:
        return CivicCoinTransaction.objects.filter(
            issue_id=issue_id,
            transaction_type=transaction_type,
        ).exists()

    def sum_for_profile(self, profile_id) -> int:
        total = CivicCoinTransaction.objects.filter(user_id=profile_id).aggregate(total=Sum('amount'))['total']
        return total or 0


@dataclass
class ReconciliationResult:
    """Outcome of comparing a profile's balance with its ledger."""

    profile_id: object
    balance: int
    ledger_total: int
    rank: str
    expected_rank: str
    fixed: bool = False

    @property
    def balanced(self) -> bool:
        return self.balance == self.ledger_total and self.rank == self.expected_rank


class RewardLedger:
    """Credits Civic Coins and keeps balances equal to the ledger.

    Attributes:
        store (LedgerStore): Ledger persistence
        profiles (ProfileStore): Profile persistence
    """

    def __init__(self, store: Optional[LedgerStore] = None, profiles: Optional[ProfileStore] = None):
        self.store = store or LedgerStore()
        self.profiles = profiles or ProfileStore()

    def credit(
        self,
        profile_id,
        amount: int,
        description: str,
        issue_id=None,
        transaction_type: str = CivicCoinTransaction.TYPE_ISSUE_RESOLVED,
    ) -> CivicCoinTransaction:
        """Append a credit and add it to the profile's balance.

        Both writes happen in one transaction; if either fails neither is
        kept.

        Args:
            profile_id: Profile receiving the coins
            amount (int): Coins to credit, must be positive
            description (str): Shown in the user's coin history
            issue_id: Issue that earned the reward, if any
            transaction_type (str): Ledger category of the credit

        Returns:
            CivicCoinTransaction: The new ledger entry

        Raises:
            InvalidRewardAmount: If ``amount`` is not positive
            DuplicateReward: If the issue already has an entry of this type
            NotFound: If the profile does not exist
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidRewardAmount(f'Cannot credit {amount!r} coins.')

        with transaction.atomic():
            if issue_id is not None and self.store.has_entry_for_issue(issue_id, transaction_type):
                raise DuplicateReward(f'Issue {issue_id} was already rewarded.')

            try:
                with transaction.atomic():
                    entry = self.store.append_entry(
                        user_id=profile_id,
                        amount=amount,
                        description=description,
                        issue_id=issue_id,
                        transaction_type=transaction_type,
                    )
            except IntegrityError:
                if issue_id is not None and self.store.has_entry_for_issue(issue_id, transaction_type):
                    raise DuplicateReward(f'Issue {issue_id} was already rewarded.')
                raise

            balance = self.profiles.increment_balance(profile_id, amount)

        logger.info(
            f'Credited {amount} Civic Coins to profile {profile_id} '
            f'(issue: {issue_id}, balance: {balance})'
        )
        return entry

    def balance_for(self, profile_id) -> int:
        """Return the ledger total for a profile."""
        return self.store.sum_for_profile(profile_id)

    def reconcile(self, profile: Profile, fix: bool = False) -> ReconciliationResult:
        """Compare a profile's stored balance and rank with its ledger.

        Args:
            profile (Profile): The profile to check
            fix (bool): Rewrite ``civic_coins`` and ``rank`` from the ledger
                when they disagree

        Returns:
            ReconciliationResult: What was found and whether it was fixed
        """
        ledger_total = self.balance_for(profile.pk)
        result = ReconciliationResult(
            profile_id=profile.pk,
            balance=profile.civic_coins,
            ledger_total=ledger_total,
            rank=profile.rank,
            expected_rank=rank_for_balance(ledger_total),
        )

        if not result.balanced:
            logger.warning(
                f'Profile {profile.pk} out of balance: stored {profile.civic_coins} '
                f'({profile.rank}), ledger {ledger_total} ({result.expected_rank})'
            )
            if fix:
                Profile.objects.filter(pk=profile.pk).update(
                    civic_coins=ledger_total,
                    rank=result.expected_rank,
                )
                result.fixed = True

        return result
