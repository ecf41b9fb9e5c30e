"""Tests for the Civic Coin reward ledger."""

import uuid
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase, override_settings

from accounts.models import Profile
from accounts.services import ProfileStore
from core.exceptions import DuplicateReward, InvalidRewardAmount, NotFound
from core.models import AppendOnlyError, CivicCoinTransaction
from core.services import LedgerStore, RewardLedger
from core.utils import rank_for_balance, reward_for_priority
from .utils import create_issue, create_profile


class RewardLedgerTests(TestCase):
    """Test crediting coins through the ledger."""

    def setUp(self):
        self.citizen = create_profile('citizen@example.com')
        self.issue = create_issue(self.citizen)
        self.ledger = RewardLedger()

    def test_credit_appends_entry_and_updates_balance(self):
        """Test a credit writes one entry and raises the balance by its amount."""
        entry = self.ledger.credit(self.citizen.pk, 50, 'Issue resolved: pothole', issue_id=self.issue.pk)

        self.citizen.refresh_from_db()
        self.assertEqual(entry.amount, 50)
        self.assertEqual(entry.issue_id, self.issue.pk)
        self.assertEqual(self.citizen.civic_coins, 50)
        self.assertEqual(self.ledger.balance_for(self.citizen.pk), 50)

    def test_balance_equals_ledger_sum(self):
        """Test the stored balance tracks the sum of all entries."""
        second_issue = create_issue(self.citizen, title='Broken street light')
        self.ledger.credit(self.citizen.pk, 100, 'first', issue_id=self.issue.pk)
        self.ledger.credit(self.citizen.pk, 25, 'second', issue_id=second_issue.pk)
        self.ledger.credit(self.citizen.pk, 10, 'bonus')

        self.citizen.refresh_from_db()
        self.assertEqual(CivicCoinTransaction.objects.filter(user=self.citizen).count(), 3)
        self.assertEqual(self.citizen.civic_coins, 135)
        self.assertEqual(self.citizen.civic_coins, self.ledger.balance_for(self.citizen.pk))

    def test_credit_updates_rank(self):
        """Test crossing a tier threshold changes the rank."""
        self.ledger.credit(self.citizen.pk, 600, 'big reward', issue_id=self.issue.pk)

        self.citizen.refresh_from_db()
        self.assertEqual(self.citizen.rank, 'silver')

    def test_duplicate_reward_for_issue_rejected(self):
        """Test the same issue cannot be rewarded twice."""
        self.ledger.credit(self.citizen.pk, 50, 'first', issue_id=self.issue.pk)

        with self.assertRaises(DuplicateReward):
            self.ledger.credit(self.citizen.pk, 50, 'again', issue_id=self.issue.pk)

        self.citizen.refresh_from_db()
        self.assertEqual(self.citizen.civic_coins, 50)
        self.assertEqual(CivicCoinTransaction.objects.filter(issue=self.issue).count(), 1)

    def test_duplicate_caught_by_unique_constraint(self):
        """Test a race past the pre-check still surfaces as DuplicateReward."""
        self.ledger.credit(self.citizen.pk, 50, 'first', issue_id=self.issue.pk)

        with patch.object(LedgerStore, 'has_entry_for_issue', side_effect=[False, True]):
            with self.assertRaises(DuplicateReward):
                self.ledger.credit(self.citizen.pk, 50, 'racing', issue_id=self.issue.pk)

        self.citizen.refresh_from_db()
        self.assertEqual(self.citizen.civic_coins, 50)

    def test_invalid_amounts_rejected(self):
        """Test zero, negative, fractional and boolean amounts are refused."""
        for amount in (0, -5, 1.5, True, '10', None):
            with self.subTest(amount=amount):
                with self.assertRaises(InvalidRewardAmount):
                    self.ledger.credit(self.citizen.pk, amount, 'bad')

        self.assertFalse(CivicCoinTransaction.objects.exists())

    def test_unknown_profile_leaves_no_entry(self):
        """Test a credit for a missing profile is rolled back."""
        missing = uuid.uuid4()

        with self.assertRaises(NotFound):
            self.ledger.credit(missing, 50, 'missing')

        self.assertFalse(CivicCoinTransaction.objects.filter(user_id=missing).exists())

    def test_balance_failure_rolls_back_entry(self):
        """Test an entry is discarded when the balance update fails."""
        with patch('accounts.services.ProfileStore.increment_balance', side_effect=DatabaseError('locked')):
            with self.assertRaises(DatabaseError):
                self.ledger.credit(self.citizen.pk, 50, 'fails', issue_id=self.issue.pk)

        self.assertFalse(CivicCoinTransaction.objects.exists())
        self.citizen.refresh_from_db()
        self.assertEqual(self.citizen.civic_coins, 0)

    def test_stale_profile_save_keeps_credit(self):
        """Test saving a profile loaded before a credit keeps the credited balance."""
        stale = Profile.objects.get(pk=self.citizen.pk)

        self.ledger.credit(self.citizen.pk, 600, 'reward', issue_id=self.issue.pk)
        ProfileStore().increment_resolved_reports(self.citizen.pk)

        stale.full_name = 'Renamed Citizen'
        stale.save()

        self.citizen.refresh_from_db()
        self.assertEqual(self.citizen.full_name, 'Renamed Citizen')
        self.assertEqual(self.citizen.civic_coins, 600)
        self.assertEqual(self.citizen.civic_coins, self.ledger.balance_for(self.citizen.pk))
        self.assertEqual(self.citizen.rank, 'silver')
        self.assertEqual(self.citizen.total_reports, 1)
        self.assertEqual(self.citizen.resolved_reports, 1)


class CivicCoinTransactionTests(TestCase):
    """Test ledger entries are append-only."""

    def setUp(self):
        self.citizen = create_profile('citizen@example.com')
        self.entry = RewardLedger().credit(self.citizen.pk, 25, 'reward')

    def test_entry_cannot_be_modified(self):
        self.entry.amount = 1000
        with self.assertRaises(AppendOnlyError):
            self.entry.save()

    def test_entry_cannot_be_deleted(self):
        with self.assertRaises(AppendOnlyError):
            self.entry.delete()
        self.assertTrue(CivicCoinTransaction.objects.filter(pk=self.entry.pk).exists())


class RankTests(TestCase):
    """Test rank and reward helpers."""

    def test_default_tiers(self):
        cases = [
            (0, 'bronze'),
            (499, 'bronze'),
            (500, 'silver'),
            (1499, 'silver'),
            (1500, 'gold'),
            (3500, 'platinum'),
            (7499, 'platinum'),
            (7500, 'diamond'),
            (100000, 'diamond'),
        ]
        for coins, rank in cases:
            with self.subTest(coins=coins):
                self.assertEqual(rank_for_balance(coins), rank)

    def test_rank_is_a_function_of_balance(self):
        """Test the same balance always yields the same rank."""
        self.assertEqual(rank_for_balance(1600), rank_for_balance(1600))

    def test_custom_tiers_are_sorted(self):
        tiers = [('gold', 100), ('bronze', 0), ('silver', 10)]
        self.assertEqual(rank_for_balance(50, tiers), 'silver')

    def test_empty_tiers_rejected(self):
        with self.assertRaises(ValueError):
            rank_for_balance(10, [])

    @override_settings(CIVIC_COIN_RANKS=[('novice', 0), ('champion', 50)])
    def test_tiers_from_settings(self):
        self.assertEqual(rank_for_balance(49), 'novice')
        self.assertEqual(rank_for_balance(50), 'champion')

    def test_profile_save_recomputes_rank(self):
        profile = create_profile('saver@example.com')
        profile.civic_coins = 1500
        profile.save(update_fields=['civic_coins'])

        profile.refresh_from_db()
        self.assertEqual(profile.rank, 'gold')

    def test_rewards_per_priority(self):
        self.assertEqual(reward_for_priority('urgent'), 100)
        self.assertEqual(reward_for_priority('high'), 75)
        self.assertEqual(reward_for_priority('medium'), 50)
        self.assertEqual(reward_for_priority('low'), 25)
        with self.assertRaises(ValueError):
            reward_for_priority('critical')
