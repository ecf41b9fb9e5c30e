"""Tests for the reconcile_ledger management command."""

from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from accounts.models import Profile
from core.services import RewardLedger
from reports.models import Issue
from .utils import create_issue, create_profile


class ReconcileLedgerCommandTests(TestCase):
    """Test balance and issue reconciliation."""

    def setUp(self):
        self.citizen = create_profile('citizen@example.com')
        self.issue = create_issue(self.citizen)

    def run_command(self, *args):
        out = StringIO()
        call_command('reconcile_ledger', *args, stdout=out)
        return out.getvalue()

    def test_balanced_ledger_reports_nothing(self):
        RewardLedger().credit(self.citizen.pk, 50, 'reward')

        output = self.run_command()

        self.assertIn('Profiles out of balance: 0', output)
        self.assertIn('Issue problems: 0', output)

    def test_detects_drift_without_fixing(self):
        Profile.objects.filter(pk=self.citizen.pk).update(civic_coins=999)

        output = self.run_command()

        self.assertIn('Profiles out of balance: 1', output)
        self.assertIn('Profiles fixed: 0', output)
        self.citizen.refresh_from_db()
        self.assertEqual(self.citizen.civic_coins, 999)

    def test_fix_rewrites_balance_and_rank(self):
        RewardLedger().credit(self.citizen.pk, 600, 'reward')
        Profile.objects.filter(pk=self.citizen.pk).update(civic_coins=5000, rank='platinum')

        output = self.run_command('--fix')

        self.assertIn('Profiles fixed: 1', output)
        self.citizen.refresh_from_db()
        self.assertEqual(self.citizen.civic_coins, 600)
        self.assertEqual(self.citizen.rank, 'silver')

    def test_resolved_issue_without_reward_is_reported(self):
        Issue.objects.filter(pk=self.issue.pk).update(
            status=Issue.STATUS_RESOLVED,
            resolved_at=timezone.now()
        )

        output = self.run_command()

        self.assertIn('resolved without a ledger reward', output)
        self.assertIn('Issue problems: 1', output)

    def test_rewarded_unresolved_issue_is_reported(self):
        RewardLedger().credit(self.citizen.pk, 50, 'reward', issue_id=self.issue.pk)

        output = self.run_command()

        self.assertIn('rewarded but not resolved', output)
