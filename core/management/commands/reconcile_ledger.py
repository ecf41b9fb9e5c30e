"""Management command to reconcile Civic Coin balances with the ledger.

Every profile's ``civic_coins`` and ``rank`` are compared with the sum of its
ledger entries, and every issue is checked against the invariants that tie
its status to ``resolved_at`` and to its reward entry. With ``--fix`` stored
balances and ranks are rewritten from the ledger; issue problems are only
reported.
"""

import logging

from django.core.management.base import BaseCommand, CommandError
from django.db import DatabaseError

from accounts.models import Profile
from core.models import CivicCoinTransaction
from core.services import RewardLedger
from reports.models import Issue

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Command to reconcile balances, ranks and issues with the ledger."""

    help = 'Check Civic Coin balances and issue rewards against the ledger'

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Rewrite stored balances and ranks from the ledger'
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=500,
            help='Number of profiles to load per query'
        )

    def handle(self, *args, **options):
        """Handle the command."""
        fix = options['fix']
        ledger = RewardLedger()

        self.stdout.write(
            self.style.SUCCESS(f'Starting ledger reconciliation (fix: {fix})')
        )

        try:
            checked, unbalanced, fixed = self._reconcile_profiles(ledger, fix, options['batch_size'])
            issue_problems = self._check_issues()
        except DatabaseError as e:
            raise CommandError(f'Error reconciling ledger: {str(e)}')

        self.stdout.write(
            self.style.SUCCESS(
                f'\nReconciliation complete:\n'
                f'Profiles checked: {checked}\n'
                f'Profiles out of balance: {unbalanced}\n'
                f'Profiles fixed: {fixed}\n'
                f'Issue problems: {issue_problems}'
            )
        )
        logger.info(
            f'Ledger reconciliation: {checked} checked, {unbalanced} unbalanced, '
            f'{fixed} fixed, {issue_problems} issue problems'
        )

    def _reconcile_profiles(self, ledger, fix, batch_size):
        checked = unbalanced = fixed = 0

        for profile in Profile.objects.order_by('pk').iterator(chunk_size=batch_size):
            result = ledger.reconcile(profile, fix=fix)
            checked += 1
            if result.balanced:
                continue

            unbalanced += 1
            fixed += int(result.fixed)
            self.stdout.write(
                self.style.WARNING(
                    f'Profile {profile.pk}: stored {result.balance} ({result.rank}), '
                    f'ledger {result.ledger_total} ({result.expected_rank})'
                    f'{" [fixed]" if result.fixed else ""}'
                )
            )

        return checked, unbalanced, fixed

    def _check_issues(self):
        rewarded = set(
            CivicCoinTransaction.objects.filter(
                transaction_type=CivicCoinTransaction.TYPE_ISSUE_RESOLVED,
                issue__isnull=False
            ).values_list('issue_id', flat=True)
        )
        problems = 0

        for issue in Issue.objects.only('id', 'status', 'resolved_at', 'coins_awarded').iterator():
            resolved = issue.status == Issue.STATUS_RESOLVED
            errors = []
            if resolved != (issue.resolved_at is not None):
                errors.append('resolved_at does not match status')
            if resolved and issue.pk not in rewarded:
                errors.append('resolved without a ledger reward')
            if not resolved and issue.pk in rewarded:
                errors.append('rewarded but not resolved')

            for error in errors:
                problems += 1
                self.stdout.write(self.style.ERROR(f'Issue {issue.pk}: {error}'))

        return problems
