"""Tests for the reports app."""

import uuid
from datetime import timedelta
from unittest.mock import patch

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import User
from core.exceptions import (
    ConcurrentModification,
    DuplicateReward,
    IllegalTransition,
    NotFound,
    Unauthorized,
)
from core.models import CivicCoinTransaction, Notification
from core.services import LedgerStore, RewardLedger
from core.tests.utils import create_issue, create_official, create_profile
from .lifecycle import IssueLifecycleController, IssueStore, Session, can_transition
from .models import AuditLog, Issue


class StaleIssueStore(IssueStore):
    """Issue store that always returns a snapshot taken earlier."""

    def __init__(self, snapshot):
        self.snapshot = snapshot

    def read_issue(self, issue_id):
        return self.snapshot


class IssueModelTests(TestCase):
    """Test cases for the Issue model."""

    def setUp(self):
        self.citizen = create_profile('citizen@example.com')

    def test_new_issue_is_pending_and_counted(self):
        """Test issue creation starts pending and counts against the reporter."""
        issue = create_issue(self.citizen)

        self.citizen.refresh_from_db()
        self.assertEqual(issue.status, Issue.STATUS_PENDING)
        self.assertIsNone(issue.resolved_at)
        self.assertEqual(issue.coins_awarded, 0)
        self.assertEqual(self.citizen.total_reports, 1)
        self.assertTrue(
            AuditLog.objects.filter(issue=issue, action=AuditLog.ACTION_CREATED).exists()
        )

    def test_has_location(self):
        issue = create_issue(self.citizen, location_lat=6.45, location_lng=3.39)
        self.assertTrue(issue.has_location)
        self.assertFalse(create_issue(self.citizen).has_location)

    def test_resolution_time(self):
        issue = create_issue(self.citizen)
        self.assertFalse(issue.is_resolved)
        self.assertIsNone(issue.resolution_time)

        issue.status = Issue.STATUS_RESOLVED
        with self.assertRaises(ValidationError):
            issue.clean()

        issue.resolved_at = issue.created_at + timedelta(hours=3)
        issue.clean()
        self.assertTrue(issue.is_resolved)
        self.assertEqual(issue.resolution_time, timedelta(hours=3))

    def test_transition_table(self):
        self.assertTrue(can_transition(Issue.STATUS_PENDING, Issue.STATUS_IN_PROGRESS))
        self.assertTrue(can_transition(Issue.STATUS_PENDING, Issue.STATUS_RESOLVED))
        self.assertTrue(can_transition(Issue.STATUS_IN_PROGRESS, Issue.STATUS_RESOLVED))
        self.assertFalse(can_transition(Issue.STATUS_IN_PROGRESS, Issue.STATUS_PENDING))
        self.assertFalse(can_transition(Issue.STATUS_RESOLVED, Issue.STATUS_RESOLVED))
        self.assertFalse(can_transition(Issue.STATUS_RESOLVED, Issue.STATUS_IN_PROGRESS))


class IssueLifecycleControllerTests(TestCase):
    """Test claiming and resolving issues."""

    def setUp(self):
        self.citizen = create_profile('citizen@example.com')
        self.official = create_official()
        self.controller = IssueLifecycleController(Session(self.official))

    def test_claim_assigns_without_reward(self):
        issue = create_issue(self.citizen)

        claimed = self.controller.claim_issue(issue.pk)

        self.assertEqual(claimed.status, Issue.STATUS_IN_PROGRESS)
        self.assertEqual(claimed.assigned_to_id, self.official.pk)
        self.assertEqual(claimed.assigned_department, 'Public Works')
        self.assertIsNone(claimed.resolved_at)
        self.assertEqual(claimed.coins_awarded, 0)
        self.assertFalse(CivicCoinTransaction.objects.exists())
        self.assertTrue(
            Notification.objects.filter(
                user=self.citizen, type=Notification.TYPE_ISSUE_CLAIMED, issue=issue
            ).exists()
        )

    def test_claim_uses_default_department(self):
        official = create_official('nodept@example.com', department='')
        issue = create_issue(self.citizen)

        claimed = IssueLifecycleController(Session(official)).claim_issue(issue.pk)

        self.assertEqual(claimed.assigned_department, 'General')

    def test_resolve_urgent_issue_credits_reporter(self):
        """Test pending -> in_progress -> resolved rewards 100 coins for urgent."""
        issue = create_issue(self.citizen, priority=Issue.PRIORITY_URGENT)

        self.controller.claim_issue(issue.pk)
        resolved = self.controller.resolve_issue(issue.pk, notes='Filled and resurfaced')

        self.citizen.refresh_from_db()
        self.assertEqual(resolved.status, Issue.STATUS_RESOLVED)
        self.assertIsNotNone(resolved.resolved_at)
        self.assertEqual(resolved.coins_awarded, 100)
        self.assertEqual(resolved.government_notes, 'Filled and resurfaced')
        self.assertEqual(self.citizen.civic_coins, 100)
        self.assertEqual(self.citizen.resolved_reports, 1)

        entry = CivicCoinTransaction.objects.get(issue=issue)
        self.assertEqual(entry.amount, 100)
        self.assertEqual(entry.user_id, self.citizen.pk)
        self.assertEqual(entry.description, f'Issue resolved: {issue.title}')

        notification = Notification.objects.get(user=self.citizen, type=Notification.TYPE_ISSUE_RESOLVED)
        self.assertIn('You earned 100 Civic Coins!', notification.message)

    def test_resolve_pending_low_issue_directly(self):
        issue = create_issue(self.citizen, priority=Issue.PRIORITY_LOW)

        resolved = self.controller.resolve_issue(issue.pk, proof_of_fix_urls=['https://cdn.example.com/fix.jpg'])

        self.citizen.refresh_from_db()
        self.assertEqual(resolved.coins_awarded, 25)
        self.assertEqual(resolved.proof_of_fix_urls, ['https://cdn.example.com/fix.jpg'])
        self.assertEqual(self.citizen.civic_coins, 25)

    def test_second_resolve_is_illegal(self):
        issue = create_issue(self.citizen, priority=Issue.PRIORITY_HIGH)
        self.controller.resolve_issue(issue.pk)

        with self.assertRaises(IllegalTransition):
            self.controller.resolve_issue(issue.pk)

        self.citizen.refresh_from_db()
        self.assertEqual(self.citizen.civic_coins, 75)
        self.assertEqual(CivicCoinTransaction.objects.filter(issue=issue).count(), 1)

    def test_claim_of_claimed_issue_is_illegal(self):
        issue = create_issue(self.citizen)
        self.controller.claim_issue(issue.pk)

        with self.assertRaises(IllegalTransition) as ctx:
            self.controller.claim_issue(issue.pk)

        self.assertEqual(ctx.exception.current_status, Issue.STATUS_IN_PROGRESS)

    def test_transition_back_to_pending_is_illegal(self):
        issue = create_issue(self.citizen)
        self.controller.claim_issue(issue.pk)

        with self.assertRaises(IllegalTransition):
            self.controller.transition(issue.pk, Issue.STATUS_PENDING)

    def test_transition_dispatches_to_claim_and_resolve(self):
        issue = create_issue(self.citizen)

        self.assertEqual(
            self.controller.transition(issue.pk, Issue.STATUS_IN_PROGRESS).status,
            Issue.STATUS_IN_PROGRESS
        )
        self.assertEqual(
            self.controller.transition(issue.pk, Issue.STATUS_RESOLVED, notes='done').status,
            Issue.STATUS_RESOLVED
        )

    def test_citizen_cannot_change_status(self):
        issue = create_issue(self.citizen)
        controller = IssueLifecycleController(Session(self.citizen))

        with self.assertRaises(Unauthorized):
            controller.claim_issue(issue.pk)
        with self.assertRaises(Unauthorized):
            controller.resolve_issue(issue.pk)

        issue.refresh_from_db()
        self.assertEqual(issue.status, Issue.STATUS_PENDING)
        self.assertIsNone(issue.assigned_to)
        self.assertFalse(CivicCoinTransaction.objects.exists())

    def test_unknown_issue(self):
        with self.assertRaises(NotFound):
            self.controller.claim_issue(uuid.uuid4())
        with self.assertRaises(NotFound):
            self.controller.resolve_issue('not-a-uuid')

    def test_stale_resolve_loses_race(self):
        """Test only one of two officials resolving the same issue wins."""
        issue = create_issue(self.citizen)
        self.controller.claim_issue(issue.pk)
        snapshot = Issue.objects.get(pk=issue.pk)

        self.controller.resolve_issue(issue.pk)

        rival = IssueLifecycleController(
            Session(create_official('rival@example.com')),
            issues=StaleIssueStore(snapshot),
        )
        with self.assertRaises(ConcurrentModification):
            rival.resolve_issue(issue.pk)

        self.citizen.refresh_from_db()
        self.assertEqual(CivicCoinTransaction.objects.filter(issue=issue).count(), 1)
        self.assertEqual(self.citizen.civic_coins, 50)

    def test_stale_claim_loses_race(self):
        issue = create_issue(self.citizen)
        snapshot = Issue.objects.get(pk=issue.pk)
        self.controller.claim_issue(issue.pk)

        rival_official = create_official('rival@example.com')
        rival = IssueLifecycleController(Session(rival_official), issues=StaleIssueStore(snapshot))
        with self.assertRaises(ConcurrentModification):
            rival.claim_issue(issue.pk)

        issue.refresh_from_db()
        self.assertEqual(issue.assigned_to_id, self.official.pk)

    def test_ledger_failure_rolls_back_resolution(self):
        issue = create_issue(self.citizen)
        self.controller.claim_issue(issue.pk)

        with patch.object(LedgerStore, 'append_entry', side_effect=DatabaseError('disk full')):
            with self.assertRaises(DatabaseError):
                self.controller.resolve_issue(issue.pk, notes='fixed')

        issue.refresh_from_db()
        self.citizen.refresh_from_db()
        self.assertEqual(issue.status, Issue.STATUS_IN_PROGRESS)
        self.assertIsNone(issue.resolved_at)
        self.assertEqual(issue.coins_awarded, 0)
        self.assertEqual(issue.government_notes, '')
        self.assertEqual(self.citizen.civic_coins, 0)
        self.assertEqual(self.citizen.resolved_reports, 0)
        self.assertFalse(AuditLog.objects.filter(issue=issue, action=AuditLog.ACTION_RESOLVED).exists())

    def test_existing_reward_blocks_resolution(self):
        issue = create_issue(self.citizen)
        RewardLedger().credit(self.citizen.pk, 10, 'manual', issue_id=issue.pk)

        with self.assertRaises(DuplicateReward):
            self.controller.resolve_issue(issue.pk)

        issue.refresh_from_db()
        self.citizen.refresh_from_db()
        self.assertEqual(issue.status, Issue.STATUS_PENDING)
        self.assertEqual(self.citizen.civic_coins, 10)

    def test_notification_failure_keeps_resolution(self):
        issue = create_issue(self.citizen, priority=Issue.PRIORITY_HIGH)

        with patch('core.notifications.Notification.objects.create', side_effect=DatabaseError('down')):
            resolved = self.controller.resolve_issue(issue.pk)

        self.citizen.refresh_from_db()
        self.assertEqual(resolved.status, Issue.STATUS_RESOLVED)
        self.assertEqual(self.citizen.civic_coins, 75)
        self.assertFalse(Notification.objects.exists())

    def test_audit_trail(self):
        issue = create_issue(self.citizen)
        controller = IssueLifecycleController(
            Session(self.official, ip_address='10.0.0.1', user_agent='pytest')
        )
        controller.claim_issue(issue.pk)
        controller.resolve_issue(issue.pk)

        actions = list(
            AuditLog.objects.filter(issue=issue).order_by('created_at').values_list('action', flat=True)
        )
        self.assertEqual(
            actions,
            [AuditLog.ACTION_CREATED, AuditLog.ACTION_CLAIMED, AuditLog.ACTION_RESOLVED]
        )
        resolved_log = AuditLog.objects.get(issue=issue, action=AuditLog.ACTION_RESOLVED)
        self.assertEqual(resolved_log.actor_id, self.official.pk)
        self.assertEqual(resolved_log.ip_address, '10.0.0.1')
        self.assertEqual(resolved_log.new_value['coins_awarded'], 50)

    def test_update_details(self):
        issue = create_issue(self.citizen)

        updated = self.controller.update_details(issue.pk, notes='Crew scheduled', department='Roads')

        self.assertEqual(updated.status, Issue.STATUS_PENDING)
        self.assertEqual(updated.government_notes, 'Crew scheduled')
        self.assertEqual(updated.assigned_department, 'Roads')
        log = AuditLog.objects.get(issue=issue, action=AuditLog.ACTION_DETAILS_UPDATED)
        self.assertEqual(log.old_value, {'government_notes': '', 'assigned_department': ''})

        with self.assertRaises(Unauthorized):
            IssueLifecycleController(Session(self.citizen)).update_details(issue.pk, notes='hacked')


class IssueAPITests(APITestCase):
    """Test cases for the issue endpoints."""

    def setUp(self):
        cache.clear()
        self.citizen = create_profile('citizen@example.com')
        self.neighbour = create_profile('neighbour@example.com')
        self.official = create_official()
        self.list_url = reverse('api_reports:issue-list')

    def authenticate(self, profile):
        self.client.force_authenticate(user=User.objects.get(pk=profile.user_id))

    def action_url(self, issue, name):
        return reverse(f'api_reports:issue-{name}', kwargs={'pk': issue.pk})

    def test_citizen_reports_issue(self):
        self.authenticate(self.citizen)
        data = {
            'title': 'Water main leaking',
            'description': 'Water running down the street since morning',
            'category': Issue.CATEGORY_UTILITIES,
            'priority': Issue.PRIORITY_HIGH,
            'latitude': 6.5244,
            'longitude': 3.3792,
            'address': '12 Marina Road',
            'photo_urls': ['https://cdn.example.com/leak.jpg'],
        }

        response = self.client.post(self.list_url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], Issue.STATUS_PENDING)
        self.assertEqual(response.data['location'], {'latitude': 6.5244, 'longitude': 3.3792})
        self.assertEqual(response.data['reporter']['profileId'], str(self.citizen.pk))
        self.citizen.refresh_from_db()
        self.assertEqual(self.citizen.total_reports, 1)

    def test_partial_location_rejected(self):
        self.authenticate(self.citizen)
        data = {'title': 'Fallen tree', 'category': Issue.CATEGORY_PARKS, 'latitude': 6.5}

        response = self.client.post(self.list_url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('location', response.data)

    def test_government_cannot_report(self):
        self.authenticate(self.official)
        data = {'title': 'Fallen tree', 'category': Issue.CATEGORY_PARKS}

        response = self.client.post(self.list_url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_user_cannot_report(self):
        data = {'title': 'Fallen tree', 'category': Issue.CATEGORY_PARKS}
        response = self.client.post(self.list_url, data, format='json')
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_list_filters(self):
        create_issue(self.citizen, category=Issue.CATEGORY_ROADS, title='Pothole on Elm')
        create_issue(self.citizen, category=Issue.CATEGORY_PARKS, title='Broken swing')
        create_issue(self.neighbour, category=Issue.CATEGORY_ROADS, title='Faded crossing')

        response = self.client.get(self.list_url, {'category': Issue.CATEGORY_ROADS})
        self.assertEqual(response.data['count'], 2)

        response = self.client.get(self.list_url, {'search': 'swing'})
        self.assertEqual(response.data['count'], 1)

        self.authenticate(self.citizen)
        response = self.client.get(self.list_url, {'mine': 'true'})
        self.assertEqual(response.data['count'], 2)

    def test_assigned_filter(self):
        issue = create_issue(self.citizen)
        create_issue(self.citizen, title='Unclaimed issue')
        IssueLifecycleController(Session(self.official)).claim_issue(issue.pk)

        self.authenticate(self.official)
        response = self.client.get(self.list_url, {'assigned': 'true'})

        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], str(issue.pk))

    def test_anonymous_issue_hides_reporter(self):
        issue = create_issue(self.citizen, is_anonymous=True)
        url = reverse('api_reports:issue-detail', kwargs={'pk': issue.pk})

        self.authenticate(self.neighbour)
        self.assertIsNone(self.client.get(url).data['reporter'])

        self.authenticate(self.citizen)
        self.assertEqual(self.client.get(url).data['reporter']['profileId'], str(self.citizen.pk))

        self.authenticate(self.official)
        self.assertIsNotNone(self.client.get(url).data['reporter'])

    def test_anonymous_issue_still_rewarded(self):
        issue = create_issue(self.citizen, is_anonymous=True, priority=Issue.PRIORITY_URGENT)
        self.authenticate(self.official)

        response = self.client.post(self.action_url(issue, 'resolve'), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.citizen.refresh_from_db()
        self.assertEqual(self.citizen.civic_coins, 100)

    def test_detail_includes_audit_logs(self):
        issue = create_issue(self.citizen)
        response = self.client.get(reverse('api_reports:issue-detail', kwargs={'pk': issue.pk}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['audit_logs']), 1)

    def test_claim_and_resolve(self):
        issue = create_issue(self.citizen, priority=Issue.PRIORITY_MEDIUM)
        self.authenticate(self.official)

        response = self.client.post(self.action_url(issue, 'claim'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Issue.STATUS_IN_PROGRESS)
        self.assertEqual(response.data['assigned_to']['profileId'], str(self.official.pk))

        response = self.client.post(
            self.action_url(issue, 'resolve'),
            {'notes': 'Repaired', 'proof_of_fix_urls': ['https://cdn.example.com/after.jpg']},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Issue.STATUS_RESOLVED)
        self.assertEqual(response.data['coins_awarded'], 50)

        response = self.client.post(self.action_url(issue, 'resolve'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['code'], 'illegal_transition')

        self.citizen.refresh_from_db()
        self.assertEqual(self.citizen.civic_coins, 50)

    def test_citizen_claim_forbidden(self):
        issue = create_issue(self.citizen)
        self.authenticate(self.citizen)

        response = self.client.post(self.action_url(issue, 'claim'))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['detail'], 'Only government staff can perform this action.')
        issue.refresh_from_db()
        self.assertEqual(issue.status, Issue.STATUS_PENDING)

    def test_staff_actions_require_government(self):
        """Test citizens are refused every status and notes action."""
        issue = create_issue(self.citizen)
        self.authenticate(self.neighbour)

        requests = [
            ('post', 'resolve', {}),
            ('patch', 'status', {'status': Issue.STATUS_RESOLVED}),
            ('patch', 'notes', {'government_notes': 'Looks fine to me'}),
        ]
        for method, name, data in requests:
            with self.subTest(action=name):
                response = getattr(self.client, method)(self.action_url(issue, name), data, format='json')
                self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        issue.refresh_from_db()
        self.assertEqual(issue.status, Issue.STATUS_PENDING)
        self.assertEqual(issue.government_notes, '')
        self.assertFalse(CivicCoinTransaction.objects.exists())

    def test_claim_unknown_issue(self):
        self.authenticate(self.official)
        url = reverse('api_reports:issue-claim', kwargs={'pk': uuid.uuid4()})

        response = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['code'], 'not_found')

    def test_status_endpoint(self):
        issue = create_issue(self.citizen)
        self.authenticate(self.official)
        url = self.action_url(issue, 'status')

        response = self.client.patch(url, {'status': Issue.STATUS_IN_PROGRESS}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.patch(url, {'status': Issue.STATUS_PENDING}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.patch(url, {'status': 'closed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_notes_endpoint(self):
        issue = create_issue(self.citizen)
        self.authenticate(self.official)

        response = self.client.patch(
            self.action_url(issue, 'notes'),
            {'government_notes': 'Inspection booked', 'assigned_department': 'Roads'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['government_notes'], 'Inspection booked')
        self.assertEqual(response.data['assigned_department'], 'Roads')
        self.assertEqual(response.data['status'], Issue.STATUS_PENDING)

        response = self.client.patch(self.action_url(issue, 'notes'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upvote(self):
        issue = create_issue(self.citizen)
        self.authenticate(self.neighbour)

        self.client.post(self.action_url(issue, 'upvote'))
        response = self.client.post(self.action_url(issue, 'upvote'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['upvotes'], 2)

    def test_audit_endpoint(self):
        issue = create_issue(self.citizen)
        IssueLifecycleController(Session(self.official)).claim_issue(issue.pk)

        response = self.client.get(self.action_url(issue, 'audit'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [log['action'] for log in response.data],
            [AuditLog.ACTION_CREATED, AuditLog.ACTION_CLAIMED]
        )

    def test_map_returns_located_issues(self):
        located = create_issue(self.citizen, location_lat=6.45, location_lng=3.39)
        create_issue(self.citizen, title='No coordinates here')

        response = self.client.get(reverse('api_reports:issue-map'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['id'] for item in response.data], [str(located.pk)])

    def test_statistics(self):
        create_issue(self.citizen)
        claimed = create_issue(self.citizen, title='Claimed issue')
        resolved = create_issue(self.neighbour, title='Resolved issue')
        controller = IssueLifecycleController(Session(self.official))
        controller.claim_issue(claimed.pk)
        controller.resolve_issue(resolved.pk)

        now = timezone.now()
        Issue.objects.filter(pk=resolved.pk).update(
            created_at=now - timedelta(hours=6),
            resolved_at=now
        )

        response = self.client.get(reverse('api_reports:issue-statistics'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_issues'], 3)
        self.assertEqual(response.data['pending_issues'], 1)
        self.assertEqual(response.data['in_progress_issues'], 1)
        self.assertEqual(response.data['resolved_issues'], 1)
        self.assertEqual(response.data['active_citizens'], 2)
        self.assertEqual(response.data['avg_resolution_hours'], 6.0)
