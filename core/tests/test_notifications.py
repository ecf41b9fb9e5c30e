"""Tests for notifications and the notification endpoints."""

import uuid
from unittest.mock import patch

from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from core.models import Notification
from core.notifications import IssueNotificationService, NotificationSink
from core.services import RewardLedger
from accounts.models import User
from .utils import create_issue, create_profile


class NotificationSinkTests(TestCase):
    """Test storing and reading notifications."""

    def setUp(self):
        self.citizen = create_profile('citizen@example.com')
        self.sink = NotificationSink()

    def test_enqueue_stores_notification(self):
        notification = self.sink.enqueue(self.citizen.pk, 'Hello', 'Welcome to CivicHub')

        self.assertIsNotNone(notification)
        self.assertEqual(notification.type, Notification.TYPE_INFO)
        self.assertFalse(notification.read)
        self.assertEqual(self.sink.unread_count(self.citizen), 1)

    def test_enqueue_failure_is_swallowed(self):
        """Test a storage failure is logged and returns None."""
        with patch('core.notifications.Notification.objects.create', side_effect=DatabaseError('down')):
            with self.assertLogs('core.notifications', level='ERROR'):
                notification = self.sink.enqueue(self.citizen.pk, 'Hello', 'Lost message')

        self.assertIsNone(notification)
        self.assertFalse(Notification.objects.exists())

    def test_mark_read_and_mark_all_read(self):
        first = self.sink.enqueue(self.citizen.pk, 'One', 'first')
        self.sink.enqueue(self.citizen.pk, 'Two', 'second')
        self.sink.enqueue(self.citizen.pk, 'Three', 'third')

        self.sink.mark_read(first)
        first.refresh_from_db()
        self.assertTrue(first.read)
        self.assertEqual(self.sink.unread_count(self.citizen), 2)

        self.assertEqual(self.sink.mark_all_read(self.citizen), 2)
        self.assertEqual(self.sink.unread_count(self.citizen), 0)

    def test_issue_messages(self):
        """Test claim and resolve notifications address the reporter."""
        issue = create_issue(self.citizen, title='Broken bench', assigned_department='Parks')
        issue.coins_awarded = 25
        service = IssueNotificationService(self.sink)

        claimed = service.notify_issue_claimed(issue)
        resolved = service.notify_issue_resolved(issue)

        self.assertEqual(claimed.user_id, self.citizen.pk)
        self.assertEqual(claimed.title, 'Issue in progress: Broken bench')
        self.assertIn('Parks', claimed.message)
        self.assertEqual(resolved.type, Notification.TYPE_ISSUE_RESOLVED)
        self.assertEqual(resolved.title, 'Issue resolved: Broken bench')
        self.assertIn('You earned 25 Civic Coins!', resolved.message)


class NotificationEndpointTests(TestCase):
    """Test the notification inbox API."""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.citizen = create_profile('citizen@example.com')
        self.other = create_profile('other@example.com')
        self.client.force_authenticate(user=self.citizen.user)

        sink = NotificationSink()
        self.first = sink.enqueue(self.citizen.pk, 'One', 'first')
        self.second = sink.enqueue(self.citizen.pk, 'Two', 'second')
        self.foreign = sink.enqueue(self.other.pk, 'Private', 'not yours')

    def test_list_own_notifications(self):
        response = self.client.get(reverse('api_core:notification_list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        titles = {item['title'] for item in response.data['results']}
        self.assertEqual(titles, {'One', 'Two'})

    def test_unread_filter_and_count(self):
        NotificationSink().mark_read(self.first)

        response = self.client.get(reverse('api_core:notification_list'), {'unread': 'true'})
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(reverse('api_core:notification_unread_count'))
        self.assertEqual(response.data, {'unread': 1})

    def test_mark_read(self):
        url = reverse('api_core:notification_mark_read', kwargs={'pk': self.first.pk})
        response = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['read'])

    def test_cannot_mark_someone_elses_notification(self):
        url = reverse('api_core:notification_mark_read', kwargs={'pk': self.foreign.pk})
        response = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['code'], 'not_found')
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.read)

    def test_mark_unknown_notification(self):
        url = reverse('api_core:notification_mark_read', kwargs={'pk': uuid.uuid4()})
        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_all_read(self):
        response = self.client.post(reverse('api_core:notification_mark_all_read'))

        self.assertEqual(response.data, {'updated': 2})
        self.assertFalse(Notification.objects.filter(user=self.citizen, read=False).exists())
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.read)

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(reverse('api_core:notification_list'))
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))


class CoinHistoryEndpointTests(TestCase):
    """Test the ledger history API."""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.citizen = create_profile('citizen@example.com')
        self.client.force_authenticate(user=User.objects.get(pk=self.citizen.user_id))

    def test_history_lists_entries_and_balance(self):
        issue = create_issue(self.citizen)
        RewardLedger().credit(self.citizen.pk, 100, 'Issue resolved: pothole', issue_id=issue.pk)
        RewardLedger().credit(self.citizen.pk, 450, 'Community bonus')

        response = self.client.get(reverse('api_core:coin_history'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['balance'], 550)
        self.assertEqual(response.data['rank'], 'silver')
        amounts = sorted(item['amount'] for item in response.data['results'])
        self.assertEqual(amounts, [100, 450])
