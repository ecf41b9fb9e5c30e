"""Tests for the shared API endpoints.

This module contains tests for:
- JWT token refresh and verification
- Health check
- Domain error rendering
"""

from unittest.mock import MagicMock, patch

from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from api.exceptions import custom_exception_handler
from core.exceptions import ConcurrentModification, IllegalTransition, InvalidRewardAmount
from core.tests.utils import create_profile


class AuthenticationTestCase(TestCase):
    """Test case for token endpoints."""

    def setUp(self):
        """Set up test data."""
        cache.clear()
        self.client = APIClient()
        self.token_refresh_url = reverse('api:auth:token-refresh')
        self.token_verify_url = reverse('api:auth:token-verify')

        self.profile = create_profile('test@example.com')
        self.refresh_token = RefreshToken.for_user(self.profile.user)
        self.access_token = str(self.refresh_token.access_token)

    def test_token_refresh(self):
        """Test refreshing an access token."""
        response = self.client.post(
            self.token_refresh_url,
            {'refresh': str(self.refresh_token)},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_invalid_refresh_token(self):
        response = self.client.post(self.token_refresh_url, {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_token_verify(self):
        response = self.client.post(self.token_verify_url, {'token': self.access_token}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_access_token_authenticates_requests(self):
        """Test a bearer token reaches a protected endpoint."""
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.access_token}')
        response = self.client.get(reverse('api_accounts:profile'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'test@example.com')


class HealthCheckTestCase(TestCase):
    """Test case for the health check."""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.url = reverse('api:health_check')

    def test_health_check(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'ok')

    @patch('api.views.connection')
    def test_health_check_database_down(self, mock_connection):
        mock_connection.cursor.side_effect = DatabaseError('unreachable')

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)


class ExceptionHandlerTestCase(TestCase):
    """Test case for rendering domain errors."""

    def setUp(self):
        self.context = {'view': MagicMock(), 'request': None}

    def test_illegal_transition(self):
        response = custom_exception_handler(IllegalTransition('resolved', 'in_progress'), self.context)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['code'], 'illegal_transition')
        self.assertEqual(
            response.data['error']['message'],
            'Cannot move an issue from resolved to in_progress.'
        )

    def test_status_codes(self):
        cases = [
            (ConcurrentModification(), status.HTTP_409_CONFLICT, 'concurrent_modification'),
            (InvalidRewardAmount(), status.HTTP_400_BAD_REQUEST, 'invalid_amount'),
        ]
        for exc, status_code, code in cases:
            with self.subTest(code=code):
                response = custom_exception_handler(exc, self.context)
                self.assertEqual(response.status_code, status_code)
                self.assertEqual(response.data['error']['code'], code)

    def test_other_errors_use_default_handler(self):
        response = custom_exception_handler(ValidationError({'field': ['bad']}), self.context)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'field': ['bad']})

        self.assertIsNone(custom_exception_handler(ValueError('boom'), self.context))
