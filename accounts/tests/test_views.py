from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient
from rest_framework import status

from accounts.backend import EmailBackend
from accounts.models import Profile, User
from core.services import RewardLedger
from core.tests.utils import create_official, create_profile


class RegistrationTests(TestCase):
    """Test cases for the registration endpoint."""

    def setUp(self):
        """Set up test data."""
        cache.clear()
        self.client = APIClient()
        self.url = reverse('api_accounts:register')
        self.valid_data = {
            'email': 'Ada@Example.com',
            'password': 'Civic-Hub-2024!',
            'fullName': 'Ada Obi',
            'phoneNumber': '+2348012345678',
        }

    def test_register_citizen(self):
        """Test a citizen registers and receives tokens."""
        response = self.client.post(self.url, self.valid_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data['tokens'])
        self.assertIn('refresh', response.data['tokens'])
        self.assertEqual(response.data['profile']['userType'], Profile.USER_TYPE_CITIZEN)
        self.assertEqual(response.data['profile']['civicCoins'], 0)
        self.assertEqual(response.data['profile']['rank'], 'bronze')

        user = User.objects.get(email='ada@example.com')
        self.assertEqual(user.profile.full_name, 'Ada Obi')

    def test_register_government_requires_id(self):
        data = dict(self.valid_data, userType=Profile.USER_TYPE_GOVERNMENT, department='Roads')

        response = self.client.post(self.url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('governmentId', response.data)

        data['governmentId'] = 'GOV-42'
        response = self.client.post(self.url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['profile']['userType'], Profile.USER_TYPE_GOVERNMENT)
        self.assertEqual(response.data['profile']['department'], 'Roads')

    def test_duplicate_email_rejected(self):
        create_profile('ada@example.com')

        response = self.client.post(self.url, self.valid_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)

    def test_weak_password_rejected(self):
        data = dict(self.valid_data, password='123')

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)
        self.assertFalse(User.objects.filter(email='ada@example.com').exists())


class LoginTests(TestCase):
    """Test cases for email login."""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.url = reverse('api_accounts:login')
        self.profile = create_profile('login@example.com', password='Civic-Hub-2024!')

    def test_login_returns_tokens_and_profile(self):
        response = self.client.post(
            self.url,
            {'email': 'login@example.com', 'password': 'Civic-Hub-2024!'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['profile']['profileId'], str(self.profile.pk))

    def test_wrong_password(self):
        response = self.client.post(
            self.url,
            {'email': 'login@example.com', 'password': 'wrong-password'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_email_backend_is_case_insensitive(self):
        user = EmailBackend().authenticate(None, email='LOGIN@example.com', password='Civic-Hub-2024!')
        self.assertEqual(user, self.profile.user)

        self.assertIsNone(EmailBackend().authenticate(None, email='nobody@example.com', password='x'))


class ProfileTests(TestCase):
    """Test cases for the current user's profile."""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.url = reverse('api_accounts:profile')
        self.profile = create_profile('me@example.com')
        self.client.force_authenticate(user=User.objects.get(pk=self.profile.user_id))

    def test_get_profile(self):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'me@example.com')

    def test_update_profile_ignores_balance_and_type(self):
        response = self.client.patch(
            self.url,
            {
                'fullName': 'New Name',
                'address': '5 Allen Avenue',
                'civicCoins': 99999,
                'userType': Profile.USER_TYPE_GOVERNMENT,
            },
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.full_name, 'New Name')
        self.assertEqual(self.profile.address, '5 Allen Avenue')
        self.assertEqual(self.profile.civic_coins, 0)
        self.assertEqual(self.profile.user_type, Profile.USER_TYPE_CITIZEN)

    def test_user_type_is_immutable(self):
        self.profile.user_type = Profile.USER_TYPE_GOVERNMENT
        with self.assertRaises(ValidationError):
            self.profile.save()

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(self.url)
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))


class LeaderboardTests(TestCase):
    """Test cases for the leaderboard."""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.url = reverse('api_accounts:leaderboard')
        ledger = RewardLedger()

        self.top = create_profile('top@example.com', full_name='Chidi Top')
        self.middle = create_profile('middle@example.com', full_name='Ngozi Middle')
        self.bottom = create_profile('bottom@example.com', full_name='Emeka Bottom')
        self.official = create_official(full_name='Official Person')

        ledger.credit(self.top.pk, 600, 'reward')
        ledger.credit(self.middle.pk, 100, 'reward')

    def test_ordered_by_coins_with_positions(self):
        response = self.client.get(self.url, {'user_type': Profile.USER_TYPE_CITIZEN})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [row['fullName'] for row in response.data],
            ['Chidi Top', 'Ngozi Middle', 'Emeka Bottom']
        )
        self.assertEqual([row['position'] for row in response.data], [1, 2, 3])
        self.assertEqual(response.data[0]['rank'], 'silver')

    def test_search_by_name(self):
        response = self.client.get(self.url, {'search': 'ngozi'})

        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['fullName'], 'Ngozi Middle')

    def test_invalid_parameters(self):
        self.assertEqual(
            self.client.get(self.url, {'user_type': 'alien'}).status_code,
            status.HTTP_400_BAD_REQUEST
        )
        self.assertEqual(
            self.client.get(self.url, {'sort': 'height'}).status_code,
            status.HTTP_400_BAD_REQUEST
        )
