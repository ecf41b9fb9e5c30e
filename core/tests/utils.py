"""Shared fixtures for CivicHub tests."""

from accounts.models import Profile, User
from reports.models import Issue


def create_profile(email, user_type=Profile.USER_TYPE_CITIZEN, password='testpass123', **profile_fields):
    """Create a user and return its profile."""
    profile_fields.setdefault('full_name', email.split('@')[0].title())
    user = User.objects.create_user(
        email=email,
        password=password,
        profile_defaults={'user_type': user_type, **profile_fields},
    )
    return user.profile


def create_official(email='official@example.com', department='Public Works', **profile_fields):
    return create_profile(
        email,
        user_type=Profile.USER_TYPE_GOVERNMENT,
        department=department,
        government_id='GOV-001',
        **profile_fields
    )


def create_issue(reporter, **fields):
    fields.setdefault('title', 'Pothole on Main Street')
    fields.setdefault('description', 'Large pothole near the bus stop')
    fields.setdefault('category', Issue.CATEGORY_ROADS)
    fields.setdefault('priority', Issue.PRIORITY_MEDIUM)
    return Issue.objects.create(reporter=reporter, **fields)
