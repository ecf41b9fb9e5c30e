"""Custom authentication backend for email-based login."""

import logging
from typing import Optional
from django.contrib.auth.backends import ModelBackend
from django.contrib.auth import get_user_model

UserModel = get_user_model()
logger = logging.getLogger(__name__)


class EmailBackend(ModelBackend):
    """Authenticate users by case-insensitive email and password.

    Accepts the address either as ``email`` (what the JWT token view sends,
    since ``USERNAME_FIELD`` is ``email``) or as ``username``.
    """

    def authenticate(
        self,
        request,
        username: Optional[str] = None,
        password: Optional[str] = None,
        **kwargs
    ) -> Optional[UserModel]:
        """Authenticate a user by email and password.

        Args:
            request: The HTTP request
            username: The email to authenticate with
            password: The password to authenticate with
            **kwargs: May carry ``email`` instead of ``username``

        Returns:
            Optional[UserModel]: The authenticated user or None
        """
        email = kwargs.get(UserModel.USERNAME_FIELD) or username
        if not email or not password:
            return None

        email = email.strip()
        ip = request.META.get('REMOTE_ADDR') if request else None

        try:
            user = UserModel.objects.get(email__iexact=email)
        except UserModel.DoesNotExist:
            # Run the hasher anyway to reduce timing differences
            UserModel().set_password(password)
            logger.warning(
                'Login failed: User not found',
                extra={'username': email, 'ip': ip}
            )
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            logger.info(
                'Login successful',
                extra={'user_id': str(user.id), 'ip': ip}
            )
            return user

        logger.warning(
            'Login failed: Invalid password or inactive user',
            extra={'user_id': str(user.id), 'ip': ip}
        )
        return None
