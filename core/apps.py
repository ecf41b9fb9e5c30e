"""Core app configuration.

This module defines the configuration for the core app, which provides the
Civic Coin ledger, in-app notifications and shared domain errors for the
CivicHub platform.
"""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Configuration for the core app.

    This app provides core functionality for the CivicHub platform, including:
    - The append-only Civic Coin reward ledger
    - Notifications for issue lifecycle events
    - Request logging middleware
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = 'Core'
