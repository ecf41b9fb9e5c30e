"""URL configuration for API endpoints.

App endpoints live under their own prefixes (``/api/accounts/``,
``/api/reports/``, ``/api/core/``). This module adds the shared ones:

    # Token refresh
    POST /api/auth/token/refresh/
    {
        "refresh": "jwt.refresh.token"
    }

    # Token verify
    POST /api/auth/token/verify/
    {
        "token": "jwt.access.token"
    }

    # Health check
    GET /api/health/
"""

from django.urls import path, include
from rest_framework_simplejwt.views import (
    TokenRefreshView,
    TokenVerifyView,
)

from .views import health_check

app_name = 'api'

# Authentication URL patterns
auth_urlpatterns = [
    path('token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('token/verify/', TokenVerifyView.as_view(), name='token-verify'),
]

urlpatterns = [
    path('auth/', include((auth_urlpatterns, 'auth'))),
    path('health/', health_check.as_view(), name='health_check'),
]
