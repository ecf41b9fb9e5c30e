"""
URL configuration for civichub project.

URL Patterns:
    - Admin URLs: /admin/
    - API base: /api/
    - Accounts app: Included at /api/accounts/
    - Reports app: Included at /api/reports/
    - Core app (ledger, notifications): Included at /api/core/
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    # Admin URLs
    path('admin/', admin.site.urls),

    # API URLs
    path('api/accounts/', include('accounts.urls', namespace='api_accounts')),
    path('api/reports/', include('reports.urls', namespace='api_reports')),
    path('api/core/', include('core.urls', namespace='api_core')),
    path('api/', include('api.urls', namespace='api')),
]
