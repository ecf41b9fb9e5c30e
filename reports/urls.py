"""URL patterns for the reports app."""

from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'reports'

# Create a router and register our viewsets with it
router = DefaultRouter()
router.register(r'issues', views.IssueViewSet, basename='issue')

urlpatterns = [
    path('', include(router.urls)),
]

# API endpoint documentation:
# /api/reports/issues/
#   GET: List issues (status, category, priority, search, mine, assigned)
#   POST: Report a new issue (citizens)
#
# /api/reports/issues/{id}/
#   GET: Retrieve an issue with its audit trail
#
# /api/reports/issues/{id}/claim/
#   POST: Claim a pending issue (government)
#
# /api/reports/issues/{id}/resolve/
#   POST: Resolve an issue and reward the reporter (government)
#
# /api/reports/issues/{id}/status/
#   POST/PATCH: Move an issue to a given status (government)
#
# /api/reports/issues/{id}/notes/
#   PATCH: Edit government notes or department (government)
#
# /api/reports/issues/{id}/upvote/
#   POST: Upvote an issue
#
# /api/reports/issues/{id}/audit/
#   GET: Audit trail
#
# /api/reports/issues/map/
#   GET: Issues with coordinates
#
# /api/reports/issues/statistics/
#   GET: Platform statistics
