import logging

from django.conf import settings
from django.core.cache import cache
from django.db.models import F, Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle

from accounts.models import Profile
from accounts.permissions import HasProfile, IsCitizen, IsGovernmentUser
from .lifecycle import IssueLifecycleController, Session
from .models import Issue
from .serializers import (
    AuditLogSerializer,
    IssueCreateSerializer,
    IssueDetailSerializer,
    IssueMapSerializer,
    IssueNotesSerializer,
    IssueResolveSerializer,
    IssueSerializer,
    IssueStatusSerializer,
    PlatformStatsSerializer,
)

logger = logging.getLogger(__name__)

PLATFORM_STATS_CACHE_KEY = 'platform_stats'


class StandardResultsSetPagination(PageNumberPagination):
    """Standard pagination for issue listings."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class BurstRateThrottle(UserRateThrottle):
    """Throttle for burst requests."""
    rate = '60/minute'


class AnonBurstRateThrottle(AnonRateThrottle):
    """Throttle for anonymous burst requests."""
    rate = '30/minute'


def get_platform_statistics():
    """Aggregate issue and citizen counts for the public dashboard.

    Returns:
        dict: Counts per status, active citizens and the average time to
        resolve an issue in hours (None when nothing is resolved yet)
    """
    counts = {
        key: Issue.objects.filter(status=value).count()
        for key, value in (
            ('pending_issues', Issue.STATUS_PENDING),
            ('in_progress_issues', Issue.STATUS_IN_PROGRESS),
            ('resolved_issues', Issue.STATUS_RESOLVED),
        )
    }

    durations = [
        issue.resolution_time.total_seconds()
        for issue in Issue.objects.filter(
            status=Issue.STATUS_RESOLVED,
            resolved_at__isnull=False
        ).only('created_at', 'resolved_at').iterator()
    ]
    avg_hours = round(sum(durations) / len(durations) / 3600, 2) if durations else None

    return {
        'total_issues': sum(counts.values()),
        **counts,
        'active_citizens': Profile.objects.filter(
            user_type=Profile.USER_TYPE_CITIZEN,
            total_reports__gt=0
        ).count(),
        'avg_resolution_hours': avg_hours,
    }


class IssueViewSet(mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   mixins.CreateModelMixin,
                   viewsets.GenericViewSet):
    """ViewSet for reporting, browsing and handling civic issues.

    Status changes go through ``IssueLifecycleController``; its domain
    errors are rendered by the API exception handler.
    """

    serializer_class = IssueSerializer
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        """Get issues filtered by the query parameters."""
        queryset = Issue.objects.select_related('reporter', 'assigned_to')
        params = self.request.query_params

        filters = {}
        for field in ('status', 'category', 'priority'):
            value = params.get(field)
            if value:
                filters[field] = value

        search = params.get('search')
        if search:
            queryset = queryset.filter(
                Q(title__icontains=search) |
                Q(description__icontains=search) |
                Q(address__icontains=search)
            )

        profile = getattr(self.request.user, 'profile', None) if self.request.user.is_authenticated else None
        if params.get('mine') == 'true' and profile is not None:
            filters['reporter'] = profile
        if params.get('assigned') == 'true' and profile is not None:
            filters['assigned_to'] = profile

        if self.action == 'retrieve':
            queryset = queryset.prefetch_related('audit_logs__actor')

        return queryset.filter(**filters)

    def get_serializer_class(self):
        """Get the appropriate serializer based on the action."""
        return {
            'create': IssueCreateSerializer,
            'retrieve': IssueDetailSerializer,
            'status': IssueStatusSerializer,
            'resolve': IssueResolveSerializer,
            'notes': IssueNotesSerializer,
            'map': IssueMapSerializer,
        }.get(self.action, IssueSerializer)

    def get_permissions(self):
        """Get the appropriate permissions based on the action."""
        if self.action in ['list', 'retrieve', 'audit', 'map', 'statistics']:
            permission_classes = [AllowAny]
        elif self.action == 'create':
            permission_classes = [IsAuthenticated, IsCitizen]
        elif self.action in ['claim', 'resolve', 'status', 'notes']:
            permission_classes = [IsAuthenticated, IsGovernmentUser]
        else:
            permission_classes = [IsAuthenticated, HasProfile]
        return [permission() for permission in permission_classes]

    def get_throttles(self):
        if self.request.user.is_authenticated:
            return [BurstRateThrottle()]
        return [AnonBurstRateThrottle()]

    def _controller(self):
        return IssueLifecycleController(Session.from_request(self.request))

    def _respond(self, issue, status_code=status.HTTP_200_OK):
        return Response(
            IssueSerializer(issue, context=self.get_serializer_context()).data,
            status=status_code
        )

    def create(self, request, *args, **kwargs):
        """Report a new issue as the current citizen."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        issue = serializer.save(reporter=request.user.profile)
        return self._respond(issue, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def claim(self, request, pk=None):
        """Move a pending issue to in_progress and assign it to the caller."""
        issue = self._controller().claim_issue(pk)
        return self._respond(issue)

    @action(detail=True, methods=['post'])
    def resolve(self, request, pk=None):
        """Resolve an issue and credit its reporter."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        issue = self._controller().resolve_issue(
            pk,
            notes=serializer.validated_data.get('notes'),
            proof_of_fix_urls=serializer.validated_data.get('proof_of_fix_urls'),
        )
        return self._respond(issue)

    @action(detail=True, methods=['post', 'patch'])
    def status(self, request, pk=None):
        """Move an issue to the requested status."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        issue = self._controller().transition(
            pk,
            serializer.validated_data['status'],
            notes=serializer.validated_data.get('notes'),
        )
        return self._respond(issue)

    @action(detail=True, methods=['patch'])
    def notes(self, request, pk=None):
        """Edit government notes or the assigned department."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        issue = self._controller().update_details(
            pk,
            notes=serializer.validated_data.get('government_notes'),
            department=serializer.validated_data.get('assigned_department'),
        )
        return self._respond(issue)

    @action(detail=True, methods=['post'])
    def upvote(self, request, pk=None):
        """Add one upvote to an issue."""
        issue = self.get_object()
        Issue.objects.filter(pk=issue.pk).update(upvotes=F('upvotes') + 1)
        issue.refresh_from_db(fields=['upvotes'])
        return Response({'id': str(issue.pk), 'upvotes': issue.upvotes})

    @action(detail=True, methods=['get'])
    def audit(self, request, pk=None):
        """Audit trail of an issue."""
        issue = self.get_object()
        logs = issue.audit_logs.select_related('actor').order_by('created_at')
        return Response(AuditLogSerializer(logs, many=True).data)

    @action(detail=False, methods=['get'])
    def map(self, request):
        """Issues that carry coordinates, for map markers."""
        queryset = self.filter_queryset(self.get_queryset()).filter(
            location_lat__isnull=False,
            location_lng__isnull=False
        )
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=False, methods=['get'])
    def statistics(self, request):
        """Platform-wide issue statistics."""
        stats = cache.get(PLATFORM_STATS_CACHE_KEY)
        if stats is None:
            stats = PlatformStatsSerializer(get_platform_statistics()).data
            cache.set(PLATFORM_STATS_CACHE_KEY, stats, settings.STATS_CACHE_TIMEOUT)
            logger.debug('Platform statistics recalculated')
        return Response(stats)
