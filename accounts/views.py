import logging

from django.conf import settings
from django.core.cache import cache
from django.db.models import Q
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from .models import Profile
from .permissions import HasProfile
from .serializers import (
    LeaderboardEntrySerializer,
    ProfileSerializer,
    RegisterSerializer,
)

logger = logging.getLogger(__name__)

LEADERBOARD_CACHE_KEY = 'leaderboard:{user_type}:{sort}'


class RegistrationRateThrottle(AnonRateThrottle):
    """Rate limit for registration attempts."""
    rate = '10/hour'


class CustomTokenObtainPairView(TokenObtainPairView):
    """Token view that includes the caller's profile in the response."""

    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)

        if response.status_code == 200:
            profile = Profile.objects.select_related('user').filter(
                user__email__iexact=request.data.get('email', '')
            ).first()
            if profile is not None:
                response.data['profile'] = ProfileSerializer(profile).data
                logger.info(f'User {profile.user_id} logged in')

        return response


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([RegistrationRateThrottle])
def user_register(request):
    """Register a new citizen or government user.

    Returns:
        Profile data and JWT tokens in camelCase format.

    Raises:
        400: If registration data is invalid.
    """
    serializer = RegisterSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    profile = serializer.save()
    refresh = RefreshToken.for_user(profile.user)

    logger.info(f'Registered {profile.user_type} user {profile.user_id}')

    return Response({
        'profile': ProfileSerializer(profile).data,
        'tokens': {
            'access': str(refresh.access_token),
            'refresh': str(refresh)
        }
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([HasProfile])
def user_profile(request):
    """Get or update the current user's profile.

    Balance, rank, counters and user type are read-only here.
    """
    profile = request.user.profile

    if request.method == 'GET':
        return Response(ProfileSerializer(profile).data)

    serializer = ProfileSerializer(profile, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    profile = serializer.save()
    return Response(ProfileSerializer(profile).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def leaderboard(request):
    """Top profiles by Civic Coins or by number of reports.

    Query params:
        user_type: citizen | government
        sort: coins (default) | reports
        search: case-insensitive match on full name

    Returns:
        List of leaderboard rows with a 1-based ``position``.
    """
    user_type = request.query_params.get('user_type', '')
    sort = request.query_params.get('sort', 'coins')
    search = request.query_params.get('search', '').strip()

    if user_type and user_type not in dict(Profile.USER_TYPE_CHOICES):
        return Response(
            {'error': {'code': 'invalid_user_type', 'message': f'Unknown user type: {user_type}'}},
            status=status.HTTP_400_BAD_REQUEST
        )
    if sort not in ('coins', 'reports'):
        return Response(
            {'error': {'code': 'invalid_sort', 'message': f'Unknown sort order: {sort}'}},
            status=status.HTTP_400_BAD_REQUEST
        )

    cache_key = LEADERBOARD_CACHE_KEY.format(user_type=user_type or 'all', sort=sort)
    data = None if search else cache.get(cache_key)

    if data is None:
        ordering = ['-civic_coins', '-total_reports'] if sort == 'coins' else ['-total_reports', '-civic_coins']
        queryset = Profile.objects.all()
        if user_type:
            queryset = queryset.filter(user_type=user_type)
        if search:
            queryset = queryset.filter(Q(full_name__icontains=search))
        entries = list(queryset.order_by(*ordering, 'created_at')[:settings.LEADERBOARD_LIMIT])
        for position, entry in enumerate(entries, start=1):
            entry.position = position
        data = LeaderboardEntrySerializer(entries, many=True).data
        if not search:
            cache.set(cache_key, data, settings.STATS_CACHE_TIMEOUT)

    return Response(data)
