import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response

from accounts.permissions import HasProfile
from .exceptions import NotFound
from .models import Notification
from .notifications import NotificationSink
from .serializers import CoinTransactionSerializer, NotificationSerializer
from .services import RewardLedger

logger = logging.getLogger(__name__)


def _paginate(request, queryset, serializer_class):
    paginator = PageNumberPagination()
    page = paginator.paginate_queryset(queryset, request)
    return paginator.get_paginated_response(serializer_class(page, many=True).data)


@api_view(['GET'])
@permission_classes([HasProfile])
def notification_list(request):
    """List the current user's notifications, newest first.

    Query params:
        unread: ``true`` to return only unread notifications
    """
    queryset = Notification.objects.filter(user=request.user.profile)
    if request.query_params.get('unread') == 'true':
        queryset = queryset.filter(read=False)
    return _paginate(request, queryset, NotificationSerializer)


@api_view(['GET'])
@permission_classes([HasProfile])
def notification_unread_count(request):
    return Response({'unread': NotificationSink().unread_count(request.user.profile)})


@api_view(['POST'])
@permission_classes([HasProfile])
def notification_mark_read(request, pk):
    """Mark one of the current user's notifications as read."""
    try:
        notification = Notification.objects.get(pk=pk, user=request.user.profile)
    except Notification.DoesNotExist:
        raise NotFound(f'Notification {pk} does not exist.')

    notification = NotificationSink().mark_read(notification)
    return Response(NotificationSerializer(notification).data)


@api_view(['POST'])
@permission_classes([HasProfile])
def notification_mark_all_read(request):
    """Mark every unread notification of the current user as read."""
    updated = NotificationSink().mark_all_read(request.user.profile)
    logger.info(f'Profile {request.user.profile.pk} marked {updated} notifications read')
    return Response({'updated': updated})


@api_view(['GET'])
@permission_classes([HasProfile])
def coin_history(request):
    """The current user's Civic Coin ledger with its balance.

    Returns:
        Paginated ledger entries plus ``balance`` (the ledger total) and
        the profile's ``rank``.
    """
    profile = request.user.profile
    response = _paginate(request, profile.coin_transactions.all(), CoinTransactionSerializer)
    response.data['balance'] = RewardLedger().balance_for(profile.pk)
    response.data['rank'] = profile.rank
    return response
