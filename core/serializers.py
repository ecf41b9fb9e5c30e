from rest_framework import serializers

from .models import CivicCoinTransaction, Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Serializer for in-app notifications with camelCase fields."""

    issueId = serializers.UUIDField(source='issue_id', read_only=True, allow_null=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Notification
        fields = ['id', 'title', 'message', 'type', 'issueId', 'read', 'createdAt']
        read_only_fields = fields


class CoinTransactionSerializer(serializers.ModelSerializer):
    """Serializer for a Civic Coin ledger entry."""

    transactionType = serializers.CharField(source='transaction_type', read_only=True)
    issueId = serializers.UUIDField(source='issue_id', read_only=True, allow_null=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = CivicCoinTransaction
        fields = ['id', 'amount', 'transactionType', 'description', 'issueId', 'createdAt']
        read_only_fields = fields
