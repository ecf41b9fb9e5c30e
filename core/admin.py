"""Admin interface for core app models."""

from django.contrib import admin
from django.utils.html import format_html

from .models import CivicCoinTransaction, Notification


@admin.register(CivicCoinTransaction)
class CivicCoinTransactionAdmin(admin.ModelAdmin):
    """Admin interface for the Civic Coin ledger.

    The ledger is append-only; entries can be inspected but never added,
    changed or removed from the admin.
    """

    list_display = (
        'id', 'user', 'amount_badge', 'transaction_type', 'issue',
        'description', 'created_at'
    )
    list_filter = ('transaction_type', 'created_at')
    search_fields = ('user__full_name', 'user__user__email', 'description', 'issue__title')
    readonly_fields = (
        'id', 'user', 'amount', 'transaction_type', 'description',
        'issue', 'created_at'
    )

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('user', 'issue')

    def amount_badge(self, obj):
        """Display the credited amount."""
        return format_html(
            '<span style="color: {}; font-weight: bold;">+{}</span>',
            'green', obj.amount
        )
    amount_badge.short_description = 'Amount'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """Admin interface for in-app notifications."""

    list_display = ('title', 'user', 'type', 'read', 'created_at')
    list_filter = ('type', 'read', 'created_at')
    search_fields = ('title', 'message', 'user__full_name', 'user__user__email')
    readonly_fields = ('created_at',)
    actions = ['mark_as_read']

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('user', 'issue')

    def mark_as_read(self, request, queryset):
        """Mark selected notifications as read."""
        updated = queryset.filter(read=False).update(read=True)
        self.message_user(request, f'{updated} notifications marked as read.')
    mark_as_read.short_description = 'Mark selected notifications as read'
