"""Admin interface for the reports app."""

from django.contrib import admin
from django.utils.html import format_html
from django.urls import reverse
from .models import Issue, AuditLog


@admin.register(Issue)
class IssueAdmin(admin.ModelAdmin):
    """Admin interface for browsing civic issues.

    Status, assignment and rewards change only through the lifecycle
    endpoints, so they are read-only here.
    """

    list_display = (
        'title', 'category', 'status', 'priority', 'reporter',
        'assigned_to', 'coins_awarded', 'created_at', 'view_audit_logs'
    )
    list_filter = ('category', 'status', 'priority', 'is_anonymous', 'created_at')
    search_fields = ('title', 'description', 'address', 'reporter__user__email')
    readonly_fields = (
        'id', 'status', 'assigned_to', 'coins_awarded', 'resolved_at',
        'upvotes', 'created_at', 'updated_at'
    )

    fieldsets = (
        ('Basic Information', {
            'fields': ('title', 'description', 'category', 'priority', 'status')
        }),
        ('Location', {
            'fields': ('location_lat', 'location_lng', 'address')
        }),
        ('Media', {
            'fields': (
                'photo_urls', 'video_urls', 'document_urls',
                'voice_description_url', 'proof_of_fix_urls'
            ),
            'classes': ('collapse',)
        }),
        ('Handling', {
            'fields': (
                'reporter', 'is_anonymous', 'assigned_to',
                'assigned_department', 'government_notes', 'coins_awarded',
                'resolved_at'
            )
        }),
        ('System Fields', {
            'fields': ('id', 'created_at', 'updated_at', 'upvotes'),
            'classes': ('collapse',)
        }),
    )

    def get_queryset(self, request):
        """Optimize admin list view queries."""
        return super().get_queryset(request).select_related(
            'reporter', 'assigned_to'
        )

    def view_audit_logs(self, obj):
        """Display link to the issue's audit logs."""
        url = reverse('admin:reports_auditlog_changelist')
        return format_html(
            '<a href="{}?issue__id__exact={}">Audit log</a>',
            url, obj.id
        )
    view_audit_logs.short_description = 'Audit Logs'


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Admin interface for viewing audit logs."""

    list_display = ('issue', 'action', 'actor', 'ip_address', 'created_at')
    list_filter = ('action', 'created_at')
    search_fields = ('issue__title', 'actor__user__email', 'action')
    readonly_fields = ('created_at', 'old_value', 'new_value')

    def get_queryset(self, request):
        """Optimize admin list view queries."""
        return super().get_queryset(request).select_related('issue', 'actor')

    def has_add_permission(self, request):
        """Disable manual creation of audit logs."""
        return False

    def has_change_permission(self, request, obj=None):
        """Disable editing of audit logs."""
        return False

    def has_delete_permission(self, request, obj=None):
        """Disable deletion of audit logs."""
        return False
