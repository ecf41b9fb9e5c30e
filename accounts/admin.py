from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _
from .models import Profile, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin configuration for User model."""

    list_display = ['email', 'get_full_name', 'is_active', 'is_staff', 'date_joined']
    list_filter = ['is_active', 'is_staff', 'date_joined']
    search_fields = ['email', 'first_name', 'last_name']
    ordering = ['-date_joined']

    # Fields shown in the user detail view
    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        (_('Personal info'), {'fields': ('first_name', 'last_name')}),
        (_('Permissions'), {
            'fields': (
                'is_active', 'is_staff', 'is_superuser',
                'groups', 'user_permissions'
            )
        }),
        (_('Important dates'), {'fields': ('last_login', 'date_joined')}),
    )

    # Fields shown when creating a new user
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2'),
        }),
    )

    def get_full_name(self, obj):
        """Get formatted full name."""
        return obj.get_full_name() or '-'
    get_full_name.short_description = _('Full name')
    get_full_name.admin_order_field = 'first_name'


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    """Admin configuration for Profile model.

    Balances are owned by the reward ledger and cannot be edited here.
    """

    list_display = [
        'full_name', 'user', 'user_type', 'department', 'civic_coins',
        'rank', 'total_reports', 'resolved_reports'
    ]
    list_filter = ['user_type', 'rank']
    search_fields = ['full_name', 'user__email', 'department']
    readonly_fields = ['civic_coins', 'rank', 'total_reports', 'resolved_reports', 'created_at', 'updated_at']

    def get_readonly_fields(self, request, obj=None):
        fields = list(super().get_readonly_fields(request, obj))
        if obj is not None:
            fields.append('user_type')
        return fields
