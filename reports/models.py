from django.db import models
from django.db.models import Q
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _
from django.core.serializers.json import DjangoJSONEncoder
import uuid


class Issue(models.Model):
    """Civic issue reported by a citizen.

    Status only moves forward: ``pending`` -> ``in_progress`` -> ``resolved``
    (``pending`` may also resolve directly). Transitions are made by
    ``reports.lifecycle.IssueLifecycleController``; the model itself only
    guards the invariants that tie ``resolved_at`` and ``coins_awarded`` to
    the resolved state.
    """

    CATEGORY_ROADS = 'roads'
    CATEGORY_UTILITIES = 'utilities'
    CATEGORY_PARKS = 'parks'
    CATEGORY_SAFETY = 'safety'
    CATEGORY_ENVIRONMENT = 'environment'
    CATEGORY_OTHER = 'other'

    CATEGORY_CHOICES = [
        (CATEGORY_ROADS, 'Roads & Transportation'),
        (CATEGORY_UTILITIES, 'Utilities'),
        (CATEGORY_PARKS, 'Parks & Recreation'),
        (CATEGORY_SAFETY, 'Public Safety'),
        (CATEGORY_ENVIRONMENT, 'Environment'),
        (CATEGORY_OTHER, 'Other'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_RESOLVED = 'resolved'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_RESOLVED, 'Resolved'),
    ]

    PRIORITY_LOW = 'low'
    PRIORITY_MEDIUM = 'medium'
    PRIORITY_HIGH = 'high'
    PRIORITY_URGENT = 'urgent'

    PRIORITY_CHOICES = [
        (PRIORITY_LOW, 'Low'),
        (PRIORITY_MEDIUM, 'Medium'),
        (PRIORITY_HIGH, 'High'),
        (PRIORITY_URGENT, 'Urgent'),
    ]

    # Primary Fields
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text=_('Unique identifier for the issue')
    )
    title = models.CharField(
        max_length=200,
        help_text=_('Brief title describing the issue')
    )
    description = models.TextField(
        blank=True,
        help_text=_('Detailed description of the issue')
    )
    category = models.CharField(
        max_length=20,
        choices=CATEGORY_CHOICES,
        help_text=_('Category of the reported issue')
    )
    priority = models.CharField(
        max_length=10,
        choices=PRIORITY_CHOICES,
        default=PRIORITY_MEDIUM,
        help_text=_('Priority chosen by the reporter')
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        help_text=_('Current status of the issue')
    )

    # Location Information
    location_lat = models.FloatField(null=True, blank=True)
    location_lng = models.FloatField(null=True, blank=True)
    address = models.CharField(
        max_length=255,
        blank=True,
        help_text=_('Physical address of the issue location')
    )

    # Media references owned by the storage provider
    photo_urls = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    video_urls = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    document_urls = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    voice_description_url = models.URLField(max_length=500, blank=True)
    proof_of_fix_urls = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)

    # Metadata
    reporter = models.ForeignKey(
        'accounts.Profile',
        on_delete=models.PROTECT,
        related_name='reported_issues',
        help_text=_('Citizen who submitted the issue')
    )
    is_anonymous = models.BooleanField(
        default=False,
        help_text=_('Hide the reporter from public listings')
    )
    upvotes = models.PositiveIntegerField(default=0)

    # Handling
    assigned_to = models.ForeignKey(
        'accounts.Profile',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_issues',
        help_text=_('Government official handling this issue')
    )
    assigned_department = models.CharField(max_length=100, blank=True)
    government_notes = models.TextField(blank=True)
    coins_awarded = models.PositiveIntegerField(
        default=0,
        help_text=_('Civic Coins credited to the reporter on resolution')
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['category'], name='reports_iss_categor_5d1e2a_idx'),
            models.Index(fields=['status'], name='reports_iss_status_7c3f41_idx'),
            models.Index(fields=['priority'], name='reports_iss_priorit_0b9e6d_idx'),
            models.Index(fields=['created_at'], name='reports_iss_created_4a8c12_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(status='resolved', resolved_at__isnull=False) |
                    (~Q(status='resolved') & Q(resolved_at__isnull=True))
                ),
                name='issue_resolved_at_matches_status',
            ),
            models.CheckConstraint(
                condition=Q(coins_awarded=0) | Q(status='resolved'),
                name='issue_coins_only_when_resolved',
            ),
        ]
        verbose_name = _('Issue')
        verbose_name_plural = _('Issues')

    def __str__(self):
        return f'{self.title} ({self.get_status_display()})'

    def clean(self):
        super().clean()
        resolved = self.is_resolved
        if resolved != (self.resolved_at is not None):
            raise ValidationError({'resolved_at': _('resolved_at must be set exactly when the issue is resolved.')})
        if self.coins_awarded and not resolved:
            raise ValidationError({'coins_awarded': _('Coins can only be awarded for resolved issues.')})

    @property
    def is_resolved(self):
        return self.status == self.STATUS_RESOLVED

    @property
    def has_location(self):
        return self.location_lat is not None and self.location_lng is not None

    @property
    def resolution_time(self):
        """Time taken to resolve the issue."""
        if self.resolved_at:
            return self.resolved_at - self.created_at
        return None


class AuditLog(models.Model):
    """Audit trail of lifecycle changes made to issues."""

    ACTION_CREATED = 'issue_created'
    ACTION_CLAIMED = 'issue_claimed'
    ACTION_RESOLVED = 'issue_resolved'
    ACTION_DETAILS_UPDATED = 'details_updated'

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    issue = models.ForeignKey(
        Issue,
        on_delete=models.CASCADE,
        related_name='audit_logs',
        help_text=_('Issue that was modified')
    )
    actor = models.ForeignKey(
        'accounts.Profile',
        on_delete=models.SET_NULL,
        null=True,
        help_text=_('Profile that made the change')
    )
    action = models.CharField(max_length=50)
    old_value = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    new_value = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = _('Audit Log Entry')
        verbose_name_plural = _('Audit Log Entries')
        indexes = [
            models.Index(fields=['issue', 'created_at'], name='reports_aud_issue_i_6e2b90_idx'),
            models.Index(fields=['action'], name='reports_aud_action_3d7f58_idx'),
        ]

    def __str__(self):
        return f'{self.action} on {self.issue} by {self.actor or "System"}'
