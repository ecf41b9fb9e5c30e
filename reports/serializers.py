from rest_framework import serializers
from django.utils.translation import gettext_lazy as _

from accounts.serializers import PublicProfileSerializer
from .models import AuditLog, Issue


class AuditLogSerializer(serializers.ModelSerializer):
    """Serializer for issue audit logs."""

    actor = PublicProfileSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ('id', 'actor', 'action', 'old_value', 'new_value', 'created_at')
        read_only_fields = fields


class IssueSerializer(serializers.ModelSerializer):
    """Serializer for retrieving issues.

    The reporter is hidden on anonymous issues unless the viewer is the
    reporter or government staff.
    """

    reporter = serializers.SerializerMethodField()
    assigned_to = PublicProfileSerializer(read_only=True)
    location = serializers.SerializerMethodField()

    class Meta:
        model = Issue
        fields = (
            'id', 'title', 'description', 'category', 'priority',
            'status', 'location', 'address', 'photo_urls', 'video_urls',
            'document_urls', 'voice_description_url', 'proof_of_fix_urls',
            'reporter', 'is_anonymous', 'upvotes', 'assigned_to',
            'assigned_department', 'government_notes', 'coins_awarded',
            'created_at', 'updated_at', 'resolved_at'
        )
        read_only_fields = fields

    def _viewer(self):
        request = self.context.get('request')
        if request is None or not request.user.is_authenticated:
            return None
        return getattr(request.user, 'profile', None)

    def get_reporter(self, obj):
        viewer = self._viewer()
        if obj.is_anonymous and not (
            viewer and (viewer.is_government or viewer.pk == obj.reporter_id)
        ):
            return None
        return PublicProfileSerializer(obj.reporter).data

    def get_location(self, obj):
        """Return lat/lng dict or None."""
        if obj.has_location:
            return {
                'latitude': obj.location_lat,
                'longitude': obj.location_lng
            }
        return None


class IssueDetailSerializer(IssueSerializer):
    """Issue with its audit trail."""

    audit_logs = AuditLogSerializer(many=True, read_only=True)

    class Meta(IssueSerializer.Meta):
        fields = IssueSerializer.Meta.fields + ('audit_logs',)
        read_only_fields = fields


class IssueCreateSerializer(serializers.ModelSerializer):
    """Serializer for citizens reporting a new issue."""

    latitude = serializers.FloatField(required=False, write_only=True, min_value=-90, max_value=90)
    longitude = serializers.FloatField(required=False, write_only=True, min_value=-180, max_value=180)
    photo_urls = serializers.ListField(child=serializers.URLField(max_length=500), required=False)
    video_urls = serializers.ListField(child=serializers.URLField(max_length=500), required=False)
    document_urls = serializers.ListField(child=serializers.URLField(max_length=500), required=False)

    class Meta:
        model = Issue
        fields = (
            'title', 'description', 'category', 'priority', 'address',
            'is_anonymous', 'photo_urls', 'video_urls', 'document_urls',
            'voice_description_url', 'latitude', 'longitude'
        )

    def validate_title(self, value):
        value = value.strip()
        if len(value) < 5:
            raise serializers.ValidationError(_('Title must be at least 5 characters long'))
        return value

    def validate(self, data):
        """Validate and map coordinates onto the model fields."""
        latitude = data.pop('latitude', None)
        longitude = data.pop('longitude', None)

        if (latitude is None) != (longitude is None):
            raise serializers.ValidationError({
                'location': _('Latitude and longitude must be provided together')
            })
        if latitude is not None:
            data['location_lat'] = latitude
            data['location_lng'] = longitude

        return data


class IssueStatusSerializer(serializers.Serializer):
    """Serializer for the government status endpoint."""

    status = serializers.ChoiceField(choices=Issue.STATUS_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True)


class IssueResolveSerializer(serializers.Serializer):
    """Serializer for resolving an issue."""

    notes = serializers.CharField(required=False, allow_blank=True)
    proof_of_fix_urls = serializers.ListField(
        child=serializers.URLField(max_length=500),
        required=False
    )


class IssueNotesSerializer(serializers.Serializer):
    """Serializer for government notes / department edits."""

    government_notes = serializers.CharField(required=False, allow_blank=True)
    assigned_department = serializers.CharField(required=False, allow_blank=True, max_length=100)

    def validate(self, data):
        if not data:
            raise serializers.ValidationError(_('Provide government_notes or assigned_department'))
        return data


class IssueMapSerializer(serializers.ModelSerializer):
    """Compact issue representation for map markers."""

    class Meta:
        model = Issue
        fields = (
            'id', 'title', 'category', 'priority', 'status',
            'location_lat', 'location_lng', 'address', 'upvotes', 'created_at'
        )
        read_only_fields = fields


class PlatformStatsSerializer(serializers.Serializer):
    """Serializer for platform statistics."""

    total_issues = serializers.IntegerField()
    pending_issues = serializers.IntegerField()
    in_progress_issues = serializers.IntegerField()
    resolved_issues = serializers.IntegerField()
    active_citizens = serializers.IntegerField()
    avg_resolution_hours = serializers.FloatField(allow_null=True)
