from rest_framework import serializers
from django.utils.translation import gettext_lazy as _
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.db import transaction

from .models import Profile, User


class ProfileSerializer(serializers.ModelSerializer):
    """Serializer for Profile model with camelCase fields."""

    profileId = serializers.UUIDField(source='id', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    fullName = serializers.CharField(source='full_name', required=False, allow_blank=True)
    userType = serializers.CharField(source='user_type', read_only=True)
    phoneNumber = serializers.CharField(source='phone_number', required=False, allow_blank=True)
    profilePhotoUrl = serializers.URLField(source='profile_photo_url', required=False, allow_blank=True)
    civicCoins = serializers.IntegerField(source='civic_coins', read_only=True)
    totalReports = serializers.IntegerField(source='total_reports', read_only=True)
    resolvedReports = serializers.IntegerField(source='resolved_reports', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Profile
        fields = [
            'profileId', 'email', 'fullName', 'userType', 'department',
            'phoneNumber', 'address', 'profilePhotoUrl', 'civicCoins',
            'rank', 'totalReports', 'resolvedReports', 'createdAt'
        ]
        read_only_fields = ['rank']

    def update(self, instance, validated_data):
        # Only write the edited columns so a concurrent ledger credit is kept
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save(update_fields=[*validated_data, 'updated_at'])
        return instance


class PublicProfileSerializer(serializers.ModelSerializer):
    """Minimal profile data safe to show next to other users' content."""

    profileId = serializers.UUIDField(source='id', read_only=True)
    fullName = serializers.CharField(source='full_name', read_only=True)
    userType = serializers.CharField(source='user_type', read_only=True)

    class Meta:
        model = Profile
        fields = ['profileId', 'fullName', 'userType', 'rank']
        read_only_fields = fields


class RegisterSerializer(serializers.Serializer):
    """Serializer for registering a user together with their profile."""

    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        style={'input_type': 'password'},
        help_text=_('Password must satisfy the configured password validators')
    )
    fullName = serializers.CharField(max_length=150)
    userType = serializers.ChoiceField(
        choices=Profile.USER_TYPE_CHOICES,
        default=Profile.USER_TYPE_CITIZEN
    )
    department = serializers.CharField(max_length=100, required=False, allow_blank=True)
    governmentId = serializers.CharField(max_length=50, required=False, allow_blank=True)
    phoneNumber = serializers.CharField(max_length=17, required=False, allow_blank=True)

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(_('A user with this email already exists.'))
        return value.lower()

    def validate(self, attrs):
        try:
            validate_password(attrs['password'], User(email=attrs['email']))
        except ValidationError as e:
            raise serializers.ValidationError({'password': list(e.messages)})

        if attrs['userType'] == Profile.USER_TYPE_GOVERNMENT and not attrs.get('governmentId'):
            raise serializers.ValidationError({
                'governmentId': _('Government staff must provide a government ID.')
            })
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        user = User.objects.create_user(
            email=validated_data['email'],
            password=validated_data['password'],
            profile_defaults={
                'user_type': validated_data['userType'],
                'full_name': validated_data['fullName'],
                'department': validated_data.get('department', ''),
                'government_id': validated_data.get('governmentId', ''),
                'phone_number': validated_data.get('phoneNumber', ''),
            },
        )
        return user.profile


class LeaderboardEntrySerializer(serializers.ModelSerializer):
    """Leaderboard row; ``position`` is 1-based and set by the view."""

    profileId = serializers.UUIDField(source='id', read_only=True)
    fullName = serializers.CharField(source='full_name', read_only=True)
    userType = serializers.CharField(source='user_type', read_only=True)
    civicCoins = serializers.IntegerField(source='civic_coins', read_only=True)
    totalReports = serializers.IntegerField(source='total_reports', read_only=True)
    resolvedReports = serializers.IntegerField(source='resolved_reports', read_only=True)
    profilePhotoUrl = serializers.CharField(source='profile_photo_url', read_only=True)
    position = serializers.SerializerMethodField()

    class Meta:
        model = Profile
        fields = [
            'position', 'profileId', 'fullName', 'userType', 'civicCoins',
            'rank', 'totalReports', 'resolvedReports', 'profilePhotoUrl'
        ]

    def get_position(self, obj):
        return getattr(obj, 'position', None)
