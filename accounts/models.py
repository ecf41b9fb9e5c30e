from django.db import models
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.validators import RegexValidator
from django.utils.translation import gettext_lazy as _
from core.models import BaseModel
from core.utils import rank_for_balance


class UserManager(BaseUserManager):
    """Manager for users identified by email instead of username."""

    use_in_migrations = True

    def _create_user(self, email, password, profile_defaults=None, **extra_fields):
        if not email:
            raise ValueError('The email address must be set')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        # Consumed by the post_save signal that creates the user's profile
        user.profile_defaults = profile_defaults
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self._create_user(email, password, **extra_fields)


class User(AbstractUser, BaseModel):
    """Custom user model authenticated by email address.

    Civic data (role, balance, counters) lives on the related ``Profile``.
    """

    # Remove username field and use email as the unique identifier
    username = None
    email = models.EmailField(
        _('email address'),
        unique=True,
        help_text=_('User\'s email address (used for login)')
    )

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')

    def __str__(self):
        """Return string representation of the user."""
        return self.get_full_name() or self.email


class Profile(BaseModel):
    """Public civic identity of a user.

    ``civic_coins`` is written only by ``core.services.RewardLedger`` and
    always equals the sum of the profile's ledger entries. ``rank`` is
    derived from ``civic_coins`` and recomputed on every save.
    """

    USER_TYPE_CITIZEN = 'citizen'
    USER_TYPE_GOVERNMENT = 'government'

    USER_TYPE_CHOICES = [
        (USER_TYPE_CITIZEN, 'Citizen'),
        (USER_TYPE_GOVERNMENT, 'Government'),
    ]

    COUNTER_FIELDS = ('civic_coins', 'rank', 'total_reports', 'resolved_reports')

    phone_regex = RegexValidator(
        regex=r'^\+?1?\d{9,15}$',
        message=_('Phone number must be entered in the format: +999999999')
    )

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='profile'
    )
    user_type = models.CharField(
        max_length=20,
        choices=USER_TYPE_CHOICES,
        default=USER_TYPE_CITIZEN,
        help_text=_('Role of the user; cannot change once saved')
    )
    full_name = models.CharField(max_length=150, blank=True)
    department = models.CharField(
        max_length=100,
        blank=True,
        help_text=_('Department or unit (for government staff)')
    )
    government_id = models.CharField(max_length=50, blank=True)
    phone_number = models.CharField(
        _('phone number'),
        validators=[phone_regex],
        max_length=17,
        blank=True
    )
    address = models.CharField(max_length=255, blank=True)
    profile_photo_url = models.URLField(blank=True)
    civic_coins = models.PositiveIntegerField(default=0)
    rank = models.CharField(max_length=20, editable=False, blank=True)
    total_reports = models.PositiveIntegerField(default=0)
    resolved_reports = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['-civic_coins', 'created_at']
        indexes = [
            models.Index(fields=['user_type'], name='accounts_pr_user_ty_2f1c0e_idx'),
            models.Index(fields=['civic_coins'], name='accounts_pr_civic_c_8a4b3d_idx'),
        ]

    def __str__(self):
        return self.full_name or self.user.email

    @property
    def is_government(self) -> bool:
        return self.user_type == self.USER_TYPE_GOVERNMENT

    @property
    def is_citizen(self) -> bool:
        return self.user_type == self.USER_TYPE_CITIZEN

    def save(self, *args, **kwargs):
        self.rank = rank_for_balance(self.civic_coins)
        update_fields = kwargs.get('update_fields')
        if update_fields is None and not self._state.adding and not kwargs.get('force_insert'):
            # Balance, rank and counters on an existing row change only through atomic updates
            update_fields = [
                field.name for field in self._meta.concrete_fields
                if not field.primary_key and field.name not in self.COUNTER_FIELDS
            ]
            kwargs['update_fields'] = update_fields
        if update_fields is not None and 'civic_coins' in update_fields:
            kwargs['update_fields'] = set(update_fields) | {'rank'}
        super().save(*args, **kwargs)
