from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _
import uuid


# Abstract base model for identity and timestamps
class BaseModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class AppendOnlyError(Exception):
    """Raised when code tries to change or remove a ledger entry."""


class CivicCoinTransaction(models.Model):
    """One Civic Coin movement on a citizen's ledger.

    Entries are append-only. A profile's ``civic_coins`` must always equal
    the sum of its entries' ``amount``. Only ``core.services.RewardLedger``
    creates them.
    """

    TYPE_ISSUE_RESOLVED = 'issue_resolved'

    TRANSACTION_TYPE_CHOICES = [
        (TYPE_ISSUE_RESOLVED, 'Issue Resolved'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        'accounts.Profile',
        on_delete=models.PROTECT,
        related_name='coin_transactions',
        help_text=_('Profile whose balance this entry changes')
    )
    amount = models.PositiveIntegerField(
        help_text=_('Coins credited')
    )
    transaction_type = models.CharField(
        max_length=30,
        choices=TRANSACTION_TYPE_CHOICES,
        default=TYPE_ISSUE_RESOLVED,
    )
    description = models.CharField(max_length=255)
    issue = models.ForeignKey(
        'reports.Issue',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='coin_transactions',
        help_text=_('Issue that earned this reward')
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = _('Civic Coin Transaction')
        verbose_name_plural = _('Civic Coin Transactions')
        indexes = [
            models.Index(fields=['user', 'created_at'], name='core_civicc_user_id_9f2a31_idx'),
            models.Index(fields=['transaction_type'], name='core_civicc_transac_1c6d74_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name='coin_transaction_amount_positive',
            ),
            models.UniqueConstraint(
                fields=['issue', 'transaction_type'],
                condition=Q(issue__isnull=False),
                name='unique_reward_per_issue',
            ),
        ]

    def __str__(self):
        return f'+{self.amount} to {self.user} ({self.description})'

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AppendOnlyError('Civic Coin transactions cannot be modified')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AppendOnlyError('Civic Coin transactions cannot be deleted')


class Notification(models.Model):
    """In-app message addressed to one profile."""

    TYPE_ISSUE_CLAIMED = 'issue_claimed'
    TYPE_ISSUE_RESOLVED = 'issue_resolved'
    TYPE_INFO = 'info'

    TYPE_CHOICES = [
        (TYPE_ISSUE_CLAIMED, 'Issue Claimed'),
        (TYPE_ISSUE_RESOLVED, 'Issue Resolved'),
        (TYPE_INFO, 'Information'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        'accounts.Profile',
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    title = models.CharField(max_length=255)
    message = models.TextField()
    type = models.CharField(max_length=30, choices=TYPE_CHOICES, default=TYPE_INFO)
    issue = models.ForeignKey(
        'reports.Issue',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications'
    )
    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'read'], name='core_notifi_user_id_5b8e07_idx'),
            models.Index(fields=['created_at'], name='core_notifi_created_2e4c96_idx'),
        ]

    def __str__(self):
        return f'{self.title} -> {self.user}'
