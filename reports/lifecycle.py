"""Issue lifecycle: claiming and resolving reported issues.

State machine::

    pending ──claim──> in_progress ──resolve──> resolved
       └──────────────resolve───────────────────┘

``resolved`` is terminal. Resolving credits the reporter's Civic Coin
ledger in the same transaction as the status change. The status write is a
compare-and-swap on the status that was read, so when two officials resolve
the same issue only one of them wins and the reporter is rewarded once.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from accounts.models import Profile
from accounts.services import ProfileStore
from core.exceptions import ConcurrentModification, IllegalTransition, NotFound, Unauthorized
from core.notifications import IssueNotificationService
from core.services import RewardLedger
from core.utils import get_client_ip, reward_for_priority
from .models import AuditLog, Issue

logger = logging.getLogger(__name__)


# Allowed target statuses for each current status
TRANSITIONS = {
    Issue.STATUS_PENDING: {Issue.STATUS_IN_PROGRESS, Issue.STATUS_RESOLVED},
    Issue.STATUS_IN_PROGRESS: {Issue.STATUS_RESOLVED},
    Issue.STATUS_RESOLVED: set(),
}


def can_transition(current_status: str, target_status: str) -> bool:
    return target_status in TRANSITIONS.get(current_status, set())


@dataclass(frozen=True)
class Session:
    """The acting user of one lifecycle request."""

    profile: Profile
    ip_address: Optional[str] = None
    user_agent: str = ''

    @classmethod
    def from_request(cls, request) -> 'Session':
        return cls(
            profile=request.user.profile,
            ip_address=get_client_ip(request) or None,
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
        )


class IssueStore:
    """Reads and guarded writes on ``Issue`` rows."""

    def read_issue(self, issue_id) -> Issue:
        try:
            return Issue.objects.select_related('reporter', 'assigned_to').get(pk=issue_id)
        except (Issue.DoesNotExist, ValueError, ValidationError):
            raise NotFound(f'Issue {issue_id} does not exist.')

    def compare_and_swap_status(self, issue_id, expected_status: str, **fields) -> bool:
        """Apply ``fields`` only if the issue still has ``expected_status``.

        Returns:
            bool: True if this call changed the row
        """
        return Issue.objects.filter(pk=issue_id, status=expected_status).update(**fields) == 1

    def update_fields(self, issue_id, **fields) -> None:
        Issue.objects.filter(pk=issue_id).update(**fields)


class IssueLifecycleController:
    """Enforces legal status transitions and applies their side effects.

    Attributes:
        session (Session): Who is acting
        issues (IssueStore): Issue persistence
        profiles (ProfileStore): Profile persistence
        ledger (RewardLedger): Civic Coin ledger
        notifications (IssueNotificationService): Reporter notifications
    """

    def __init__(
        self,
        session: Session,
        issues: Optional[IssueStore] = None,
        profiles: Optional[ProfileStore] = None,
        ledger: Optional[RewardLedger] = None,
        notifications: Optional[IssueNotificationService] = None,
    ):
        self.session = session
        self.issues = issues or IssueStore()
        self.profiles = profiles or ProfileStore()
        self.ledger = ledger or RewardLedger(profiles=self.profiles)
        self.notifications = notifications or IssueNotificationService()

    @property
    def actor(self) -> Profile:
        return self.session.profile

    def _require_government(self) -> Profile:
        if not self.actor.is_government:
            raise Unauthorized('Only government staff can change the status of an issue.')
        return self.actor

    def _require_transition(self, issue: Issue, target_status: str) -> None:
        if not can_transition(issue.status, target_status):
            raise IllegalTransition(issue.status, target_status)

    def _audit(self, issue: Issue, action: str, old_value: dict, new_value: dict) -> None:
        AuditLog.objects.create(
            issue_id=issue.pk,
            actor=self.actor,
            action=action,
            old_value=old_value,
            new_value=new_value,
            ip_address=self.session.ip_address,
            user_agent=self.session.user_agent,
        )

    def transition(self, issue_id, target_status: str, notes: Optional[str] = None) -> Issue:
        """Move an issue to ``target_status``.

        Raises:
            IllegalTransition: For any target other than in_progress/resolved
        """
        if target_status == Issue.STATUS_IN_PROGRESS:
            return self.claim_issue(issue_id)
        if target_status == Issue.STATUS_RESOLVED:
            return self.resolve_issue(issue_id, notes=notes)

        self._require_government()
        issue = self.issues.read_issue(issue_id)
        raise IllegalTransition(issue.status, target_status)

    def claim_issue(self, issue_id) -> Issue:
        """Assign a pending issue to the acting official.

        Raises:
            Unauthorized: If the actor is not government staff
            NotFound: If the issue does not exist
            IllegalTransition: If the issue is not pending
            ConcurrentModification: If the issue changed after it was read
        """
        actor = self._require_government()

        with transaction.atomic():
            issue = self.issues.read_issue(issue_id)
            self._require_transition(issue, Issue.STATUS_IN_PROGRESS)

            department = actor.department or settings.DEFAULT_ASSIGNED_DEPARTMENT
            swapped = self.issues.compare_and_swap_status(
                issue.pk,
                issue.status,
                status=Issue.STATUS_IN_PROGRESS,
                assigned_to=actor,
                assigned_department=department,
                updated_at=timezone.now(),
            )
            if not swapped:
                raise ConcurrentModification()

            self._audit(
                issue,
                AuditLog.ACTION_CLAIMED,
                old_value={'status': issue.status},
                new_value={
                    'status': Issue.STATUS_IN_PROGRESS,
                    'assigned_to': str(actor.pk),
                    'assigned_department': department,
                },
            )

        issue = self.issues.read_issue(issue_id)
        logger.info(f'Issue {issue.pk} claimed by {actor.pk} ({department})')
        self.notifications.notify_issue_claimed(issue)
        return issue

    def resolve_issue(
        self,
        issue_id,
        notes: Optional[str] = None,
        proof_of_fix_urls: Optional[list] = None,
    ) -> Issue:
        """Resolve an issue and reward its reporter.

        The status change, the ledger credit and the reporter's counters are
        written in one transaction.

        Raises:
            Unauthorized: If the actor is not government staff
            NotFound: If the issue does not exist
            IllegalTransition: If the issue is already resolved
            ConcurrentModification: If another request resolved it first
            DuplicateReward: If the ledger already holds a reward for it
        """
        actor = self._require_government()

        with transaction.atomic():
            issue = self.issues.read_issue(issue_id)
            self._require_transition(issue, Issue.STATUS_RESOLVED)

            now = timezone.now()
            reward = reward_for_priority(issue.priority)
            fields = {
                'status': Issue.STATUS_RESOLVED,
                'resolved_at': now,
                'updated_at': now,
                'coins_awarded': reward,
            }
            if notes:
                fields['government_notes'] = notes
            if proof_of_fix_urls:
                fields['proof_of_fix_urls'] = list(proof_of_fix_urls)

            if not self.issues.compare_and_swap_status(issue.pk, issue.status, **fields):
                raise ConcurrentModification()

            self.ledger.credit(
                issue.reporter_id,
                reward,
                f'Issue resolved: {issue.title}',
                issue_id=issue.pk,
            )
            self.profiles.increment_resolved_reports(issue.reporter_id)

            self._audit(
                issue,
                AuditLog.ACTION_RESOLVED,
                old_value={'status': issue.status},
                new_value={
                    'status': Issue.STATUS_RESOLVED,
                    'coins_awarded': reward,
                    'government_notes': notes or '',
                },
            )

        issue = self.issues.read_issue(issue_id)
        logger.info(f'Issue {issue.pk} resolved by {actor.pk}; {reward} coins to {issue.reporter_id}')
        self.notifications.notify_issue_resolved(issue)
        return issue

    def update_details(self, issue_id, notes: Optional[str] = None, department: Optional[str] = None) -> Issue:
        """Edit government notes or department without changing status."""
        self._require_government()

        changes = {}
        if notes is not None:
            changes['government_notes'] = notes
        if department is not None:
            changes['assigned_department'] = department

        with transaction.atomic():
            issue = self.issues.read_issue(issue_id)
            if changes:
                self.issues.update_fields(issue.pk, updated_at=timezone.now(), **changes)
                self._audit(
                    issue,
                    AuditLog.ACTION_DETAILS_UPDATED,
                    old_value={
                        key: getattr(issue, key) for key in changes
                    },
                    new_value=changes,
                )

        return self.issues.read_issue(issue_id)
