"""Domain errors raised by the issue lifecycle and the reward ledger.

Every error carries a human readable ``message`` and a machine readable
``code``. ``api.exceptions.custom_exception_handler`` turns them into JSON
responses using ``status_code``.
"""

from rest_framework import status


class CivicHubError(Exception):
    """Base exception for recoverable domain errors."""

    default_message = 'The request could not be completed.'
    default_code = 'error'
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = None, code: str = None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        super().__init__(self.message)


class IllegalTransition(CivicHubError):
    """Raised when a status change is not permitted from the current state."""

    default_message = 'This status change is not allowed.'
    default_code = 'illegal_transition'
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current_status: str = None, target_status: str = None, message: str = None):
        self.current_status = current_status
        self.target_status = target_status
        if message is None and current_status and target_status:
            message = f'Cannot move an issue from {current_status} to {target_status}.'
        super().__init__(message)


class ConcurrentModification(CivicHubError):
    """Raised when another request changed the issue status first."""

    default_message = 'The issue was modified by another request. Reload and try again.'
    default_code = 'concurrent_modification'
    status_code = status.HTTP_409_CONFLICT


class DuplicateReward(CivicHubError):
    """Raised when a reward for the same issue is already on the ledger."""

    default_message = 'Civic Coins were already awarded for this issue.'
    default_code = 'duplicate_reward'
    status_code = status.HTTP_409_CONFLICT


class NotFound(CivicHubError):
    """Raised when a referenced issue or profile does not exist."""

    default_message = 'The requested record was not found.'
    default_code = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND


class Unauthorized(CivicHubError):
    """Raised when the acting user lacks the role a transition requires."""

    default_message = 'You do not have permission to perform this action.'
    default_code = 'unauthorized'
    status_code = status.HTTP_403_FORBIDDEN


class InvalidRewardAmount(CivicHubError):
    """Raised when a ledger credit is not a positive amount."""

    default_message = 'Reward amount must be a positive number of coins.'
    default_code = 'invalid_amount'
    status_code = status.HTTP_400_BAD_REQUEST
