from rest_framework import permissions


def _profile(request):
    user = request.user
    if not (user and user.is_authenticated):
        return None
    return getattr(user, 'profile', None)


class IsCitizen(permissions.BasePermission):
    """Allow access only to users with a citizen profile."""

    message = 'Only citizens can perform this action.'

    def has_permission(self, request, view):
        """Check if user is authenticated and has a citizen profile.

        Returns:
            bool: True if the user's profile type is citizen.
        """
        profile = _profile(request)
        return bool(profile and profile.is_citizen)


class IsGovernmentUser(permissions.BasePermission):
    """Allow access only to government staff.

    This permission class checks if the authenticated user's profile has
    user_type set to government.
    """

    message = 'Only government staff can perform this action.'

    def has_permission(self, request, view):
        """Check if user is government staff.

        Args:
            request: HTTP request object.
            view: View being accessed.

        Returns:
            bool: True if user is authenticated and is government staff.
        """
        profile = _profile(request)
        return bool(profile and profile.is_government)


class HasProfile(permissions.BasePermission):
    """Allow access to any authenticated user that has a profile."""

    message = 'A civic profile is required for this action.'

    def has_permission(self, request, view):
        return _profile(request) is not None
