"""Middleware for request logging.

Example usage:
    MIDDLEWARE = [
        ...
        'core.middleware.LogRequestMiddleware',
    ]
"""

import logging
import time
from typing import Callable

from django.http import HttpRequest, HttpResponse

from .utils import get_client_ip

logger = logging.getLogger(__name__)


class LogRequestMiddleware:
    """Middleware for logging API requests.

    Each request under ``/api/`` produces one log line with the method,
    path, response status, duration, user and client IP. Server errors are
    logged at error level and client errors at warning level.
    """

    def __init__(self, get_response: Callable):
        """Initialize middleware.

        Args:
            get_response: The next middleware in the chain
        """
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        # Skip logging for non-API requests
        if not request.path.startswith('/api/'):
            return self.get_response(request)

        start_time = time.monotonic()
        response = self.get_response(request)
        self._log_request(request, response, time.monotonic() - start_time)
        return response

    def _log_request(self, request: HttpRequest, response: HttpResponse, duration: float) -> None:
        user = getattr(request, 'user', None)
        user_id = str(user.pk) if user is not None and user.is_authenticated else 'anonymous'

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        logger.log(
            level,
            '%s %s %s %.3fs user=%s ip=%s',
            request.method,
            request.path,
            response.status_code,
            duration,
            user_id,
            get_client_ip(request),
        )
