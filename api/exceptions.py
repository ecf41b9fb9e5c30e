"""Exception handling for the REST API.

Domain errors from ``core.exceptions`` become ``{"error": {"code", "message"}}``
responses with the status code the error declares. Everything else is
handled by Django REST Framework.
"""

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import CivicHubError

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """Render ``CivicHubError`` subclasses as JSON error responses.

    Args:
        exc: The raised exception
        context: DRF handler context with the view and request

    Returns:
        Response or None: None lets Django treat the error as unhandled
    """
    if isinstance(exc, CivicHubError):
        view = context.get('view')
        logger.warning(
            f'{exc.__class__.__name__} in {view.__class__.__name__ if view else "unknown view"}: {exc.message}'
        )
        return Response(
            {'error': {'code': exc.code, 'message': exc.message}},
            status=exc.status_code
        )

    return exception_handler(exc, context)
