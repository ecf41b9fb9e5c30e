"""API utility views."""

import logging

from django.db import DatabaseError, connection
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

logger = logging.getLogger(__name__)


class health_check(APIView):
    """Health check endpoint."""

    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request: Request) -> Response:
        """Handle health check.

        Returns:
            Response with status 200 OK, or 503 if the database is unreachable.
        """
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
        except DatabaseError as e:
            logger.error(f'Health check failed: {str(e)}')
            return Response(
                {"status": "unavailable", "database": "error"},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )

        return Response(
            {"status": "ok", "database": "ok"},
            status=status.HTTP_200_OK
        )
