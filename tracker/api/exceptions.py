import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


def exception_handler(exc, context):
    """DRF handler plus JSON bodies for database and unexpected errors."""
    response = drf_exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    view_name = view.__class__.__name__ if view else 'unknown view'
    if isinstance(exc, DatabaseError):
        logger.exception("Database error in %s", view_name)
        return Response({'detail': f"Database error: {exc}"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.exception("Unhandled exception in %s", view_name)
    return Response(
        {'detail': 'Something went wrong. Please try again.'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
