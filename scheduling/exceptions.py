"""
Exceptions and the API exception handler for the scheduling app.
"""

import logging

from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class RuleNotFound(NotFound):
    default_detail = 'Rule not found.'
    default_code = 'rule_not_found'


def api_exception_handler(exc, context):
    """
    DRF exception handler that hides internals of unexpected errors.

    Known API errors (validation, not found, ...) keep DRF's default
    response. Anything else is logged and reported as a generic 500.
    """
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'API'}", exc_info=exc)
    return Response(
        {'detail': 'Internal server error'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
