"""
API error types and the central exception handler.

Every error response has the shape ``{"message": str}``, optionally with
``"error"`` (underlying cause) and ``"errors"`` (per-field validation messages).
"""
import logging

from django.db import DatabaseError, IntegrityError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class Conflict(exceptions.APIException):
    """Duplicate email or duplicate rating."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already exists.'
    default_code = 'conflict'


class InvalidCredentials(exceptions.AuthenticationFailed):
    """Wrong email/password pair or wrong old password."""
    default_detail = 'Invalid email or password.'
    default_code = 'invalid_credentials'


def _first_message(detail):
    """Pull the first human readable string out of a DRF error detail."""
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
    if isinstance(detail, (list, tuple)):
        for value in detail:
            return _first_message(value)
    return str(detail) if detail is not None else ''


def api_exception_handler(exc, context):
    """
    Map exceptions to ``{message, error?, errors?}`` JSON bodies.

    - ValidationError        -> 400 (``errors`` holds the field messages)
    - NotAuthenticated/AuthenticationFailed -> 401
    - PermissionDenied       -> 403
    - NotFound / Http404     -> 404
    - Conflict, IntegrityError -> 409
    - other DatabaseError    -> 500
    """
    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity error in {context.get('view').__class__.__name__}: {exc}")
        exc = Conflict()
    elif isinstance(exc, DatabaseError):
        logger.exception("Storage failure while handling request")
        return Response(
            {'message': 'Internal server error.', 'error': str(exc)},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    elif isinstance(exc, Http404):
        exc = exceptions.NotFound()

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        response.data = {
            'message': _first_message(exc.detail) or 'Invalid input.',
            'errors': exc.detail,
        }
    elif isinstance(exc, exceptions.APIException):
        response.data = {'message': _first_message(exc.detail)}

    return response
