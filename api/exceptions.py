# api/exceptions.py
import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

from security.events import log_security_event

logger = logging.getLogger(__name__)

# DRF exception class -> error type reported to clients
ERROR_TYPES = [
    (exceptions.ValidationError, 'validation_error'),
    (exceptions.NotAuthenticated, 'authentication_required'),
    (exceptions.AuthenticationFailed, 'authentication_failed'),
    (exceptions.PermissionDenied, 'permission_denied'),
    (exceptions.NotFound, 'not_found'),
    (exceptions.MethodNotAllowed, 'method_not_allowed'),
    (exceptions.Throttled, 'rate_limit_exceeded'),
]


def error_type(exc):
    for exc_class, name in ERROR_TYPES:
        if isinstance(exc, exc_class):
            return name
    return getattr(exc, 'default_code', 'error')


def error_body(type_name, message, details=None):
    return {
        'success': False,
        'error': {
            'type': type_name,
            'message': message,
            'details': details,
        },
    }


def envelope_exception_handler(exc, context):
    """
    DRF exception handler producing the error envelope.

    403s and 429s are recorded as security events. Unhandled exceptions
    become a 500 whose message is only revealed when DEBUG is on.
    """
    request = context.get('request')
    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}")
        set_rollback()
        message = str(exc) if settings.DEBUG else 'An internal error occurred'
        return Response(error_body('server_error', message), status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    type_name = error_type(exc)
    details = None

    if isinstance(exc, exceptions.ValidationError):
        message = 'Invalid input'
        details = response.data
    elif response.status_code == status.HTTP_403_FORBIDDEN:
        message = 'Access denied'
        log_security_event(
            'unauthorized_access',
            risk_level='medium',
            request=request,
            details={'reason': str(exc.detail)},
        )
    elif response.status_code == status.HTTP_429_TOO_MANY_REQUESTS:
        message = 'Too many requests'
        details = {'retry_after': exc.wait}
        log_security_event(
            'rate_limit_exceeded',
            risk_level='medium',
            request=request,
            details={'wait': exc.wait},
        )
    else:
        message = str(exc.detail) if hasattr(exc, 'detail') else str(exc)

    response.data = error_body(type_name, message, details)
    return response
