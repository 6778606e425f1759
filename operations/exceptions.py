import logging

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError as DjangoValidationError
from django.db import IntegrityError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


def _first_message(detail):
    """Flatten DRF's nested error detail into one readable line."""
    if isinstance(detail, dict):
        if 'detail' in detail:
            return _first_message(detail['detail'])
        for field, value in detail.items():
            msg = _first_message(value)
            if field == 'non_field_errors':
                return msg
            return f"{field}: {msg}"
        return 'Invalid request'
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else 'Invalid request'
    return str(detail)


def _fail(message, code):
    return Response({'success': False, 'message': message}, status=code)


def api_exception_handler(exc, context):
    if isinstance(exc, DjangoValidationError):
        return _fail('; '.join(exc.messages), status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, IntegrityError):
        logger.info("integrity error: %s", exc)
        return _fail('Record conflicts with an existing one', status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, ObjectDoesNotExist):
        return _fail(str(exc) or 'Not found', status.HTTP_404_NOT_FOUND)

    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception("unhandled error in %s", getattr(view, '__name__', type(view).__name__))
        return _fail(str(exc) or 'Internal server error', status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, (Http404, exceptions.NotFound)):
        message = 'Not found'
    elif isinstance(exc, (PermissionDenied, exceptions.PermissionDenied)):
        message = 'Access denied'
    else:
        message = _first_message(resp.data)
    resp.data = {'success': False, 'message': message}
    return resp
