"""
Unified API error envelope.

Every error leaves the API as ``{"ok": false, "error": {"code", "message"}}``
with French messages; validation errors additionally carry ``fields``.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflit avec une donnée existante.'
    default_code = 'conflict'


def _first_message(data) -> str:
    if isinstance(data, dict):
        for value in data.values():
            return _first_message(value)
        return ''
    if isinstance(data, (list, tuple)):
        return _first_message(data[0]) if data else ''
    return str(data)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('Unhandled error in %s', context.get('view').__class__.__name__ if context.get('view') else '?')
        return Response(
            {'ok': False, 'error': {'code': 'server_error',
                                    'message': "Une erreur inattendue s'est produite. Veuillez réessayer."}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    if isinstance(exc, ValidationError):
        fields = resp.data if isinstance(resp.data, dict) else {'non_field_errors': resp.data}
        error = {'code': 'validation_error', 'message': _first_message(resp.data), 'fields': fields}
    else:
        codes = exc.get_codes() if isinstance(exc, APIException) else None
        code = codes if isinstance(codes, str) else 'api_error'
        detail = resp.data.get('detail', resp.data) if isinstance(resp.data, dict) else resp.data
        error = {'code': code, 'message': _first_message(detail)}
    resp.data = {'ok': False, 'error': error}
    return resp
