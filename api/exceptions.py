import logging

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class OrderStateError(APIException):
    """A transition was requested that the current order state does not allow."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This action is not allowed in the current order state.'
    default_code = 'invalid_state'


class CouponExhausted(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Usage limit reached for this coupon'
    default_code = 'coupon_exhausted'


class GatewayUnavailable(APIException):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'Payment gateway is unavailable. Please try again.'
    default_code = 'gateway_unavailable'


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ''
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def exception_handler(exc, context):
    """
    Render every API error as {"success": false, "message": ..., "code": ...}.
    Field level validation errors additionally carry the full "errors" mapping.
    """
    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    detail = getattr(exc, 'detail', response.data)
    body = {
        'success': False,
        'message': _first_message(detail),
        'code': 'error',
    }
    if isinstance(exc, APIException):
        body['code'] = _first_message(exc.get_codes()) or exc.default_code
    if isinstance(exc, ValidationError) and isinstance(detail, dict):
        body['errors'] = response.data

    if response.status_code >= 500:
        logger.error("API error %s: %s", response.status_code, body['message'])
    response.data = body
    return response
