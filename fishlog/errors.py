"""Public error taxonomy and the result type returned by every service.

Services return ``ServiceResult(data, error)`` for expected conditions instead of
raising. Only unexpected datastore failures end up as ``internal_error``. The
message shown to clients is fixed per code, so raw driver text never leaks.
"""
import logging
from typing import Any, NamedTuple, Optional

from flask import jsonify
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    'validation_error': 400,
    'unauthorized': 401,
    'not_found': 404,
    'conflict': 409,
    'equipment_owner_mismatch': 409,
    'equipment_soft_deleted': 409,
    'rate_limited': 429,
    'internal_error': 500,
    'bad_gateway': 502,
}

ERROR_MESSAGES = {
    'validation_error': 'Request validation failed',
    'unauthorized': 'Authentication required',
    'not_found': 'Resource not found',
    'conflict': 'Resource already exists',
    'equipment_owner_mismatch': 'Equipment belongs to another user',
    'equipment_soft_deleted': 'Equipment has been deleted',
    'rate_limited': 'Weather provider rate limit exceeded',
    'internal_error': 'Internal server error',
    'bad_gateway': 'Weather provider error',
}

WEATHER_CONFIGURATION_MESSAGE = 'Weather provider configuration error'


class MappedError(NamedTuple):
    code: str
    message: str
    http_status: int
    details: Optional[dict] = None

    def to_dict(self):
        body = {'code': self.code, 'message': self.message}
        if self.details:
            body['details'] = self.details
        return body


class ServiceResult(NamedTuple):
    data: Any = None
    error: Optional[MappedError] = None


def make_error(code, message=None, field=None, reason=None):
    details = None
    if field is not None or reason is not None:
        details = {'field': field, 'reason': reason}
    return MappedError(code, message or ERROR_MESSAGES[code], ERROR_STATUS[code], details)


def ok(data=None):
    return ServiceResult(data, None)


def fail(code, message=None, field=None, reason=None):
    return ServiceResult(None, make_error(code, message, field, reason))


def map_db_error(exc):
    """Maps a SQLAlchemy error onto the public taxonomy"""
    if isinstance(exc, IntegrityError):
        orig = exc.orig
        sqlstate = getattr(orig, 'pgcode', None) or getattr(orig, 'sqlstate', None)
        text = str(orig).lower()

        if sqlstate == '23505' or 'unique constraint' in text:
            return make_error('conflict')
        if sqlstate == '23514' or 'check constraint' in text:
            if 'weight' in text:
                return make_error('validation_error', field='weight_g', reason='must be greater than 0')
            if 'length' in text:
                return make_error('validation_error', field='length_mm', reason='must be greater than 0')
            return make_error('validation_error', reason='database constraint violated')
        if sqlstate == '23503' or 'foreign key constraint' in text:
            return make_error('not_found', reason='related resource does not exist')

    logger.error('Unmapped datastore error', exc_info=exc)
    return make_error('internal_error')


def error_response(error):
    """Builds the JSON error response for a MappedError"""
    return jsonify({'error': error.to_dict()}), error.http_status


def result_response(result, status=200):
    """Builds the JSON response for a ServiceResult"""
    if result.error:
        return error_response(result.error)
    return jsonify(result.data), status
