import uuid
from functools import wraps

import jwt
from flask import current_app, request

from fishlog.errors import error_response, make_error


def token_required(f):
    """Decorator that checks the bearer token and passes the owner id to the view"""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = request.headers.get('Authorization')

        if not token:
            return error_response(make_error('unauthorized'))

        # Remove 'Bearer ' from the token if present
        if token.startswith('Bearer '):
            token = token[7:]

        try:
            data = jwt.decode(
                token,
                current_app.config['JWT_SECRET'],
                algorithms=current_app.config['JWT_ALGORITHMS'],
            )
        except jwt.ExpiredSignatureError:
            return error_response(make_error('unauthorized'))
        except jwt.InvalidTokenError:
            return error_response(make_error('unauthorized'))

        owner_id = data.get('sub') or data.get('user_id')
        if not owner_id or not isinstance(owner_id, str):
            return error_response(make_error('unauthorized'))

        return f(owner_id, *args, **kwargs)

    return decorated


def uuid_path_params(f):
    """Decorator that rejects path ids that are not UUIDs"""
    @wraps(f)
    def decorated(*args, **kwargs):
        for name, value in kwargs.items():
            if not name.endswith('id'):
                continue
            try:
                kwargs[name] = str(uuid.UUID(value))
            except ValueError:
                return error_response(make_error('validation_error', field=name, reason='must be a valid UUID'))
        return f(*args, **kwargs)

    return decorated
