"""Keyset pagination shared by every list endpoint.

A cursor is URL-safe base64 of ``{"sortValue": ..., "id": ...}`` taken from the
last row of the previous page. Rows are ordered by ``(sort, id)`` in one
direction, so repeated sort values still have a total order.
"""
import base64
import binascii
import json
from datetime import datetime

from sqlalchemy import and_, or_
from sqlalchemy.types import DateTime


class InvalidCursor(ValueError):
    """Raised when a cursor cannot be decoded"""


def encode_cursor(sort_value, row_id):
    if isinstance(sort_value, datetime):
        sort_value = sort_value.isoformat()
    payload = json.dumps({'sortValue': sort_value, 'id': row_id}, separators=(',', ':'))
    return base64.urlsafe_b64encode(payload.encode('utf-8')).decode('ascii')


def decode_cursor(cursor):
    try:
        raw = base64.b64decode(cursor.encode('ascii'), altchars=b'-_', validate=True)
        data = json.loads(raw.decode('utf-8'))
    except (AttributeError, UnicodeError, binascii.Error, ValueError) as exc:
        raise InvalidCursor('malformed cursor') from exc

    if not isinstance(data, dict) or set(data) != {'sortValue', 'id'}:
        raise InvalidCursor('malformed cursor')
    sort_value = data.get('sortValue')
    row_id = data.get('id')
    if not isinstance(sort_value, str) or not isinstance(row_id, str) or not row_id:
        raise InvalidCursor('malformed cursor')
    return {'sortValue': sort_value, 'id': row_id}


def _coerce_sort_value(column, value):
    if isinstance(column.type, DateTime):
        try:
            return datetime.fromisoformat(value)
        except ValueError as exc:
            raise InvalidCursor('cursor sort value does not match the sort field') from exc
    return value


def paginate(query, sort_column, id_column, order, limit, cursor=None):
    """Applies cursor filtering and ordering, returns ``(rows, next_cursor)``

    Raises InvalidCursor when the cursor is malformed.
    """
    if cursor:
        decoded = decode_cursor(cursor)
        value = _coerce_sort_value(sort_column, decoded['sortValue'])
        if order == 'asc':
            query = query.filter(or_(
                sort_column > value,
                and_(sort_column == value, id_column > decoded['id']),
            ))
        else:
            query = query.filter(or_(
                sort_column < value,
                and_(sort_column == value, id_column < decoded['id']),
            ))

    if order == 'asc':
        query = query.order_by(sort_column.asc(), id_column.asc())
    else:
        query = query.order_by(sort_column.desc(), id_column.desc())

    rows = query.limit(limit + 1).all()

    next_cursor = None
    if len(rows) > limit:
        rows = rows[:limit]
        last = rows[-1]
        next_cursor = encode_cursor(getattr(last, sort_column.key), getattr(last, id_column.key))
    return rows, next_cursor


def page_response(items, limit, next_cursor):
    return {
        'data': items,
        'page': {'limit': limit, 'next_cursor': next_cursor},
    }
