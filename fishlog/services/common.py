from sqlalchemy.exc import SQLAlchemyError

from fishlog.errors import fail, map_db_error, ok
from fishlog.models.database import Trip, db
from fishlog.pagination import InvalidCursor, page_response, paginate


def commit():
    """Commits the session, returns a MappedError (after rolling back) on failure"""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        return map_db_error(exc)
    return None


def like_pattern(text):
    escaped = text.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'


def find_trip(owner_id, trip_id):
    """Owner's trip that is not soft-deleted, or None"""
    return Trip.query.filter(
        Trip.id == trip_id,
        Trip.user_id == owner_id,
        Trip.deleted_at.is_(None),
    ).first()


def list_page(query, model, params, serialize):
    """Runs a keyset-paginated list query and builds the list response"""
    try:
        rows, next_cursor = paginate(
            query, getattr(model, params.sort), model.id, params.order, params.limit, params.cursor
        )
    except InvalidCursor:
        return fail('validation_error', field='cursor', reason='invalid cursor')
    return ok(page_response([serialize(row) for row in rows], params.limit, next_cursor))
