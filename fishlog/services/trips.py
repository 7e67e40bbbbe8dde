"""Trip lifecycle: creation, quick start, partial update, close and soft delete.

Status only moves forward: draft -> active -> closed, with draft -> closed allowed.
A closed trip always has an end time. When an update gives a trip its end time,
weather is refreshed right after the trip is saved and the outcome is reported
next to the trip, never as the request's error.
"""
import logging

from sqlalchemy import func

from fishlog.errors import ServiceResult, fail, make_error, ok
from fishlog.models.database import EQUIPMENT_KINDS, Catch, Trip, db, generate_uuid, isoformat, to_utc, utcnow
from fishlog.pagination import InvalidCursor, page_response, paginate
from fishlog.services.catches import catch_dict
from fishlog.services.common import commit, find_trip
from fishlog.services.last_used_equipment import get_last_used_equipment
from fishlog.services.weather import auto_refresh_on_close, latest_snapshot

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    'draft': ('active', 'closed'),
    'active': ('closed',),
    'closed': (),
}


def _check_dates(started_at, ended_at, status):
    if ended_at is not None and ended_at < started_at:
        return make_error('validation_error', field='ended_at',
                          reason='must be greater than or equal to started_at')
    if status == 'closed' and ended_at is None:
        return make_error('validation_error', field='ended_at', reason='required when status is closed')
    return None


def _check_catch_bounds(trip, started_at, ended_at):
    """Keeps the trip window around the catches already logged on it"""
    catches = Catch.query.filter(Catch.trip_id == trip.id)
    if started_at > trip.started_at and catches.filter(Catch.caught_at < started_at).first():
        return make_error('validation_error', field='started_at', reason='a catch was logged before this time')
    if ended_at is not None and catches.filter(Catch.caught_at > ended_at).first():
        return make_error('validation_error', field='ended_at', reason='a catch was logged after this time')
    return None


def _catch_counts(trip_ids):
    if not trip_ids:
        return {}
    rows = (
        db.session.query(Catch.trip_id, func.count(Catch.id))
        .filter(Catch.trip_id.in_(trip_ids))
        .group_by(Catch.trip_id)
        .all()
    )
    return dict(rows)


def list_trips(owner_id, params):
    query = Trip.query.filter(Trip.user_id == owner_id)
    if not params.include_deleted:
        query = query.filter(Trip.deleted_at.is_(None))
    if params.status:
        query = query.filter(Trip.status == params.status)
    if params.from_:
        query = query.filter(Trip.started_at >= to_utc(params.from_))
    if params.to:
        query = query.filter(Trip.started_at <= to_utc(params.to))

    try:
        trips, next_cursor = paginate(
            query, getattr(Trip, params.sort), Trip.id, params.order, params.limit, params.cursor
        )
    except InvalidCursor:
        return fail('validation_error', field='cursor', reason='invalid cursor')

    counts = _catch_counts([trip.id for trip in trips])
    items = []
    for trip in trips:
        item = trip.to_dict()
        item['summary'] = {'catch_count': counts.get(trip.id, 0)}
        items.append(item)
    return ok(page_response(items, params.limit, next_cursor))


def _catch_detail(catch):
    data = catch_dict(catch)
    return {
        'id': catch.id,
        'caught_at': isoformat(catch.caught_at),
        'species': {'id': catch.species.id, 'name': catch.species.name},
        'lure': {'id': catch.lure_id, 'name_snapshot': catch.lure_name_snapshot},
        'groundbait': {'id': catch.groundbait_id, 'name_snapshot': catch.groundbait_name_snapshot},
        'weight_g': catch.weight_g,
        'length_mm': catch.length_mm,
        'photo': {'path': catch.photo_path, 'url': data['photo_url']} if catch.photo_path else None,
    }


def get_trip(owner_id, trip_id, include=()):
    trip = find_trip(owner_id, trip_id)
    if not trip:
        return fail('not_found')

    data = trip.to_dict()
    if 'catches' in include:
        data['catches'] = [_catch_detail(catch) for catch in trip.catches]

    kinds = [name for name in EQUIPMENT_KINDS if name in include]
    if kinds:
        data['equipment'] = {}
        for name in kinds:
            kind = EQUIPMENT_KINDS[name]
            rows = getattr(trip, f'trip_{name}')
            data['equipment'][name] = [
                {
                    'id': getattr(row, f'{kind.singular}_id'),
                    'name_snapshot': getattr(row, f'{kind.singular}_name_snapshot'),
                }
                for row in rows
            ]

    if 'weather_current' in include:
        snapshot = latest_snapshot(trip.id)
        data['weather_current'] = {'snapshot_id': snapshot.id, 'source': snapshot.source} if snapshot else None
    return ok(data)


def _empty_copy():
    return {f'{kind.singular}_ids': [] for kind in EQUIPMENT_KINDS.values()}


def _copy_equipment(owner_id, trip, last_used):
    """Assigns the last trip's equipment to ``trip`` with the names the items have now

    Items that were deleted or no longer belong to the owner are skipped.
    """
    copied = _empty_copy()
    if not last_used:
        return copied

    for name, kind in EQUIPMENT_KINDS.items():
        for entry in last_used[name]:
            item = db.session.get(kind.model, entry[f'{kind.singular}_id'])
            if item is None or item.user_id != owner_id or item.deleted_at is not None:
                continue
            db.session.add(kind.assignment(**{
                'trip_id': trip.id,
                f'{kind.singular}_id': item.id,
                f'{kind.singular}_name_snapshot': item.name,
            }))
            copied[f'{kind.singular}_ids'].append(item.id)
    return copied


def _insert_trip(owner_id, started_at, ended_at, status, location, copy_equipment):
    # The lookup runs before the new trip exists, so it cannot pick itself
    last_used = None
    if copy_equipment:
        result = get_last_used_equipment(owner_id)
        if result.error and result.error.code != 'not_found':
            return None, None, result.error
        last_used = result.data

    trip = Trip(
        id=generate_uuid(), user_id=owner_id, started_at=started_at, ended_at=ended_at, status=status
    )
    trip.set_location(location)
    db.session.add(trip)

    copied = _copy_equipment(owner_id, trip, last_used) if copy_equipment else None
    error = commit()
    if error:
        return None, None, error
    logger.info('Trip %s created with status %s', trip.id, trip.status)
    return trip, copied, None


def create_trip(owner_id, data):
    started_at = to_utc(data.started_at)
    ended_at = to_utc(data.ended_at)
    error = _check_dates(started_at, ended_at, data.status)
    if error:
        return ServiceResult(None, error)

    location = data.location.model_dump() if data.location else None
    trip, _, error = _insert_trip(
        owner_id, started_at, ended_at, data.status, location, data.copy_equipment_from_last_trip
    )
    if error:
        return ServiceResult(None, error)
    return ok(trip.to_dict())


def quick_start(owner_id, location=None, copy_equipment=False):
    """Starts an active trip now, optionally with the equipment of the last trip"""
    trip, copied, error = _insert_trip(owner_id, utcnow(), None, 'active', location, copy_equipment)
    if error:
        return ServiceResult(None, error)
    if copied is None:
        copied = _empty_copy()
    return ok({'trip': trip.to_dict(), 'copied_equipment': copied})


def _apply_changes(owner_id, trip, changes):
    """Validates ``changes`` merged with the stored trip, saves, and runs auto refresh"""
    started_at = to_utc(changes['started_at']) if 'started_at' in changes else trip.started_at
    ended_at = to_utc(changes['ended_at']) if 'ended_at' in changes else trip.ended_at
    status = changes.get('status', trip.status)

    if status != trip.status and status not in ALLOWED_TRANSITIONS[trip.status]:
        return fail('validation_error', field='status',
                    reason=f'cannot change status from {trip.status} to {status}')
    error = _check_dates(started_at, ended_at, status)
    if error:
        return ServiceResult(None, error)
    error = _check_catch_bounds(trip, started_at, ended_at)
    if error:
        return ServiceResult(None, error)

    previous_status = trip.status
    end_was_unset = trip.ended_at is None

    trip.started_at = started_at
    trip.ended_at = ended_at
    trip.status = status
    if 'location' in changes:
        trip.set_location(changes['location'])

    error = commit()
    if error:
        return ServiceResult(None, error)

    if previous_status != trip.status:
        logger.info('Trip %s moved from %s to %s', trip.id, previous_status, trip.status)

    data = trip.to_dict()
    if end_was_unset and trip.ended_at is not None:
        data['weather_refresh'] = auto_refresh_on_close(owner_id, trip)
    return ok(data)


def update_trip(owner_id, trip_id, changes):
    """Partial update; ``changes`` holds only the fields the client sent"""
    trip = find_trip(owner_id, trip_id)
    if not trip:
        return fail('not_found')
    if not changes:
        return ok(trip.to_dict())
    return _apply_changes(owner_id, trip, changes)


def close_trip(owner_id, trip_id, ended_at=None):
    """Closes a trip with the given end time, or the one already stored"""
    trip = find_trip(owner_id, trip_id)
    if not trip:
        return fail('not_found')

    changes = {'status': 'closed'}
    if ended_at is not None:
        changes['ended_at'] = ended_at
    elif trip.ended_at is None:
        return fail('validation_error', field='ended_at', reason='required to close a trip')
    return _apply_changes(owner_id, trip, changes)


def soft_delete_trip(owner_id, trip_id):
    trip = find_trip(owner_id, trip_id)
    if not trip:
        return fail('not_found')

    trip.deleted_at = utcnow()
    error = commit()
    if error:
        return ServiceResult(None, error)
    logger.info('Trip %s deleted', trip.id)
    return ok()
