"""Weather snapshots of a trip.

Snapshots are never changed after they are stored. A refresh always writes a new
snapshot, and the trip's current weather is the one fetched most recently.
"""
import logging
from datetime import timedelta

from flask import current_app

from fishlog.errors import WEATHER_CONFIGURATION_MESSAGE, ServiceResult, fail, make_error, ok
from fishlog.models.database import Trip, WeatherHour, WeatherSnapshot, db, to_utc, utcnow
from fishlog.services.common import commit, find_trip, list_page
from fishlog.services.weather_provider import WeatherProviderError

logger = logging.getLogger(__name__)


def get_provider():
    return current_app.extensions['weather_provider']


def _max_age():
    return timedelta(hours=current_app.config['WEATHER_REFRESH_MAX_AGE_HOURS'])


def map_provider_error(error):
    if error.code == 'rate_limited':
        return make_error('rate_limited')
    if error.code == 'configuration_error':
        return make_error('bad_gateway', WEATHER_CONFIGURATION_MESSAGE)
    return make_error('bad_gateway')


def clip_period(trip, period_start, period_end):
    """Clips a period to the trip's duration, returns None when nothing is left"""
    start = max(to_utc(period_start), trip.started_at)
    end = to_utc(period_end)
    if trip.ended_at and end > trip.ended_at:
        end = trip.ended_at
    if end < start:
        return None
    return start, end


def _within_trip(trip, moment):
    return moment >= trip.started_at and (trip.ended_at is None or moment <= trip.ended_at)


def _owned_snapshot(owner_id, snapshot_id):
    return (
        WeatherSnapshot.query.join(Trip, WeatherSnapshot.trip_id == Trip.id)
        .filter(WeatherSnapshot.id == snapshot_id, Trip.user_id == owner_id)
        .first()
    )


def list_snapshots(owner_id, trip_id, params):
    if not find_trip(owner_id, trip_id):
        return fail('not_found')
    query = WeatherSnapshot.query.filter(WeatherSnapshot.trip_id == trip_id)
    if params.source:
        query = query.filter(WeatherSnapshot.source == params.source)
    return list_page(query, WeatherSnapshot, params, lambda snapshot: snapshot.to_dict())


def get_snapshot(owner_id, snapshot_id, include_hours=False):
    snapshot = _owned_snapshot(owner_id, snapshot_id)
    if not snapshot:
        return fail('not_found')
    hours = [hour.to_dict() for hour in snapshot.hours] if include_hours else []
    return ok({'snapshot': snapshot.to_dict(), 'hours': hours})


def latest_snapshot(trip_id):
    return (
        WeatherSnapshot.query.filter(WeatherSnapshot.trip_id == trip_id)
        .order_by(WeatherSnapshot.fetched_at.desc(), WeatherSnapshot.created_at.desc())
        .first()
    )


def get_current_snapshot(owner_id, trip_id):
    if not find_trip(owner_id, trip_id):
        return fail('not_found')
    snapshot = latest_snapshot(trip_id)
    if not snapshot:
        return fail('not_found')
    return ok({'snapshot_id': snapshot.id, 'source': snapshot.source})


def _store_snapshot(trip, source, fetched_at, period, hours):
    snapshot = WeatherSnapshot(
        trip_id=trip.id,
        source=source,
        fetched_at=fetched_at,
        period_start=period[0],
        period_end=period[1],
        hours=[WeatherHour(**hour) for hour in hours],
    )
    db.session.add(snapshot)
    error = commit()
    if error:
        return ServiceResult(None, error)
    return ok({'snapshot_id': snapshot.id})


def create_manual_snapshot(owner_id, trip_id, data):
    """Stores user-entered weather; hours outside the trip are dropped"""
    trip = find_trip(owner_id, trip_id)
    if not trip:
        return fail('not_found')

    period = clip_period(trip, data.period_start, data.period_end)
    if period is None:
        return fail('validation_error', field='period_end', reason='period lies outside the trip')

    hours = []
    for hour in data.hours:
        values = hour.model_dump()
        values['observed_at'] = to_utc(hour.observed_at)
        if _within_trip(trip, values['observed_at']):
            hours.append(values)
    if not hours:
        return fail('validation_error', field='hours', reason='no hour lies within the trip')

    return _store_snapshot(trip, 'manual', to_utc(data.fetched_at), period, hours)


def delete_snapshot(owner_id, snapshot_id):
    snapshot = _owned_snapshot(owner_id, snapshot_id)
    if not snapshot:
        return fail('not_found')
    db.session.delete(snapshot)
    error = commit()
    if error:
        return ServiceResult(None, error)
    return ok()


def refresh_weather(owner_id, trip_id, period_start, period_end, force=False):
    """Fetches weather from the provider and stores it as a new api snapshot"""
    trip = find_trip(owner_id, trip_id)
    if not trip:
        return fail('not_found')
    if not trip.has_location:
        return fail('validation_error', field='location', reason='trip has no location')
    if not force and utcnow() - trip.started_at > _max_age():
        return fail('validation_error', field='force',
                    reason='trip started too long ago; use force or enter weather manually')

    period = clip_period(trip, period_start, period_end)
    if period is None:
        return fail('validation_error', field='period_end', reason='period lies outside the trip')

    try:
        hours = get_provider().fetch_weather(trip.location_lat, trip.location_lng)
    except WeatherProviderError as exc:
        logger.warning('Weather refresh for trip %s failed: %s', trip.id, exc.code)
        return ServiceResult(None, map_provider_error(exc))

    result = _store_snapshot(trip, 'api', utcnow(), period, hours)
    if not result.error:
        logger.info('Stored %d weather hours for trip %s', len(hours), trip.id)
    return result


def auto_refresh_eligible(trip):
    return trip.has_location and utcnow() - trip.started_at <= _max_age()


def auto_refresh_on_close(owner_id, trip):
    """Refreshes weather for a trip that just got its end time

    Never fails; the outcome is returned as a status dict for the close response.
    """
    if not trip.has_location:
        return {'status': 'skipped', 'reason': 'trip has no location'}
    if not auto_refresh_eligible(trip):
        return {'status': 'skipped', 'reason': 'trip started too long ago'}

    result = refresh_weather(owner_id, trip.id, trip.started_at, trip.ended_at, force=False)
    if result.error:
        logger.warning('Automatic weather refresh for trip %s failed: %s', trip.id, result.error.code)
        return {'status': 'failed', 'error': result.error.to_dict()}
    return {'status': 'refreshed', 'snapshot_id': result.data['snapshot_id']}
