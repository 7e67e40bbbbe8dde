"""Catches recorded during a trip.

Lure and groundbait names are copied onto the catch when it is created and
copied again only when the catch is pointed at a different item.
"""
import logging

from flask import current_app

from fishlog.errors import ServiceResult, fail, make_error, ok
from fishlog.models.database import Catch, FishSpecies, Groundbait, Lure, Trip, db, to_utc, utcnow
from fishlog.services.common import commit, find_trip, list_page
from fishlog.services.equipment import resolve_equipment
from fishlog.services.photos import validate_photo_path

logger = logging.getLogger(__name__)


def catch_dict(catch):
    data = catch.to_dict()
    data['photo_url'] = current_app.extensions['photo_storage'].url_for(catch.photo_path)
    return data


def check_caught_at(trip, caught_at):
    """Returns a MappedError when ``caught_at`` is outside the trip or in the future"""
    if caught_at > utcnow():
        return make_error('validation_error', field='caught_at', reason='must not be in the future')
    if caught_at < trip.started_at or (trip.ended_at is not None and caught_at > trip.ended_at):
        return make_error('validation_error', field='caught_at', reason='must be within the trip duration')
    return None


def _check_species(species_id):
    if db.session.get(FishSpecies, species_id) is None:
        return make_error('validation_error', field='species_id', reason='species does not exist')
    return None


def _check_photo(owner_id, photo_path):
    reason = validate_photo_path(photo_path, owner_id)
    if reason:
        return make_error('validation_error', field='photo_path', reason=reason)
    return None


def _owned_catch(owner_id, catch_id, live_trip_only=False):
    query = Catch.query.join(Trip, Catch.trip_id == Trip.id).filter(
        Catch.id == catch_id,
        Trip.user_id == owner_id,
    )
    if live_trip_only:
        query = query.filter(Trip.deleted_at.is_(None))
    return query.first()


def list_catches(owner_id, trip_id, params):
    if not find_trip(owner_id, trip_id):
        return fail('not_found')

    query = Catch.query.filter(Catch.trip_id == trip_id)
    if params.from_:
        query = query.filter(Catch.caught_at >= to_utc(params.from_))
    if params.to:
        query = query.filter(Catch.caught_at <= to_utc(params.to))
    if params.species_id:
        query = query.filter(Catch.species_id == str(params.species_id))
    return list_page(query, Catch, params, catch_dict)


def get_catch(owner_id, catch_id):
    catch = _owned_catch(owner_id, catch_id)
    if not catch:
        return fail('not_found')
    return ok(catch_dict(catch))


def create_catch(owner_id, trip_id, data):
    trip = find_trip(owner_id, trip_id)
    if not trip:
        return fail('not_found')

    caught_at = to_utc(data.caught_at)
    error = check_caught_at(trip, caught_at) or _check_species(str(data.species_id))
    if error:
        return ServiceResult(None, error)

    lure, error = resolve_equipment(owner_id, Lure, str(data.lure_id))
    if error:
        return ServiceResult(None, error)
    groundbait, error = resolve_equipment(owner_id, Groundbait, str(data.groundbait_id))
    if error:
        return ServiceResult(None, error)

    if data.photo_path is not None:
        error = _check_photo(owner_id, data.photo_path)
        if error:
            return ServiceResult(None, error)

    catch = Catch(
        trip_id=trip.id,
        caught_at=caught_at,
        species_id=str(data.species_id),
        lure_id=lure.id,
        groundbait_id=groundbait.id,
        lure_name_snapshot=lure.name,
        groundbait_name_snapshot=groundbait.name,
        weight_g=data.weight_g,
        length_mm=data.length_mm,
        photo_path=data.photo_path,
    )
    db.session.add(catch)
    error = commit()
    if error:
        return ServiceResult(None, error)
    return ok(catch_dict(catch))


def update_catch(owner_id, catch_id, changes):
    """Partial update; ``changes`` holds only the fields the client sent"""
    catch = _owned_catch(owner_id, catch_id, live_trip_only=True)
    if not catch:
        return fail('not_found')
    if not changes:
        return ok(catch_dict(catch))

    # Everything is validated before the row is touched
    values = {}
    if 'caught_at' in changes:
        values['caught_at'] = to_utc(changes['caught_at'])
        error = check_caught_at(catch.trip, values['caught_at'])
        if error:
            return ServiceResult(None, error)

    if 'species_id' in changes:
        values['species_id'] = str(changes['species_id'])
        error = _check_species(values['species_id'])
        if error:
            return ServiceResult(None, error)

    for model, field in ((Lure, 'lure'), (Groundbait, 'groundbait')):
        if f'{field}_id' not in changes:
            continue
        equipment_id = str(changes[f'{field}_id'])
        if equipment_id == getattr(catch, f'{field}_id'):
            continue
        item, error = resolve_equipment(owner_id, model, equipment_id)
        if error:
            return ServiceResult(None, error)
        values[f'{field}_id'] = item.id
        values[f'{field}_name_snapshot'] = item.name

    if changes.get('photo_path') is not None:
        error = _check_photo(owner_id, changes['photo_path'])
        if error:
            return ServiceResult(None, error)

    for field in ('weight_g', 'length_mm', 'photo_path'):
        if field in changes:
            values[field] = changes[field]

    for field, value in values.items():
        setattr(catch, field, value)
    error = commit()
    if error:
        return ServiceResult(None, error)
    return ok(catch_dict(catch))


def delete_catch(owner_id, catch_id):
    catch = _owned_catch(owner_id, catch_id, live_trip_only=True)
    if not catch:
        return fail('not_found')
    db.session.delete(catch)
    error = commit()
    if error:
        return ServiceResult(None, error)
    return ok()
