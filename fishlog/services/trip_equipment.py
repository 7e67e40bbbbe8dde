"""Links rods, lures and groundbaits to trips.

Each assignment stores the equipment name at the time it was made. No function
here writes to an existing assignment's snapshot.
"""
import logging

from fishlog.errors import ServiceResult, fail, ok
from fishlog.models.database import EQUIPMENT_KINDS, db
from fishlog.schemas import MAX_TRIP_EQUIPMENT
from fishlog.services.common import commit, find_trip
from fishlog.services.equipment import resolve_equipment

logger = logging.getLogger(__name__)


def _assignments(kind, trip_id):
    model = kind.assignment
    return model.query.filter(model.trip_id == trip_id).order_by(model.created_at, model.id).all()


def _new_assignment(kind, trip_id, item):
    return kind.assignment(**{
        'trip_id': trip_id,
        f'{kind.singular}_id': item.id,
        f'{kind.singular}_name_snapshot': item.name,
    })


def list_assignments(owner_id, kind_name, trip_id):
    kind = EQUIPMENT_KINDS[kind_name]
    if not find_trip(owner_id, trip_id):
        return fail('not_found')
    return ok({'data': [row.to_dict() for row in _assignments(kind, trip_id)]})


def replace_assignments(owner_id, kind_name, trip_id, equipment_ids):
    """Makes the trip's assignments of one kind equal ``equipment_ids``

    Kept assignments are not touched, so calling twice with the same ids is a no-op
    the second time.
    """
    kind = EQUIPMENT_KINDS[kind_name]
    field = f'{kind.singular}_ids'

    if len(set(equipment_ids)) != len(equipment_ids):
        return fail('validation_error', field=field, reason='duplicate ids are not allowed')
    if len(equipment_ids) > MAX_TRIP_EQUIPMENT:
        return fail('validation_error', field=field, reason=f'at most {MAX_TRIP_EQUIPMENT} items allowed')

    if not find_trip(owner_id, trip_id):
        return fail('not_found')

    id_column = f'{kind.singular}_id'
    current = {getattr(row, id_column): row for row in _assignments(kind, trip_id)}
    target = set(equipment_ids)

    # Validate every new item before anything is written
    to_add = []
    for equipment_id in equipment_ids:
        if equipment_id in current:
            continue
        item, error = resolve_equipment(owner_id, kind.model, equipment_id)
        if error:
            return ServiceResult(None, error)
        to_add.append(item)

    for equipment_id, row in current.items():
        if equipment_id not in target:
            db.session.delete(row)
    for item in to_add:
        db.session.add(_new_assignment(kind, trip_id, item))

    error = commit()
    if error:
        return ServiceResult(None, error)

    logger.info('Replaced %s of trip %s: %d added, %d removed',
                kind.name, trip_id, len(to_add), len(current.keys() - target))
    return list_assignments(owner_id, kind_name, trip_id)


def add_assignment(owner_id, kind_name, trip_id, equipment_id):
    kind = EQUIPMENT_KINDS[kind_name]
    if not find_trip(owner_id, trip_id):
        return fail('not_found')

    model = kind.assignment
    existing = model.query.filter(
        model.trip_id == trip_id,
        getattr(model, f'{kind.singular}_id') == equipment_id,
    ).first()
    if existing:
        return fail('conflict')

    item, error = resolve_equipment(owner_id, kind.model, equipment_id)
    if error:
        return ServiceResult(None, error)

    assignment = _new_assignment(kind, trip_id, item)
    db.session.add(assignment)
    error = commit()
    if error:
        return ServiceResult(None, error)
    return ok(assignment.to_dict())


def remove_assignment(owner_id, kind_name, trip_id, assignment_id):
    kind = EQUIPMENT_KINDS[kind_name]
    if not find_trip(owner_id, trip_id):
        return fail('not_found')

    model = kind.assignment
    assignment = model.query.filter(model.id == assignment_id, model.trip_id == trip_id).first()
    if not assignment:
        return fail('not_found')

    db.session.delete(assignment)
    error = commit()
    if error:
        return ServiceResult(None, error)
    return ok()
