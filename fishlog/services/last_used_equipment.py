"""Equipment used on the owner's most recent trip"""
import logging
from concurrent.futures import ThreadPoolExecutor

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from fishlog.errors import ServiceResult, fail, map_db_error, ok
from fishlog.models.database import EQUIPMENT_KINDS, Trip

logger = logging.getLogger(__name__)


def _fetch_assignments(app, kind, trip_id):
    # Runs on a worker thread, so it needs its own app context and session
    with app.app_context():
        model = kind.assignment
        rows = model.query.filter(model.trip_id == trip_id).order_by(model.created_at, model.id).all()
        return [
            {
                f'{kind.singular}_id': getattr(row, f'{kind.singular}_id'),
                f'{kind.singular}_name_snapshot': getattr(row, f'{kind.singular}_name_snapshot'),
            }
            for row in rows
        ]


def find_last_trip(owner_id):
    return (
        Trip.query.filter(Trip.user_id == owner_id, Trip.deleted_at.is_(None))
        .order_by(Trip.started_at.desc(), Trip.id.desc())
        .first()
    )


def get_last_used_equipment(owner_id):
    """Returns the three assignment sets of the latest trip, or not_found

    The sets are loaded in parallel. If any load fails the whole call fails.
    """
    trip = find_last_trip(owner_id)
    if not trip:
        return fail('not_found')

    app = current_app._get_current_object()
    result = {'source_trip_id': trip.id}
    with ThreadPoolExecutor(max_workers=len(EQUIPMENT_KINDS)) as executor:
        futures = {
            name: executor.submit(_fetch_assignments, app, kind, trip.id)
            for name, kind in EQUIPMENT_KINDS.items()
        }
        try:
            for name, future in futures.items():
                result[name] = future.result()
        except SQLAlchemyError as exc:
            logger.warning('Loading equipment of trip %s failed', trip.id)
            return ServiceResult(None, map_db_error(exc))
    return ok(result)
