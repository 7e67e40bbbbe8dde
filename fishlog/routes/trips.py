from flask import Blueprint, request

from fishlog.errors import error_response, result_response
from fishlog.routes.auth import token_required, uuid_path_params
from fishlog.schemas import (
    QuickStart,
    TripClose,
    TripCreate,
    TripGetQuery,
    TripListQuery,
    TripUpdate,
    parse,
    parse_body,
)
from fishlog.services import trips

trips_bp = Blueprint('trips', __name__)


@trips_bp.route('', methods=['GET'])
@token_required
def list_trips(owner_id):
    """Lists the user's trips with their catch counts"""
    params, error = parse(TripListQuery, request.args.to_dict())
    if error:
        return error_response(error)
    return result_response(trips.list_trips(owner_id, params))


@trips_bp.route('', methods=['POST'])
@token_required
def create_trip(owner_id):
    data, error = parse_body(TripCreate, request)
    if error:
        return error_response(error)
    return result_response(trips.create_trip(owner_id, data), 201)


@trips_bp.route('/quick-start', methods=['POST'])
@token_required
def quick_start(owner_id):
    """Starts an active trip now"""
    data, error = parse_body(QuickStart, request)
    if error:
        return error_response(error)
    location = data.location.model_dump() if data.location else None
    return result_response(trips.quick_start(owner_id, location, data.copy_equipment_from_last_trip), 201)


@trips_bp.route('/<trip_id>', methods=['GET'])
@token_required
@uuid_path_params
def get_trip(owner_id, trip_id):
    """Returns a trip, with the relations named in ``include``"""
    params, error = parse(TripGetQuery, request.args.to_dict())
    if error:
        return error_response(error)
    return result_response(trips.get_trip(owner_id, trip_id, params.include))


@trips_bp.route('/<trip_id>', methods=['PATCH'])
@token_required
@uuid_path_params
def update_trip(owner_id, trip_id):
    data, error = parse_body(TripUpdate, request)
    if error:
        return error_response(error)
    return result_response(trips.update_trip(owner_id, trip_id, data.model_dump(exclude_unset=True)))


@trips_bp.route('/<trip_id>/close', methods=['POST'])
@token_required
@uuid_path_params
def close_trip(owner_id, trip_id):
    """Closes a trip"""
    data, error = parse_body(TripClose, request)
    if error:
        return error_response(error)
    return result_response(trips.close_trip(owner_id, trip_id, data.ended_at))


@trips_bp.route('/<trip_id>', methods=['DELETE'])
@token_required
@uuid_path_params
def delete_trip(owner_id, trip_id):
    """Soft-deletes a trip; its catches and equipment stay in place"""
    result = trips.soft_delete_trip(owner_id, trip_id)
    if result.error:
        return error_response(result.error)
    return '', 204
