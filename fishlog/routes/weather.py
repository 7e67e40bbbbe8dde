from flask import Blueprint, request

from fishlog.errors import error_response, result_response
from fishlog.routes.auth import token_required, uuid_path_params
from fishlog.schemas import (
    SnapshotGetQuery,
    SnapshotListQuery,
    WeatherManual,
    WeatherRefresh,
    parse,
    parse_body,
)
from fishlog.services import weather

weather_bp = Blueprint('weather', __name__)


@weather_bp.route('/trips/<trip_id>/weather/snapshots', methods=['GET'])
@token_required
@uuid_path_params
def list_snapshots(owner_id, trip_id):
    params, error = parse(SnapshotListQuery, request.args.to_dict())
    if error:
        return error_response(error)
    return result_response(weather.list_snapshots(owner_id, trip_id, params))


@weather_bp.route('/trips/<trip_id>/weather/current', methods=['GET'])
@token_required
@uuid_path_params
def current_snapshot(owner_id, trip_id):
    """Returns the most recently fetched snapshot of a trip"""
    return result_response(weather.get_current_snapshot(owner_id, trip_id))


@weather_bp.route('/trips/<trip_id>/weather/refresh', methods=['POST'])
@token_required
@uuid_path_params
def refresh(owner_id, trip_id):
    """Fetches weather from the provider into a new snapshot"""
    data, error = parse_body(WeatherRefresh, request)
    if error:
        return error_response(error)
    result = weather.refresh_weather(owner_id, trip_id, data.period_start, data.period_end, data.force)
    return result_response(result, 201)


@weather_bp.route('/trips/<trip_id>/weather/manual', methods=['POST'])
@token_required
@uuid_path_params
def manual(owner_id, trip_id):
    """Stores weather entered by the user"""
    data, error = parse_body(WeatherManual, request)
    if error:
        return error_response(error)
    return result_response(weather.create_manual_snapshot(owner_id, trip_id, data), 201)


@weather_bp.route('/weather/snapshots/<snapshot_id>', methods=['GET'])
@token_required
@uuid_path_params
def get_snapshot(owner_id, snapshot_id):
    params, error = parse(SnapshotGetQuery, request.args.to_dict())
    if error:
        return error_response(error)
    return result_response(weather.get_snapshot(owner_id, snapshot_id, params.include_hours))


@weather_bp.route('/weather/snapshots/<snapshot_id>', methods=['DELETE'])
@token_required
@uuid_path_params
def delete_snapshot(owner_id, snapshot_id):
    result = weather.delete_snapshot(owner_id, snapshot_id)
    if result.error:
        return error_response(result.error)
    return '', 204
