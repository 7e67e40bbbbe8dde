from flask import Blueprint, request

from fishlog.errors import error_response, result_response
from fishlog.models.database import EQUIPMENT_KINDS
from fishlog.routes.auth import token_required, uuid_path_params
from fishlog.schemas import ADD_ASSIGNMENT_SCHEMAS, REPLACE_ASSIGNMENT_SCHEMAS, parse_body
from fishlog.services import trip_equipment

trip_equipment_bp = Blueprint('trip_equipment', __name__)

KIND = '<any(rods, lures, groundbaits):kind>'


@trip_equipment_bp.route(f'/<trip_id>/{KIND}', methods=['GET'])
@token_required
@uuid_path_params
def list_assignments(owner_id, trip_id, kind):
    """Lists the equipment of one kind assigned to a trip"""
    return result_response(trip_equipment.list_assignments(owner_id, kind, trip_id))


@trip_equipment_bp.route(f'/<trip_id>/{KIND}', methods=['PUT'])
@token_required
@uuid_path_params
def replace_assignments(owner_id, trip_id, kind):
    """Replaces the whole set of one kind"""
    data, error = parse_body(REPLACE_ASSIGNMENT_SCHEMAS[kind], request)
    if error:
        return error_response(error)
    ids = [str(value) for value in getattr(data, f'{EQUIPMENT_KINDS[kind].singular}_ids')]
    return result_response(trip_equipment.replace_assignments(owner_id, kind, trip_id, ids))


@trip_equipment_bp.route(f'/<trip_id>/{KIND}', methods=['POST'])
@token_required
@uuid_path_params
def add_assignment(owner_id, trip_id, kind):
    data, error = parse_body(ADD_ASSIGNMENT_SCHEMAS[kind], request)
    if error:
        return error_response(error)
    equipment_id = str(getattr(data, f'{EQUIPMENT_KINDS[kind].singular}_id'))
    return result_response(trip_equipment.add_assignment(owner_id, kind, trip_id, equipment_id), 201)


@trip_equipment_bp.route(f'/<trip_id>/{KIND}/<assignment_id>', methods=['DELETE'])
@token_required
@uuid_path_params
def remove_assignment(owner_id, trip_id, kind, assignment_id):
    result = trip_equipment.remove_assignment(owner_id, kind, trip_id, assignment_id)
    if result.error:
        return error_response(result.error)
    return '', 204
