from flask import Blueprint, request

from fishlog.errors import error_response, result_response
from fishlog.routes.auth import token_required, uuid_path_params
from fishlog.schemas import CatchCreate, CatchListQuery, CatchUpdate, parse, parse_body
from fishlog.services import catches

catches_bp = Blueprint('catches', __name__)


@catches_bp.route('/trips/<trip_id>/catches', methods=['GET'])
@token_required
@uuid_path_params
def list_catches(owner_id, trip_id):
    """Lists the catches of a trip"""
    params, error = parse(CatchListQuery, request.args.to_dict())
    if error:
        return error_response(error)
    return result_response(catches.list_catches(owner_id, trip_id, params))


@catches_bp.route('/trips/<trip_id>/catches', methods=['POST'])
@token_required
@uuid_path_params
def create_catch(owner_id, trip_id):
    """Records a catch"""
    data, error = parse_body(CatchCreate, request)
    if error:
        return error_response(error)
    return result_response(catches.create_catch(owner_id, trip_id, data), 201)


@catches_bp.route('/catches/<catch_id>', methods=['GET'])
@token_required
@uuid_path_params
def get_catch(owner_id, catch_id):
    return result_response(catches.get_catch(owner_id, catch_id))


@catches_bp.route('/catches/<catch_id>', methods=['PATCH'])
@token_required
@uuid_path_params
def update_catch(owner_id, catch_id):
    """Updates a catch; name snapshots cannot be sent"""
    data, error = parse_body(CatchUpdate, request)
    if error:
        return error_response(error)
    return result_response(catches.update_catch(owner_id, catch_id, data.model_dump(exclude_unset=True)))


@catches_bp.route('/catches/<catch_id>', methods=['DELETE'])
@token_required
@uuid_path_params
def delete_catch(owner_id, catch_id):
    result = catches.delete_catch(owner_id, catch_id)
    if result.error:
        return error_response(result.error)
    return '', 204
