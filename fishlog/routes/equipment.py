from flask import Blueprint, request

from fishlog.errors import error_response, result_response
from fishlog.models.database import EQUIPMENT_KINDS
from fishlog.routes.auth import token_required, uuid_path_params
from fishlog.schemas import EquipmentCreate, EquipmentListQuery, EquipmentUpdate, parse, parse_body
from fishlog.services.equipment import EquipmentService


def create_equipment_blueprint(kind_name):
    """Builds the CRUD blueprint for rods, lures or groundbaits"""
    service = EquipmentService(EQUIPMENT_KINDS[kind_name].model)
    bp = Blueprint(kind_name, __name__)

    @bp.route('', methods=['GET'])
    @token_required
    def list_equipment(owner_id):
        """Lists the user's equipment"""
        params, error = parse(EquipmentListQuery, request.args.to_dict())
        if error:
            return error_response(error)
        return result_response(service.list(owner_id, params))

    @bp.route('', methods=['POST'])
    @token_required
    def create_equipment(owner_id):
        """Creates an equipment item"""
        data, error = parse_body(EquipmentCreate, request)
        if error:
            return error_response(error)
        return result_response(service.create(owner_id, data.name), 201)

    @bp.route('/<equipment_id>', methods=['GET'])
    @token_required
    @uuid_path_params
    def get_equipment(owner_id, equipment_id):
        return result_response(service.get_by_id(owner_id, equipment_id))

    @bp.route('/<equipment_id>', methods=['PATCH'])
    @token_required
    @uuid_path_params
    def update_equipment(owner_id, equipment_id):
        """Renames an equipment item"""
        data, error = parse_body(EquipmentUpdate, request)
        if error:
            return error_response(error)
        return result_response(service.update(owner_id, equipment_id, data.model_dump(exclude_unset=True)))

    @bp.route('/<equipment_id>', methods=['DELETE'])
    @token_required
    @uuid_path_params
    def delete_equipment(owner_id, equipment_id):
        """Soft-deletes an equipment item"""
        result = service.soft_delete(owner_id, equipment_id)
        if result.error:
            return error_response(result.error)
        return '', 204

    return bp
