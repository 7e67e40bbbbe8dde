from flask import Blueprint, request

from fishlog.errors import error_response, result_response
from fishlog.routes.auth import token_required, uuid_path_params
from fishlog.schemas import SpeciesListQuery, parse
from fishlog.services.species import get_species, list_species

species_bp = Blueprint('species', __name__)


@species_bp.route('', methods=['GET'])
@token_required
def list_fish_species(owner_id):
    """Lists fish species, alphabetically by default"""
    params, error = parse(SpeciesListQuery, request.args.to_dict())
    if error:
        return error_response(error)
    return result_response(list_species(params))


@species_bp.route('/<species_id>', methods=['GET'])
@token_required
@uuid_path_params
def get_fish_species(owner_id, species_id):
    return result_response(get_species(species_id))
