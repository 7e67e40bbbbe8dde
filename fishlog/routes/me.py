from flask import Blueprint

from fishlog.errors import result_response
from fishlog.routes.auth import token_required
from fishlog.services.last_used_equipment import get_last_used_equipment

me_bp = Blueprint('me', __name__)


@me_bp.route('/last-used-equipment', methods=['GET'])
@token_required
def last_used_equipment(owner_id):
    """Returns the equipment of the user's most recent trip"""
    return result_response(get_last_used_equipment(owner_id))
