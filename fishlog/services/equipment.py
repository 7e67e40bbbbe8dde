"""Equipment registry: rods, lures and groundbaits owned per user"""
from fishlog.errors import ServiceResult, fail, make_error, ok
from fishlog.models.database import db, utcnow
from fishlog.services.common import commit, like_pattern, list_page


class EquipmentService:
    """CRUD and soft delete for one equipment table"""

    def __init__(self, model):
        self.model = model

    def list(self, owner_id, params):
        model = self.model
        query = model.query.filter(model.user_id == owner_id)
        if not params.include_deleted:
            query = query.filter(model.deleted_at.is_(None))
        if params.q:
            query = query.filter(model.name.ilike(like_pattern(params.q), escape='\\'))
        return list_page(query, model, params, lambda item: item.to_dict())

    def _find(self, owner_id, equipment_id, live_only=False):
        query = self.model.query.filter(self.model.id == equipment_id, self.model.user_id == owner_id)
        if live_only:
            query = query.filter(self.model.deleted_at.is_(None))
        return query.first()

    def get_by_id(self, owner_id, equipment_id):
        item = self._find(owner_id, equipment_id)
        if not item:
            return fail('not_found')
        return ok(item.to_dict())

    def create(self, owner_id, name):
        item = self.model(user_id=owner_id, name=name)
        db.session.add(item)
        error = commit()
        if error:
            return ServiceResult(None, error)
        return ok(item.to_dict())

    def update(self, owner_id, equipment_id, changes):
        """Applies ``changes``; an empty change set returns the current state without writing"""
        if not changes:
            return self.get_by_id(owner_id, equipment_id)

        item = self._find(owner_id, equipment_id, live_only=True)
        if not item:
            return fail('not_found')

        item.name = changes['name']
        error = commit()
        if error:
            return ServiceResult(None, error)
        return ok(item.to_dict())

    def soft_delete(self, owner_id, equipment_id):
        item = self._find(owner_id, equipment_id, live_only=True)
        if not item:
            return fail('not_found')

        item.deleted_at = utcnow()
        error = commit()
        if error:
            return ServiceResult(None, error)
        return ok()


def resolve_equipment(owner_id, model, equipment_id):
    """Loads an equipment item for assignment, returns ``(item, error)``

    Errors: not_found, equipment_owner_mismatch, equipment_soft_deleted.
    """
    item = db.session.get(model, equipment_id)
    if item is None:
        return None, make_error('not_found')
    if item.user_id != owner_id:
        return None, make_error('equipment_owner_mismatch')
    if item.deleted_at is not None:
        return None, make_error('equipment_soft_deleted')
    return item, None
