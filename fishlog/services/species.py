"""Read-only fish species dictionary shared by all users"""
from fishlog.errors import fail, ok
from fishlog.models.database import FishSpecies, db
from fishlog.services.common import like_pattern, list_page


def list_species(params):
    query = FishSpecies.query
    if params.q:
        query = query.filter(FishSpecies.name.ilike(like_pattern(params.q), escape='\\'))
    return list_page(query, FishSpecies, params, lambda species: species.to_dict())


def get_species(species_id):
    species = db.session.get(FishSpecies, species_id)
    if not species:
        return fail('not_found')
    return ok(species.to_dict())
