"""Request body and query string models.

Bodies forbid unknown fields, which is what keeps name snapshots out of reach of
clients. Query strings ignore parameters they do not know about.
"""
from typing import Annotated, List, Literal, Optional
from uuid import UUID

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
    field_validator,
)

from fishlog.errors import make_error

MAX_TRIP_EQUIPMENT = 50

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
Order = Literal['asc', 'desc']
TripStatus = Literal['draft', 'active', 'closed']
TRIP_INCLUDES = ('catches', 'rods', 'lures', 'groundbaits', 'weather_current')


def parse(schema, payload):
    """Validates a payload, returns ``(model, None)`` or ``(None, MappedError)``"""
    try:
        return schema.model_validate({} if payload is None else payload), None
    except ValidationError as exc:
        first = exc.errors()[0]
        field = '.'.join(str(part) for part in first['loc']) or None
        return None, make_error('validation_error', field=field, reason=first['msg'])


def parse_body(schema, request):
    """Validates a JSON request body; a missing body counts as ``{}``"""
    if not request.get_data(cache=True):
        return parse(schema, None)
    payload = request.get_json(silent=True)
    if payload is None:
        return None, make_error('validation_error', reason='malformed JSON body')
    return parse(schema, payload)


class Body(BaseModel):
    model_config = ConfigDict(extra='forbid')


class Query(BaseModel):
    model_config = ConfigDict(extra='ignore', populate_by_name=True)


class ListQuery(Query):
    limit: int = Field(20, ge=1, le=100)
    cursor: Optional[str] = None
    order: Order = 'desc'


# Equipment

class EquipmentListQuery(ListQuery):
    q: Optional[str] = Field(None, max_length=255)
    include_deleted: bool = False
    sort: Literal['name', 'created_at', 'updated_at'] = 'created_at'


class EquipmentCreate(Body):
    name: Name


class EquipmentUpdate(Body):
    name: Name = None


# Trips

class Location(Body):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    label: Optional[str] = Field(None, max_length=255)


class TripListQuery(ListQuery):
    status: Optional[TripStatus] = None
    from_: Optional[AwareDatetime] = Field(None, alias='from')
    to: Optional[AwareDatetime] = None
    include_deleted: bool = False
    sort: Literal['started_at', 'created_at', 'updated_at'] = 'started_at'


class TripGetQuery(Query):
    include: List[str] = []

    @field_validator('include', mode='before')
    @classmethod
    def split_include(cls, value):
        if isinstance(value, str):
            value = [part.strip() for part in value.split(',') if part.strip()]
        for part in value:
            if part not in TRIP_INCLUDES:
                raise ValueError(f'unsupported include value: {part}')
        return value


class TripCreate(Body):
    started_at: AwareDatetime
    ended_at: Optional[AwareDatetime] = None
    status: TripStatus = 'draft'
    location: Optional[Location] = None
    copy_equipment_from_last_trip: bool = False


class QuickStart(Body):
    location: Optional[Location] = None
    copy_equipment_from_last_trip: bool = False


class TripUpdate(Body):
    started_at: AwareDatetime = None
    ended_at: Optional[AwareDatetime] = None
    status: TripStatus = None
    location: Optional[Location] = None


class TripClose(Body):
    ended_at: Optional[AwareDatetime] = None


# Trip equipment

class RodAssignments(Body):
    rod_ids: List[UUID] = Field(max_length=MAX_TRIP_EQUIPMENT)


class LureAssignments(Body):
    lure_ids: List[UUID] = Field(max_length=MAX_TRIP_EQUIPMENT)


class GroundbaitAssignments(Body):
    groundbait_ids: List[UUID] = Field(max_length=MAX_TRIP_EQUIPMENT)


class RodAssignment(Body):
    rod_id: UUID


class LureAssignment(Body):
    lure_id: UUID


class GroundbaitAssignment(Body):
    groundbait_id: UUID


REPLACE_ASSIGNMENT_SCHEMAS = {
    'rods': RodAssignments,
    'lures': LureAssignments,
    'groundbaits': GroundbaitAssignments,
}

ADD_ASSIGNMENT_SCHEMAS = {
    'rods': RodAssignment,
    'lures': LureAssignment,
    'groundbaits': GroundbaitAssignment,
}


# Catches

PositiveInt = Annotated[int, Field(strict=True, gt=0)]


class CatchListQuery(ListQuery):
    from_: Optional[AwareDatetime] = Field(None, alias='from')
    to: Optional[AwareDatetime] = None
    species_id: Optional[UUID] = None
    sort: Literal['caught_at', 'created_at'] = 'caught_at'


class CatchCreate(Body):
    caught_at: AwareDatetime
    species_id: UUID
    lure_id: UUID
    groundbait_id: UUID
    weight_g: Optional[PositiveInt] = None
    length_mm: Optional[PositiveInt] = None
    photo_path: Optional[str] = Field(None, max_length=255)


class CatchUpdate(Body):
    caught_at: AwareDatetime = None
    species_id: UUID = None
    lure_id: UUID = None
    groundbait_id: UUID = None
    weight_g: Optional[PositiveInt] = None
    length_mm: Optional[PositiveInt] = None
    photo_path: Optional[str] = Field(None, max_length=255)


# Weather

class SnapshotListQuery(ListQuery):
    source: Optional[Literal['api', 'manual']] = None
    sort: Literal['fetched_at', 'created_at'] = 'fetched_at'


class SnapshotGetQuery(Query):
    include_hours: bool = False


class Period(Body):
    period_start: AwareDatetime
    period_end: AwareDatetime

    @field_validator('period_end')
    @classmethod
    def check_period(cls, value, info):
        start = info.data.get('period_start')
        if start is not None and value < start:
            raise ValueError('must be greater than or equal to period_start')
        return value


class WeatherRefresh(Period):
    force: bool = False


class WeatherHourInput(Body):
    observed_at: AwareDatetime
    temperature_c: Optional[float] = Field(None, ge=-100, le=100)
    pressure_hpa: Optional[int] = Field(None, ge=800, le=1200)
    wind_speed_kmh: Optional[float] = Field(None, ge=0)
    wind_direction: Optional[int] = Field(None, ge=0, le=360)
    humidity_percent: Optional[int] = Field(None, ge=0, le=100)
    precipitation_mm: Optional[float] = Field(None, ge=0)
    cloud_cover: Optional[int] = Field(None, ge=0, le=100)
    weather_icon: Optional[str] = Field(None, max_length=50)
    weather_text: Optional[str] = Field(None, max_length=255)


class WeatherManual(Period):
    fetched_at: AwareDatetime
    hours: List[WeatherHourInput] = Field(min_length=1)


# Fish species

class SpeciesListQuery(ListQuery):
    q: Optional[str] = Field(None, max_length=255)
    sort: Literal['name', 'created_at'] = 'name'
    order: Order = 'asc'
