from collections import namedtuple
from datetime import datetime, timezone
import uuid

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import declared_attr

db = SQLAlchemy()

TRIP_STATUSES = ('draft', 'active', 'closed')
SNAPSHOT_SOURCES = ('api', 'manual')


def generate_uuid():
    """Generates a unique UUID used as primary key"""
    return str(uuid.uuid4())


def utcnow():
    """Current time as naive UTC, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc(value):
    """Normalizes an aware datetime to naive UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    return value.isoformat() + 'Z' if value else None


class EquipmentMixin:
    """Shared shape of rods, lures and groundbaits"""

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    deleted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @declared_attr
    def __table_args__(cls):
        # Names are unique per owner among live rows only
        return (
            db.Index(
                f'{cls.__tablename__}_user_name_unique',
                'user_id',
                'name',
                unique=True,
                sqlite_where=db.text('deleted_at IS NULL'),
                postgresql_where=db.text('deleted_at IS NULL'),
            ),
        )

    def __repr__(self):
        return f'<{type(self).__name__} {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'deleted_at': isoformat(self.deleted_at),
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


class Rod(EquipmentMixin, db.Model):
    """Fishing rod"""
    __tablename__ = 'rods'


class Lure(EquipmentMixin, db.Model):
    """Lure"""
    __tablename__ = 'lures'


class Groundbait(EquipmentMixin, db.Model):
    """Groundbait"""
    __tablename__ = 'groundbaits'


class FishSpecies(db.Model):
    """Global fish species dictionary"""
    __tablename__ = 'fish_species'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    name = db.Column(db.String(255), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f'<FishSpecies {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'created_at': isoformat(self.created_at),
        }


class Trip(db.Model):
    """Fishing trip"""
    __tablename__ = 'trips'
    __table_args__ = (
        db.CheckConstraint("status IN ('draft', 'active', 'closed')", name='trips_status_check'),
        db.CheckConstraint('ended_at IS NULL OR ended_at >= started_at', name='trips_dates_check'),
        db.CheckConstraint("status <> 'closed' OR ended_at IS NOT NULL", name='trips_closed_requires_end_check'),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    started_at = db.Column(db.DateTime, nullable=False)
    ended_at = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.String(10), nullable=False, default='draft')
    location_lat = db.Column(db.Float, nullable=True)
    location_lng = db.Column(db.Float, nullable=True)
    location_label = db.Column(db.String(255), nullable=True)
    deleted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    catches = db.relationship('Catch', backref='trip', lazy=True, order_by='Catch.caught_at')
    trip_rods = db.relationship('TripRod', backref='trip', lazy=True, order_by='TripRod.created_at')
    trip_lures = db.relationship('TripLure', backref='trip', lazy=True, order_by='TripLure.created_at')
    trip_groundbaits = db.relationship(
        'TripGroundbait', backref='trip', lazy=True, order_by='TripGroundbait.created_at'
    )
    weather_snapshots = db.relationship(
        'WeatherSnapshot', backref='trip', lazy=True, cascade='all, delete-orphan'
    )

    def __repr__(self):
        return f'<Trip {self.started_at} ({self.status})>'

    @property
    def has_location(self):
        return self.location_lat is not None and self.location_lng is not None

    def set_location(self, location):
        location = location or {}
        self.location_lat = location.get('lat')
        self.location_lng = location.get('lng')
        self.location_label = location.get('label')

    def to_dict(self):
        location = None
        if self.has_location:
            location = {
                'lat': self.location_lat,
                'lng': self.location_lng,
                'label': self.location_label,
            }
        return {
            'id': self.id,
            'started_at': isoformat(self.started_at),
            'ended_at': isoformat(self.ended_at),
            'status': self.status,
            'location': location,
            'deleted_at': isoformat(self.deleted_at),
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


class TripRod(db.Model):
    """Rod assigned to a trip, with the name it had at assignment time"""
    __tablename__ = 'trip_rods'
    __table_args__ = (db.UniqueConstraint('trip_id', 'rod_id', name='trip_rods_unique'),)

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    trip_id = db.Column(db.String(36), db.ForeignKey('trips.id', ondelete='CASCADE'), nullable=False, index=True)
    rod_id = db.Column(db.String(36), db.ForeignKey('rods.id'), nullable=False)
    rod_name_snapshot = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'rod_id': self.rod_id,
            'rod_name_snapshot': self.rod_name_snapshot,
            'created_at': isoformat(self.created_at),
        }


class TripLure(db.Model):
    """Lure assigned to a trip, with the name it had at assignment time"""
    __tablename__ = 'trip_lures'
    __table_args__ = (db.UniqueConstraint('trip_id', 'lure_id', name='trip_lures_unique'),)

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    trip_id = db.Column(db.String(36), db.ForeignKey('trips.id', ondelete='CASCADE'), nullable=False, index=True)
    lure_id = db.Column(db.String(36), db.ForeignKey('lures.id'), nullable=False)
    lure_name_snapshot = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'lure_id': self.lure_id,
            'lure_name_snapshot': self.lure_name_snapshot,
            'created_at': isoformat(self.created_at),
        }


class TripGroundbait(db.Model):
    """Groundbait assigned to a trip, with the name it had at assignment time"""
    __tablename__ = 'trip_groundbaits'
    __table_args__ = (db.UniqueConstraint('trip_id', 'groundbait_id', name='trip_groundbaits_unique'),)

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    trip_id = db.Column(db.String(36), db.ForeignKey('trips.id', ondelete='CASCADE'), nullable=False, index=True)
    groundbait_id = db.Column(db.String(36), db.ForeignKey('groundbaits.id'), nullable=False)
    groundbait_name_snapshot = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'groundbait_id': self.groundbait_id,
            'groundbait_name_snapshot': self.groundbait_name_snapshot,
            'created_at': isoformat(self.created_at),
        }


class Catch(db.Model):
    """Fish caught during a trip"""
    __tablename__ = 'catches'
    __table_args__ = (
        db.CheckConstraint('weight_g IS NULL OR weight_g > 0', name='catches_weight_check'),
        db.CheckConstraint('length_mm IS NULL OR length_mm > 0', name='catches_length_check'),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    trip_id = db.Column(db.String(36), db.ForeignKey('trips.id', ondelete='CASCADE'), nullable=False, index=True)
    caught_at = db.Column(db.DateTime, nullable=False)
    species_id = db.Column(db.String(36), db.ForeignKey('fish_species.id'), nullable=False)
    lure_id = db.Column(db.String(36), db.ForeignKey('lures.id'), nullable=False)
    groundbait_id = db.Column(db.String(36), db.ForeignKey('groundbaits.id'), nullable=False)
    lure_name_snapshot = db.Column(db.String(255), nullable=False)
    groundbait_name_snapshot = db.Column(db.String(255), nullable=False)
    weight_g = db.Column(db.Integer, nullable=True)
    length_mm = db.Column(db.Integer, nullable=True)
    photo_path = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    species = db.relationship('FishSpecies', lazy='joined')

    def __repr__(self):
        return f'<Catch {self.species_id} at {self.caught_at}>'

    def to_dict(self):
        return {
            'id': self.id,
            'trip_id': self.trip_id,
            'caught_at': isoformat(self.caught_at),
            'species_id': self.species_id,
            'lure_id': self.lure_id,
            'groundbait_id': self.groundbait_id,
            'lure_name_snapshot': self.lure_name_snapshot,
            'groundbait_name_snapshot': self.groundbait_name_snapshot,
            'weight_g': self.weight_g,
            'length_mm': self.length_mm,
            'photo_path': self.photo_path,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


class WeatherSnapshot(db.Model):
    """Weather observed for a trip over a period; never mutated once stored"""
    __tablename__ = 'weather_snapshots'
    __table_args__ = (
        db.CheckConstraint("source IN ('api', 'manual')", name='weather_snapshots_source_check'),
        db.CheckConstraint('period_end >= period_start', name='weather_snapshots_period_check'),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    trip_id = db.Column(db.String(36), db.ForeignKey('trips.id', ondelete='CASCADE'), nullable=False, index=True)
    source = db.Column(db.String(10), nullable=False)
    fetched_at = db.Column(db.DateTime, nullable=False)
    period_start = db.Column(db.DateTime, nullable=False)
    period_end = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    hours = db.relationship(
        'WeatherHour', backref='snapshot', lazy=True,
        cascade='all, delete-orphan', order_by='WeatherHour.observed_at'
    )

    def to_dict(self):
        return {
            'id': self.id,
            'trip_id': self.trip_id,
            'source': self.source,
            'fetched_at': isoformat(self.fetched_at),
            'period_start': isoformat(self.period_start),
            'period_end': isoformat(self.period_end),
            'created_at': isoformat(self.created_at),
        }


class WeatherHour(db.Model):
    """One hourly weather observation; providers omit fields, so all are nullable"""
    __tablename__ = 'weather_hours'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    snapshot_id = db.Column(
        db.String(36), db.ForeignKey('weather_snapshots.id', ondelete='CASCADE'), nullable=False, index=True
    )
    observed_at = db.Column(db.DateTime, nullable=False)
    temperature_c = db.Column(db.Float, nullable=True)
    pressure_hpa = db.Column(db.Integer, nullable=True)
    wind_speed_kmh = db.Column(db.Float, nullable=True)
    wind_direction = db.Column(db.Integer, nullable=True)
    humidity_percent = db.Column(db.Integer, nullable=True)
    precipitation_mm = db.Column(db.Float, nullable=True)
    cloud_cover = db.Column(db.Integer, nullable=True)
    weather_icon = db.Column(db.String(50), nullable=True)
    weather_text = db.Column(db.String(255), nullable=True)

    MEASUREMENTS = (
        'temperature_c', 'pressure_hpa', 'wind_speed_kmh', 'wind_direction', 'humidity_percent',
        'precipitation_mm', 'cloud_cover', 'weather_icon', 'weather_text',
    )

    def to_dict(self):
        data = {'observed_at': isoformat(self.observed_at)}
        for field in self.MEASUREMENTS:
            data[field] = getattr(self, field)
        return data


# Rods, lures and groundbaits share every rule; services look them up here
EquipmentKind = namedtuple('EquipmentKind', 'name singular model assignment')

EQUIPMENT_KINDS = {
    'rods': EquipmentKind('rods', 'rod', Rod, TripRod),
    'lures': EquipmentKind('lures', 'lure', Lure, TripLure),
    'groundbaits': EquipmentKind('groundbaits', 'groundbait', Groundbait, TripGroundbait),
}
