import logging
import os
import sqlite3

import click
from flask import Flask
from flask_cors import CORS
from sqlalchemy import event
from sqlalchemy.engine import Engine
from werkzeug.exceptions import HTTPException

from fishlog.config import Config, database_settings
from fishlog.errors import error_response, make_error
from fishlog.models.database import EQUIPMENT_KINDS, FishSpecies, db
from fishlog.routes.catches import catches_bp
from fishlog.routes.equipment import create_equipment_blueprint
from fishlog.routes.me import me_bp
from fishlog.routes.species import species_bp
from fishlog.routes.trip_equipment import trip_equipment_bp
from fishlog.routes.trips import trips_bp
from fishlog.routes.weather import weather_bp
from fishlog.services.photos import PhotoStorage
from fishlog.services.weather_provider import WeatherProvider

logger = logging.getLogger(__name__)

API_PREFIX = '/api/v1'

DEFAULT_SPECIES = (
    'Pike', 'Perch', 'Zander', 'Carp', 'Bream', 'Roach', 'Tench', 'Wels catfish',
    'Eel', 'Chub', 'Asp', 'Brown trout', 'Grayling', 'Crucian carp', 'Rudd', 'Ide',
)


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite leaves foreign keys off unless asked per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        if exc.code == 401:
            return error_response(make_error('unauthorized'))
        if exc.code in (404, 405):
            return error_response(make_error('not_found'))
        if exc.code < 500:
            return error_response(make_error('validation_error'))
        return error_response(make_error('internal_error'))

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        db.session.rollback()
        logger.exception('Unhandled error')
        return error_response(make_error('internal_error'))


def register_commands(app):
    @app.cli.command('seed-species')
    def seed_species():
        """Adds the default fish species that are missing"""
        existing = {name for (name,) in db.session.query(FishSpecies.name)}
        added = [FishSpecies(name=name) for name in DEFAULT_SPECIES if name not in existing]
        db.session.add_all(added)
        db.session.commit()
        click.echo(f'Added {len(added)} fish species')


def create_app(overrides=None):
    """Builds the Flask application; ``overrides`` is applied on top of Config"""
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    # CORS configuration so the frontend can call the API
    CORS(app, origins=app.config['CORS_ORIGINS'])

    # Database configuration
    uri, engine_options = database_settings(app.config.get('DATABASE_URL'))
    app.config.setdefault('SQLALCHEMY_DATABASE_URI', uri)
    app.config.setdefault('SQLALCHEMY_ENGINE_OPTIONS', engine_options)
    db.init_app(app)

    app.extensions['weather_provider'] = WeatherProvider(
        app.config['WEATHER_API_KEY'],
        app.config['WEATHER_BASE_URL'],
        app.config['WEATHER_TIMEOUT'],
    )
    app.extensions['photo_storage'] = PhotoStorage(
        app.config['PHOTO_STORAGE_ROOT'],
        app.config['PHOTO_URL_PREFIX'],
    )

    # Register blueprints
    for kind_name in EQUIPMENT_KINDS:
        app.register_blueprint(create_equipment_blueprint(kind_name), url_prefix=f'{API_PREFIX}/{kind_name}')
    app.register_blueprint(trips_bp, url_prefix=f'{API_PREFIX}/trips')
    app.register_blueprint(trip_equipment_bp, url_prefix=f'{API_PREFIX}/trips')
    app.register_blueprint(catches_bp, url_prefix=API_PREFIX)
    app.register_blueprint(weather_bp, url_prefix=API_PREFIX)
    app.register_blueprint(me_bp, url_prefix=f'{API_PREFIX}/me')
    app.register_blueprint(species_bp, url_prefix=f'{API_PREFIX}/fish-species')

    register_error_handlers(app)
    register_commands(app)

    @app.route('/api/health')
    def health_check():
        """Endpoint to check that the API is up"""
        return {
            'status': 'ok',
            'database': db.engine.dialect.name,
        }

    # Create tables
    with app.app_context():
        db.create_all()

    return app


if __name__ == '__main__':
    app = create_app()
    print("🎣 Starting fishlog API")
    with app.app_context():
        print(f"🗄️ Database: {db.engine.dialect.name}")
    if not app.config['WEATHER_API_KEY']:
        print("⚠️ WEATHER_API_KEY not set, weather refresh will answer 502")
    print("📊 Open http://localhost:5000/api/health to check the API")

    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port)
