import os
from dotenv import load_dotenv

# Load variables from .env
load_dotenv()

BASE_DIR = os.path.dirname(__file__)


def database_settings(database_url=None):
    """Returns the SQLAlchemy URI and engine options for the configured database"""
    if database_url and not database_url.startswith('sqlite'):
        return database_url, {
            'pool_pre_ping': True,
            'pool_recycle': 300,
        }

    if database_url:
        return database_url, {}

    # Local SQLite fallback
    sqlite_path = os.path.join(BASE_DIR, 'database', 'app.db')
    os.makedirs(os.path.dirname(sqlite_path), exist_ok=True)
    return f"sqlite:///{sqlite_path}", {}


class Config:
    """Application settings read from the environment"""

    SECRET_KEY = os.getenv('SECRET_KEY', 'fishing-app-secret-key-2024')
    JWT_SECRET = os.getenv('JWT_SECRET', SECRET_KEY)
    JWT_ALGORITHMS = ['HS256']

    DATABASE_URL = os.getenv('DATABASE_URL')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ORIGINS', 'http://localhost:3000,http://localhost:5173').split(',')
        if origin.strip()
    ]
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    WEATHER_API_KEY = os.getenv('WEATHER_API_KEY', '')
    WEATHER_BASE_URL = os.getenv('WEATHER_BASE_URL', 'https://dataservice.accuweather.com')
    WEATHER_TIMEOUT = float(os.getenv('WEATHER_TIMEOUT', '10'))
    WEATHER_REFRESH_MAX_AGE_HOURS = int(os.getenv('WEATHER_REFRESH_MAX_AGE_HOURS', '24'))

    PHOTO_STORAGE_ROOT = os.getenv('PHOTO_STORAGE_ROOT', os.path.join(BASE_DIR, 'storage', 'catch-photos'))
    PHOTO_URL_PREFIX = os.getenv('PHOTO_URL_PREFIX', '/media/catch-photos')
