"""AccuWeather client used by weather refresh.

Two dependent calls: a geoposition search resolves the location key, then the
hourly forecast is read for that key. Current conditions are read alongside the
forecast and only fill in pressure when the forecast hours lack it.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import requests
from requests.exceptions import RequestException

from fishlog.models.database import to_utc

logger = logging.getLogger(__name__)


class WeatherProviderError(Exception):
    """Provider failure with one of: configuration_error, rate_limited, bad_gateway, network_error"""

    def __init__(self, code, status, message):
        super().__init__(message)
        self.code = code
        self.status = status
        self.message = message


def _error_for_status(status_code):
    if 200 <= status_code < 300:
        return None
    if status_code in (401, 403):
        return WeatherProviderError('configuration_error', 502, 'Weather provider configuration error')
    if status_code == 429:
        return WeatherProviderError('rate_limited', 429, 'Weather provider rate limit exceeded')
    if status_code >= 500:
        return WeatherProviderError('bad_gateway', 502, 'Weather provider error')
    return WeatherProviderError('bad_gateway', 502, f'Weather provider error: {status_code}')


def _parse_time(value):
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    return to_utc(datetime.fromisoformat(value))


def map_hour(entry):
    """Maps one AccuWeather hourly entry; absent fields become None"""
    temperature = entry.get('Temperature') or {}
    wind = entry.get('Wind') or {}
    pressure = entry.get('Pressure')
    total_liquid = entry.get('TotalLiquid') or {}
    icon = entry.get('WeatherIcon')
    return {
        'observed_at': _parse_time(entry['DateTime']),
        'temperature_c': temperature.get('Value'),
        'pressure_hpa': int(round(pressure['Value'])) if pressure else None,
        'wind_speed_kmh': (wind.get('Speed') or {}).get('Value'),
        'wind_direction': (wind.get('Direction') or {}).get('Degrees'),
        'humidity_percent': entry.get('RelativeHumidity'),
        'precipitation_mm': total_liquid.get('Value'),
        'cloud_cover': entry.get('CloudCover'),
        'weather_icon': str(icon) if icon is not None else None,
        'weather_text': entry.get('IconPhrase'),
    }


class WeatherProvider:
    """Thin AccuWeather client; every request carries the configured timeout"""

    def __init__(self, api_key, base_url, timeout, session=None):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path, **params):
        params['apikey'] = self.api_key
        return self.session.get(
            f'{self.base_url}{path}',
            params=params,
            headers={'Accept': 'application/json'},
            timeout=self.timeout,
        )

    def _location_key(self, lat, lng):
        response = self._get('/locations/v1/cities/geoposition/search', q=f'{lat},{lng}', details='false')
        error = _error_for_status(response.status_code)
        if error:
            raise error
        return response.json()['Key']

    def _hourly(self, location_key):
        response = self._get(f'/forecasts/v1/hourly/12hour/{location_key}', details='true', metric='true')
        error = _error_for_status(response.status_code)
        if error:
            raise error
        return [map_hour(entry) for entry in response.json()]

    def _current_pressure(self, location_key):
        try:
            response = self._get(f'/currentconditions/v1/{location_key}', details='true')
            if not 200 <= response.status_code < 300:
                return None
            data = response.json()
            value = data[0]['Pressure']['Metric']['Value'] if data else None
        except (RequestException, KeyError, IndexError, TypeError, ValueError) as exc:
            logger.warning('Current conditions unavailable for %s: %s', location_key, exc)
            return None
        return int(round(value)) if value else None

    def fetch_weather(self, lat, lng):
        """Returns a list of hour dicts, raises WeatherProviderError"""
        if not self.api_key:
            raise WeatherProviderError('configuration_error', 500, 'Weather provider configuration error')

        try:
            location_key = self._location_key(lat, lng)
            with ThreadPoolExecutor(max_workers=2) as executor:
                current = executor.submit(self._current_pressure, location_key)
                hourly = executor.submit(self._hourly, location_key)
                hours = hourly.result()
                pressure = current.result()
        except RequestException as exc:
            raise WeatherProviderError('network_error', 502, 'Weather provider network error') from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise WeatherProviderError('bad_gateway', 502, 'Unexpected weather provider response') from exc

        for hour in hours:
            if hour['pressure_hpa'] is None:
                hour['pressure_hpa'] = pressure
        return hours
