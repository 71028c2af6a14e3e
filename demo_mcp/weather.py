"""
Open-Meteo client used by the getWeather tool.

Two sequential lookups: geocode the city, then fetch the current conditions
for the first match. Calls are single attempts with no timeout and no
caching. Any transport error, non-2xx status or payload of the wrong shape is
raised as UpstreamServiceError.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from error_handling import ErrorCode, UpstreamServiceError, trace_function

logger = logging.getLogger("demo_mcp.weather")

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

CURRENT_FIELDS = (
    "temperature_2m",
    "relative_humidity_2m",
    "wind_speed_10m",
    "precipitation",
    "rain",
    "showers",
    "cloud_cover",
    "apparent_temperature",
)


class GeocodingResult(BaseModel):
    latitude: float
    longitude: float
    name: Optional[str] = None
    country: Optional[str] = None


class GeocodingResponse(BaseModel):
    # Open-Meteo omits "results" entirely when nothing matches
    results: Optional[List[GeocodingResult]] = None


class CurrentWeather(BaseModel):
    temperature_2m: float
    relative_humidity_2m: float
    wind_speed_10m: float
    precipitation: float
    cloud_cover: float


class ForecastResponse(BaseModel):
    current: CurrentWeather


def format_current_weather(current: CurrentWeather) -> str:
    """Render current conditions as the multi-line text returned to clients."""
    return (
        f"Temperature: {current.temperature_2m}°C\n"
        f"Humidity: {current.relative_humidity_2m}%\n"
        f"Wind: {current.wind_speed_10m} km/h\n"
        f"Precipitation: {current.precipitation} mm\n"
        f"Cloud Cover: {current.cloud_cover}%"
    )


class WeatherClient:
    """Async client for the Open-Meteo geocoding and forecast APIs."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        geocoding_url: str = GEOCODING_URL,
        forecast_url: str = FORECAST_URL,
    ):
        self._http_client = http_client
        self._owns_client = http_client is None
        self.geocoding_url = geocoding_url
        self.forecast_url = forecast_url

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=None)
        return self._http_client

    async def aclose(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _get_json(self, service: str, url: str, params: Dict[str, Any]) -> Any:
        try:
            response = await self._client().get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamServiceError(
                service,
                f"{service} service returned HTTP {e.response.status_code}",
                cause=e,
            ) from e
        except httpx.RequestError as e:
            raise UpstreamServiceError(service, f"{service} request failed: {e}", cause=e) from e
        except ValueError as e:
            raise UpstreamServiceError(
                service,
                f"{service} service returned invalid JSON",
                cause=e,
                code=ErrorCode.INVALID_RESPONSE,
            ) from e

    @trace_function(name="weather.geocode")
    async def geocode(self, city: str) -> Optional[GeocodingResult]:
        """Return the best match for a city name, or None if there is none."""
        payload = await self._get_json(
            "geocoding",
            self.geocoding_url,
            {"name": city, "count": 10, "language": "en", "format": "json"},
        )
        try:
            geocoding = GeocodingResponse.model_validate(payload)
        except ValidationError as e:
            raise UpstreamServiceError(
                "geocoding",
                "geocoding service returned an unexpected payload",
                cause=e,
                code=ErrorCode.INVALID_RESPONSE,
            ) from e

        if not geocoding.results:
            return None
        return geocoding.results[0]

    @trace_function(name="weather.forecast")
    async def current_weather(self, latitude: float, longitude: float) -> CurrentWeather:
        payload = await self._get_json(
            "forecast",
            self.forecast_url,
            {
                "latitude": latitude,
                "longitude": longitude,
                "hourly": "temperature_2m",
                "current": ",".join(CURRENT_FIELDS),
            },
        )
        try:
            return ForecastResponse.model_validate(payload).current
        except ValidationError as e:
            raise UpstreamServiceError(
                "forecast",
                "forecast service returned an unexpected payload",
                cause=e,
                code=ErrorCode.INVALID_RESPONSE,
            ) from e

    async def describe_city(self, city: str) -> str:
        """Geocode a city and describe its current weather."""
        location = await self.geocode(city)
        if location is None:
            logger.info(f"No geocoding results for {city!r}")
            return f"City {city} not found."

        current = await self.current_weather(location.latitude, location.longitude)
        return format_current_weather(current)
