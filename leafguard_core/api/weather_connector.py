"""
Weather Data API Connectors
Current conditions for the environmental data screen: OpenWeatherMap plus an offline mock
"""
from typing import Optional, Dict, Any

import requests

from leafguard_core.errors import ConfigurationError, NotFound, ServerError, ValidationError

from .base_connector import BaseAPIConnector, APIConfig
from .config import ClientConfig
from .models import WeatherReading


ICON_URL = "https://openweathermap.org/img/wn/{icon}@2x.png"


class WeatherAPIConnector(BaseAPIConnector):
    """Base connector for weather APIs"""

    def get_weather_by_city(self, city: str) -> WeatherReading:
        raise NotImplementedError

    def get_weather_by_coordinates(self, latitude: float, longitude: float) -> WeatherReading:
        raise NotImplementedError

    def fetch_sample(self) -> WeatherReading:
        return self.get_weather_by_coordinates(0.0, 0.0)


class OpenWeatherConnector(WeatherAPIConnector):
    """
    Connector for the OpenWeatherMap current weather API

    The API key goes in the query string, not a header.
    """

    def __init__(self, config: APIConfig, session: Optional[requests.Session] = None):
        if not config.api_key:
            raise ConfigurationError(
                "OpenWeatherMap needs an API key (set OPENWEATHER_API_KEY)",
                config_key="weather_api_key",
            )
        super().__init__(config, session)

    @classmethod
    def from_client_config(
        cls, config: ClientConfig, session: Optional[requests.Session] = None
    ) -> "OpenWeatherConnector":
        return cls(
            APIConfig(
                api_name="openweather",
                base_url=config.weather_base_url.rstrip("/"),
                api_key=config.weather_api_key,
                timeout=config.timeout,
                additional_params={"units": "metric"},
            ),
            session,
        )

    def _params(self, **query: Any) -> Dict[str, Any]:
        units = (self.config.additional_params or {}).get("units", "metric")
        return {**query, "appid": self.config.api_key, "units": units}

    def get_weather_by_city(self, city: str) -> WeatherReading:
        """
        Fetch current weather for a city name

        Raises:
            NotFound: the city is unknown to OpenWeatherMap
        """
        if not city or not city.strip():
            raise ValidationError("City name is required")
        try:
            payload = self._make_request("weather", params=self._params(q=city.strip()))
        except NotFound as e:
            raise NotFound(
                "Location not found. Please check the city name.",
                status_code=404,
                endpoint="/weather",
            ) from e
        return self._parse_response(payload)

    def get_weather_by_coordinates(self, latitude: float, longitude: float) -> WeatherReading:
        """Fetch current weather for a latitude/longitude pair"""
        if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
            raise ValidationError(f"Invalid coordinates ({latitude}, {longitude})")
        payload = self._make_request(
            "weather", params=self._params(lat=latitude, lon=longitude)
        )
        return self._parse_response(payload)

    def validate_response(self, payload: Dict[str, Any]) -> bool:
        """Validate OpenWeather response"""
        return (
            isinstance(payload, dict)
            and "main" in payload
            and bool(payload.get("weather"))
        )

    def _parse_response(self, payload: Dict[str, Any]) -> WeatherReading:
        """Parse an OpenWeather /weather response"""
        if not self.validate_response(payload):
            raise ServerError("Invalid OpenWeatherMap response", endpoint="/weather")

        main = payload["main"]
        condition = payload["weather"][0]
        sys_info = payload.get("sys", {})

        return WeatherReading(
            temperature=main.get("temp"),
            humidity=main.get("humidity"),
            wind_speed=payload.get("wind", {}).get("speed", 0.0),
            description=condition.get("description", ""),
            icon_url=ICON_URL.format(icon=condition.get("icon", "01d")),
            location=payload.get("name", ""),
            pressure=main.get("pressure"),
            feels_like=main.get("feels_like"),
            sunrise=sys_info.get("sunrise", 0),
            sunset=sys_info.get("sunset", 0),
        )


class MockWeatherConnector(WeatherAPIConnector):
    """
    Fixed readings for offline use and tests
    """

    def __init__(self, config: Optional[APIConfig] = None):
        super().__init__(config or APIConfig(api_name="weather_mock", base_url=""))

    def validate_response(self, payload: Dict[str, Any]) -> bool:
        return True

    def _reading(self, location: str) -> WeatherReading:
        return WeatherReading(
            temperature=24.0,
            humidity=65.0,
            wind_speed=3.2,
            description="scattered clouds",
            icon_url=ICON_URL.format(icon="03d"),
            location=location,
            pressure=1013.0,
            feels_like=24.5,
            sunrise=1700020800,
            sunset=1700064000,
        )

    def get_weather_by_city(self, city: str) -> WeatherReading:
        return self._reading(city)

    def get_weather_by_coordinates(self, latitude: float, longitude: float) -> WeatherReading:
        return self._reading(f"{latitude:.2f},{longitude:.2f}")
