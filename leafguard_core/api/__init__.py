"""
LeafGuard API Module
HTTP client core, request pipeline, data model and third-party connectors
"""

from .config import ClientConfig, load_config, DEFAULT_BASE_URL, MAX_RETRIES, RETRY_DELAY
from .models import (
    OFFLINE_TOKEN,
    UserProfile,
    Session,
    OfflineCredentials,
    DetectionResult,
    ScanInput,
    SavedScan,
    SubscriptionPlan,
    SubscriptionRecord,
    SubscriptionStatus,
    WeatherReading,
)
from .pipeline import RequestContext, attach_auth, classify_error, should_retry
from .client import LeafGuardClient
from .base_connector import BaseAPIConnector, APIConfig
from .weather_connector import (
    WeatherAPIConnector,
    OpenWeatherConnector,
    MockWeatherConnector,
)

__all__ = [
    # Configuration
    "ClientConfig",
    "load_config",
    "DEFAULT_BASE_URL",
    "MAX_RETRIES",
    "RETRY_DELAY",

    # Data model
    "OFFLINE_TOKEN",
    "UserProfile",
    "Session",
    "OfflineCredentials",
    "DetectionResult",
    "ScanInput",
    "SavedScan",
    "SubscriptionPlan",
    "SubscriptionRecord",
    "SubscriptionStatus",
    "WeatherReading",

    # Client core
    "RequestContext",
    "attach_auth",
    "classify_error",
    "should_retry",
    "LeafGuardClient",

    # Weather connectors
    "BaseAPIConnector",
    "APIConfig",
    "WeatherAPIConnector",
    "OpenWeatherConnector",
    "MockWeatherConnector",
]
