"""
Base API Connector Class for third-party services
Provides the abstract interface the weather connectors implement
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
from dataclasses import dataclass

import requests

from leafguard_core.errors import LeafGuardError, ServerError
from leafguard_core.logging import get_logger

from .pipeline import RequestContext, classify_error

logger = get_logger(__name__)


@dataclass
class APIConfig:
    """Configuration for a third-party API connection"""
    api_name: str
    base_url: str
    api_key: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    timeout: float = 10.0
    additional_params: Optional[Dict[str, Any]] = None


class BaseAPIConnector(ABC):
    """Abstract base class for external API connectors"""

    def __init__(self, config: APIConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

        # Set default headers
        if config.headers:
            self.session.headers.update(config.headers)

    @abstractmethod
    def validate_response(self, payload: Dict[str, Any]) -> bool:
        """Check that a decoded response has the fields the connector needs"""
        pass

    def _make_request(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[Dict] = None,
    ) -> Dict[str, Any]:
        """
        Make HTTP request with error handling

        Args:
            endpoint: API endpoint (appended to base_url)
            method: HTTP method
            params: Query parameters

        Returns:
            Decoded JSON body

        Raises:
            ApiError subclass from classify_error
        """
        url = f"{self.config.base_url}/{endpoint}"
        context = RequestContext(method=method, endpoint=f"/{endpoint}", url=url, max_retries=0)

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                timeout=self.config.timeout,
            )
        except requests.exceptions.RequestException as e:
            error = classify_error(context, exception=e)
            logger.warning(f"{self.config.api_name} request failed: {error.message}")
            raise error

        if not response.ok:
            raise classify_error(context, response=response)

        try:
            return response.json()
        except ValueError:
            raise ServerError(
                f"{self.config.api_name} returned invalid JSON",
                status_code=response.status_code,
                endpoint=context.endpoint,
            )

    def test_connection(self) -> Dict[str, Any]:
        """
        Test API connection and return status

        Returns:
            Dict with status and message
        """
        try:
            self.fetch_sample()
            return {
                "status": "success",
                "message": f"Successfully connected to {self.config.api_name}",
            }
        except LeafGuardError as e:
            return {
                "status": "error",
                "message": f"Connection failed: {str(e)}"
            }

    @abstractmethod
    def fetch_sample(self) -> Any:
        """Make the smallest request that proves the API is usable"""
        pass
