# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import json
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest
import requests

from leafguard_core.api.client import LeafGuardClient
from leafguard_core.api.config import ClientConfig
from leafguard_core.api.models import UserProfile
from leafguard_core.auth.orchestrator import AuthOrchestrator
from leafguard_core.offline.connection_manager import ConnectionManager
from leafguard_core.offline.credential_store import InMemoryCredentialStore


BASE_URL = "http://api.leafguard.test/api"


# =============================================================================
# HTTP FAKES
# =============================================================================

def make_response(
    status_code: int = 200,
    body: Any = None,
    url: str = BASE_URL,
    reason: Optional[str] = None,
) -> requests.Response:
    """Build a real requests.Response with a JSON body"""
    response = requests.Response()
    response.status_code = status_code
    response._content = json.dumps(body).encode() if body is not None else b""
    response.headers["Content-Type"] = "application/json"
    response.url = url
    response.reason = reason or ("OK" if status_code < 400 else "Error")
    return response


def auth_body(token: str = "jwt-123", **overrides) -> dict:
    """Login/register response body as sent by the backend"""
    body = {
        "_id": "u1",
        "name": "Ada Farmer",
        "email": "ada@farm.test",
        "role": "Farmer",
        "isSubscribed": False,
        "remainingFreeScans": 5,
        "token": token,
    }
    body.update(overrides)
    return body


def detection_body(**overrides) -> dict:
    body = {
        "disease": "Tomato Early Blight",
        "confidence": 0.92,
        "description": "Fungal disease",
        "symptoms": ["Brown spots"],
        "recommendations": ["Remove infected leaves"],
        "preventions": ["Rotate crops"],
        "imageUrl": "/uploads/leaf.jpg",
        "remainingScans": 4,
    }
    body.update(overrides)
    return body


class Switch:
    """Mutable boolean used as a connectivity probe"""

    def __init__(self, value: bool = True):
        self.value = value
        self.calls = 0

    def __call__(self) -> bool:
        self.calls += 1
        return self.value


# =============================================================================
# CORE FIXTURES
# =============================================================================

@pytest.fixture
def config(tmp_path):
    """Client configuration with no retry delay"""
    return ClientConfig(
        base_url=BASE_URL,
        timeout=2.0,
        retry_delay=0.0,
        db_path=tmp_path / "credentials.db",
    )


@pytest.fixture
def store():
    return InMemoryCredentialStore()


@pytest.fixture
def http():
    """Mock requests.Session; set http.request.side_effect / return_value per test"""
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    return session


@pytest.fixture
def sleeps():
    """Collects the delays the client would have slept for"""
    return []


@pytest.fixture
def client(config, store, http, sleeps):
    return LeafGuardClient(config, store, session=http, sleep=sleeps.append)


@pytest.fixture
def internet():
    return Switch(True)


@pytest.fixture
def backend():
    return Switch(True)


@pytest.fixture
def monitor(internet, backend):
    return ConnectionManager(backend_probe=backend, internet_probe=internet)


@pytest.fixture
def auth(client, store, monitor):
    return AuthOrchestrator(client, store, monitor)


@pytest.fixture
def profile():
    return UserProfile(
        id="u1",
        name="Ada Farmer",
        email="ada@farm.test",
        role="Farmer",
        is_subscribed=False,
        remaining_free_scans=5,
    )


@pytest.fixture
def jpeg_bytes():
    return b"\xff\xd8\xff\xe0" + b"\x00" * 128
