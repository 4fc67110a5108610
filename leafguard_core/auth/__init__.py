"""
Authentication module for the LeafGuard client.
Login, registration and session lifecycle, with offline fallback through the
built-in account and remembered credentials.
"""

from .credentials import (
    DEFAULT_EMAIL,
    DEFAULT_PASSWORD,
    DefaultCredentials,
    default_profile,
    hash_password,
    verify_password,
    make_offline_credentials,
    offline_credentials_match,
)
from .orchestrator import AuthOrchestrator, AuthState

__all__ = [
    "AuthOrchestrator",
    "AuthState",
    "DEFAULT_EMAIL",
    "DEFAULT_PASSWORD",
    "DefaultCredentials",
    "default_profile",
    "hash_password",
    "verify_password",
    "make_offline_credentials",
    "offline_credentials_match",
]
