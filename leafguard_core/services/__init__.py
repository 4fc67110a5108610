# =============================================================================
# leafguard_core/services/__init__.py
# Service Layer for the LeafGuard client
# Wraps client and orchestrator calls into ServiceResult values for screens
# =============================================================================
"""
Service Layer for the LeafGuard client

Usage Example:
-------------
    from leafguard_core.services import ScanService, SubscriptionService

    scans = ScanService(client, auth)
    result = scans.detect_and_record(image_bytes, "Tomato")
    if result.success:
        print(result.data.detection.disease)
    else:
        print(result.error)

    plans = SubscriptionService(client, auth).get_plans().data
"""

from .base_service import BaseService, ServiceResult
from .scan_service import ScanService, ScanOutcome, HISTORY_COLUMNS
from .subscription_service import SubscriptionService, DEFAULT_PLANS

__all__ = [
    # Base classes
    "BaseService",
    "ServiceResult",
    # Scans
    "ScanService",
    "ScanOutcome",
    "HISTORY_COLUMNS",
    # Subscriptions
    "SubscriptionService",
    "DEFAULT_PLANS",
]
