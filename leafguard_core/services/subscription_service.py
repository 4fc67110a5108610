# =============================================================================
# leafguard_core/services/subscription_service.py
# Subscription Service - Plans, Status and Plan Changes
# =============================================================================

from __future__ import annotations
from typing import List

from .base_service import BaseService, ServiceResult
from leafguard_core.api.models import SubscriptionPlan, SubscriptionStatus
from leafguard_core.errors import NetworkUnreachable, ServerError


# Shown when the plans endpoint cannot be reached
DEFAULT_PLANS: List[SubscriptionPlan] = [
    SubscriptionPlan(
        id="free",
        name="Free Plan",
        price=0.0,
        features=[
            "5 disease scans per month",
            "Basic disease information",
            "Limited treatment recommendations",
        ],
    ),
    SubscriptionPlan(
        id="premium",
        name="Premium Plan",
        price=9.99,
        features=[
            "Unlimited disease scans",
            "Detailed disease information",
            "Advanced treatment recommendations",
            "Environmental monitoring",
            "Priority support",
        ],
    ),
]


class SubscriptionService(BaseService):
    """
    Service for subscription plans.

    Usage:
        service = SubscriptionService(client, auth)
        plans = service.get_plans().data
        service.subscribe("premium", payment_id)
    """

    offline_message = "Subscriptions need a connection to the LeafGuard server."

    def get_plans(self) -> ServiceResult:
        """
        Plans from the server, or DEFAULT_PLANS when the device is offline or
        the server cannot be reached. metadata["source"] says which.
        """
        if not self.auth.connection_manager.is_connected:
            return ServiceResult.ok(list(DEFAULT_PLANS), metadata={"source": "default"})

        with self.log_operation("Loading subscription plans"):
            try:
                plans = self.client.get_subscription_plans()
            except (NetworkUnreachable, ServerError) as e:
                self.logger.warning(f"Using built-in plans: {e.message}")
                return ServiceResult.ok(list(DEFAULT_PLANS), metadata={"source": "default"})
        return ServiceResult.ok(plans, metadata={"source": "server"})

    def _status(self) -> SubscriptionStatus:
        self.require_server_session()
        return self.client.get_subscription_status()

    def get_status(self) -> ServiceResult:
        return self.safe_execute("Loading subscription status", self._status)

    def subscribe(self, plan_id: str, payment_id: str) -> ServiceResult:
        return self.safe_execute(
            f"Subscribing to {plan_id}", self.auth.subscribe, plan_id, payment_id
        )

    def cancel(self) -> ServiceResult:
        return self.safe_execute("Cancelling subscription", self.auth.cancel_subscription)
