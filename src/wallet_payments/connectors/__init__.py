"""Payment processor connectors."""

from ..config import Settings
from .base import (
    ConnectorBase,
    PaymentRequest,
    PaymentResult,
    PaymentStatus,
    WebhookEvent,
)
from .stripe_connector import StripeConnector
from .simulator_connector import (
    SimulatorConnector,
    SimulatorConfig,
    SimulatorScenario,
    sign_payload,
)


def build_connector(settings: Settings) -> ConnectorBase:
    """Create the connector selected by ``PAYMENT_PROVIDER``."""
    if settings.payment_provider == "simulator":
        return SimulatorConnector()
    return StripeConnector(
        api_key=settings.stripe_secret_key,
        timeout=settings.processor_timeout_seconds,
        webhook_tolerance=settings.webhook_tolerance_seconds,
    )


__all__ = [
    # Base classes and models
    "ConnectorBase",
    "PaymentRequest",
    "PaymentResult",
    "PaymentStatus",
    "WebhookEvent",
    # Connectors
    "StripeConnector",
    "SimulatorConnector",
    "SimulatorConfig",
    "SimulatorScenario",
    "sign_payload",
    "build_connector",
]
