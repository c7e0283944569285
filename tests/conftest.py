"""Shared test fixtures and configuration."""

import hashlib
import hmac
import time
import pytest
from unittest.mock import MagicMock
from typing import Any, Dict, List, Optional, Tuple

from wallet_payments.config import Settings
from wallet_payments.connectors.base import ConnectorBase, PaymentRequest

TEST_WEBHOOK_SECRET = "whsec_test_secret"

# Every StripeClient routes PaymentIntent creation through this service method
PAYMENT_INTENT_CREATE = "stripe.PaymentIntentService.create"


class StubConnector(ConnectorBase):
    """Processor stand-in that records calls and returns a canned intent."""

    name = "stub"

    def __init__(self, intent: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.intent = intent or {"id": "pi_1", "status": "succeeded"}
        self.error = error
        self.calls: List[Tuple[PaymentRequest, Optional[str]]] = []

    def create_and_confirm(self, request, idempotency_key=None):
        self.calls.append((request, idempotency_key))
        if self.error is not None:
            raise self.error
        return dict(self.intent)

    def verify_signature(self, raw_body, signature, secret):
        return signature == "valid"


def stripe_signature(payload: bytes, secret: str = TEST_WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header value for ``payload``."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture
def settings() -> Settings:
    """Settings for the Stripe provider with test credentials."""
    return Settings(
        _env_file=None,
        payment_provider="stripe",
        stripe_secret_key="sk_test_dummy_key_for_testing",
        stripe_webhook_secret=TEST_WEBHOOK_SECRET,
        cors_origin="https://shop.example.com",
    )


@pytest.fixture
def stub_connector() -> StubConnector:
    return StubConnector()


@pytest.fixture
def valid_payment_body() -> Dict[str, Any]:
    """Return a valid create-payment body."""
    return {
        "amount": 499,
        "currency": "usd",
        "paymentToken": "tok_visa",
        "description": "Test",
    }


@pytest.fixture
def mock_stripe_payment_intent():
    """Create a mock succeeded Stripe PaymentIntent."""
    mock_pi = MagicMock()
    mock_pi.id = "pi_1"
    mock_pi.status = "succeeded"
    mock_pi.to_dict.return_value = {"id": "pi_1", "status": "succeeded"}
    return mock_pi


@pytest.fixture
def mock_stripe_payment_intent_3ds():
    """Create a mock Stripe PaymentIntent requiring 3DS."""
    mock_pi = MagicMock()
    mock_pi.id = "pi_3ds"
    mock_pi.status = "requires_action"
    mock_pi.to_dict.return_value = {
        "id": "pi_3ds",
        "status": "requires_action",
        "amount": 1000,
        "currency": "usd",
        "client_secret": "pi_3ds_secret_xxx",
        "next_action": {"type": "use_stripe_sdk", "use_stripe_sdk": {}},
    }
    return mock_pi


@pytest.fixture
def succeeded_event() -> Dict[str, Any]:
    return {
        "id": "evt_succeeded_1",
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": "pi_1", "status": "succeeded", "amount": 499, "currency": "usd"}},
    }


@pytest.fixture
def failed_event() -> Dict[str, Any]:
    return {
        "id": "evt_failed_1",
        "type": "payment_intent.payment_failed",
        "data": {
            "object": {
                "id": "pi_2",
                "status": "requires_payment_method",
                "last_payment_error": {"message": "Your card was declined."},
            }
        },
    }
