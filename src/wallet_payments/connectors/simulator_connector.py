"""Simulator connector for exercising wallet payment flows without real processor calls."""

import hashlib
import hmac
import logging
import threading
import time
import uuid
from typing import Any, Dict, Optional
from dataclasses import dataclass
from enum import Enum

from ..errors import ProcessorError
from .base import ConnectorBase, PaymentRequest

logger = logging.getLogger(__name__)


class SimulatorScenario(str, Enum):
    """Predefined outcomes, selected by magic token."""
    SUCCESS = "success"
    DECLINE = "decline"
    REQUIRES_ACTION = "requires_action"
    PROCESSING = "processing"
    TIMEOUT = "timeout"


@dataclass
class SimulatorConfig:
    """Configuration for simulator behavior."""
    delay_ms: int = 0  # Simulated response delay in ms
    default_scenario: SimulatorScenario = SimulatorScenario.SUCCESS


def sign_payload(raw_body: bytes, secret: str) -> str:
    """Signature the simulator expects in the webhook signature header."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


class SimulatorConnector(ConnectorBase):
    """
    Offline processor for local development and tests.

    Tokens mirror Stripe's test tokens so a client can be pointed at either
    backend:
    - ``tok_visa`` and any unknown token: default scenario (success)
    - ``tok_chargeDeclined``: card declined
    - ``tok_threeDSecure``: requires customer action
    - ``tok_processing``: stays processing
    - ``tok_timeout``: transport timeout (retryable)

    Intents created with an idempotency key are replayed for repeated keys.
    """

    name = "simulator"

    TOKEN_SCENARIOS = {
        "tok_visa": SimulatorScenario.SUCCESS,
        "tok_chargeDeclined": SimulatorScenario.DECLINE,
        "tok_threeDSecure": SimulatorScenario.REQUIRES_ACTION,
        "tok_processing": SimulatorScenario.PROCESSING,
        "tok_timeout": SimulatorScenario.TIMEOUT,
    }

    def __init__(self, config: Optional[SimulatorConfig] = None):
        self.config = config or SimulatorConfig()
        self._intents: Dict[str, Dict[str, Any]] = {}
        self._by_idempotency_key: Dict[str, str] = {}
        self._lock = threading.Lock()
        logger.info("SimulatorConnector initialized")

    def _generate_id(self) -> str:
        return f"pi_sim_{uuid.uuid4().hex[:24]}"

    def _apply_delay(self) -> None:
        if self.config.delay_ms > 0:
            time.sleep(self.config.delay_ms / 1000.0)

    def _determine_scenario(self, token: str) -> SimulatorScenario:
        return self.TOKEN_SCENARIOS.get(token, self.config.default_scenario)

    def create_and_confirm(
        self, request: PaymentRequest, idempotency_key: Optional[str] = None
    ) -> Dict[str, Any]:
        self._apply_delay()

        # Lookup and store happen under one lock so concurrent submissions
        # with the same key yield a single intent
        with self._lock:
            if idempotency_key and idempotency_key in self._by_idempotency_key:
                intent_id = self._by_idempotency_key[idempotency_key]
                logger.info(f"Replaying simulated intent {intent_id} for key {idempotency_key}")
                return dict(self._intents[intent_id])

            intent = self._build_intent(request)
            self._intents[intent["id"]] = intent
            if idempotency_key:
                self._by_idempotency_key[idempotency_key] = intent["id"]
            return dict(intent)

    def _build_intent(self, request: PaymentRequest) -> Dict[str, Any]:
        scenario = self._determine_scenario(request.payment_token)

        if scenario == SimulatorScenario.TIMEOUT:
            raise ProcessorError(
                "Simulated timeout contacting the payment processor",
                code="connection_error",
                retryable=True,
            )
        if scenario == SimulatorScenario.DECLINE:
            raise ProcessorError("Your card was declined.", code="card_declined")

        intent_id = self._generate_id()
        intent: Dict[str, Any] = {
            "id": intent_id,
            "object": "payment_intent",
            "amount": request.amount,
            "currency": request.currency.lower(),
            "description": request.description,
            "status": {
                SimulatorScenario.SUCCESS: "succeeded",
                SimulatorScenario.REQUIRES_ACTION: "requires_action",
                SimulatorScenario.PROCESSING: "processing",
            }[scenario],
            "livemode": False,
        }
        if scenario == SimulatorScenario.REQUIRES_ACTION:
            intent["client_secret"] = f"{intent_id}_secret_{uuid.uuid4().hex[:12]}"
            intent["next_action"] = {"type": "use_stripe_sdk"}
        return intent

    def verify_signature(self, raw_body: bytes, signature: str, secret: str) -> bool:
        expected = sign_payload(raw_body, secret).encode("ascii")
        # Header values may carry any latin-1 text; compare as bytes
        if not hmac.compare_digest(expected, signature.strip().encode("utf-8")):
            logger.warning("Simulator webhook signature mismatch")
            return False
        return True

    def get_intent(self, intent_id: str) -> Optional[Dict[str, Any]]:
        """Get a simulated intent (for testing)."""
        with self._lock:
            intent = self._intents.get(intent_id)
            return dict(intent) if intent else None

    def clear(self) -> None:
        """Forget all simulated intents (for test cleanup)."""
        with self._lock:
            self._intents.clear()
            self._by_idempotency_key.clear()

    def health_check(self) -> Dict[str, Any]:
        with self._lock:
            count = len(self._intents)
        return {
            "ok": True,
            "provider": self.name,
            "intent_count": count,
            "delay_ms": self.config.delay_ms,
        }
