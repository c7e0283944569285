import logging
from typing import Any, Dict, Optional

import stripe

from ..errors import ConfigurationError, ProcessorError
from .base import ConnectorBase, PaymentRequest

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_WEBHOOK_TOLERANCE = 300


def processor_error_message(exc: stripe.StripeError) -> str:
    """Best available human-readable message for a Stripe error.

    The top-level message comes first; Stripe sometimes only fills the nested
    ``error.message`` of the response body, so fall back to that.
    """
    message = exc.user_message
    if not message:
        error_object = getattr(exc, "error", None)
        message = getattr(error_object, "message", None) if error_object is not None else None
    if not message and isinstance(exc.json_body, dict):
        nested = exc.json_body.get("error")
        if isinstance(nested, dict):
            message = nested.get("message")
    return message or str(exc) or exc.__class__.__name__


class StripeConnector(ConnectorBase):
    """
    Stripe connector using stripe-python PaymentIntents. The wallet token
    (Google Pay / Apple Pay, tokenized by Stripe) is sent as card
    payment_method_data and the intent is confirmed in the same call.

    Each connector owns a ``stripe.StripeClient`` with its own HTTP client,
    so the API key and timeout never leak into stripe-python's module state.
    """

    name = "stripe"

    def __init__(
        self,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        webhook_tolerance: int = DEFAULT_WEBHOOK_TOLERANCE,
    ):
        if not api_key:
            raise ConfigurationError("A Stripe secret key (STRIPE_SECRET_KEY) is required")
        self._api_key = api_key
        self._webhook_tolerance = webhook_tolerance
        self._timeout = timeout
        self._client = stripe.StripeClient(
            api_key, http_client=stripe.RequestsClient(timeout=timeout)
        )

    def create_and_confirm(
        self, request: PaymentRequest, idempotency_key: Optional[str] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "amount": request.amount,
            "currency": request.currency.lower(),
            "payment_method_types": ["card"],
            "payment_method_data": {
                "type": "card",
                "card": {"token": request.payment_token},
            },
            "confirm": True,
        }
        if request.description:
            params["description"] = request.description
        options: Dict[str, Any] = {}
        if idempotency_key:
            options["idempotency_key"] = idempotency_key

        try:
            pi = self._client.payment_intents.create(params=params, options=options)
        except stripe.APIConnectionError as e:
            # Timeout or network failure: the charge may or may not exist
            logger.error(f"Stripe connection failure (idempotency_key={idempotency_key}): {e}")
            raise ProcessorError(
                processor_error_message(e), code="connection_error", retryable=True
            ) from e
        except stripe.StripeError as e:
            logger.warning(
                f"Stripe rejected payment (code={e.code}, request_id={e.request_id}, "
                f"idempotency_key={idempotency_key})"
            )
            raise ProcessorError(processor_error_message(e), code=e.code) from e

        logger.info(f"Stripe PaymentIntent {pi.id} created with status {pi.status}")
        return pi.to_dict()

    def verify_signature(self, raw_body: bytes, signature: str, secret: str) -> bool:
        try:
            stripe.WebhookSignature.verify_header(
                raw_body.decode("utf-8"),
                signature,
                secret,
                tolerance=self._webhook_tolerance or None,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Stripe webhook signature rejected: {e.user_message}")
            return False
        except UnicodeDecodeError:
            logger.warning("Stripe webhook body is not valid UTF-8")
            return False
        return True

    def health_check(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "provider": self.name,
            "live_mode": self._api_key.startswith("sk_live_"),
            "timeout_seconds": self._timeout,
        }
