"""Signed webhook verification and event dispatch."""

import json
import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Dict, Optional

from .connectors.base import WebhookEvent
from .errors import ConfigurationError, WebhookPayloadError, WebhookSignatureError

logger = logging.getLogger(__name__)

# verify_signature(raw_body, signature, secret) -> bool
SignatureVerifier = Callable[[bytes, str, str], bool]
EventHandler = Callable[[WebhookEvent], None]

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


class ProcessedEventCache:
    """Bounded, time-limited set of event ids that have already been dispatched.

    Processors redeliver events they consider undelivered. Claiming an id
    before dispatch keeps concurrent redeliveries from running handlers twice;
    releasing it on handler failure lets the processor's retry through.
    """

    def __init__(self, ttl_seconds: float = 86400, max_events: int = 10000):
        self.ttl_seconds = ttl_seconds
        self.max_events = max_events
        self._seen: "OrderedDict[str, float]" = OrderedDict()
        self._lock = threading.Lock()

    def _evict(self, now: float) -> None:
        while self._seen:
            seen_at = next(iter(self._seen.values()))
            if now - seen_at < self.ttl_seconds and len(self._seen) <= self.max_events:
                break
            self._seen.popitem(last=False)

    def claim(self, event_id: str) -> bool:
        """Record ``event_id``; False if it was already claimed within the window."""
        now = time.monotonic()
        with self._lock:
            self._evict(now)
            if event_id in self._seen:
                return False
            self._seen[event_id] = now
            self._evict(now)
            return True

    def release(self, event_id: str) -> None:
        with self._lock:
            self._seen.pop(event_id, None)

    def __contains__(self, event_id: str) -> bool:
        with self._lock:
            self._evict(time.monotonic())
            return event_id in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


def handle_payment_succeeded(event: WebhookEvent) -> None:
    intent = event.payload
    logger.info(
        f"PaymentIntent {intent.get('id')} succeeded "
        f"({intent.get('amount')} {intent.get('currency')}, event {event.id})"
    )


def handle_payment_failed(event: WebhookEvent) -> None:
    intent = event.payload
    last_error = intent.get("last_payment_error") or {}
    reason = last_error.get("message") or "unknown reason"
    logger.warning(f"PaymentIntent {intent.get('id')} failed: {reason} (event {event.id})")


class WebhookDispatcher:
    """Routes verified events to handlers registered per event type.

    Unknown event types are acknowledged without action.
    """

    def __init__(self, processed_events: Optional[ProcessedEventCache] = None):
        self._handlers: Dict[str, EventHandler] = {}
        self.processed_events = processed_events

    def register(self, event_type: str, handler: EventHandler) -> None:
        self._handlers[event_type] = handler

    def dispatch(self, event: WebhookEvent) -> bool:
        """Run the handler for ``event``.

        Returns:
            True if a handler ran, False for unknown types and redeliveries.
        """
        handler = self._handlers.get(event.type)
        if handler is None:
            logger.debug(f"No handler for webhook event type {event.type}, acknowledging")
            return False

        if self.processed_events is not None and event.id:
            if not self.processed_events.claim(event.id):
                logger.info(f"Skipping redelivered webhook event {event.id} ({event.type})")
                return False
            try:
                handler(event)
            except Exception:
                self.processed_events.release(event.id)
                raise
            return True

        handler(event)
        return True


def default_dispatcher(processed_events: Optional[ProcessedEventCache] = None) -> WebhookDispatcher:
    """Dispatcher with the payment success and failure handlers registered."""
    dispatcher = WebhookDispatcher(processed_events)
    dispatcher.register(PAYMENT_SUCCEEDED, handle_payment_succeeded)
    dispatcher.register(PAYMENT_FAILED, handle_payment_failed)
    return dispatcher


class WebhookHandler:
    """Verifies a raw webhook delivery and dispatches the resulting event."""

    def __init__(self, secret: str, verifier: SignatureVerifier, dispatcher: WebhookDispatcher):
        self._secret = secret
        self._verify = verifier
        self.dispatcher = dispatcher

    def handle(self, raw_body: bytes, signature: Optional[str]) -> WebhookEvent:
        """Verify ``raw_body`` against ``signature`` and dispatch the event.

        ``raw_body`` must be the exact bytes received; the payload is only
        parsed once the signature has been checked.

        Raises:
            ConfigurationError: If no webhook secret is configured.
            WebhookSignatureError: If the signature is missing or invalid.
            WebhookPayloadError: If the verified body is not an event envelope.
        """
        if not self._secret:
            logger.error("Webhook received but STRIPE_WEBHOOK_SECRET is not configured")
            raise ConfigurationError("webhook signing secret is not configured")
        if not signature:
            logger.warning("Webhook rejected: missing signature header")
            raise WebhookSignatureError("Missing stripe-signature header")
        if not self._verify(raw_body, signature, self._secret):
            logger.warning(f"Webhook rejected: signature mismatch ({len(raw_body)} bytes)")
            raise WebhookSignatureError("No signatures found matching the expected signature for payload")

        event = self._parse_event(raw_body, signature)
        logger.info(f"Verified webhook event {event.id} ({event.type})")
        self.dispatcher.dispatch(event)
        return event

    def _parse_event(self, raw_body: bytes, signature: str) -> WebhookEvent:
        try:
            envelope = json.loads(raw_body)
        except ValueError as e:
            raise WebhookPayloadError("Invalid payload") from e
        if not isinstance(envelope, dict) or not isinstance(envelope.get("type"), str):
            raise WebhookPayloadError("Event envelope has no type")

        data = envelope.get("data") or {}
        payload = data.get("object") if isinstance(data, dict) else None
        return WebhookEvent(
            id=str(envelope["id"]) if envelope.get("id") is not None else None,
            type=envelope["type"],
            signature=signature,
            raw_body=raw_body,
            payload=payload if isinstance(payload, dict) else {},
        )
