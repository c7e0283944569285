"""Exception hierarchy for the wallet payments backend and client."""

from typing import Optional


class WalletPaymentsError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(WalletPaymentsError):
    """Required configuration (API key, webhook secret) is missing or invalid."""


class PaymentValidationError(WalletPaymentsError):
    """The payment request is missing fields or carries malformed values."""


class ProcessorError(WalletPaymentsError):
    """The payment processor failed or declined the create-and-confirm call.

    Attributes:
        message: The processor's own error message, safe to relay to callers.
        code: Processor error code (e.g. ``card_declined``) when available.
        retryable: True for transport failures (timeouts, connection errors)
            where the outcome is unknown and a retry with the same idempotency
            key is safe. False for declines and invalid requests.
    """

    def __init__(self, message: str, code: Optional[str] = None, retryable: bool = False):
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable


class WebhookError(WalletPaymentsError):
    """An inbound webhook delivery was rejected."""


class WebhookSignatureError(WebhookError):
    """The webhook signature is missing or does not match the raw body."""


class WebhookPayloadError(WebhookError):
    """The webhook body was signed correctly but is not a valid event envelope."""


class TokenExtractionError(WalletPaymentsError):
    """The wallet plugin result does not contain a recognizable payment token."""
