"""Payment service layer: request validation and result normalization around a connector."""

import logging
import re
from typing import Any, Dict, Optional

from .connectors.base import ConnectorBase, PaymentRequest, PaymentResult, PaymentStatus
from .errors import PaymentValidationError

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "amount and paymentToken required"

_CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")


class PaymentService:
    """Creates and confirms wallet-token payments through a processor connector."""

    def __init__(self, connector: ConnectorBase, default_currency: str = "usd"):
        """Initialize the service.

        Args:
            connector: Processor connector performing the external call.
            default_currency: Currency used when a request does not name one.
        """
        self.connector = connector
        self.default_currency = default_currency.lower()

    def create_and_confirm_payment(
        self,
        amount: Optional[int],
        currency: Optional[str],
        token: Optional[str],
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentResult:
        """Create a card payment from a wallet token and confirm it immediately.

        Validation happens before the connector is touched, so invalid input
        never reaches the processor. Exactly one connector call is made for
        valid input.

        Args:
            amount: Amount in minor currency units (e.g. cents).
            currency: Three-letter currency code; defaults when omitted.
            token: Opaque wallet payment token.
            description: Optional description recorded on the intent.
            idempotency_key: Optional key forwarded to the processor.

        Returns:
            Normalized PaymentResult carrying the processor's intent fields.

        Raises:
            PaymentValidationError: If required fields are missing or malformed.
            ProcessorError: If the processor declines or cannot be reached.
        """
        request = self._build_request(amount, currency, token, description)

        logger.info(
            f"Creating payment for {request.amount} {request.currency} "
            f"(idempotency_key={idempotency_key})"
        )
        intent = self.connector.create_and_confirm(request, idempotency_key=idempotency_key)
        result = self._to_result(intent)

        if result.success:
            logger.info(f"Payment {result.intent_id} confirmed with status {result.status.value}")
        else:
            logger.warning(f"Payment {result.intent_id} failed: {result.raw_error}")
        return result

    def _build_request(
        self,
        amount: Optional[int],
        currency: Optional[str],
        token: Optional[str],
        description: Optional[str],
    ) -> PaymentRequest:
        if amount is None or not token or not str(token).strip():
            raise PaymentValidationError(MISSING_FIELDS_MESSAGE)
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise PaymentValidationError("amount must be a positive integer in minor currency units")

        currency = (currency or self.default_currency).strip()
        if not _CURRENCY_RE.match(currency):
            raise PaymentValidationError("currency must be a 3-letter currency code")

        return PaymentRequest(
            amount=amount,
            currency=currency.lower(),
            payment_token=str(token).strip(),
            description=description or None,
        )

    def _to_result(self, intent: Dict[str, Any]) -> PaymentResult:
        status = self._map_processor_status(intent.get("status"))
        raw_error = None
        if status == PaymentStatus.FAILED:
            last_error = intent.get("last_payment_error") or {}
            raw_error = last_error.get("message") or f"Payment ended with status {intent.get('status')}"
        return PaymentResult(
            success=status != PaymentStatus.FAILED,
            intent_id=intent.get("id") or "",
            status=status,
            raw_error=raw_error,
            intent=intent,
        )

    def _map_processor_status(self, processor_status: Optional[str]) -> PaymentStatus:
        """Map a processor intent status to the normalized PaymentStatus."""
        status_mapping = {
            "succeeded": PaymentStatus.SUCCEEDED,
            "processing": PaymentStatus.PROCESSING,
            "requires_capture": PaymentStatus.PROCESSING,
            "requires_action": PaymentStatus.REQUIRES_ACTION,
            "requires_confirmation": PaymentStatus.REQUIRES_ACTION,
            "requires_payment_method": PaymentStatus.FAILED,
            "canceled": PaymentStatus.FAILED,
        }
        return status_mapping.get(processor_status or "", PaymentStatus.PROCESSING)
