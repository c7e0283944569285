"""Client adapter: forwards a wallet token to the create-payment endpoint.

This is the server-side counterpart of the snippet a mobile app runs after the
wallet sheet returns. It always produces a user-visible outcome; nothing fails
silently.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .errors import TokenExtractionError
from .wallet import extract_payment_token

logger = logging.getLogger(__name__)

CREATE_PAYMENT_PATH = "/payment/create-payment"


@dataclass(frozen=True)
class PaymentOutcome:
    """What the user is shown after a payment attempt."""
    success: bool
    message: str
    status: Optional[str] = None
    intent_id: Optional[str] = None


class WalletPaymentClient:
    """Submits wallet payments to the backend over HTTP.

    Args:
        base_url: Backend root URL, e.g. ``https://api.example.com``.
        currency: Currency sent when a submission does not name one.
        timeout: Request timeout in seconds.
        http_client: Preconfigured ``httpx.Client`` (tests pass a client with a
            mock transport, or a FastAPI ``TestClient``).
    """

    def __init__(
        self,
        base_url: str = "",
        currency: str = "usd",
        timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self.currency = currency
        self._http = http_client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "WalletPaymentClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def submit_payment(
        self,
        wallet_result: Any,
        amount: int,
        currency: Optional[str] = None,
        description: str = "Wallet payment",
        idempotency_key: Optional[str] = None,
    ) -> PaymentOutcome:
        """Extract the wallet token and ask the backend to charge it.

        Args:
            wallet_result: Result returned by the wallet plugin.
            amount: Amount in minor currency units.
            currency: Currency code; defaults to the client's currency.
            description: Description recorded on the payment.
            idempotency_key: Key identifying this submission; generated when
                omitted. Reuse it when retrying the same payment.
        """
        try:
            token = extract_payment_token(wallet_result)
        except TokenExtractionError as e:
            return PaymentOutcome(success=False, message=f"Payment failed: {e}")

        idempotency_key = idempotency_key or uuid.uuid4().hex
        body = {
            "amount": amount,
            "currency": currency or self.currency,
            "paymentToken": token,
            "description": description,
        }

        try:
            response = self._http.post(
                CREATE_PAYMENT_PATH,
                json=body,
                headers={"Idempotency-Key": idempotency_key},
            )
        except httpx.HTTPError as e:
            logger.error(f"Payment request failed (idempotency_key={idempotency_key}): {e}")
            return PaymentOutcome(success=False, message=f"Error: {e}")

        return self._interpret(response)

    def _interpret(self, response: httpx.Response) -> PaymentOutcome:
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict) and data.get("success") is True:
            intent = data.get("paymentIntent")
            if not isinstance(intent, dict):
                return PaymentOutcome(
                    success=False, message="Error: malformed payment response from server"
                )
            status = intent.get("status")
            return PaymentOutcome(
                success=True,
                message=f"Payment successful! Status: {status}",
                status=status,
                intent_id=intent.get("id"),
            )

        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
        else:
            error = response.text or f"HTTP {response.status_code}"
        logger.warning(f"Payment rejected by server ({response.status_code}): {error}")
        return PaymentOutcome(success=False, message=f"Payment failed: {error}")
