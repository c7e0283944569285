from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

# Canonical models
class PaymentStatus(str, Enum):
    """Normalized lifecycle state of a payment intent."""
    REQUIRES_ACTION = "requires_action"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PROCESSING = "processing"

class PaymentRequest(BaseModel):
    amount: int = Field(gt=0)  # minor units
    currency: str = Field(min_length=3, max_length=3)
    payment_token: str = Field(min_length=1)
    description: Optional[str] = None

class PaymentResult(BaseModel):
    success: bool
    intent_id: str
    status: PaymentStatus
    raw_error: Optional[str] = None
    intent: Dict[str, Any] = Field(default_factory=dict)  # processor fields, verbatim

class WebhookEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    type: str
    signature: str
    raw_body: bytes
    payload: Dict[str, Any] = Field(default_factory=dict)  # data.object

class ConnectorBase(ABC):
    """
    Minimal processor interface. Implementations must make at most one network
    call per create_and_confirm invocation and must not retry on their own.
    """

    name: str = "base"

    @abstractmethod
    def create_and_confirm(
        self, request: PaymentRequest, idempotency_key: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create a card payment from an opaque wallet token and confirm it
        immediately. Returns the processor's intent fields; raises
        ProcessorError on decline or transport failure.
        """
        raise NotImplementedError

    @abstractmethod
    def verify_signature(self, raw_body: bytes, signature: str, secret: str) -> bool:
        """
        Check a webhook signature header against the exact raw body bytes.
        """
        raise NotImplementedError

    def health_check(self) -> Dict[str, Any]:
        return {"ok": True, "provider": self.name}
