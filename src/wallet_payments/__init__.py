# wallet_payments package
__version__ = "0.1.0"

from .config import Settings, get_settings
from .errors import (
    WalletPaymentsError,
    ConfigurationError,
    PaymentValidationError,
    ProcessorError,
    WebhookError,
    WebhookSignatureError,
    WebhookPayloadError,
    TokenExtractionError,
)
from .connectors import (
    ConnectorBase,
    PaymentRequest,
    PaymentResult,
    PaymentStatus,
    WebhookEvent,
    StripeConnector,
    SimulatorConnector,
    build_connector,
)
from .services import PaymentService
from .webhooks import WebhookDispatcher, WebhookHandler, ProcessedEventCache
from .wallet import extract_payment_token, parse_wallet_result
from .client import WalletPaymentClient, PaymentOutcome
from .api import create_app
