import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field, StrictInt
from starlette.concurrency import run_in_threadpool

from .config import Settings, get_settings
from .connectors import ConnectorBase, build_connector
from .errors import ConfigurationError, PaymentValidationError, ProcessorError, WebhookError
from .services import MISSING_FIELDS_MESSAGE, PaymentService
from .webhooks import ProcessedEventCache, WebhookDispatcher, WebhookHandler, default_dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment", tags=["payment"])
health_router = APIRouter(tags=["health"])


class CreatePaymentBody(BaseModel):
    # Presence of amount and paymentToken is checked by the service so that a
    # missing field yields the documented 400 body rather than a schema error.
    # amount is strict: booleans and numeric strings are not coerced.
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[StrictInt] = None
    currency: Optional[str] = None
    payment_token: Optional[str] = Field(None, alias="paymentToken")
    description: Optional[str] = None


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service


def get_webhook_handler(request: Request) -> WebhookHandler:
    return request.app.state.webhook_handler


@router.post("/create-payment")
def create_payment(
    body: CreatePaymentBody,
    idempotency_key: Optional[str] = Header(None),
    service: PaymentService = Depends(get_payment_service),
):
    # Sync route: the blocking processor call runs in the threadpool. A client
    # disconnect does not cancel it; the charge attempt completes server-side.
    result = service.create_and_confirm_payment(
        amount=body.amount,
        currency=body.currency,
        token=body.payment_token,
        description=body.description,
        idempotency_key=idempotency_key,
    )
    if not result.success:
        raise ProcessorError(result.raw_error or "Payment failed")
    return {"success": True, "paymentIntent": result.intent}


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    handler: WebhookHandler = Depends(get_webhook_handler),
):
    # No body model on this route: the signature covers the exact raw bytes
    raw_body = await request.body()
    try:
        await run_in_threadpool(handler.handle, raw_body, stripe_signature)
    except WebhookError as e:
        return PlainTextResponse(f"Webhook Error: {e}", status_code=400)
    except ConfigurationError as e:
        return PlainTextResponse(f"Webhook Error: {e}", status_code=500)
    return {"received": True}


@health_router.get("/health")
def health(request: Request):
    connector: ConnectorBase = request.app.state.connector
    return connector.health_check()


async def payment_validation_error_handler(request: Request, exc: PaymentValidationError):
    logger.warning(f"Rejected payment request on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(err.get("type") == "missing" for err in errors):
        message = MISSING_FIELDS_MESSAGE
    else:
        first = errors[0] if errors else {}
        field = ".".join(part for part in first.get("loc", ()) if isinstance(part, str) and part != "body")
        message = f"Invalid {field or 'request body'}: {first.get('msg', 'malformed request')}"
    logger.warning(f"Rejected malformed request on {request.url.path}: {message}")
    return JSONResponse(status_code=400, content={"error": message})


async def processor_error_handler(request: Request, exc: ProcessorError):
    # Only the processor's own message is relayed
    logger.error(f"Processor error on {request.url.path} (code={exc.code}, retryable={exc.retryable}): {exc.message}")
    headers = {"X-Retryable": "true"} if exc.retryable else None
    return JSONResponse(status_code=500, content={"error": exc.message}, headers=headers)


def create_app(
    settings: Optional[Settings] = None,
    connector: Optional[ConnectorBase] = None,
    dispatcher: Optional[WebhookDispatcher] = None,
) -> FastAPI:
    """Build the API application.

    Args:
        settings: Configuration; loaded from the environment when omitted.
        connector: Processor connector; built from ``settings`` when omitted.
        dispatcher: Webhook dispatcher; the default payment handlers with a
            processed-event cache when omitted.
    """
    settings = settings or get_settings()
    connector = connector or build_connector(settings)
    if dispatcher is None:
        processed_events = None
        if settings.webhook_dedup_ttl_seconds:
            processed_events = ProcessedEventCache(
                ttl_seconds=settings.webhook_dedup_ttl_seconds,
                max_events=settings.webhook_dedup_max_events,
            )
        dispatcher = default_dispatcher(processed_events)

    app = FastAPI(title="Wallet Payments - Reference API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Idempotency-Key", "Stripe-Signature"],
    )

    app.state.settings = settings
    app.state.connector = connector
    app.state.payment_service = PaymentService(connector, default_currency=settings.default_currency)
    app.state.webhook_handler = WebhookHandler(
        secret=settings.stripe_webhook_secret,
        verifier=connector.verify_signature,
        dispatcher=dispatcher,
    )

    app.add_exception_handler(PaymentValidationError, payment_validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(ProcessorError, processor_error_handler)

    app.include_router(router)
    app.include_router(health_router)

    if not settings.stripe_webhook_secret:
        logger.warning("STRIPE_WEBHOOK_SECRET is not set; webhook deliveries will be refused")
    logger.info(f"Wallet payments API ready (provider={connector.name})")
    return app
