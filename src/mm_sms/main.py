from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .config import get_settings
from .countries import REGISTRY
from .db import Message, SessionLocal, init_db
from .errors import ConfigurationError, ProviderHttpError, ValidationError, WebhookError, redact_value
from .logging_utils import configure_logging
from .messagemedia_client import build_http_client
from .phone import get_normalizer
from .pipeline import SendRequest, SmsRequestAssembler
from .provider import MessageMediaProvider
from .sms import BlacklistRequest, InboundSms, SendBatchRequest, SendSmsRequest
from .trigger import WebhookStore, WebhookTrigger, sample_event, to_event

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: runs once before the app starts serving requests
    configure_logging(get_settings().log_level)
    init_db()
    yield


app = FastAPI(title="mm-sms", version="0.1.0", lifespan=lifespan)


# --- Error mapping ---


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc), "code": exc.code})


@app.exception_handler(ProviderHttpError)
async def provider_error_handler(request: Request, exc: ProviderHttpError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={
            "detail": exc.args[0] if exc.args else str(exc),
            "provider_status": exc.status_code,
            "provider_body": redact_value(exc.body),
        },
    )


@app.exception_handler(WebhookError)
async def webhook_error_handler(request: Request, exc: WebhookError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# --- Admin protection ---

ALLOWED_ADMIN_IPS = {"127.0.0.1", "::1"}


def verify_admin(request: Request) -> None:
    """
    Simple protection for /admin endpoints:
    - only allow requests from ALLOWED_ADMIN_IPS
    - require X-Admin-Token header that matches ADMIN_TOKEN env var
    """
    client_host = request.client.host if request.client else None

    if client_host not in ALLOWED_ADMIN_IPS:
        raise HTTPException(status_code=403, detail="Forbidden")

    admin_token = get_settings().admin_token
    if not admin_token:
        # Admin routes stay closed until a token is configured
        raise HTTPException(status_code=500, detail="ADMIN_TOKEN not configured")

    header_token = request.headers.get("X-Admin-Token")
    if header_token != admin_token:
        raise HTTPException(status_code=401, detail="Invalid admin token")


# --- Dependencies ---


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_provider() -> MessageMediaProvider | None:
    """None when credentials are missing; dry runs still work without them."""
    settings = get_settings()
    if not settings.messagemedia_api_key or not settings.messagemedia_api_secret:
        return None
    return MessageMediaProvider(build_http_client(settings), base_url=settings.messagemedia_base_url)


def require_provider(provider: MessageMediaProvider | None = Depends(get_provider)) -> MessageMediaProvider:
    if provider is None:
        raise ConfigurationError(
            "MessageMedia credentials are not configured "
            "(MESSAGEMEDIA_API_KEY / MESSAGEMEDIA_API_SECRET)"
        )
    return provider


def get_assembler(
    db: Session = Depends(get_db),
    provider: MessageMediaProvider | None = Depends(get_provider),
) -> SmsRequestAssembler:
    normalizer = get_normalizer(get_settings().normalizer_policy)
    return SmsRequestAssembler(provider, normalizer=normalizer, db=db)


def get_trigger(provider: MessageMediaProvider = Depends(require_provider)) -> WebhookTrigger:
    return WebhookTrigger(provider, WebhookStore(SessionLocal))


# --- Inbound webhook ---


@app.post("/webhooks/messagemedia")
def messagemedia_inbound(payload: InboundSms, db: Session = Depends(get_db)) -> JSONResponse:
    """
    MessageMedia RECEIVED_SMS webhook.

    Stores the incoming message and returns the normalized event record:

      { "messageId", "from", "to", "message", "receivedAt", "metadata", "raw" }
    """
    event = to_event(payload.model_dump(exclude_unset=True))

    incoming = Message(
        direction="in",
        source_number=payload.source_number,
        destination_number=payload.destination_number,
        text=payload.message_content,
        provider_message_id=payload.id,
        status="received",
    )
    db.add(incoming)
    db.commit()

    logger.info("Inbound SMS %s from %s", payload.id, payload.source_number)
    return JSONResponse(event)


@app.get("/webhooks/messagemedia/sample")
def messagemedia_sample() -> JSONResponse:
    """Sample event in the same shape as a real delivery, for wiring up consumers."""
    return JSONResponse(sample_event())


# --- Outbound ---


@app.post("/sms/send")
def send_sms(
    payload: SendSmsRequest,
    assembler: SmsRequestAssembler = Depends(get_assembler),
) -> JSONResponse:
    settings = get_settings()
    output = assembler.send(
        payload.to,
        payload.message,
        from_=payload.sender(),
        encoding=payload.encoding,
        default_country=payload.default_country or settings.default_country,
        callback_url=payload.callback_url,
        dry_run=payload.dry_run,
        return_raw=payload.return_raw,
    )
    return JSONResponse(output.to_dict())


@app.post("/sms/send-batch")
def send_sms_batch(
    payload: SendBatchRequest,
    assembler: SmsRequestAssembler = Depends(get_assembler),
) -> JSONResponse:
    settings = get_settings()
    rate_limit_ms = settings.rate_limit_ms if payload.rate_limit_ms is None else payload.rate_limit_ms
    outputs = assembler.send_batch(
        [
            SendRequest(
                to=m.to,
                message=m.message,
                from_=m.sender(),
                encoding=m.encoding,
                default_country=m.default_country or settings.default_country,
                callback_url=m.callback_url,
            )
            for m in payload.messages
        ],
        rate_limit_ms=rate_limit_ms,
        fail_fast=payload.fail_fast,
        dry_run=payload.dry_run,
    )
    return JSONResponse([o.to_dict() for o in outputs])


@app.post("/blacklist")
def add_to_blacklist(
    payload: BlacklistRequest,
    assembler: SmsRequestAssembler = Depends(get_assembler),
) -> JSONResponse:
    settings = get_settings()
    result = assembler.add_to_blacklist(
        payload.numbers,
        default_country=payload.default_country or settings.default_country,
    )
    return JSONResponse(result.to_dict())


# --- Lookups ---


@app.get("/countries")
def countries(q: str | None = None) -> JSONResponse:
    """
    Country selection list, sorted by name.

    Example:
      GET /countries
      GET /countries?q=australia
    """
    if q:
        matches = REGISTRY.search(q)
        return JSONResponse(
            [
                {
                    "alpha2": e.alpha2,
                    "alpha3": e.alpha3,
                    "name": e.name,
                    "calling_code": e.calling_code,
                }
                for e in matches
            ]
        )
    return JSONResponse(REGISTRY.options())


@app.get("/sender-addresses")
def sender_addresses(provider: MessageMediaProvider = Depends(require_provider)) -> JSONResponse:
    return JSONResponse(provider.sender_options())


# --- Webhook lifecycle (admin) ---


def _record_payload(trigger: WebhookTrigger) -> dict[str, Any]:
    record = trigger.state()
    return {
        "state": record.state.value,
        "webhook_id": record.webhook_id,
        "webhook_url": record.webhook_url,
    }


@app.get("/admin/webhook")
def admin_webhook_check(
    trigger: WebhookTrigger = Depends(get_trigger),
    _: None = Depends(verify_admin),
) -> JSONResponse:
    exists = trigger.check_exists()
    return JSONResponse({"exists": exists, **_record_payload(trigger)})


@app.post("/admin/webhook")
def admin_webhook_ensure(
    url: str | None = None,
    trigger: WebhookTrigger = Depends(get_trigger),
    _: None = Depends(verify_admin),
) -> JSONResponse:
    target = url or get_settings().public_webhook_url
    if not target:
        raise HTTPException(status_code=400, detail="No webhook URL given and PUBLIC_WEBHOOK_URL not set")
    trigger.ensure(target)
    return JSONResponse(_record_payload(trigger))


@app.delete("/admin/webhook")
def admin_webhook_delete(
    trigger: WebhookTrigger = Depends(get_trigger),
    _: None = Depends(verify_admin),
) -> JSONResponse:
    deleted = trigger.delete()
    return JSONResponse({"deleted": deleted, **_record_payload(trigger)})
