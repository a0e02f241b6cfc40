import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from vetsphere.config import Settings, WebhookMode, get_settings, load_settings
from vetsphere.database import Base, create_db_engine, create_session_factory, get_db
from vetsphere.errors import NotConfigured, VetSphereError
from vetsphere.orders import apply_outcome
from vetsphere.routes import router
from vetsphere.webhooks import normalize_event, parse_payload, verify_event

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="VetSphere Payments Service")
    app.state.settings = settings

    engine = create_db_engine(settings.database_url)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    Base.metadata.create_all(bind=engine)

    if settings.webhook_mode == WebhookMode.TEST:
        logger.warning("Webhook running in test mode: unsigned events are accepted (APP_ENV=%s)",
                       settings.environment.value)
    elif settings.webhook_mode == WebhookMode.DISABLED:
        logger.warning("STRIPE_WEBHOOK_SECRET is not configured, webhook deliveries will be rejected")

    app.add_exception_handler(VetSphereError, handle_service_error)
    app.include_router(router)
    app.add_api_route("/webhook", stripe_webhook, methods=["POST"])

    return app


async def handle_service_error(request: Request, exc: VetSphereError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    payload = await request.body()
    mode = settings.webhook_mode

    if mode == WebhookMode.DISABLED:
        raise NotConfigured("Webhook signing secret not configured")

    if mode == WebhookMode.TEST:
        event = parse_payload(payload)
    else:
        event = verify_event(settings, payload, stripe_signature)

    logger.info("Received event: %s (%s mode)", event.get("type", "unknown"), mode.value)

    try:
        normalized = normalize_event(event)
        if normalized is not None:
            await run_in_threadpool(apply_outcome, db, normalized.order_id, normalized.outcome)
    except Exception as e:
        logger.exception("Webhook processing failed")
        return JSONResponse(status_code=500, content={"error": str(e) or "Webhook processing failed"})

    if mode == WebhookMode.TEST:
        return {"received": True, "mode": "test"}
    return {"received": True}
