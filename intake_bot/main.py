"""Application entry point for the Renovation Intake Bot."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

# Setup logging as the absolute first step before any app imports
from intake_bot.logging_config import setup_logging
setup_logging()

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from intake_bot import __version__
from intake_bot.bot import bot, dp, on_shutdown, on_startup
from intake_bot.config import settings
from intake_bot.exceptions import SessionStoreUnavailable

logger = structlog.get_logger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager."""
    logger.info("Starting Renovation Intake Bot application")
    await on_startup()

    yield

    logger.info("Shutting down Renovation Intake Bot application")
    await on_shutdown()


app = FastAPI(
    title="Renovation Intake Bot",
    description="Telegram survey collecting completed renovation projects",
    version=__version__,
    debug=settings.debug,
    lifespan=lifespan,
)


@app.get("/healthz")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "service": "renovation-intake-bot"}


@app.get("/readyz")
async def ready_check() -> Response:
    """Readiness check endpoint."""
    redis_ok = False
    store = dp.get("session_store")
    if store is not None:
        try:
            redis_ok = await store.ping()
        except SessionStoreUnavailable as e:
            logger.error("Readiness check failed: Redis connection error", error=str(e))

    if redis_ok:
        return JSONResponse({"status": "ready"})
    return JSONResponse(
        {"status": "not_ready", "checks": {"redis": redis_ok}},
        status_code=503,
    )


@app.get(settings.webhook_path)
async def telegram_webhook_probe() -> dict:
    """Liveness probe on the webhook URL."""
    return {"status": "ok", "service": "renovation-intake-bot", "method": "GET"}


@app.post(settings.webhook_path)
async def telegram_webhook(request: Request) -> Response:
    """Handle Telegram webhook updates.

    Telegram redelivers any update that does not get a 2xx answer, so every
    update with a valid secret is answered with 200, even when handling fails.
    """
    secret_header = request.headers.get(SECRET_HEADER)
    if settings.telegram_webhook_secret and secret_header != settings.telegram_webhook_secret:
        logger.warning("Invalid webhook secret")
        return JSONResponse({"ok": False}, status_code=403)

    try:
        update_data = await request.json()
        await dp.feed_webhook_update(bot, update_data)
    except Exception as e:
        logger.error("Webhook processing error", error=str(e), exc_info=True)
        return JSONResponse({"ok": False})

    return JSONResponse({"ok": True})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "intake_bot.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
