from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI

from relaybot.config import Settings
from relaybot.dependencies import BotServices, build_services
from relaybot.logging_config import get_logger, setup_logging
from relaybot.routers import telegram_webhook
from relaybot.storage.kv_store import RedisKeyValueStore

logger = get_logger("main")


def create_app(settings: Optional[Settings] = None, services: Optional[BotServices] = None) -> FastAPI:
    """
    Build the API. With `services` given the app uses them as-is; otherwise one
    Redis store and one HTTP client are opened on startup and closed on shutdown.
    """
    settings = settings or (services.settings if services else Settings())
    setup_logging(settings.log_level)

    app = FastAPI(
        title="relaybot",
        description="Telegram relay between subscribers and a chat-completion service",
        version="0.1.0",
    )
    app.include_router(telegram_webhook.router)
    app.state.services = services

    @app.on_event("startup")
    async def open_resources() -> None:
        if app.state.services is not None:
            return
        if not settings.telegram_bot_token:
            raise RuntimeError("TELEGRAM_BOT_TOKEN is not configured")

        store = RedisKeyValueStore.from_url(settings.redis_url, prefix=settings.redis_key_prefix)
        http_client = httpx.AsyncClient()
        app.state.store = store
        app.state.http_client = http_client
        app.state.services = build_services(settings, store, http_client)
        logger.info("Resources opened", extra={"context": {"redis_url": settings.redis_url}})

    @app.on_event("shutdown")
    async def close_resources() -> None:
        http_client = getattr(app.state, "http_client", None)
        store = getattr(app.state, "store", None)
        if http_client is not None:
            await http_client.aclose()
        if store is not None:
            await store.close()
        logger.info("Resources closed")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


def run() -> None:
    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
