from dataclasses import dataclass

import httpx
from fastapi import Request

from relaybot.config import Settings
from relaybot.services.conversation_service import ConversationStore
from relaybot.services.image_service import ImageRequestHandler, ImageServiceClient
from relaybot.services.llm.http_provider import HttpCompletionProvider
from relaybot.services.session_service import SessionOrchestrator, UserLocks
from relaybot.services.subscription_service import SubscriptionRegistry
from relaybot.services.telegram_service import TelegramService
from relaybot.storage.kv_store import KeyValueStore


@dataclass
class BotServices:
    settings: Settings
    registry: SubscriptionRegistry
    conversations: ConversationStore
    orchestrator: SessionOrchestrator
    images: ImageRequestHandler
    telegram: TelegramService


def build_services(settings: Settings, store: KeyValueStore, http_client: httpx.AsyncClient) -> BotServices:
    """Wire every component around one store handle and one HTTP client."""
    registry = SubscriptionRegistry(store)
    conversations = ConversationStore(store, max_messages=settings.transcript_max_messages)
    completion = HttpCompletionProvider(
        http_client,
        api_key=settings.completion_api_key,
        url=settings.completion_url,
        model=settings.completion_model,
        max_tokens=settings.completion_max_tokens,
        temperature=settings.completion_temperature,
        timeout_seconds=settings.completion_timeout_seconds,
    )
    orchestrator = SessionOrchestrator(
        registry,
        conversations,
        completion,
        locks=UserLocks() if settings.serialize_exchanges else None,
    )
    images = ImageRequestHandler(
        registry,
        ImageServiceClient(http_client, settings.image_service_url, timeout_seconds=settings.image_timeout_seconds),
    )
    telegram = TelegramService(http_client, settings.telegram_bot_token)
    return BotServices(
        settings=settings,
        registry=registry,
        conversations=conversations,
        orchestrator=orchestrator,
        images=images,
        telegram=telegram,
    )


def get_services(request: Request) -> BotServices:
    return request.app.state.services
