from typing import Sequence
from unittest.mock import AsyncMock

import pytest

from relaybot.config import Settings
from relaybot.schemas.conversation import Turn
from relaybot.services.conversation_service import ConversationStore
from relaybot.services.llm.base import CompletionError, CompletionProvider
from relaybot.services.subscription_service import SubscriptionRegistry
from relaybot.storage.kv_store import RedisKeyValueStore


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.closed = False

    async def set(self, key: str, value: str, ex: int | None = None):
        self.data[key] = value
        return True

    async def get(self, key: str):
        return self.data.get(key)

    async def delete(self, *keys: str):
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def aclose(self):
        self.closed = True


class BrokenRedis(FakeRedis):
    async def set(self, key: str, value: str, ex: int | None = None):
        raise ConnectionError("redis down")

    async def delete(self, *keys: str):
        raise ConnectionError("redis down")


class FakeCompletion(CompletionProvider):
    def __init__(self, reply: str = "hello", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[list[Turn]] = []

    async def complete(self, messages: Sequence[Turn]) -> str:
        self.calls.append(list(messages))
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def redis_client():
    return FakeRedis()


@pytest.fixture
def store(redis_client):
    return RedisKeyValueStore(redis_client, prefix="test")


@pytest.fixture
def registry(store):
    return SubscriptionRegistry(store)


@pytest.fixture
def conversations(store):
    return ConversationStore(store)


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def failing_completion():
    return FakeCompletion(error=CompletionError("upstream 502"))


@pytest.fixture
def settings():
    return Settings(
        telegram_bot_token="123:test-token",
        completion_api_key="test-key",
        redis_url="redis://localhost:6379/15",
    )


@pytest.fixture
def telegram():
    telegram = AsyncMock()
    telegram.send_message.return_value = {"ok": True}
    telegram.send_chat_action.return_value = {"ok": True}
    telegram.send_photo.return_value = {"ok": True}
    return telegram
