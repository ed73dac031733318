import json
from abc import ABC, abstractmethod
from typing import Any, Optional, Union

import redis.asyncio as redis_async

from relaybot.logging_config import get_logger

logger = get_logger("kv_store")

UserId = Union[int, str]

SUBSCRIBERS = "data"
CHATS = "chats"
PROMPTS = "prompt"


class KeyValueStore(ABC):
    """Async mapping from (namespace, user_id) to JSON-serializable values."""

    @abstractmethod
    async def get(self, namespace: str, user_id: UserId) -> Optional[Any]:
        """Return the stored value or None when the key is absent."""

    @abstractmethod
    async def set(self, namespace: str, user_id: UserId, value: Any) -> None:
        """Replace the stored value."""

    @abstractmethod
    async def delete(self, namespace: str, user_id: UserId) -> None:
        """Remove the key. Deleting a missing key is not an error."""

    async def close(self) -> None:
        pass


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store. Keys are `<prefix>:<namespace>:<user_id>`, values JSON."""

    def __init__(self, client, prefix: str = "relaybot"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, redis_url: str, prefix: str = "relaybot", socket_timeout_seconds: float = 5.0):
        client = redis_async.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=socket_timeout_seconds,
            socket_timeout=socket_timeout_seconds,
        )
        return cls(client, prefix=prefix)

    def _key(self, namespace: str, user_id: UserId) -> str:
        return f"{self.prefix}:{namespace}:{user_id}"

    async def get(self, namespace: str, user_id: UserId) -> Optional[Any]:
        raw = await self.client.get(self._key(namespace, user_id))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(
                "Discarding undecodable value",
                extra={"context": {"namespace": namespace, "user_id": user_id}},
            )
            return None

    async def set(self, namespace: str, user_id: UserId, value: Any) -> None:
        await self.client.set(self._key(namespace, user_id), json.dumps(value, ensure_ascii=False))

    async def delete(self, namespace: str, user_id: UserId) -> None:
        await self.client.delete(self._key(namespace, user_id))

    async def close(self) -> None:
        await self.client.aclose()
