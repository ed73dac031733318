from enum import Enum

from relaybot.logging_config import get_logger
from relaybot.services.result import ErrorCode, Result
from relaybot.storage.kv_store import CHATS, PROMPTS, SUBSCRIBERS, KeyValueStore, UserId

logger = get_logger("subscription_service")


class SubscribeOutcome(str, Enum):
    SUBSCRIBED = "subscribed"
    ALREADY_SUBSCRIBED = "already_subscribed"


class SubscriptionRegistry:
    """Per-user opt-in flag. Unsubscribing removes every record the user owns."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def is_subscribed(self, user_id: UserId) -> bool:
        record = await self.store.get(SUBSCRIBERS, user_id)
        return isinstance(record, dict) and record.get("subscribe") is True

    async def subscribe(self, user_id: UserId) -> Result[SubscribeOutcome]:
        try:
            if await self.is_subscribed(user_id):
                return Result.success(SubscribeOutcome.ALREADY_SUBSCRIBED)

            await self.store.set(SUBSCRIBERS, user_id, {"subscribe": True, "id": user_id})
        except Exception as e:
            logger.error(f"Subscribe failed: {e}", extra={"context": {"user_id": user_id}})
            return Result.failure(str(e), ErrorCode.STORAGE_ERROR)

        logger.info("User subscribed", extra={"context": {"user_id": user_id}})
        return Result.success(SubscribeOutcome.SUBSCRIBED)

    async def unsubscribe(self, user_id: UserId) -> Result[None]:
        try:
            await self.store.delete(SUBSCRIBERS, user_id)
            await self.store.delete(CHATS, user_id)
            await self.store.delete(PROMPTS, user_id)
        except Exception as e:
            logger.error(f"Unsubscribe failed: {e}", extra={"context": {"user_id": user_id}})
            return Result.failure(str(e), ErrorCode.STORAGE_ERROR)

        logger.info("User unsubscribed", extra={"context": {"user_id": user_id}})
        return Result.success(None)
