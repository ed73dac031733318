import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager, nullcontext
from typing import AsyncIterator, Awaitable, Callable, Optional

from relaybot.logging_config import get_logger, user_logger
from relaybot.schemas.conversation import Turn
from relaybot.services.conversation_service import ConversationStore
from relaybot.services.llm.base import CompletionError, CompletionProvider
from relaybot.services.result import ErrorCode, Result
from relaybot.services.subscription_service import SubscriptionRegistry
from relaybot.storage.kv_store import UserId

logger = get_logger("session_service")

BeforeCompletionHook = Callable[[], Awaitable[None]]


class UserLocks:
    """One asyncio.Lock per user id. Serializes exchanges within this process only."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, user_id: UserId) -> AsyncIterator[None]:
        async with self._locks[str(user_id)]:
            yield


class SessionOrchestrator:
    """
    Runs one exchange per inbound text:
    subscription check -> load seed -> add user turn -> completion ->
    add assistant turn -> persist full transcript -> return reply.

    Holds no per-user state. Without `locks`, concurrent exchanges for the
    same user race and the last persisted transcript wins.
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        conversations: ConversationStore,
        completion: CompletionProvider,
        locks: Optional[UserLocks] = None,
    ):
        self.registry = registry
        self.conversations = conversations
        self.completion = completion
        self.locks = locks

    async def handle_message(
        self,
        user_id: UserId,
        text: str,
        before_completion: Optional[BeforeCompletionHook] = None,
    ) -> Result[str]:
        log = user_logger(logger, user_id)

        try:
            subscribed = await self.registry.is_subscribed(user_id)
        except Exception as e:
            log.error(f"Subscription lookup failed: {e}")
            return Result.failure(str(e), ErrorCode.STORAGE_ERROR)

        if not subscribed:
            return Result.failure("User is not subscribed", ErrorCode.NOT_SUBSCRIBED)

        guard = self.locks.hold(user_id) if self.locks else nullcontext()
        async with guard:
            return await self._exchange(user_id, text, before_completion, log)

    async def _exchange(self, user_id, text, before_completion, log) -> Result[str]:
        try:
            turns = await self.conversations.load_seed(user_id)
        except Exception as e:
            log.error(f"Transcript load failed: {e}")
            return Result.failure(str(e), ErrorCode.STORAGE_ERROR)

        turns.append(Turn.user(text))

        if before_completion is not None:
            await before_completion()

        try:
            reply = await self.completion.complete(turns)
        except CompletionError as e:
            log.error(f"Completion failed: {e}", context={"turns": len(turns)})
            return Result.failure(str(e), ErrorCode.COMPLETION_ERROR)

        turns.append(Turn.assistant(reply))

        try:
            await self.conversations.append(user_id, turns)
        except Exception as e:
            log.error(f"Transcript write failed: {e}")
            return Result.failure(str(e), ErrorCode.STORAGE_ERROR)

        log.info("Exchange completed", context={"turns": len(turns)})
        return Result.success(reply)
