from typing import Optional, Sequence

from pydantic import ValidationError

from relaybot.logging_config import get_logger
from relaybot.schemas.conversation import Turn
from relaybot.storage.kv_store import CHATS, PROMPTS, KeyValueStore, UserId

logger = get_logger("conversation_service")


def apply_window(turns: Sequence[Turn], max_messages: Optional[int]) -> list[Turn]:
    """Keep the leading system turn plus the newest turns, at most `max_messages` in total."""
    turns = list(turns)
    if max_messages is None or len(turns) <= max_messages:
        return turns

    if turns and turns[0].role == "system":
        return [turns[0]] + turns[len(turns) - (max_messages - 1) :]
    return turns[len(turns) - max_messages :]


class ConversationStore:
    """Per-user transcript plus the optional directive used to seed it."""

    def __init__(self, store: KeyValueStore, max_messages: Optional[int] = None):
        self.store = store
        self.max_messages = max_messages

    async def load_seed(self, user_id: UserId) -> list[Turn]:
        """Stored transcript if any, else a system turn from the directive, else empty."""
        stored = await self.store.get(CHATS, user_id)
        if isinstance(stored, list):
            try:
                return [Turn.model_validate(item) for item in stored]
            except ValidationError as e:
                logger.warning(
                    f"Stored transcript is malformed, reseeding: {e}",
                    extra={"context": {"user_id": user_id}},
                )

        directive = await self.get_directive(user_id)
        if directive:
            return [Turn.system(directive)]
        return []

    async def append(self, user_id: UserId, turns: Sequence[Turn]) -> None:
        """Persist the complete transcript, replacing whatever was stored."""
        window = apply_window(turns, self.max_messages)
        await self.store.set(CHATS, user_id, [turn.model_dump() for turn in window])

    async def clear(self, user_id: UserId) -> None:
        await self.store.delete(CHATS, user_id)

    async def get_directive(self, user_id: UserId) -> Optional[str]:
        directive = await self.store.get(PROMPTS, user_id)
        return directive if isinstance(directive, str) else None

    async def set_directive(self, user_id: UserId, directive: str) -> None:
        await self.store.set(PROMPTS, user_id, directive)
