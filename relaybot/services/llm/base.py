from abc import ABC, abstractmethod
from typing import Sequence

from relaybot.schemas.conversation import Turn


class CompletionError(Exception):
    """The completion service could not produce a reply."""


class CompletionProvider(ABC):
    """Abstract chat-completion backend."""

    @abstractmethod
    async def complete(self, messages: Sequence[Turn]) -> str:
        """Return the assistant reply for `messages` or raise CompletionError."""
