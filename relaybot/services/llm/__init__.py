from relaybot.services.llm.base import CompletionError, CompletionProvider
from relaybot.services.llm.http_provider import HttpCompletionProvider

__all__ = ["CompletionError", "CompletionProvider", "HttpCompletionProvider"]
