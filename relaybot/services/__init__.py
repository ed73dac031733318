from relaybot.services.conversation_service import ConversationStore
from relaybot.services.image_service import ImageRequestHandler, ImageServiceClient, extract_png
from relaybot.services.result import ErrorCode, Result
from relaybot.services.session_service import SessionOrchestrator, UserLocks
from relaybot.services.subscription_service import SubscribeOutcome, SubscriptionRegistry
from relaybot.services.telegram_service import TelegramService

__all__ = [
    "ConversationStore",
    "ErrorCode",
    "ImageRequestHandler",
    "ImageServiceClient",
    "Result",
    "SessionOrchestrator",
    "SubscribeOutcome",
    "SubscriptionRegistry",
    "TelegramService",
    "UserLocks",
    "extract_png",
]
