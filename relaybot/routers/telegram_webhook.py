import hmac
import json
from typing import Awaitable, Callable, Optional

from fastapi import APIRouter, Depends, Header, Request

from relaybot.dependencies import BotServices, get_services
from relaybot.logging_config import get_logger
from relaybot.schemas.telegram import TelegramMessage, TelegramUpdate, TelegramWebhookResponse
from relaybot.services.result import ErrorCode
from relaybot.services.subscription_service import SubscribeOutcome

logger = get_logger("telegram_webhook")

router = APIRouter()

MSG_START = "Hello! Send /subscribe to start chat with me!"
MSG_SUBSCRIBED = "Subscribed to the bot"
MSG_ALREADY_SUBSCRIBED = "Sorry, but you already subscribed to me"
MSG_UNSUBSCRIBED = "Unsubscribed from the bot"
MSG_CLEARED = "Your conversation has been cleared up!"
MSG_SUBSCRIBE_FIRST = "You need to /subscribe first to use this command!"
MSG_EMPTY_IMAGE_PROMPT = "Please provide a prompt! Usage: /image <your prompt>"
MSG_IMAGE_NOT_FOUND = "Could not generate image. Try a different prompt."
MSG_IMAGE_ERROR = "Something went wrong while generating the image."
MSG_EMPTY_DIRECTIVE = "Please provide a prompt! Usage: /prompt <system prompt>"
MSG_DIRECTIVE_SAVED = "System prompt saved. Send /clear to start a new conversation with it."
MSG_STORAGE_ERROR = "Something went wrong. Please try again later."

HELP_TEXT = """Here are some basic commands to help you navigate and use the AI Telegram Bot:

- /start: Initiates interaction with the bot.
- /subscribe: Subscribes you to the bot for updates.
- /unsubscribe: Unsubscribes you from the bot.
- /clear: Clear your conversation with the bot.
- /prompt <text>: Set a system prompt for your next conversation.
- /help: List of commands.
- /image <prompt>: Generate AI images for free.

Send /subscribe to start interacting!"""

Handler = Callable[[TelegramMessage, str, BotServices], Awaitable[TelegramWebhookResponse]]


def parse_command(text: str) -> Optional[tuple[str, str]]:
    """Split "/name@bot args" into ("name", "args"). Returns None for plain text."""
    if not text or not text.startswith("/"):
        return None
    parts = text.split(None, 1)
    name = parts[0][1:].split("@", 1)[0].lower()
    if not name:
        return None
    argument = parts[1].strip() if len(parts) > 1 else ""
    return name, argument


async def parse_telegram_update(request: Request) -> Optional[dict]:
    """
    Parse Telegram update with tolerant decoding to avoid utf-8 crashes.
    Returns dict or None.
    """
    try:
        return await request.json()
    except Exception as e:
        logger.warning(f"Standard request.json() failed: {e}, fallback decoding")

    raw = await request.body()
    for enc in ("utf-8", "latin-1"):
        try:
            return json.loads(raw.decode(enc, errors="replace"))
        except ValueError:
            continue

    logger.error("Failed to decode Telegram webhook payload after fallbacks")
    return None


def _is_authorized(services: BotServices, token: str, secret_header: Optional[str]) -> bool:
    settings = services.settings
    if not settings.telegram_bot_token or not hmac.compare_digest(token.encode(), settings.telegram_bot_token.encode()):
        return False
    if settings.webhook_secret:
        return secret_header is not None and hmac.compare_digest(secret_header.encode(), settings.webhook_secret.encode())
    return True


@router.post("/webhook/{token}", response_model=TelegramWebhookResponse)
async def handle_telegram_webhook(
    token: str,
    request: Request,
    services: BotServices = Depends(get_services),
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
):
    if not _is_authorized(services, token, x_telegram_bot_api_secret_token):
        logger.warning("Rejected webhook call with unknown token or secret")
        return TelegramWebhookResponse(success=False, message="Unauthorized webhook")

    try:
        body = await parse_telegram_update(request)
        if body is None:
            return TelegramWebhookResponse(success=False, message="Invalid telegram payload")

        update = TelegramUpdate(**body)
        message = update.message
        if not message or not message.text or not message.from_user:
            return TelegramWebhookResponse(success=True, message="No actionable content")

        command = parse_command(message.text)
        if command and command[0] in COMMANDS:
            name, argument = command
            logger.info(f"Command /{name}", extra={"context": {"user_id": message.from_user.id}})
            return await COMMANDS[name](message, argument, services)

        return await handle_text_message(message, services)

    except Exception as e:
        logger.error(f"Telegram webhook error: {e}", exc_info=True)
        return TelegramWebhookResponse(success=False, message=str(e))


async def _reply(services: BotServices, message: TelegramMessage, text: str, quote: bool = True) -> None:
    await services.telegram.send_message(
        message.chat.id,
        text,
        reply_to_message_id=message.message_id if quote else None,
    )


async def handle_start(message: TelegramMessage, argument: str, services: BotServices) -> TelegramWebhookResponse:
    await _reply(services, message, MSG_START)
    return TelegramWebhookResponse(success=True, message="start")


async def handle_help(message: TelegramMessage, argument: str, services: BotServices) -> TelegramWebhookResponse:
    await _reply(services, message, HELP_TEXT)
    return TelegramWebhookResponse(success=True, message="help")


async def handle_subscribe(message: TelegramMessage, argument: str, services: BotServices) -> TelegramWebhookResponse:
    result = await services.registry.subscribe(message.from_user.id)
    if not result.ok:
        await _reply(services, message, MSG_STORAGE_ERROR)
        return TelegramWebhookResponse(success=False, message=result.error)

    if result.value == SubscribeOutcome.ALREADY_SUBSCRIBED:
        await _reply(services, message, MSG_ALREADY_SUBSCRIBED)
    else:
        await _reply(services, message, MSG_SUBSCRIBED)
    return TelegramWebhookResponse(success=True, message=result.value.value)


async def handle_unsubscribe(message: TelegramMessage, argument: str, services: BotServices) -> TelegramWebhookResponse:
    result = await services.registry.unsubscribe(message.from_user.id)
    if not result.ok:
        await _reply(services, message, MSG_STORAGE_ERROR)
        return TelegramWebhookResponse(success=False, message=result.error)

    await _reply(services, message, MSG_UNSUBSCRIBED)
    return TelegramWebhookResponse(success=True, message="unsubscribed")


async def handle_clear(message: TelegramMessage, argument: str, services: BotServices) -> TelegramWebhookResponse:
    await services.conversations.clear(message.from_user.id)
    await _reply(services, message, MSG_CLEARED)
    return TelegramWebhookResponse(success=True, message="cleared")


async def handle_prompt(message: TelegramMessage, argument: str, services: BotServices) -> TelegramWebhookResponse:
    user_id = message.from_user.id
    if not await services.registry.is_subscribed(user_id):
        await _reply(services, message, MSG_SUBSCRIBE_FIRST)
        return TelegramWebhookResponse(success=False, message=ErrorCode.NOT_SUBSCRIBED)

    if not argument:
        await _reply(services, message, MSG_EMPTY_DIRECTIVE)
        return TelegramWebhookResponse(success=False, message=ErrorCode.EMPTY_PROMPT)

    await services.conversations.set_directive(user_id, argument)
    await _reply(services, message, MSG_DIRECTIVE_SAVED)
    return TelegramWebhookResponse(success=True, message="prompt saved")


async def handle_image(message: TelegramMessage, argument: str, services: BotServices) -> TelegramWebhookResponse:
    chat_id = message.chat.id

    async def show_upload_action() -> None:
        await services.telegram.send_chat_action(chat_id, "upload_photo")

    try:
        result = await services.images.generate_image(
            message.from_user.id, argument, before_request=show_upload_action
        )
    except Exception as e:
        logger.error(f"Image request failed: {e}", exc_info=True)
        await _reply(services, message, MSG_IMAGE_ERROR, quote=False)
        return TelegramWebhookResponse(success=False, message=str(e))

    if result.failed_with(ErrorCode.NOT_SUBSCRIBED):
        await _reply(services, message, MSG_SUBSCRIBE_FIRST)
        return TelegramWebhookResponse(success=False, message=result.error_code)

    if result.failed_with(ErrorCode.EMPTY_PROMPT):
        await _reply(services, message, MSG_EMPTY_IMAGE_PROMPT)
        return TelegramWebhookResponse(success=False, message=result.error_code)

    if not result.ok:
        await _reply(services, message, MSG_IMAGE_ERROR, quote=False)
        return TelegramWebhookResponse(success=False, message=result.error_code)

    if result.value is None:
        await _reply(services, message, MSG_IMAGE_NOT_FOUND, quote=False)
        return TelegramWebhookResponse(success=True, message="image not found")

    await services.telegram.send_photo(chat_id, result.value)
    return TelegramWebhookResponse(success=True, message="image sent")


async def handle_text_message(message: TelegramMessage, services: BotServices) -> TelegramWebhookResponse:
    """Free text goes through the session orchestrator. Failures stay silent for the user."""
    chat_id = message.chat.id

    async def show_typing() -> None:
        await services.telegram.send_chat_action(chat_id, "typing")

    result = await services.orchestrator.handle_message(
        message.from_user.id, message.text, before_completion=show_typing
    )
    if not result.ok:
        return TelegramWebhookResponse(success=False, message=result.error_code)

    await _reply(services, message, result.value)
    return TelegramWebhookResponse(success=True, message="replied")


COMMANDS: dict[str, Handler] = {
    "start": handle_start,
    "help": handle_help,
    "subscribe": handle_subscribe,
    "unsubscribe": handle_unsubscribe,
    "clear": handle_clear,
    "prompt": handle_prompt,
    "image": handle_image,
}
