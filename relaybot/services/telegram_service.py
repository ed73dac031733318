from typing import Optional, Union

import httpx

from relaybot.logging_config import get_logger

logger = get_logger("telegram_service")

ChatId = Union[int, str]


class TelegramService:
    """Outbound Bot API calls. Failures are logged and returned, never raised."""

    BASE_URL = "https://api.telegram.org/bot{token}"

    def __init__(self, client: httpx.AsyncClient, bot_token: str, timeout_seconds: float = 30.0):
        self.client = client
        self.bot_token = bot_token
        self.base_url = self.BASE_URL.format(token=bot_token)
        self.timeout_seconds = timeout_seconds

    async def _make_request(self, method: str, data: Optional[dict] = None, files: Optional[dict] = None) -> dict:
        url = f"{self.base_url}/{method}"
        try:
            if files:
                response = await self.client.post(url, data=data or {}, files=files, timeout=self.timeout_seconds)
            else:
                response = await self.client.post(url, json=data or {}, timeout=self.timeout_seconds)
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Telegram API error: {method}: {e!r}")
            return {"ok": False, "error": str(e)}

        if not result.get("ok"):
            logger.warning(f"Telegram API rejected {method}: {result.get('description')}")
        return result

    async def send_message(
        self,
        chat_id: ChatId,
        text: str,
        reply_to_message_id: Optional[int] = None,
    ) -> dict:
        data = {"chat_id": chat_id, "text": text}
        if reply_to_message_id:
            data["reply_parameters"] = {"message_id": reply_to_message_id}
        return await self._make_request("sendMessage", data)

    async def send_chat_action(self, chat_id: ChatId, action: str = "typing") -> dict:
        return await self._make_request("sendChatAction", {"chat_id": chat_id, "action": action})

    async def send_photo(
        self,
        chat_id: ChatId,
        photo: bytes,
        caption: Optional[str] = None,
        reply_to_message_id: Optional[int] = None,
    ) -> dict:
        data = {"chat_id": str(chat_id)}
        if caption:
            data["caption"] = caption
        if reply_to_message_id:
            data["reply_to_message_id"] = str(reply_to_message_id)
        return await self._make_request("sendPhoto", data=data, files={"photo": ("image.png", photo, "image/png")})
