import base64
import binascii
import re
from typing import Awaitable, Callable, Optional

import httpx

from relaybot.logging_config import get_logger
from relaybot.services.result import ErrorCode, Result
from relaybot.services.subscription_service import SubscriptionRegistry
from relaybot.storage.kv_store import UserId

logger = get_logger("image_service")

PNG_PAYLOAD_PATTERN = re.compile(r'"src":"data:image/png;base64,([^"]+)"')


class ImageServiceError(Exception):
    """The image page could not be fetched."""


def extract_png(html: str) -> Optional[bytes]:
    """Decode the first embedded base64 PNG in `html`, or None when there is none."""
    match = PNG_PAYLOAD_PATTERN.search(html or "")
    if not match:
        return None
    try:
        return base64.b64decode(match.group(1), validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Embedded image payload is not valid base64")
        return None


class ImageServiceClient:
    """Fetches the HTML page rendered for a prompt."""

    def __init__(self, client: httpx.AsyncClient, url: str, timeout_seconds: float = 60.0):
        self.client = client
        self.url = url
        self.timeout_seconds = timeout_seconds

    async def fetch_page(self, prompt: str) -> str:
        try:
            # httpx URL-encodes query params
            response = await self.client.get(self.url, params={"prompt": prompt}, timeout=self.timeout_seconds)
        except httpx.HTTPError as e:
            raise ImageServiceError(f"Image service request failed: {e!r}") from e

        if response.status_code != 200:
            raise ImageServiceError(f"Image service error: {response.status_code}")
        return response.text


class ImageRequestHandler:
    def __init__(self, registry: SubscriptionRegistry, client: ImageServiceClient):
        self.registry = registry
        self.client = client

    async def generate_image(
        self,
        user_id: UserId,
        prompt: str,
        before_request: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> Result[Optional[bytes]]:
        """
        Success with PNG bytes, success with None when the page carried no image,
        failure for not_subscribed / empty_prompt / image_service_error.
        """
        if not await self.registry.is_subscribed(user_id):
            return Result.failure("User is not subscribed", ErrorCode.NOT_SUBSCRIBED)

        prompt = (prompt or "").strip()
        if not prompt:
            return Result.failure("Prompt is empty", ErrorCode.EMPTY_PROMPT)

        if before_request is not None:
            await before_request()

        try:
            html = await self.client.fetch_page(prompt)
        except ImageServiceError as e:
            logger.error(str(e), extra={"context": {"user_id": user_id}})
            return Result.failure(str(e), ErrorCode.IMAGE_SERVICE_ERROR)

        image = extract_png(html)
        if image is None:
            logger.info("No image in service response", extra={"context": {"user_id": user_id}})
        return Result.success(image)
