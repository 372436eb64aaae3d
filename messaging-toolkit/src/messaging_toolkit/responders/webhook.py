import httpx
from loguru import logger

from messaging_toolkit.api.payloads import ResponderRequest
from messaging_toolkit.responders.base import Responder


class WebhookResponder(Responder):
    """
    Hands the message to an external responder service over HTTP.

    The service replies asynchronously by calling the assistant-response
    delivery route, so 'respond' always returns None. Non-2xx answers raise
    'httpx.HTTPStatusError'.
    """

    def __init__(self, url: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        self.url = url
        self.timeout = timeout
        self.client = client

    async def respond(self, request: ResponderRequest) -> str | None:
        payload = request.model_dump(by_alias=True, exclude_none=True)
        if self.client is not None:
            response = await self.client.post(self.url, json=payload, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=payload)
        response.raise_for_status()
        logger.info(f"Forwarded message from {request.sender_user_id} to responder webhook")
        return None
